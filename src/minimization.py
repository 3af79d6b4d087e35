import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Hashable, List, Mapping, Optional, Tuple

from automaton import Automaton, natural_key, ordered
from conversion import check_size
from errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EquivalenceClass:
    class_id: str
    states: Tuple[Hashable, ...]
    representative: Hashable
    is_accepting: bool


@dataclass(frozen=True)
class MinimizationStep:
    step: int
    description: str
    equivalence_classes: Tuple[EquivalenceClass, ...]
    action: str


@dataclass(frozen=True)
class MinimizationResult:
    dfa: Automaton
    trace: Tuple[MinimizationStep, ...]
    equivalence_classes: Tuple[EquivalenceClass, ...]
    removed_states: Tuple[Hashable, ...]
    unreachable_states: Tuple[Hashable, ...]
    state_mapping: Mapping[Hashable, Hashable]
    state_reduction: int


def class_id(index: int) -> str:
    label = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def reduction_percent(original: int, final: int) -> int:
    if original == 0:
        return 0
    return (200 * (original - final) + original) // (2 * original)


def remove_unreachable_states(dfa: Automaton) -> Tuple[Automaton, Tuple[Hashable, ...]]:
    reachable = dfa.reachable_states()
    unreachable = tuple(ordered(dfa.states - reachable))
    if not unreachable:
        return dfa, unreachable

    pruned = Automaton(
        states=reachable,
        alphabet=dfa.alphabet,
        start_state=dfa.start_state,
        accept_states=dfa.accept_states & reachable,
        transitions={s: dfa.transitions.get(s, {}) for s in reachable},
        is_dfa=True,
        name=dfa.name,
        description=dfa.description,
        state_composition={
            s: comp for s, comp in dfa.state_composition.items() if s in reachable
        },
    )
    return pruned, unreachable


class _Partition:
    def __init__(self, dfa: Automaton, blocks: List[List[Hashable]]):
        self.dfa = dfa
        self.blocks: List[List[Hashable]] = []
        self.block_of: Dict[Hashable, int] = {}
        self._reset([b for b in blocks if b])

    def _reset(self, blocks: List[List[Hashable]]) -> None:
        self.blocks = sorted(
            (ordered(b) for b in blocks), key=lambda b: natural_key(b[0])
        )
        self.block_of = {
            state: idx for idx, block in enumerate(self.blocks) for state in block
        }

    def split_by(self, idx: int, symbol: str) -> List[List[Hashable]]:
        groups: Dict[int, List[Hashable]] = {}
        for state in self.blocks[idx]:
            target_block = self.block_of[self.dfa.target(state, symbol)]
            groups.setdefault(target_block, []).append(state)
        return list(groups.values())

    def replace(self, idx: int, groups: List[List[Hashable]]) -> None:
        blocks = self.blocks[:idx] + groups + self.blocks[idx + 1:]
        self._reset(blocks)

    def classes(self) -> Tuple[EquivalenceClass, ...]:
        return tuple(
            EquivalenceClass(
                class_id=class_id(idx),
                states=tuple(block),
                representative=block[0],
                is_accepting=block[0] in self.dfa.accept_states,
            )
            for idx, block in enumerate(self.blocks)
        )


def _describe_classes(classes: Tuple[EquivalenceClass, ...]) -> str:
    return ", ".join(
        f"{c.class_id}={{{', '.join(str(s) for s in c.states)}}}" for c in classes
    )


def minimize(
    dfa: Automaton, max_states: Optional[int] = None, name_suffix: str = "__MIN"
) -> MinimizationResult:
    if not dfa.is_dfa:
        raise ValidationError(f"Minimization requires a DFA, got an NFA: {dfa.name}")
    check_size(dfa, max_states)

    reachable_dfa, unreachable = remove_unreachable_states(dfa)
    if unreachable:
        logger.debug("Removed unreachable states: %s", list(unreachable))

    alphabet = reachable_dfa.ordered_alphabet()
    accepting = [s for s in reachable_dfa.states if s in reachable_dfa.accept_states]
    rejecting = [s for s in reachable_dfa.states if s not in reachable_dfa.accept_states]
    partition = _Partition(reachable_dfa, [accepting, rejecting])
    trace: List[MinimizationStep] = []

    description = "Initial partition: accepting and non-accepting states"
    if unreachable:
        description += (
            f" (unreachable states removed: {', '.join(str(s) for s in unreachable)})"
        )
    trace.append(
        MinimizationStep(
            step=1,
            description=description,
            equivalence_classes=partition.classes(),
            action="Separate accepting and non-accepting states",
        )
    )

    changed = True
    while changed:
        changed = False
        for idx in range(len(partition.blocks)):
            for symbol in alphabet:
                groups = partition.split_by(idx, symbol)
                if len(groups) < 2:
                    continue
                split_id = class_id(idx)
                split_members = ", ".join(str(s) for s in partition.blocks[idx])
                partition.replace(idx, groups)
                classes = partition.classes()
                trace.append(
                    MinimizationStep(
                        step=len(trace) + 1,
                        description=(
                            f"Class {split_id} {{{split_members}}} is split on "
                            f"symbol {symbol} into {len(groups)} classes: "
                            f"{_describe_classes(classes)}"
                        ),
                        equivalence_classes=classes,
                        action=f"Split class {split_id} by symbol {symbol}",
                    )
                )
                changed = True
                break
            if changed:
                break

    final_classes = partition.classes()
    trace.append(
        MinimizationStep(
            step=len(trace) + 1,
            description=(
                f"Final partition with {len(final_classes)} classes: "
                f"{_describe_classes(final_classes)}"
            ),
            equivalence_classes=final_classes,
            action="No class can be split further",
        )
    )

    representative_of = {
        state: cls.representative for cls in final_classes for state in cls.states
    }
    new_trans = {
        cls.representative: {
            a: {representative_of[reachable_dfa.target(cls.representative, a)]}
            for a in alphabet
        }
        for cls in final_classes
    }
    block_composition = {}
    for cls in final_classes:
        combined = set()
        for s in cls.states:
            combined.update(reachable_dfa.state_composition.get(s, {s}))
        block_composition[cls.representative] = combined

    minimized = Automaton(
        states=new_trans.keys(),
        alphabet=alphabet,
        start_state=representative_of[reachable_dfa.start_state],
        accept_states={cls.representative for cls in final_classes if cls.is_accepting},
        transitions=new_trans,
        is_dfa=True,
        name=f"{dfa.name}{name_suffix}",
        description=f"Minimized DFA equivalent to {dfa.name}",
        state_composition=block_composition,
    )

    removed = tuple(ordered(dfa.states - minimized.states))
    reduction = reduction_percent(len(dfa.states), len(minimized.states))
    logger.info(
        "Minimization: %d states -> %d states (%d%% reduction, %d unreachable)",
        len(dfa.states),
        len(minimized.states),
        reduction,
        len(unreachable),
    )
    return MinimizationResult(
        dfa=minimized,
        trace=tuple(trace),
        equivalence_classes=final_classes,
        removed_states=removed,
        unreachable_states=unreachable,
        state_mapping=MappingProxyType(dict(representative_of)),
        state_reduction=reduction,
    )
