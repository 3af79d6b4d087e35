import logging
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Deque, Dict, FrozenSet, Hashable, List, Mapping, Optional, Tuple

from automaton import Automaton, ordered
from errors import SizeLimitError
from simulation import epsilon_closure, move

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionStep:
    step: int
    description: str
    new_states: Tuple[str, ...]
    state_mapping: Mapping[str, FrozenSet[Hashable]]


@dataclass(frozen=True)
class ConversionResult:
    dfa: Automaton
    trace: Tuple[ConversionStep, ...]
    dead_state: Optional[str] = None


def check_size(automaton: Automaton, max_states: Optional[int]) -> None:
    if max_states is not None and len(automaton.states) > max_states:
        raise SizeLimitError(len(automaton.states), max_states)


def _format_subset(subset: Tuple[Hashable, ...]) -> str:
    return "{" + ", ".join(str(s) for s in subset) + "}"


class _SubsetTable:
    """Arena of discovered subsets: subset -> index, label S<index>."""

    def __init__(self):
        self.index: Dict[FrozenSet[Hashable], int] = {}
        self.subsets: List[Tuple[Hashable, ...]] = []

    @staticmethod
    def label(idx: int) -> str:
        return f"S{idx}"

    def lookup(self, subset: Tuple[Hashable, ...]) -> Optional[int]:
        return self.index.get(frozenset(subset))

    def add(self, subset: Tuple[Hashable, ...]) -> int:
        idx = len(self.subsets)
        self.index[frozenset(subset)] = idx
        self.subsets.append(subset)
        return idx

    def mapping(self) -> Mapping[str, FrozenSet[Hashable]]:
        return MappingProxyType(
            {self.label(i): frozenset(subset) for i, subset in enumerate(self.subsets)}
        )

    def __len__(self) -> int:
        return len(self.subsets)


def subset_construct(
    nfa: Automaton, max_states: Optional[int] = None, name_suffix: str = "__DFA"
) -> ConversionResult:
    """Subset construction with a step-by-step trace.

    DFA states are labelled ``S0``, ``S1``, ... in discovery order (FIFO
    worklist, alphabet in canonical order), so identical input yields an
    identical DFA and trace. Empty move targets go to a single dead state
    that is appended last, keeping the result total.
    """
    check_size(nfa, max_states)

    alphabet = nfa.ordered_alphabet()
    table = _SubsetTable()
    trace: List[ConversionStep] = []

    def record(description: str, new_states: List[str]) -> None:
        trace.append(
            ConversionStep(
                step=len(trace) + 1,
                description=description,
                new_states=tuple(new_states),
                state_mapping=table.mapping(),
            )
        )

    start_subset = tuple(ordered(epsilon_closure(nfa, [nfa.start_state])))
    start_idx = table.add(start_subset)
    queue: Deque[int] = deque([start_idx])
    record(
        f"Compute epsilon closure of initial state {nfa.start_state}: "
        f"{table.label(start_idx)} = {_format_subset(start_subset)}",
        [table.label(start_idx)],
    )

    dfa_trans: Dict[str, Dict[str, str]] = {}
    needs_dead_state = False

    while queue:
        T_idx = queue.popleft()
        T = table.subsets[T_idx]
        T_name = table.label(T_idx)
        dfa_trans[T_name] = {}

        for a in alphabet:
            U = epsilon_closure(nfa, move(nfa, T, a))
            if not U:
                needs_dead_state = True
                record(f"Process {T_name} on input {a}: no NFA state is reachable", [])
                continue

            U_key = tuple(ordered(U))
            U_idx = table.lookup(U_key)
            new_states = []
            if U_idx is None:
                U_idx = table.add(U_key)
                queue.append(U_idx)
                new_states.append(table.label(U_idx))
                logger.debug(
                    "Discovered %s = %s", table.label(U_idx), _format_subset(U_key)
                )

            dfa_trans[T_name][a] = table.label(U_idx)
            record(
                f"Process {T_name} on input {a}: reaches "
                f"{table.label(U_idx)} = {_format_subset(U_key)}",
                new_states,
            )

    state_composition = {
        table.label(i): frozenset(subset) for i, subset in enumerate(table.subsets)
    }
    dfa_accepts = {
        table.label(i)
        for i, subset in enumerate(table.subsets)
        if nfa.contains_accepting(subset)
    }

    dead_state = None
    if needs_dead_state:
        dead_state = table.label(len(table))
        state_composition[dead_state] = frozenset()
        dfa_trans[dead_state] = {}
        for name in dfa_trans:
            for a in alphabet:
                dfa_trans[name].setdefault(a, dead_state)
        mapping = dict(table.mapping())
        mapping[dead_state] = frozenset()
        trace.append(
            ConversionStep(
                step=len(trace) + 1,
                description=(
                    f"Add dead state {dead_state} for missing transitions; "
                    f"it loops to itself on every input"
                ),
                new_states=(dead_state,),
                state_mapping=MappingProxyType(mapping),
            )
        )

    dfa = Automaton(
        states=dfa_trans.keys(),
        alphabet=alphabet,
        start_state=table.label(start_idx),
        accept_states=dfa_accepts,
        transitions={
            s: {a: {d} for a, d in row.items()} for s, row in dfa_trans.items()
        },
        is_dfa=True,
        name=f"{nfa.name}{name_suffix}",
        description=f"DFA converted from {nfa.name} using subset construction",
        state_composition=state_composition,
    )

    logger.info(
        "Subset construction: %d NFA states -> %d DFA states%s",
        len(nfa.states),
        len(dfa.states),
        " (with dead state)" if dead_state else "",
    )
    return ConversionResult(dfa=dfa, trace=tuple(trace), dead_state=dead_state)
