import re
from types import MappingProxyType
from typing import Dict, FrozenSet, Hashable, Iterable, List, Mapping, Optional, Set

import networkx as nx

from errors import ValidationError


EPSILON_SYMBOLS = {"", "ε", "eps", "epsilon"}

_DIGIT_RUN = re.compile(r"([0-9]+)")


def natural_key(value: Hashable):
    parts = []
    for chunk in _DIGIT_RUN.split(str(value)):
        if not chunk:
            continue
        if _DIGIT_RUN.fullmatch(chunk):
            parts.append((0, int(chunk), ""))
        else:
            parts.append((1, 0, chunk))
    return tuple(parts), type(value).__name__, str(value)


def ordered(items: Iterable[Hashable]) -> List[Hashable]:
    return sorted(items, key=natural_key)


def _as_state_set(dests) -> FrozenSet[Hashable]:
    if dests is None:
        return frozenset()
    if isinstance(dests, (str, int)):
        return frozenset([dests])
    return frozenset(dests)


class Automaton:
    def __init__(
        self,
        states: Iterable[Hashable],
        alphabet: Iterable[str],
        start_state: Hashable,
        accept_states: Iterable[Hashable],
        transitions: Mapping[Hashable, Mapping[str, Iterable[Hashable]]],
        epsilon_transitions: Optional[Mapping[Hashable, Iterable[Hashable]]] = None,
        is_dfa: bool = False,
        name: str = "automaton",
        description: str = "",
        state_composition: Optional[Mapping[Hashable, Iterable[Hashable]]] = None,
    ):
        self._states = frozenset(states)
        self._alphabet = frozenset(alphabet)
        self._start_state = start_state
        self._accept_states = frozenset(accept_states)
        self._is_dfa = bool(is_dfa)
        self._name = name
        self._description = description

        rows: Dict[Hashable, Dict[str, FrozenSet[Hashable]]] = {}
        epsilon: Dict[Hashable, Set[Hashable]] = {}
        for state, dests in (epsilon_transitions or {}).items():
            epsilon.setdefault(state, set()).update(_as_state_set(dests))

        for state, symbol_map in transitions.items():
            row = rows.setdefault(state, {})
            for symbol, dests in symbol_map.items():
                if symbol in EPSILON_SYMBOLS:
                    if self._is_dfa:
                        raise ValidationError(
                            "A DFA cannot have epsilon transitions", state=state
                        )
                    epsilon.setdefault(state, set()).update(_as_state_set(dests))
                    continue
                dest_set = _as_state_set(dests)
                if dest_set:
                    row[symbol] = dest_set

        self._transitions = MappingProxyType(
            {state: MappingProxyType(row) for state, row in rows.items() if row}
        )
        self._epsilon_transitions = MappingProxyType(
            {state: frozenset(dests) for state, dests in epsilon.items() if dests}
        )
        self._state_composition = MappingProxyType(
            {
                state: frozenset(members)
                for state, members in (state_composition or {}).items()
            }
        )

        self._validate(rows)

    def _validate(self, rows: Mapping[Hashable, Mapping[str, FrozenSet[Hashable]]]) -> None:
        if not self._states:
            raise ValidationError("An automaton needs at least one state")
        if self._start_state not in self._states:
            raise ValidationError(
                "Start state is not in the state set", state=self._start_state
            )

        for symbol in self._alphabet:
            if not isinstance(symbol, str):
                raise ValidationError("Alphabet symbols must be strings", symbol=symbol)
            if symbol in EPSILON_SYMBOLS:
                raise ValidationError(
                    "Epsilon cannot be an alphabet symbol", symbol=symbol
                )

        unknown = self._first_unknown(self._accept_states)
        if unknown is not None:
            raise ValidationError("Accept state is not in the state set", state=unknown)

        for state in ordered(rows):
            if state not in self._states:
                raise ValidationError(
                    "Transition source is not in the state set", state=state
                )
            for symbol in ordered(rows[state]):
                if symbol not in self._alphabet:
                    raise ValidationError(
                        "Transition symbol is not in the alphabet",
                        state=state,
                        symbol=symbol,
                    )
                unknown = self._first_unknown(rows[state][symbol])
                if unknown is not None:
                    raise ValidationError(
                        f"Transition target {unknown!r} is not in the state set",
                        state=state,
                        symbol=symbol,
                    )

        for state in ordered(self._epsilon_transitions):
            if state not in self._states:
                raise ValidationError(
                    "Epsilon transition source is not in the state set", state=state
                )
            unknown = self._first_unknown(self._epsilon_transitions[state])
            if unknown is not None:
                raise ValidationError(
                    f"Epsilon transition target {unknown!r} is not in the state set",
                    state=state,
                )

        unknown = self._first_unknown(self._state_composition)
        if unknown is not None:
            raise ValidationError(
                "State composition names an unknown state", state=unknown
            )

        if not self._is_dfa:
            return

        if self._epsilon_transitions:
            state = ordered(self._epsilon_transitions)[0]
            raise ValidationError("A DFA cannot have epsilon transitions", state=state)
        for state in self.ordered_states():
            for symbol in self.ordered_alphabet():
                dests = self.targets(state, symbol)
                if not dests:
                    raise ValidationError(
                        "DFA transition function is not total",
                        state=state,
                        symbol=symbol,
                    )
                if len(dests) > 1:
                    raise ValidationError(
                        "DFA transition has more than one destination",
                        state=state,
                        symbol=symbol,
                    )

    def _first_unknown(self, states: Iterable[Hashable]) -> Optional[Hashable]:
        unknown = ordered(set(states) - self._states)
        return unknown[0] if unknown else None

    @property
    def states(self) -> FrozenSet[Hashable]:
        return self._states

    @property
    def alphabet(self) -> FrozenSet[str]:
        return self._alphabet

    @property
    def start_state(self) -> Hashable:
        return self._start_state

    @property
    def accept_states(self) -> FrozenSet[Hashable]:
        return self._accept_states

    @property
    def transitions(self) -> Mapping[Hashable, Mapping[str, FrozenSet[Hashable]]]:
        return self._transitions

    @property
    def epsilon_transitions(self) -> Mapping[Hashable, FrozenSet[Hashable]]:
        return self._epsilon_transitions

    @property
    def is_dfa(self) -> bool:
        return self._is_dfa

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def state_composition(self) -> Mapping[Hashable, FrozenSet[Hashable]]:
        return self._state_composition

    def ordered_states(self) -> List[Hashable]:
        return ordered(self._states)

    def ordered_alphabet(self) -> List[str]:
        return ordered(self._alphabet)

    def ordered_accept_states(self) -> List[Hashable]:
        return ordered(self._accept_states)

    def targets(self, state: Hashable, symbol: str) -> FrozenSet[Hashable]:
        return self._transitions.get(state, {}).get(symbol, frozenset())

    def target(self, state: Hashable, symbol: str) -> Optional[Hashable]:
        dests = self.targets(state, symbol)
        if len(dests) != 1:
            return None
        return next(iter(dests))

    def epsilon_targets(self, state: Hashable) -> FrozenSet[Hashable]:
        return self._epsilon_transitions.get(state, frozenset())

    def contains_accepting(self, states: Iterable[Hashable]) -> bool:
        return any(state in self._accept_states for state in states)

    def renamed(self, name: str, description: Optional[str] = None) -> "Automaton":
        return Automaton(
            states=self._states,
            alphabet=self._alphabet,
            start_state=self._start_state,
            accept_states=self._accept_states,
            transitions=self._transitions,
            epsilon_transitions=self._epsilon_transitions,
            is_dfa=self._is_dfa,
            name=name,
            description=self._description if description is None else description,
            state_composition=self._state_composition,
        )

    def get_readable_state_name(self, state: Hashable) -> str:
        if state in self._state_composition:
            composition = [str(s) for s in ordered(self._state_composition[state])]
            return f"{state}<{','.join(composition)}>"
        return str(state)

    def get_stats(self) -> Dict:
        total_transitions = sum(
            len(dests)
            for state_trans in self._transitions.values()
            for dests in state_trans.values()
        )
        epsilon_transitions = sum(
            len(dests) for dests in self._epsilon_transitions.values()
        )

        return {
            "states": len(self._states),
            "alphabet_size": len(self._alphabet),
            "accept_states": len(self._accept_states),
            "total_transitions": total_transitions + epsilon_transitions,
            "epsilon_transitions": epsilon_transitions,
            "is_dfa": self._is_dfa,
        }

    def to_graph(self, use_readable_names: bool = True) -> nx.DiGraph:
        G = nx.DiGraph(name=self._name)
        for state in self.ordered_states():
            G.add_node(
                state,
                label=self.get_readable_state_name(state)
                if use_readable_names
                else str(state),
                start=state == self._start_state,
                accepting=state in self._accept_states,
            )

        edge_symbols: Dict[tuple, List[str]] = {}
        for state in self.ordered_states():
            for symbol in self.ordered_alphabet():
                for dest in ordered(self.targets(state, symbol)):
                    edge_symbols.setdefault((state, dest), []).append(symbol)
            for dest in ordered(self.epsilon_targets(state)):
                edge_symbols.setdefault((state, dest), []).append("ε")

        for (from_state, to_state), symbols in edge_symbols.items():
            G.add_edge(
                from_state, to_state, symbols=tuple(symbols), label=",".join(symbols)
            )
        return G

    def reachable_states(self) -> FrozenSet[Hashable]:
        G = self.to_graph(use_readable_names=False)
        return frozenset(nx.descendants(G, self._start_state)) | {self._start_state}

    def _key(self):
        return (
            self._is_dfa,
            self._states,
            self._alphabet,
            self._start_state,
            self._accept_states,
            frozenset(
                (state, symbol, dest)
                for state, row in self._transitions.items()
                for symbol, dests in row.items()
                for dest in dests
            ),
            frozenset(
                (state, dest)
                for state, dests in self._epsilon_transitions.items()
                for dest in dests
            ),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Automaton):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        kind = "DFA" if self._is_dfa else "NFA"
        return (
            f"<{kind} {self._name!r}: {len(self._states)} states, "
            f"alphabet={self.ordered_alphabet()}, start={self._start_state!r}>"
        )
