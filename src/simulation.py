from typing import FrozenSet, Hashable, Iterable, List

from automaton import Automaton
from errors import SymbolError


def epsilon_closure(automaton: Automaton, states: Iterable[Hashable]) -> FrozenSet[Hashable]:
    stack = list(states)
    closure = set(stack)

    while stack:
        s = stack.pop()
        for nxt in automaton.epsilon_targets(s):
            if nxt not in closure:
                closure.add(nxt)
                stack.append(nxt)

    return frozenset(closure)


def move(automaton: Automaton, states: Iterable[Hashable], symbol: str) -> FrozenSet[Hashable]:
    result = set()

    for s in states:
        result |= automaton.targets(s, symbol)

    return frozenset(result)


def _check_symbol(automaton: Automaton, symbol, position: int) -> None:
    if symbol not in automaton.alphabet:
        raise SymbolError(symbol, position)


def run(automaton: Automaton, symbols: Iterable[str]) -> List[FrozenSet[Hashable]]:
    """Active states before and after each consumed symbol.

    The first entry is the epsilon closure of the start state. A DFA always
    has exactly one active state per entry.
    """
    if automaton.is_dfa:
        current_state = automaton.start_state
        history = [frozenset([current_state])]

        for position, symbol in enumerate(symbols):
            _check_symbol(automaton, symbol, position)
            nxt = automaton.target(current_state, symbol)
            if nxt is None:
                raise SymbolError(
                    symbol,
                    position,
                    f"No transition from {current_state!r} on {symbol!r}",
                )
            current_state = nxt
            history.append(frozenset([current_state]))

        return history

    current_states = epsilon_closure(automaton, [automaton.start_state])
    history = [current_states]

    for position, symbol in enumerate(symbols):
        _check_symbol(automaton, symbol, position)
        current_states = epsilon_closure(
            automaton, move(automaton, current_states, symbol)
        )
        history.append(current_states)

    return history


def accepts(automaton: Automaton, symbols: Iterable[str]) -> bool:
    """Decide whether ``symbols`` is in the language of ``automaton``.

    A plain string is read one character at a time. Symbols outside the
    alphabet raise ``SymbolError``. An NFA keeps going after its active set
    becomes empty so that later symbols are still checked.
    """
    final_states = run(automaton, symbols)[-1]
    return automaton.contains_accepting(final_states)
