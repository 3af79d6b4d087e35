import pytest

from automaton import Automaton
from errors import SymbolError
from simulation import accepts, epsilon_closure, move, run


def test_nfa_acceptance(ends_with_01):
    assert accepts(ends_with_01, "01")
    assert accepts(ends_with_01, "001")
    assert accepts(ends_with_01, "1101")
    assert not accepts(ends_with_01, "")
    assert not accepts(ends_with_01, "10")
    assert not accepts(ends_with_01, "011")


def test_epsilon_closure_terminates_on_cycles(epsilon_cycle_nfa):
    assert epsilon_closure(epsilon_cycle_nfa, ["s0"]) == frozenset({"s0", "s1"})
    assert epsilon_closure(epsilon_cycle_nfa, ["s2"]) == frozenset({"s2", "s3"})
    assert epsilon_closure(epsilon_cycle_nfa, []) == frozenset()


def test_move_unions_targets(ends_with_01):
    assert move(ends_with_01, {"q0", "q1"}, "1") == frozenset({"q0", "q2"})
    assert move(ends_with_01, {"q2"}, "0") == frozenset()


def test_epsilon_nfa_acceptance(epsilon_cycle_nfa):
    assert accepts(epsilon_cycle_nfa, "a")
    assert not accepts(epsilon_cycle_nfa, "")
    assert not accepts(epsilon_cycle_nfa, "aa")


def test_run_reports_active_sets(epsilon_cycle_nfa):
    history = run(epsilon_cycle_nfa, "aa")
    assert history == [
        frozenset({"s0", "s1"}),
        frozenset({"s2", "s3"}),
        frozenset(),
    ]


def test_dfa_acceptance(duplicate_pair_dfa):
    assert accepts(duplicate_pair_dfa, "00")
    assert accepts(duplicate_pair_dfa, "1011")
    assert not accepts(duplicate_pair_dfa, "0")
    assert run(duplicate_pair_dfa, "1") == [frozenset({"A"}), frozenset({"C"})]


def test_unknown_symbol_raises_for_dfa(duplicate_pair_dfa):
    with pytest.raises(SymbolError) as info:
        accepts(duplicate_pair_dfa, "012")
    assert info.value.symbol == "2"
    assert info.value.position == 2


def test_unknown_symbol_raises_for_nfa_even_after_dead_end(ends_with_01):
    # "1" leaves q2 with no moves; "x" must still be reported
    with pytest.raises(SymbolError):
        accepts(ends_with_01, ["0", "1", "1", "x"])


def test_multi_character_symbols():
    nfa = Automaton(
        states={"start", "end"},
        alphabet={"if", "then"},
        start_state="start",
        accept_states={"end"},
        transitions={"start": {"if": {"start", "end"}, "then": {"start"}}},
    )
    assert accepts(nfa, ["then", "if"])
    assert not accepts(nfa, ["if", "then"])
    with pytest.raises(SymbolError):
        accepts(nfa, "if")
