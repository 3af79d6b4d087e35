import itertools
import random

import pytest

from automaton import Automaton


def all_strings(alphabet, max_len):
    symbols = sorted(alphabet)
    for length in range(max_len + 1):
        for combo in itertools.product(symbols, repeat=length):
            yield list(combo)


def random_nfa(seed, n_states=4, alphabet=("a", "b")):
    rng = random.Random(seed)
    states = [f"q{i}" for i in range(n_states)]
    transitions = {}
    epsilon = {}
    for s in states:
        for a in alphabet:
            dests = {d for d in states if rng.random() < 0.3}
            if dests:
                transitions.setdefault(s, {})[a] = dests
        eps = {d for d in states if d != s and rng.random() < 0.15}
        if eps:
            epsilon[s] = eps
    accept = {s for s in states if rng.random() < 0.35}
    return Automaton(
        states=states,
        alphabet=alphabet,
        start_state="q0",
        accept_states=accept,
        transitions=transitions,
        epsilon_transitions=epsilon,
        name=f"random_{seed}",
    )


@pytest.fixture
def ends_with_01():
    """NFA over {0,1}: q0 loops, guesses the final '0' into q1, then '1' into q2."""
    return Automaton(
        states={"q0", "q1", "q2"},
        alphabet={"0", "1"},
        start_state="q0",
        accept_states={"q2"},
        transitions={
            "q0": {"0": {"q0", "q1"}, "1": {"q0"}},
            "q1": {"1": {"q2"}},
        },
        name="ends_with_01",
    )


@pytest.fixture
def epsilon_cycle_nfa():
    return Automaton(
        states={"s0", "s1", "s2", "s3"},
        alphabet={"a"},
        start_state="s0",
        accept_states={"s3"},
        transitions={"s1": {"a": {"s2"}}},
        epsilon_transitions={"s0": {"s1"}, "s1": {"s0"}, "s2": {"s3"}},
        name="epsilon_cycle",
    )


@pytest.fixture
def only_a_nfa():
    return Automaton(
        states={"p", "q"},
        alphabet={"a", "b"},
        start_state="p",
        accept_states={"q"},
        transitions={"p": {"a": {"q"}}},
        name="only_a",
    )


@pytest.fixture
def duplicate_pair_dfa():
    """B and C behave identically."""
    return Automaton(
        states={"A", "B", "C", "D"},
        alphabet={"0", "1"},
        start_state="A",
        accept_states={"D"},
        transitions={
            "A": {"0": {"B"}, "1": {"C"}},
            "B": {"0": {"D"}, "1": {"D"}},
            "C": {"0": {"D"}, "1": {"D"}},
            "D": {"0": {"D"}, "1": {"D"}},
        },
        is_dfa=True,
        name="duplicate_pair",
    )


@pytest.fixture
def nfa_json():
    return {
        "states": ["q0", "q1", "q2"],
        "alphabet": ["0", "1"],
        "transitions": {
            "q0": {"0": ["q0", "q1"], "1": "q0"},
            "q1": {"1": ["q2"]},
        },
        "epsilonTransitions": {},
        "startState": "q0",
        "acceptStates": ["q2"],
        "description": "Strings ending in 01",
    }
