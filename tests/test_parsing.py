import json

import pytest

from conversion import subset_construct
from errors import ValidationError
from minimization import minimize
from parsing import (
    automaton_to_json_dict,
    conversion_result_to_json_dict,
    load_automaton,
    looks_like_dfa,
    minimization_result_to_json_dict,
    parse_json_automaton,
    validate_dfa,
    validate_nfa,
    write_json,
)


def test_validate_nfa_reads_the_app_format(nfa_json):
    nfa = validate_nfa(nfa_json)
    assert not nfa.is_dfa
    assert nfa.start_state == "q0"
    assert nfa.targets("q0", "1") == frozenset({"q0"})
    assert nfa.description == "Strings ending in 01"


def test_validate_nfa_accepts_snake_case_and_inferred_alphabet():
    nfa = validate_nfa(
        {
            "states": ["a", "b"],
            "start_state": "a",
            "accept_states": ["b"],
            "transitions": {"a": {"x": ["b"], "ε": ["b"]}},
        }
    )
    assert nfa.alphabet == frozenset({"x"})
    assert nfa.epsilon_targets("a") == frozenset({"b"})


def test_missing_start_state(nfa_json):
    del nfa_json["startState"]
    with pytest.raises(ValidationError, match="startState"):
        validate_nfa(nfa_json)


def test_dangling_reference(nfa_json):
    nfa_json["transitions"]["q1"]["0"] = ["q7"]
    with pytest.raises(ValidationError, match="q7"):
        validate_nfa(nfa_json)


def test_wrong_field_types(nfa_json):
    nfa_json["transitions"] = ["q0"]
    with pytest.raises(ValidationError):
        validate_nfa(nfa_json)
    with pytest.raises(ValidationError):
        validate_nfa("not an object")


def test_validate_dfa_requires_single_destinations():
    data = {
        "states": ["q0", "q1"],
        "alphabet": ["a"],
        "transitions": {"q0": {"a": ["q0", "q1"]}, "q1": {"a": "q1"}},
        "startState": "q0",
        "acceptStates": [],
    }
    with pytest.raises(ValidationError, match="exactly one"):
        validate_dfa(data)


def test_validate_dfa_rejects_partial_functions(nfa_json):
    with pytest.raises(ValidationError, match="not total"):
        validate_dfa(
            {
                "states": ["q0", "q1"],
                "alphabet": ["a"],
                "transitions": {"q0": {"a": "q1"}},
                "startState": "q0",
                "acceptStates": ["q1"],
            }
        )


def test_integer_states_with_string_keys():
    dfa = validate_dfa(
        {
            "states": [0, 1],
            "alphabet": ["a"],
            "transitions": {"0": {"a": 1}, "1": {"a": "0"}},
            "startState": 0,
            "acceptStates": [1],
        }
    )
    assert dfa.target(0, "a") == 1
    assert dfa.target(1, "a") == 0


def test_kind_detection(nfa_json):
    assert not looks_like_dfa(nfa_json)
    dfa_json = automaton_to_json_dict(subset_construct(validate_nfa(nfa_json)).dfa)
    del dfa_json["type"]
    assert looks_like_dfa(dfa_json)
    dfa_json["type"] = "nfa"
    assert not looks_like_dfa(dfa_json)


def test_json_round_trip(nfa_json):
    nfa = validate_nfa(nfa_json)
    assert validate_nfa(automaton_to_json_dict(nfa)) == nfa

    dfa = subset_construct(nfa).dfa
    data = automaton_to_json_dict(dfa)
    assert data["transitions"]["S0"] == {"0": "S1", "1": "S0"}
    assert data["stateComposition"]["S1"] == ["q0", "q1"]
    assert validate_dfa(data) == dfa


def test_conversion_steps_use_app_field_names(nfa_json):
    data = conversion_result_to_json_dict(subset_construct(validate_nfa(nfa_json)))
    first = data["conversionSteps"][0]
    assert set(first) == {"step", "description", "newStates", "stateMapping"}
    assert first["stateMapping"] == {"S0": ["q0"]}
    assert "deadState" not in data


def test_minimization_report(duplicate_pair_dfa):
    data = minimization_result_to_json_dict(minimize(duplicate_pair_dfa))
    assert data["removedStates"] == ["C"]
    assert data["stateReduction"] == 25
    assert data["equivalenceClasses"][1] == {
        "id": "B",
        "states": ["B", "C"],
        "representative": "B",
        "isAccepting": False,
    }
    assert data["minimizationSteps"][0]["action"] == (
        "Separate accepting and non-accepting states"
    )
    json.dumps(data)


def test_file_round_trip(tmp_path, nfa_json):
    path = tmp_path / "nested" / "ends_with_01.json"
    write_json(nfa_json, str(path))
    nfa = parse_json_automaton(str(path))
    assert nfa.name == "ends_with_01"
    assert not nfa.is_dfa


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValidationError, match="not valid JSON"):
        parse_json_automaton(str(path))


def test_start_state_must_be_a_state_id():
    with pytest.raises(ValidationError, match="startState"):
        validate_nfa({"states": ["q0"], "startState": ["q0"]})
    with pytest.raises(ValidationError, match="startState"):
        validate_nfa({"states": ["q0"], "startState": True})


def test_alphabet_entries_must_be_strings(nfa_json):
    nfa_json["alphabet"] = ["0", ["1"]]
    with pytest.raises(ValidationError, match="alphabet"):
        validate_nfa(nfa_json)


def test_kind_detection_tolerates_malformed_rows():
    data = {"transitions": {"q0": {"a": None}}}
    assert not looks_like_dfa(data)
    assert not looks_like_dfa({"states": [["q0"]], "transitions": {}})
    with pytest.raises(ValidationError):
        load_automaton(data)
    with pytest.raises(ValidationError):
        load_automaton(dict(data, states=["q0"], startState="q0"))
