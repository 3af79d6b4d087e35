import json
import os
from typing import Dict, Hashable, Iterable, List, Mapping, Optional

from automaton import Automaton, EPSILON_SYMBOLS, ordered
from conversion import ConversionResult
from errors import ValidationError
from minimization import EquivalenceClass, MinimizationResult


def _get(data: Mapping, *keys, default=None, required=False):
    for key in keys:
        if key in data:
            return data[key]
    if required:
        raise ValidationError(f"Missing required field {keys[0]!r}")
    return default


def _state_list(value, field: str) -> List[Hashable]:
    if isinstance(value, (str, int)):
        return [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError(f"Field {field!r} must be a list of states")
    for item in value:
        if not isinstance(item, (str, int)) or isinstance(item, bool):
            raise ValidationError(f"Field {field!r} holds an invalid state id {item!r}")
    return list(value)


def _automaton_from_dict(data: Mapping, is_dfa: bool, name: str = "automaton") -> Automaton:
    if not isinstance(data, Mapping):
        raise ValidationError("Automaton description must be a JSON object")

    states = _state_list(_get(data, "states", required=True), "states")
    start_state = _get(data, "startState", "start_state", required=True)
    if not isinstance(start_state, (str, int)) or isinstance(start_state, bool):
        raise ValidationError(f"Field 'startState' must be a state id, got {start_state!r}")
    accept_states = _state_list(
        _get(data, "acceptStates", "accept_states", default=[]), "acceptStates"
    )
    raw_trans = _get(data, "transitions", default={})
    raw_eps = _get(data, "epsilonTransitions", "epsilon_transitions", default={})
    if not isinstance(raw_trans, Mapping):
        raise ValidationError("Field 'transitions' must map states to symbol maps")
    if not isinstance(raw_eps, Mapping):
        raise ValidationError("Field 'epsilonTransitions' must map states to state lists")

    # JSON object keys are always strings; map "0" back to the state 0
    by_text = {str(s): s for s in states}

    def resolve(key):
        if key in by_text.values():
            return key
        return by_text.get(str(key), key)

    transitions: Dict[Hashable, Dict[str, List[Hashable]]] = {}
    inferred_alphabet = set()
    for s, symbol_map in raw_trans.items():
        s = resolve(s)
        if not isinstance(symbol_map, Mapping):
            raise ValidationError("Transition row must map symbols to states", state=s)
        row = transitions.setdefault(s, {})
        for sym, dests in symbol_map.items():
            dest_list = [resolve(d) for d in _state_list(dests, "transitions")]
            if is_dfa and len(dest_list) != 1:
                raise ValidationError(
                    "DFA transition must name exactly one state", state=s, symbol=sym
                )
            row[sym] = dest_list
            if sym not in EPSILON_SYMBOLS:
                inferred_alphabet.add(sym)

    epsilon_transitions = {
        resolve(s): [resolve(d) for d in _state_list(dests, "epsilonTransitions")]
        for s, dests in raw_eps.items()
    }

    alphabet = _get(data, "alphabet")
    if alphabet is None:
        alphabet = inferred_alphabet
    elif not isinstance(alphabet, (list, tuple, set)):
        raise ValidationError("Field 'alphabet' must be a list of symbols")
    else:
        for symbol in alphabet:
            if not isinstance(symbol, str):
                raise ValidationError(
                    f"Field 'alphabet' holds an invalid symbol {symbol!r}", symbol=symbol
                )

    return Automaton(
        states=states,
        alphabet=alphabet,
        start_state=start_state,
        accept_states=accept_states,
        transitions=transitions,
        epsilon_transitions=epsilon_transitions,
        is_dfa=is_dfa,
        name=_get(data, "name", default=name),
        description=_get(data, "description", default=""),
    )


def validate_nfa(data: Mapping, name: str = "automaton") -> Automaton:
    return _automaton_from_dict(data, is_dfa=False, name=name)


def validate_dfa(data: Mapping, name: str = "automaton") -> Automaton:
    return _automaton_from_dict(data, is_dfa=True, name=name)


def looks_like_dfa(data: Mapping) -> bool:
    if not isinstance(data, Mapping):
        return False
    kind = str(data.get("type", "")).lower()
    if kind in ("dfa", "nfa"):
        return kind == "dfa"
    if _get(data, "epsilonTransitions", "epsilon_transitions"):
        return False
    raw_trans = data.get("transitions", {})
    if not isinstance(raw_trans, Mapping):
        return False
    for symbol_map in raw_trans.values():
        if not isinstance(symbol_map, Mapping):
            return False
        for sym, dests in symbol_map.items():
            if sym in EPSILON_SYMBOLS:
                return False
            if isinstance(dests, (str, int)):
                continue
            if not isinstance(dests, (list, tuple)) or len(dests) != 1:
                return False
    states = data.get("states", [])
    alphabet = data.get("alphabet") or {
        sym for symbol_map in raw_trans.values() for sym in symbol_map
    }
    if not isinstance(states, (list, tuple)) or not isinstance(alphabet, (list, tuple, set)):
        return False
    if not all(isinstance(x, (str, int)) for x in list(states) + list(alphabet)):
        return False
    return all(
        sym in raw_trans.get(s, raw_trans.get(str(s), {}))
        for s in states
        for sym in alphabet
    )


def load_automaton(data: Mapping, is_dfa: Optional[bool] = None, name: str = "automaton") -> Automaton:
    if is_dfa is None:
        is_dfa = looks_like_dfa(data)
    return validate_dfa(data, name) if is_dfa else validate_nfa(data, name)


def parse_json_automaton(path: str, is_dfa: Optional[bool] = None) -> Automaton:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, Mapping):
        raise ValidationError(f"{path} must contain a JSON object")
    name = os.path.splitext(os.path.basename(path))[0]
    return load_automaton(data, is_dfa, name)


def _state_out(states: Iterable[Hashable]) -> List[Hashable]:
    return list(ordered(states))


def automaton_to_json_dict(a: Automaton) -> dict:
    trans_dict = {}
    for s in a.ordered_states():
        out = {}
        for sym in a.ordered_alphabet():
            dests = a.targets(s, sym)
            if not dests:
                continue
            out[sym] = a.target(s, sym) if a.is_dfa else _state_out(dests)
        if out:
            trans_dict[str(s)] = out

    result = {
        "name": a.name,
        "type": "dfa" if a.is_dfa else "nfa",
        "states": a.ordered_states(),
        "alphabet": a.ordered_alphabet(),
        "transitions": trans_dict,
        "startState": a.start_state,
        "acceptStates": a.ordered_accept_states(),
        "description": a.description,
    }
    if not a.is_dfa:
        result["epsilonTransitions"] = {
            str(s): _state_out(a.epsilon_targets(s))
            for s in ordered(a.epsilon_transitions)
        }
    if a.state_composition:
        result["stateComposition"] = {
            str(state): _state_out(a.state_composition[state])
            for state in ordered(a.state_composition)
        }
    return result


def conversion_result_to_json_dict(result: ConversionResult) -> dict:
    data = automaton_to_json_dict(result.dfa)
    data["conversionSteps"] = [
        {
            "step": step.step,
            "description": step.description,
            "newStates": list(step.new_states),
            "stateMapping": {
                label: _state_out(subset)
                for label, subset in step.state_mapping.items()
            },
        }
        for step in result.trace
    ]
    if result.dead_state is not None:
        data["deadState"] = result.dead_state
    return data


def _class_to_json(cls: EquivalenceClass) -> dict:
    return {
        "id": cls.class_id,
        "states": list(cls.states),
        "representative": cls.representative,
        "isAccepting": cls.is_accepting,
    }


def minimization_result_to_json_dict(result: MinimizationResult) -> dict:
    data = automaton_to_json_dict(result.dfa)
    data["minimizationSteps"] = [
        {
            "step": step.step,
            "description": step.description,
            "equivalenceClasses": [_class_to_json(c) for c in step.equivalence_classes],
            "action": step.action,
        }
        for step in result.trace
    ]
    data["equivalenceClasses"] = [_class_to_json(c) for c in result.equivalence_classes]
    data["removedStates"] = list(result.removed_states)
    data["unreachableStates"] = list(result.unreachable_states)
    data["stateReduction"] = result.state_reduction
    return data


def write_json(data: dict, path: str) -> None:
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.write("\n")
