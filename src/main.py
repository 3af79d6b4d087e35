import sys
import os
import argparse
import logging

from automaton import Automaton
from conversion import subset_construct
from errors import AutomatonError
from minimization import minimize
from parsing import (
    automaton_to_json_dict,
    conversion_result_to_json_dict,
    minimization_result_to_json_dict,
    parse_json_automaton,
    write_json,
)
from simulation import accepts

logger = logging.getLogger(__name__)

DEFAULT_MAX_STATES = 64


def build_arg_parser():
    p = argparse.ArgumentParser(
        description="Convert an NFA (JSON) to a DFA and, optionally, minimize it."
    )
    p.add_argument("input", help="Input .json file with an NFA or DFA (ε allowed)")
    p.add_argument("-o", "--output", help="Output .json file. Defaults to next to the input")
    kind = p.add_mutually_exclusive_group()
    kind.add_argument("--nfa", dest="is_dfa", action="store_const", const=False,
                      help="Read the input as an NFA")
    kind.add_argument("--dfa", dest="is_dfa", action="store_const", const=True,
                      help="Read the input as a DFA (skips subset construction)")
    p.add_argument("--no-minimize", action="store_true", help="Do not minimize (emit the raw DFA)")
    p.add_argument("--name", help="Name of the output automaton")
    p.add_argument("--max-states", type=int, default=DEFAULT_MAX_STATES,
                   help=f"Reject inputs with more states than this (default: {DEFAULT_MAX_STATES}, 0 disables)")
    p.add_argument("--check", action="append", default=[], metavar="STRING",
                   help="Report whether STRING is accepted (repeatable; use '' for the empty string)")
    p.add_argument("--log-level", default="INFO",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                   help="Logging level (default: INFO)")
    return p


def default_output_path(input_path: str, minimized: bool) -> str:
    base, _ = os.path.splitext(input_path)
    suffix = "_dfa_min" if minimized else "_dfa"
    return f"{base}{suffix}.json"


def print_automaton(title: str, a: Automaton) -> None:
    print(f"{title}: {a.name}")
    stats = a.get_stats()
    print(f"States: {stats['states']}, Alphabet: {a.ordered_alphabet()}")
    print(f"Total transitions: {stats['total_transitions']}, "
          f"Epsilon transitions: {stats['epsilon_transitions']}")
    if a.state_composition:
        print("State composition:")
        for state in a.ordered_states():
            print(f"  {a.get_readable_state_name(state)}")


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s: %(message)s",
    )
    max_states = args.max_states or None

    try:
        logger.info("Reading automaton from %s ...", args.input)
        a = parse_json_automaton(args.input, args.is_dfa)
    except (OSError, AutomatonError) as e:
        logger.error("Could not load %s: %s", args.input, e)
        return 1

    print_automaton("Original DFA loaded" if a.is_dfa else "Original NFA loaded", a)

    try:
        if a.is_dfa:
            dfa = a
            out_data = automaton_to_json_dict(dfa)
        else:
            conversion = subset_construct(a, max_states=max_states)
            dfa = conversion.dfa
            out_data = conversion_result_to_json_dict(conversion)
            print()
            print_automaton("DFA conversion complete", dfa)

        out_auto = dfa
        if not args.no_minimize:
            result = minimize(dfa, max_states=max_states)
            out_auto = result.dfa
            minimized_data = minimization_result_to_json_dict(result)
            if "conversionSteps" in out_data:
                minimized_data["conversionSteps"] = out_data["conversionSteps"]
            out_data = minimized_data
            print()
            print_automaton("Minimization complete", out_auto)
            print(f"Removed states: {list(result.removed_states)} "
                  f"({result.state_reduction}% reduction)")
    except AutomatonError as e:
        logger.error("%s", e)
        return 1

    if args.name:
        out_auto = out_auto.renamed(args.name)
        out_data["name"] = args.name

    for text in args.check:
        try:
            verdict = "ACCEPTED" if accepts(out_auto, text) else "rejected"
        except AutomatonError as e:
            logger.error("Cannot check %r: %s", text, e)
            return 1
        print(f"'{text}': {verdict}")

    out_path = args.output or default_output_path(args.input, not args.no_minimize)
    try:
        write_json(out_data, out_path)
    except OSError as e:
        logger.error("Could not write %s: %s", out_path, e)
        return 1

    print(f"\nInput: {args.input}  ->  Output: {out_path}")
    print(f"Final States: {len(out_auto.states)} | Start: {out_auto.start_state}")
    print(f"Accepting: {out_auto.ordered_accept_states()}")
    cnt = sum(len(v) for v in out_auto.transitions.values())
    print(f"Transitions (state->symbol edges): {cnt}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nProgram interrupted by user")
        sys.exit(0)
