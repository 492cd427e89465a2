#!/usr/bin/env python3
"""
satplan.py - CLI entry point for SATplanner (direct STRIPS → SAT).

Usage:
    python satplan.py -o <domain.pddl> -f <problem.pddl> [-t <sec>] [-n <steps>]
"""

from __future__ import annotations
import argparse
import os
import sys
import time as time_mod

from data_structures import (
    Sat, PlannerConfig, PlanningError, PrintLit, PrintCNF, PrintModel,
    DEFAULT_MAX_VARS, DEFAULT_MAX_CLAUSES,
)
from grounder import load_grounded_problem
from pddl_parser import ParseError
from plan_validator import simulate
from sat_interface import DEFAULT_SOLVER, SOLVER_CLASSES, supports_timeout
from satplan_planner import SATPlanner, print_plan

USAGE = """
SATplanner - bounded STRIPS planning through incremental SAT

Usage:
  python satplan.py -o <domain.pddl> -f <problem.pddl> [options]

Required:
  -o <file>         Domain (operator) PDDL file
  -f <file>         Problem (fact) PDDL file

Options:
  -t <sec>          SAT solver timeout per horizon in seconds (0 = none)
  -n <num>          Max number of steps (default: 100)
  -h                Print this message

  -solver <name>    glucose (default), cadical, maple, minisat
                    (-t needs glucose or minisat)
  -parallel         Allow non-interfering actions in the same step
  -maxvar <n>       Variable cap (default: {maxvar})
  -maxclause <n>    Clause cap (default: {maxclause})
  -g <file>         Write the plan to a file
  -i <level>        Debug info level (0-2)
  -norelevance      Disable action relevance pruning
  -printlit         Print variable map and model
  -printcnf         Print DIMACS CNF deltas and model
""".format(maxvar=DEFAULT_MAX_VARS, maxclause=DEFAULT_MAX_CLAUSES)


class UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    """argparse parser that reports bad command lines as UsageError."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog='satplan', add_help=False)
    parser.add_argument('-o', '--domain', required=True)
    parser.add_argument('-f', '--problem', required=True)
    parser.add_argument('-t', '--timeout', type=float, default=0)
    parser.add_argument('-n', '--steps', type=int, default=100)
    parser.add_argument('-h', '--help', action='store_true')
    parser.add_argument('-solver', default=DEFAULT_SOLVER)
    parser.add_argument('-parallel', action='store_true')
    parser.add_argument('-maxvar', type=int, default=DEFAULT_MAX_VARS)
    parser.add_argument('-maxclause', type=int, default=DEFAULT_MAX_CLAUSES)
    parser.add_argument('-g', '--output', default=None)
    parser.add_argument('-i', '--info', type=int, default=0)
    parser.add_argument('-norelevance', action='store_true')
    parser.add_argument('-printlit', action='store_true')
    parser.add_argument('-printcnf', action='store_true')
    return parser


def parse_command_line(argv: list[str]) -> argparse.Namespace:
    """Parse and check the command line, raising UsageError when invalid."""
    if '-h' in argv or '--help' in argv:
        raise UsageError(None)
    args = build_parser().parse_args(argv)
    for path in (args.domain, args.problem):
        if not os.path.isfile(path):
            raise UsageError(f"no such file: {path}")
    if args.timeout < 0:
        raise UsageError("timeout must be >= 0")
    if args.steps <= 0:
        raise UsageError("max number of steps must be > 0")
    if args.maxvar <= 0 or args.maxclause <= 0:
        raise UsageError("caps must be > 0")
    if args.solver.lower() not in SOLVER_CLASSES:
        raise UsageError(f"unknown solver '{args.solver}'")
    if args.timeout > 0 and not supports_timeout(args.solver):
        raise UsageError(f"solver '{args.solver}' cannot enforce a timeout")
    return args


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        args = parse_command_line(argv)
    except UsageError as e:
        if e.args and e.args[0]:
            print(f"satplan: {e.args[0]}", file=sys.stderr)
            print(USAGE, file=sys.stderr)
            return 2
        print(USAGE)
        return 0

    debug = args.info
    printflag = 0
    if args.printlit:
        printflag |= PrintLit | PrintModel
    if args.printcnf:
        printflag |= PrintCNF | PrintModel

    global_start = time_mod.time()

    print("SATplanner (Python) - STRIPS to SAT")
    print(f"  Domain:  {args.domain}")
    print(f"  Problem: {args.problem}")
    print()

    # ── 1. Parse and ground ─────────────────────────────────────────────

    try:
        problem = load_grounded_problem(args.domain, args.problem,
                                        prune_irrelevant=not args.norelevance,
                                        debug=debug)
    except (ParseError, OSError, ValueError) as e:
        print(f"Error loading PDDL files: {e}", file=sys.stderr)
        return 1
    ground_sec = time_mod.time() - global_start

    print(f"Grounding: {problem.num_actions} actions, {problem.num_facts} facts "
          f"({ground_sec:.3f}s)")

    if debug >= 2:
        print("=== Ground Actions (first 20) ===")
        for ga in problem.actions[:20]:
            print(f"  {ga.name}")
            for label, group in (('+pre', ga.pos_pre), ('-pre', ga.neg_pre),
                                 ('+eff', ga.add_eff), ('-eff', ga.del_eff)):
                if group:
                    print(f"    {label}: {sorted(problem.fact_names[f] for f in group)}")
        if problem.num_actions > 20:
            print(f"  ... ({problem.num_actions - 20} more)")
        print()

    # ── 2. Search for plan ──────────────────────────────────────────────

    config = PlannerConfig(
        solver_name=args.solver.lower(),
        timeout=args.timeout,
        max_steps=args.steps,
        max_vars=args.maxvar,
        max_clauses=args.maxclause,
        sequential=not args.parallel,
        debug=debug,
        printflag=printflag,
    )
    planner = SATPlanner(problem, config)
    try:
        result = planner.plan()
    except PlanningError as e:
        print(f"Planning aborted ({type(e).__name__}): {e}", file=sys.stderr)
        return 1

    exit_code = 0
    if result.status == Sat:
        try:
            print_plan(result.plan, args.output)
        except OSError as e:
            print(f"Error writing plan file: {e}", file=sys.stderr)
            return 1
        final = simulate(problem, result.plan)
        reached = "reaches" if problem.goal_satisfied(final) else "does NOT reach"
        print(f"Plan of length {len(result.plan)} at horizon {result.horizon} "
              f"{reached} the goal")
    else:
        print(f"No plan found: {result.reason} (horizon {result.horizon})")
        exit_code = 1

    # ── 3. Print timing ─────────────────────────────────────────────────

    elapsed = time_mod.time() - global_start
    timing = result.stats
    print()
    print(f"Total time: {elapsed:.2f} seconds")
    print("Timing breakdown:")
    print(f"  Parsing + grounding: {ground_sec:.3f}s")
    print(f"  CNF generation:      {timing['sat_encode_sec']:.3f}s")
    print(f"  SAT solve:           {timing['sat_solve_sec']:.3f}s "
          f"({timing['sat_calls']} calls)")
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
