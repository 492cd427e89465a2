"""
satplan_planner.py - Iterative-deepening solve loop for direct STRIPS-to-SAT.

Grows the horizon k from 0, extending the encoding by one layer per round
and handing only the new clauses to a single incremental solver session.
The goal is bound to the current last layer through solver assumptions, so
nothing ever has to be retracted when k grows.

    Init -> Encoding(k) -> Solving(k) -> Sat        (plan found)
                                      -> Unsat      -> Encoding(k+1)
                                      -> Timeout    (stop)
                           k == max_steps, Unsat    -> Exhausted (stop)
"""

from __future__ import annotations
import time as time_mod
from typing import Callable, Optional

from data_structures import (
    Sat, Timeout, Exhausted, Unreachable,
    GroundedProblem, Plan, PlanResult, PlannerConfig,
    EncodingOverflow, PrintLit, PrintCNF, PrintModel, CONNECTOR,
)
from plan_decoder import decode
from sat_interface import IncrementalSATSolver
from strips_encoder import STRIPSEncoder
from variable_index import VariableIndex


class SATPlanner:
    """Orchestrates the STRIPS → SAT planning search."""

    def __init__(self, problem: GroundedProblem,
                 config: Optional[PlannerConfig] = None,
                 solver_factory: Optional[Callable] = None):
        self.problem = problem
        self.config = config if config is not None else PlannerConfig()
        self.solver_factory = solver_factory or IncrementalSATSolver
        self.debug = self.config.debug
        self.printflag = self.config.printflag

        # Timing
        self._sat_encode_sec: float = 0.0
        self._sat_solve_sec: float = 0.0
        self._sat_calls: int = 0
        self._numvar: int = 0
        self._numclause: int = 0

    # ── Pre-checks ────────────────────────────────────────────────────────

    def unreachable_goals(self) -> list[str]:
        """Goal literals that no plan can achieve.

        Positive goals are checked against the delete relaxation, negative
        goals against the existence of a deleter.
        """
        problem = self.problem
        reached = set(problem.initial)
        pending = list(problem.actions)
        changed = True
        while changed:
            changed = False
            remaining = []
            for ga in pending:
                if ga.pos_pre <= reached:
                    if not ga.add_eff <= reached:
                        reached |= ga.add_eff
                        changed = True
                else:
                    remaining.append(ga)
            pending = remaining

        deleted = set()
        for ga in problem.actions:
            deleted |= ga.del_eff

        bad = [problem.fact_names[f] for f in sorted(problem.goal_pos - reached)]
        bad += ['not ' + problem.fact_names[f]
                for f in sorted((problem.goal_neg & problem.initial) - deleted)]
        return bad

    # ── Main search call ──────────────────────────────────────────────────

    def plan(self) -> PlanResult:
        """Search horizons 0 .. max_steps for the first plan."""
        problem = self.problem
        cfg = self.config

        if problem.goal_satisfied(problem.initial):
            if self.debug >= 1:
                print("  Goal already satisfied by the initial state")
            return self._result(Sat, Plan(), 0)

        bad = self.unreachable_goals()
        if bad:
            if self.debug >= 1:
                print(f"  Unreachable goal literals: {', '.join(bad)}")
            return self._result(Unreachable, None, 0)

        index = VariableIndex(problem.fact_names, [a.name for a in problem.actions])
        encoder = STRIPSEncoder(problem, index, sequential=cfg.sequential)
        session = self.solver_factory(cfg.solver_name, debug=self.debug)
        try:
            session.reserve(cfg.max_vars)
            k = 0
            while True:
                status, soln = self._step(encoder, session, k)
                if status == Sat:
                    plan = decode(soln, k, encoder, sequential=cfg.sequential)
                    return self._result(Sat, plan, k)
                if status == Timeout:
                    if self.debug >= 1:
                        print(f"  Solver timed out at horizon {k}")
                    return self._result(Timeout, None, k)
                if self.debug >= 1:
                    print(f"  No plan at horizon {k}")
                if k >= cfg.max_steps:
                    return self._result(Exhausted, None, k)
                k += 1
        finally:
            session.delete()

    def _step(self, encoder: STRIPSEncoder, session, k: int) -> tuple[int, list[int]]:
        """Encoding(k) followed by Solving(k)."""
        cfg = self.config

        t0 = time_mod.time()
        clauses = encoder.encode_step0() if k == 0 else encoder.encode_transition(k)
        assumptions = encoder.goal_assumptions(k)
        encode_sec = time_mod.time() - t0
        self._sat_encode_sec += encode_sec

        numvar = encoder.index.numvar
        total = self._numclause + len(clauses)
        if numvar > cfg.max_vars:
            raise EncodingOverflow(f"horizon {k} needs {numvar} variables "
                                   f"(cap {cfg.max_vars})")
        if total > cfg.max_clauses:
            raise EncodingOverflow(f"horizon {k} needs {total} clauses "
                                   f"(cap {cfg.max_clauses})")

        if self.debug >= 1:
            print(f"Horizon {k}: {numvar} vars, {total} clauses "
                  f"(+{len(clauses)} new)")
        if self.printflag & PrintLit:
            print("\n=== Variable Map ===")
            encoder.print_variable_map()
        if self.printflag & PrintCNF:
            print(f"\n=== DIMACS CNF (delta, {len(clauses)} new clauses) ===")
            print(encoder.to_dimacs(clauses), end='')

        session.add_clauses(clauses)
        self._numclause = total
        self._numvar = numvar

        t1 = time_mod.time()
        status, soln = session.solve(numvar=numvar, timeout=cfg.timeout,
                                     assumptions=assumptions)
        solve_sec = time_mod.time() - t1
        self._sat_solve_sec += solve_sec
        self._sat_calls += 1

        if self.debug >= 1:
            print(f"  SAT: encode={encode_sec:.3f}s solve={solve_sec:.3f}s")
        if self.debug >= 2:
            counts = ' '.join(f"{fam}={n}" for fam, n in encoder.family_counts.items())
            print(f"  Clause families: {counts}")
        if status == Sat:
            self._print_model(soln, encoder, k)
        return status, soln

    def _result(self, status: int, plan: Optional[Plan], k: int) -> PlanResult:
        return PlanResult(status=status, plan=plan, horizon=k,
                          stats=self.get_timing_stats())

    def get_timing_stats(self) -> dict:
        return {
            'sat_encode_sec': self._sat_encode_sec,
            'sat_solve_sec': self._sat_solve_sec,
            'sat_calls': self._sat_calls,
            'numvar': self._numvar,
            'numclause': self._numclause,
        }

    # ── Debug helpers ─────────────────────────────────────────────────────

    def _print_model(self, soln: list[int], encoder: STRIPSEncoder, k: int):
        if not (self.printflag & PrintModel):
            return
        print(f"\n=== SAT Solution (horizon {k}) ===")
        for i in range(1, len(soln)):
            if soln[i] == 1:
                print(f"  {i}: {encoder.index.name_of(i)} = TRUE")


# ── Output ───────────────────────────────────────────────────────────────────

def format_plan(plan: Plan) -> str:
    """Render a plan as ``Begin plan`` / ``step: (action args)`` / ``End plan``."""
    lines: list[str] = ["", "Begin plan"]
    for t, step in enumerate(plan.steps):
        for ga in step:
            lines.append(f"{t + 1}: {_pretty_action(ga.name)}")
    lines.append("End plan")
    lines.append(f"{len(plan)} actions in plan")
    lines.append("")
    return '\n'.join(lines)


def print_plan(plan: Plan, output_file: Optional[str] = None):
    """Print the plan, and write it to *output_file* if given."""
    output = format_plan(plan)
    print(output)
    if output_file:
        with open(output_file, 'w') as fh:
            fh.write(output + '\n')


def _pretty_action(name: str) -> str:
    """Convert ``move_a_b_c`` to ``(move a b c)``."""
    parts = name.split(CONNECTOR)
    return '(' + ' '.join(parts) + ')'
