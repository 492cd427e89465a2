"""
sat_interface.py - Incremental SAT solver adapter over PySAT.

Uses the python-sat (PySAT) library for SAT solving. No C++ compilation
or external binaries required.

Available solvers:
  - glucose  (Glucose 4.2)   - default, strong on industrial benchmarks
  - cadical  (CaDiCaL 1.9.5) - top SAT competition performer, no timeout support
  - maple   (MapleChrono)    - SAT competition 2018 winner
  - minisat (MinisatGH)      - classic CDCL solver

Install: pip install python-sat
"""

from __future__ import annotations
import threading
from typing import Optional

from pysat.solvers import Cadical195, Glucose42, MapleChrono, MinisatGH

from data_structures import Sat, Unsat, Timeout, Contradiction, EncodingOverflow


# ── Solver dispatch ──────────────────────────────────────────────────────────

SOLVER_CLASSES = {
    'cadical': Cadical195,
    'cd195': Cadical195,
    'glucose': Glucose42,
    'g42': Glucose42,
    'maple': MapleChrono,
    'mcb': MapleChrono,
    'minisat': MinisatGH,
    'mgh': MinisatGH,
}

DEFAULT_SOLVER = 'glucose'

# Solvers whose search stops on interrupt(); only these accept a timeout
INTERRUPTIBLE = frozenset({'glucose', 'g42', 'minisat', 'mgh'})


def supports_timeout(solver_name: str) -> bool:
    return (solver_name or DEFAULT_SOLVER).lower() in INTERRUPTIBLE


def check_clause(clause: list[int]):
    """Reject the 0 literal and tautologies."""
    seen: set[int] = set()
    for lit in clause:
        if lit == 0:
            raise ValueError(f"literal 0 in clause {clause}")
        if -lit in seen:
            raise ValueError(f"tautological clause {clause}")
        seen.add(lit)


class IncrementalSATSolver:
    """Stateful incremental SAT session backed by a PySAT solver instance.

    The variable ceiling must be set with :meth:`reserve` before the first
    clause is added.
    """

    def __init__(self, solver_name: str = DEFAULT_SOLVER, debug: int = 0):
        key = (solver_name or DEFAULT_SOLVER).lower()
        solver_cls = SOLVER_CLASSES.get(key)
        if solver_cls is None:
            raise ValueError(f"Unknown solver '{solver_name}'")
        self.solver_name = key
        self.solver_cls = solver_cls
        self.debug = debug
        self.solver = solver_cls()
        self.max_vars: Optional[int] = None
        self.num_clauses: int = 0
        self._units: set[int] = set()

    def reserve(self, max_vars: int):
        """Declare the highest variable number any clause may use."""
        if self.num_clauses:
            raise RuntimeError("reserve() must be called before adding clauses")
        self.max_vars = max_vars

    def add_clause(self, clause: list[int]):
        if self.max_vars is None:
            raise RuntimeError("call reserve() before adding clauses")
        check_clause(clause)
        if not clause:
            raise Contradiction("empty clause")
        for lit in clause:
            if abs(lit) > self.max_vars:
                raise EncodingOverflow(
                    f"variable {abs(lit)} exceeds the ceiling of {self.max_vars}")
        if len(clause) == 1:
            lit = clause[0]
            if -lit in self._units:
                raise Contradiction(f"unit clause [{lit}] contradicts [{-lit}]")
            self._units.add(lit)
        self.solver.add_clause(clause)
        self.num_clauses += 1

    def add_clauses(self, clauses: list[list[int]]):
        for clause in clauses:
            self.add_clause(clause)

    def solve(self, numvar: int, timeout: float = 0,
              assumptions: Optional[list[int]] = None) -> tuple[int, list[int]]:
        """Solve with optional assumptions and return (status, 1-indexed model).

        A positive *timeout* interrupts the search after that many seconds
        and reports ``Timeout``. Solvers outside INTERRUPTIBLE cannot be
        stopped, so a positive timeout raises ValueError for them.
        """
        if timeout > 0 and self.solver_name not in INTERRUPTIBLE:
            raise ValueError(f"solver '{self.solver_name}' cannot enforce a timeout")
        assumps = assumptions if assumptions is not None else []
        soln = [0] * (numvar + 1)
        before = None
        if self.debug >= 1 and hasattr(self.solver, 'accum_stats'):
            before = self.solver.accum_stats().copy()

        if timeout > 0:
            timer = threading.Timer(timeout, self.solver.interrupt)
            timer.start()
            try:
                result = self.solver.solve_limited(assumptions=assumps,
                                                   expect_interrupt=True)
            finally:
                timer.cancel()
                self.solver.clear_interrupt()
        else:
            result = self.solver.solve(assumptions=assumps)

        if before is not None:
            self._print_search_stats(before)

        if result is True:
            model = self.solver.get_model()
            if model:
                for lit in model:
                    var = abs(lit)
                    if 1 <= var <= numvar:
                        soln[var] = 1 if lit > 0 else 0
            return Sat, soln
        if result is False:
            return Unsat, soln
        return Timeout, soln

    def _print_search_stats(self, before: dict):
        after = self.solver.accum_stats().copy()
        delta = {k: int(after.get(k, 0)) - int(before.get(k, 0))
                 for k in after.keys()}
        print("  SAT search: "
              f"decisions={delta.get('decisions', 0)} "
              f"conflicts={delta.get('conflicts', 0)} "
              f"propagations={delta.get('propagations', 0)}")

    def delete(self):
        if self.solver is not None:
            try:
                self.solver.delete()
            finally:
                self.solver = None
