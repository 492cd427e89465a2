"""Shared fixtures: small grounded problems and a scripted fake SAT solver."""

from pathlib import Path

import pytest

from data_structures import GroundAction, GroundedProblem, Unsat

FIXTURES = Path(__file__).parent / "fixtures"


class FakeSolver:
    """In-memory stand-in for IncrementalSATSolver.

    Returns the scripted statuses in order (Unsat once the script runs out)
    and records every clause and solve call it receives.
    """

    instances: list = []

    def __init__(self, solver_name="fake", debug=0, script=()):
        self.solver_name = solver_name
        self.script = list(script)
        self.max_vars = None
        self.batches: list = []
        self.solve_calls: list = []
        self.deleted = False
        FakeSolver.instances.append(self)

    def reserve(self, max_vars):
        self.max_vars = max_vars

    def add_clauses(self, clauses):
        self.batches.append([list(c) for c in clauses])

    @property
    def clauses(self):
        return [c for batch in self.batches for c in batch]

    def solve(self, numvar, timeout=0, assumptions=None):
        self.solve_calls.append({"numvar": numvar, "timeout": timeout,
                                 "assumptions": list(assumptions or [])})
        status = self.script.pop(0) if self.script else Unsat
        return status, [0] * (numvar + 1)

    def delete(self):
        self.deleted = True


@pytest.fixture
def fake_solver_factory():
    """Build a factory that hands out FakeSolvers following *script*."""
    FakeSolver.instances = []

    def make(*script):
        def factory(solver_name, debug=0):
            return FakeSolver(solver_name, debug, script)
        return factory

    return make


@pytest.fixture
def one_step_problem() -> GroundedProblem:
    """P initially false, goal P, action A adds P with no preconditions."""
    return GroundedProblem(
        fact_names=["p"],
        actions=[GroundAction(id=0, name="a", add_eff=frozenset({0}))],
        initial=frozenset(),
        goal_pos=frozenset({0}),
    )


@pytest.fixture
def conflict_problem() -> GroundedProblem:
    """Two producers of P, each deleting the other's sole precondition.

    Facts: 0 = p, 1 = q, 2 = r. A needs q and deletes r, B needs r and
    deletes q; both add p.
    """
    return GroundedProblem(
        fact_names=["p", "q", "r"],
        actions=[
            GroundAction(id=0, name="a", pos_pre=frozenset({1}),
                         add_eff=frozenset({0}), del_eff=frozenset({2})),
            GroundAction(id=1, name="b", pos_pre=frozenset({2}),
                         add_eff=frozenset({0}), del_eff=frozenset({1})),
        ],
        initial=frozenset({1, 2}),
        goal_pos=frozenset({0}),
    )


@pytest.fixture
def chain_problem() -> GroundedProblem:
    """f0 -> f1 -> f2 -> f3: three actions, each needing the previous fact."""
    actions = [
        GroundAction(id=i, name=f"step{i}", pos_pre=frozenset({i}),
                     add_eff=frozenset({i + 1}), del_eff=frozenset({i}))
        for i in range(3)
    ]
    return GroundedProblem(
        fact_names=[f"f{i}" for i in range(4)],
        actions=actions,
        initial=frozenset({0}),
        goal_pos=frozenset({3}),
    )


@pytest.fixture
def toggle_problem() -> GroundedProblem:
    """Goal p and q together, but each action deletes the other fact."""
    return GroundedProblem(
        fact_names=["p", "q"],
        actions=[
            GroundAction(id=0, name="set-p", add_eff=frozenset({0}),
                         del_eff=frozenset({1})),
            GroundAction(id=1, name="set-q", add_eff=frozenset({1}),
                         del_eff=frozenset({0})),
        ],
        initial=frozenset(),
        goal_pos=frozenset({0, 1}),
    )


@pytest.fixture
def blocksworld_files() -> tuple:
    return (str(FIXTURES / "blocksworld" / "domain.pddl"),
            str(FIXTURES / "blocksworld" / "problem.pddl"))


@pytest.fixture
def gripper_files() -> tuple:
    return (str(FIXTURES / "gripper" / "domain.pddl"),
            str(FIXTURES / "gripper" / "problem.pddl"))
