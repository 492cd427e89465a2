"""
data_structures.py - Status codes, grounded problem types, configuration
and error taxonomy for SATplanner.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

# SAT solver / planner return values
Unsat = 0
Sat = 1
Timeout = 2
Exhausted = 3     # max horizon reached, no plan
Unreachable = 4   # goal proven unreachable before any solving

STATUS_NAMES = {
    Unsat: 'unsatisfiable',
    Sat: 'plan found',
    Timeout: 'timeout',
    Exhausted: 'resource exhausted',
    Unreachable: 'goal unreachable',
}

# Print masks
PrintLit = 1
PrintCNF = 2
PrintModel = 16

CONNECTOR = '_'

DEFAULT_MAX_VARS = 1_000_000
DEFAULT_MAX_CLAUSES = 5_000_000


# ── Errors ────────────────────────────────────────────────────────────────────

class PlanningError(Exception):
    """Base class for fatal errors of a planning attempt."""


class EncodingOverflow(PlanningError):
    """The variable or clause cap would be exceeded by the next step."""


class Contradiction(PlanningError):
    """The submitted clause set is trivially unsatisfiable."""


class UnknownVariable(PlanningError):
    """A variable id that the index never allocated."""


class MultipleActionsPerStep(PlanningError):
    """Sequential decoding found more than one action in a step."""


class InvalidPlan(PlanningError):
    """A plan that is not executable from the initial state."""


# ── Grounded problem ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GroundAction:
    """A fully ground STRIPS action over integer fact ids."""
    id: int
    name: str
    pos_pre: frozenset = frozenset()   # facts that must be TRUE
    add_eff: frozenset = frozenset()   # facts that become TRUE
    del_eff: frozenset = frozenset()   # facts that become FALSE
    neg_pre: frozenset = frozenset()   # facts that must be FALSE

    def __post_init__(self):
        # Delete-then-add: a fact both added and deleted ends up true
        for name in ('pos_pre', 'add_eff', 'neg_pre'):
            object.__setattr__(self, name, frozenset(getattr(self, name)))
        object.__setattr__(self, 'del_eff', frozenset(self.del_eff) - self.add_eff)

    def applicable(self, state: frozenset) -> bool:
        return self.pos_pre <= state and not (self.neg_pre & state)

    def apply(self, state: frozenset) -> frozenset:
        return (state - self.del_eff) | self.add_eff


@dataclass
class GroundedProblem:
    """Fact universe, ground actions, initial state and goal.

    Facts are numbered ``0 .. len(fact_names)-1``. ``initial`` lists the
    facts true at t=0, every other fact is false (closed world). The goal is
    a partial assignment split into ``goal_pos`` and ``goal_neg``.
    """
    fact_names: list[str]
    actions: list[GroundAction]
    initial: frozenset
    goal_pos: frozenset
    goal_neg: frozenset = frozenset()

    def __post_init__(self):
        self.initial = frozenset(self.initial)
        self.goal_pos = frozenset(self.goal_pos)
        self.goal_neg = frozenset(self.goal_neg)
        n = len(self.fact_names)
        for i, ga in enumerate(self.actions):
            if ga.id != i:
                raise ValueError(f"action '{ga.name}' has id {ga.id}, expected {i}")
            for f in ga.pos_pre | ga.neg_pre | ga.add_eff | ga.del_eff:
                if not 0 <= f < n:
                    raise ValueError(f"action '{ga.name}' references unknown fact {f}")
        for f in self.initial | self.goal_pos | self.goal_neg:
            if not 0 <= f < n:
                raise ValueError(f"unknown fact {f}")
        if self.goal_pos & self.goal_neg:
            raise ValueError("goal requires a fact to be both true and false")

    @property
    def num_facts(self) -> int:
        return len(self.fact_names)

    @property
    def num_actions(self) -> int:
        return len(self.actions)

    def goal_satisfied(self, state: frozenset) -> bool:
        return self.goal_pos <= state and not (self.goal_neg & state)


# ── Plan ──────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Plan:
    """Decoded plan: one tuple of actions per non-empty time step."""
    steps: tuple = ()

    def actions(self) -> list[GroundAction]:
        return [ga for step in self.steps for ga in step]

    def __len__(self) -> int:
        return sum(len(step) for step in self.steps)

    def names(self) -> list[str]:
        return [ga.name for ga in self.actions()]


@dataclass
class PlanResult:
    status: int
    plan: Optional[Plan] = None
    horizon: int = 0
    stats: dict = field(default_factory=dict)

    @property
    def reason(self) -> str:
        return STATUS_NAMES.get(self.status, f"status {self.status}")


# ── Configuration ─────────────────────────────────────────────────────────────

@dataclass
class PlannerConfig:
    """Planner and solver configuration."""
    solver_name: str = "glucose"
    timeout: float = 0          # seconds per solve call, 0 = no limit
    max_steps: int = 100
    max_vars: int = DEFAULT_MAX_VARS
    max_clauses: int = DEFAULT_MAX_CLAUSES
    sequential: bool = True     # at most one action per step
    debug: int = 0
    printflag: int = 0
