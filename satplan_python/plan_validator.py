"""
plan_validator.py - Forward simulation of a decoded plan.

Steps are applied in order; the actions of a parallel step are applied one
after the other in the order the decoder produced.
"""

from __future__ import annotations

from data_structures import GroundedProblem, Plan, InvalidPlan


def simulate(problem: GroundedProblem, plan: Plan) -> frozenset:
    """Apply *plan* from the initial state and return the final state."""
    state = problem.initial
    for t, step in enumerate(plan.steps):
        for ga in step:
            if not ga.applicable(state):
                missing = sorted(problem.fact_names[f] for f in ga.pos_pre - state)
                present = sorted(problem.fact_names[f] for f in ga.neg_pre & state)
                raise InvalidPlan(f"step {t + 1}: {ga.name} not applicable "
                                  f"(missing {missing}, forbidden {present})")
            state = ga.apply(state)
    return state


def validate(problem: GroundedProblem, plan: Plan) -> bool:
    """True if *plan* is executable and reaches the goal."""
    try:
        final = simulate(problem, plan)
    except InvalidPlan:
        return False
    return problem.goal_satisfied(final)
