"""
plan_decoder.py - Turn a satisfying assignment back into a plan.
"""

from __future__ import annotations

from data_structures import Plan, MultipleActionsPerStep, UnknownVariable
from strips_encoder import STRIPSEncoder
from variable_index import ACTION


def true_actions_at(soln: list[int], encoder: STRIPSEncoder, t: int) -> list[int]:
    """Ids of the actions whose variable at step *t* is true, ascending."""
    chosen: list[int] = []
    for _, av in encoder.action_vars_at(t):
        if av >= len(soln):
            raise UnknownVariable(f"model has no value for variable {av}")
        if soln[av] != 1:
            continue
        entity, step = encoder.index.entity_of(av)
        if entity.kind != ACTION or step != t:
            raise UnknownVariable(f"variable {av} is not an action at step {t}")
        chosen.append(entity.ident)
    return sorted(chosen)


def decode(soln: list[int], k: int, encoder: STRIPSEncoder,
           sequential: bool = True) -> Plan:
    """Extract the plan of horizon *k* from a 1-indexed model.

    Steps without a true action are dropped. Several true actions in one
    step are an error in sequential mode and a parallel step otherwise.
    """
    if k > encoder.horizon:
        raise ValueError(f"horizon {k} is not encoded (horizon {encoder.horizon})")
    actions = encoder.problem.actions
    steps = []
    for t in range(k):
        chosen = true_actions_at(soln, encoder, t)
        if not chosen:
            continue
        if sequential and len(chosen) > 1:
            names = ', '.join(actions[ai].name for ai in chosen)
            raise MultipleActionsPerStep(f"step {t}: {names}")
        steps.append(tuple(actions[ai] for ai in chosen))
    return Plan(tuple(steps))
