"""Unit tests for decoding satisfying assignments into plans."""

import pytest

from data_structures import GroundedProblem, MultipleActionsPerStep, UnknownVariable
from plan_decoder import decode, true_actions_at
from strips_encoder import STRIPSEncoder


def model_with(encoder: STRIPSEncoder, true_vars) -> list:
    soln = [0] * (encoder.index.numvar + 1)
    for v in true_vars:
        soln[v] = 1
    return soln


def test_single_action_plan(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_until(1)
    soln = model_with(encoder, [encoder.index.action(0, 0), encoder.index.fact(0, 1)])

    plan = decode(soln, 1, encoder)

    assert plan.names() == ["a"]
    assert len(plan) == 1


def test_empty_steps_are_dropped(chain_problem: GroundedProblem) -> None:
    """Verify that steps with no true action do not show up in the plan."""
    encoder = STRIPSEncoder(chain_problem)
    encoder.encode_until(5)
    idx = encoder.index
    soln = model_with(encoder, [idx.action(0, 0), idx.action(1, 2), idx.action(2, 4)])

    plan = decode(soln, 5, encoder)

    assert plan.names() == ["step0", "step1", "step2"]
    assert len(plan.steps) == 3


def test_no_true_actions_gives_empty_plan(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_until(2)

    plan = decode(model_with(encoder, []), 2, encoder)

    assert plan.steps == ()
    assert len(plan) == 0


def test_two_actions_in_a_sequential_step(conflict_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(conflict_problem)
    encoder.encode_until(1)
    soln = model_with(encoder, [encoder.index.action(0, 0), encoder.index.action(1, 0)])

    with pytest.raises(MultipleActionsPerStep):
        decode(soln, 1, encoder, sequential=True)


def test_parallel_step_is_sorted_by_action_id(conflict_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(conflict_problem, sequential=False)
    encoder.encode_until(1)
    soln = model_with(encoder, [encoder.index.action(1, 0), encoder.index.action(0, 0)])

    plan = decode(soln, 1, encoder, sequential=False)

    assert len(plan.steps) == 1
    assert [ga.id for ga in plan.steps[0]] == [0, 1]
    assert true_actions_at(soln, encoder, 0) == [0, 1]


def test_truncated_model(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_until(1)

    with pytest.raises(UnknownVariable):
        decode([0, 0], 1, encoder)


def test_horizon_not_encoded(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_until(1)

    with pytest.raises(ValueError):
        decode(model_with(encoder, []), 2, encoder)
