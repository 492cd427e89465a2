"""Unit tests for the step-wise STRIPS to CNF encoder."""

import pytest

from data_structures import GroundAction, GroundedProblem
from grounder import load_grounded_problem
from sat_interface import check_clause
from strips_encoder import STRIPSEncoder


def clause_set(clauses):
    return {tuple(sorted(c)) for c in clauses}


def test_step0_fixes_every_fact(conflict_problem: GroundedProblem) -> None:
    """Verify one unit clause per fact, positive exactly for initial facts."""
    encoder = STRIPSEncoder(conflict_problem)

    clauses = encoder.encode_step0()

    index = encoder.index
    assert clauses == [[-index.fact(0, 0)], [index.fact(1, 0)], [index.fact(2, 0)]]
    assert encoder.horizon == 0
    assert encoder.family_counts["init"] == 3


def test_one_step_transition_clauses(one_step_problem: GroundedProblem) -> None:
    """Verify the exact transition clauses of the single-fact, single-action problem."""
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_step0()

    clauses = encoder.encode_transition(1)

    p0, a0, p1 = 1, 2, 3
    assert encoder.index.fact(0, 0) == p0
    assert encoder.index.action(0, 0) == a0
    assert encoder.index.fact(0, 1) == p1
    assert clauses == [
        [-a0, p1],          # effect
        [-p1, p0, a0],      # p becomes true only through a
        [p1, -p0],          # p has no deleter
    ]
    assert encoder.goal_assumptions(1) == [p1]
    assert encoder.goal_assumptions(0) == [p0]


def test_preconditions_and_negative_preconditions() -> None:
    problem = GroundedProblem(
        fact_names=["p", "q", "r"],
        actions=[GroundAction(id=0, name="a", pos_pre=frozenset({0}),
                              neg_pre=frozenset({1}), add_eff=frozenset({2}))],
        initial=frozenset({0}),
        goal_pos=frozenset({2}),
    )
    encoder = STRIPSEncoder(problem)
    encoder.encode_step0()

    clauses = encoder.encode_transition(1)

    av = encoder.index.action(0, 0)
    assert [-av, encoder.index.fact(0, 0)] in clauses
    assert [-av, -encoder.index.fact(1, 0)] in clauses
    assert [-av, encoder.index.fact(2, 1)] in clauses


def test_delete_effects_and_frame_axioms(conflict_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(conflict_problem, sequential=False)
    encoder.encode_step0()

    clauses = encoder.encode_transition(1)

    idx = encoder.index
    a, b = idx.action(0, 0), idx.action(1, 0)
    q0, q1, r0, r1 = idx.fact(1, 0), idx.fact(1, 1), idx.fact(2, 0), idx.fact(2, 1)
    assert [-a, -r1] in clauses
    assert [-b, -q1] in clauses
    # q can only become false through b, r only through a
    assert [q1, -q0, b] in clauses
    assert [r1, -r0, a] in clauses


def test_goal_with_negative_literals() -> None:
    problem = GroundedProblem(
        fact_names=["p", "q"],
        actions=[],
        initial=frozenset({1}),
        goal_pos=frozenset({0}),
        goal_neg=frozenset({1}),
    )
    encoder = STRIPSEncoder(problem)
    encoder.encode_until(2)

    assert encoder.goal_assumptions(2) == [encoder.index.fact(0, 2), -encoder.index.fact(1, 2)]


def test_goal_beyond_horizon_is_rejected(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_step0()

    with pytest.raises(ValueError):
        encoder.goal_assumptions(1)


def test_steps_must_be_encoded_in_order(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)

    with pytest.raises(ValueError):
        encoder.encode_transition(1)
    encoder.encode_step0()
    with pytest.raises(ValueError):
        encoder.encode_step0()
    with pytest.raises(ValueError):
        encoder.encode_transition(2)
    encoder.encode_transition(1)
    with pytest.raises(ValueError):
        encoder.encode_transition(1)


def test_conflicting_producers_are_mutex(conflict_problem: GroundedProblem) -> None:
    """Verify that two producers deleting each other's precondition get a mutex clause."""
    encoder = STRIPSEncoder(conflict_problem, sequential=False)
    encoder.encode_step0()

    clauses = encoder.encode_transition(1)

    assert encoder.mutex_pairs == [(0, 1)]
    assert [-encoder.index.action(0, 0), -encoder.index.action(1, 0)] in clauses
    assert encoder.family_counts["mutex"] == 1


def test_independent_actions_are_not_mutex() -> None:
    problem = GroundedProblem(
        fact_names=["p", "q"],
        actions=[GroundAction(id=0, name="a", add_eff=frozenset({0})),
                 GroundAction(id=1, name="b", add_eff=frozenset({1}))],
        initial=frozenset(),
        goal_pos=frozenset({0, 1}),
    )

    encoder = STRIPSEncoder(problem, sequential=False)

    assert encoder.mutex_pairs == []


def test_mutex_pairs_match_pairwise_interference(gripper_files) -> None:
    """Verify the per-fact mutex computation against the direct pairwise test."""
    problem = load_grounded_problem(*gripper_files)
    encoder = STRIPSEncoder(problem, sequential=False)

    actions = problem.actions
    expected = [(i, j) for i in range(len(actions)) for j in range(i + 1, len(actions))
                if STRIPSEncoder.interfere(actions[i], actions[j])]

    assert encoder.mutex_pairs == expected


def test_sequential_mode_adds_at_most_one(chain_problem: GroundedProblem) -> None:
    """Verify the at-most-one family exists only in sequential mode."""
    sequential = STRIPSEncoder(chain_problem, sequential=True)
    parallel = STRIPSEncoder(chain_problem, sequential=False)

    sequential.encode_until(1)
    parallel.encode_until(1)

    assert sequential.family_counts["amo"] == 3    # three actions → pairwise
    assert parallel.family_counts["amo"] == 0


def test_at_most_one_ladder_for_many_actions() -> None:
    problem = GroundedProblem(
        fact_names=[f"f{i}" for i in range(5)],
        actions=[GroundAction(id=i, name=f"a{i}", add_eff=frozenset({i})) for i in range(5)],
        initial=frozenset(),
        goal_pos=frozenset({0}),
    )
    encoder = STRIPSEncoder(problem)
    encoder.encode_step0()
    before = encoder.index.numvar

    encoder.encode_transition(1)

    # 5 actions + 5 facts + 4 ladder auxiliaries
    assert encoder.index.numvar - before == 14
    assert encoder.family_counts["amo"] == 1 + 3 * (5 - 2) + 1


def test_encoding_grows_monotonically(chain_problem: GroundedProblem) -> None:
    """Verify that the clauses up to step k-1 are a strict subset of those up to step k."""
    previous = None
    for k in range(5):
        encoder = STRIPSEncoder(chain_problem)
        clauses = clause_set(encoder.encode_until(k))
        if previous is not None:
            assert previous < clauses
        previous = clauses


def test_no_tautologies_or_zero_literals(blocksworld_files) -> None:
    problem = load_grounded_problem(*blocksworld_files)
    encoder = STRIPSEncoder(problem)

    clauses = encoder.encode_until(3)

    for clause in clauses:
        check_clause(clause)
        assert clause
        assert max(abs(lit) for lit in clause) <= encoder.index.numvar


def test_action_vars_at(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    encoder.encode_until(2)

    assert encoder.action_vars_at(1) == [(0, encoder.index.action(0, 1))]
    assert encoder.action_vars_at(2) == []


def test_to_dimacs(one_step_problem: GroundedProblem) -> None:
    encoder = STRIPSEncoder(one_step_problem)
    clauses = encoder.encode_step0()

    assert encoder.to_dimacs(clauses) == "p cnf 1 1\n-1 0\n"


def test_overlapping_add_and_delete_keeps_the_add() -> None:
    """Verify that an action adding and deleting the same fact stays selectable."""
    problem = GroundedProblem(
        fact_names=["p"],
        actions=[GroundAction(id=0, name="a", add_eff=frozenset({0}), del_eff={0})],
        initial=frozenset(),
        goal_pos=frozenset({0}),
    )
    assert problem.actions[0].del_eff == frozenset()

    encoder = STRIPSEncoder(problem)
    encoder.encode_step0()
    clauses = encoder.encode_transition(1)

    a0, p1 = encoder.index.action(0, 0), encoder.index.fact(0, 1)
    assert [-a0, p1] in clauses
    assert [-a0, -p1] not in clauses
