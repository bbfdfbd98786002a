"""Execution planner tests."""

from __future__ import annotations

import pytest

from core.errors import InvalidTransitionError, PlanningError
from detection.sequence import build_sequence
from detection.types import ActionType, Complexity, DetectedAction
from executor.schemas import ExecutionResult, ExecutionStatus
from planner.action_planner import ExecutionPlanner
from planner.dependency_graph import DependencyGraph
from planner.execution_plan import ActionExecution, PlanComplexity


def _action(action_id: str, deps: list[str] | None = None) -> DetectedAction:
    return DetectedAction(
        id=action_id,
        action_type=ActionType.CREATE_SINGLE,
        confidence=0.9,
        dependencies=deps or [],
    )


def test_independent_actions_are_grouped_up_to_max_parallel() -> None:
    plan = ExecutionPlanner(max_parallel=3).plan([_action(f"a{i}") for i in range(4)])

    assert plan.total_steps == 4
    assert [len(group) for group in plan.parallel_groups] == [3, 1]
    assert plan.estimated_time == 3200
    assert plan.complexity == PlanComplexity.MODERATE
    assert plan.critical_path == []
    assert all(execution.plan_id == plan.id for execution in plan.actions)


def test_chained_sequence_runs_one_unit_per_group() -> None:
    sequence = build_sequence("launch", "three steps", [_action("a1"), _action("a2"), _action("a3")])
    plan = ExecutionPlanner().plan(sequence.actions)

    ids = [plan.actions[i].id for i in range(3)]
    assert plan.parallel_groups == [[ids[0]], [ids[1]], [ids[2]]]
    assert plan.actions[1].dependencies == [ids[0]]
    assert plan.actions[0].dependents == [ids[1]]
    assert plan.critical_path == ids[1:]
    assert plan.longest_path == ids
    assert plan.complexity == PlanComplexity.SIMPLE
    assert plan.estimated_time == 4800


def test_every_dependency_lands_in_an_earlier_group() -> None:
    actions = [
        _action("a0"),
        _action("a1"),
        _action("a2", ["a0"]),
        _action("a3", ["a0", "a1"]),
        _action("a4", ["a2"]),
        _action("a5"),
        _action("a6", ["a4", "a3"]),
        _action("a7", ["a5"]),
    ]
    plan = ExecutionPlanner(max_parallel=2).plan(actions)

    group_of = {unit: index for index, group in enumerate(plan.parallel_groups) for unit in group}
    assert sorted(group_of) == sorted(execution.id for execution in plan.actions)
    assert all(len(group) <= 2 for group in plan.parallel_groups)
    for execution in plan.actions:
        for dep in execution.dependencies:
            assert group_of[dep] < group_of[execution.id]

    position = {execution.id: index for index, execution in enumerate(plan.actions)}
    for execution in plan.actions:
        for dep in execution.dependencies:
            assert position[dep] < position[execution.id]

    assert plan.complexity == PlanComplexity.COMPLEX
    assert len(plan.longest_path) == 4


def test_unknown_dependency_is_rejected() -> None:
    with pytest.raises(PlanningError, match="outside the plan"):
        ExecutionPlanner().plan([_action("a1", ["ghost"])])


def test_duplicate_action_ids_are_rejected() -> None:
    with pytest.raises(PlanningError, match="Duplicate"):
        ExecutionPlanner().plan([_action("a1"), _action("a1")])


def test_cycles_are_rejected() -> None:
    with pytest.raises(PlanningError, match="cycle"):
        ExecutionPlanner().plan([_action("a1", ["a2"]), _action("a2", ["a1"])])


def test_self_dependency_is_rejected() -> None:
    with pytest.raises(PlanningError):
        DependencyGraph.from_dependencies({"x": ["x"]})


def test_complex_plans() -> None:
    actions = [_action(f"a{i}") for i in range(9)]
    assert ExecutionPlanner().plan(actions).complexity == PlanComplexity.COMPLEX


def test_planner_rejects_zero_parallelism() -> None:
    with pytest.raises(ValueError):
        ExecutionPlanner(max_parallel=0)


def test_empty_plan() -> None:
    plan = ExecutionPlanner().plan([])
    assert plan.total_steps == 0
    assert plan.parallel_groups == []
    assert plan.estimated_time == 0


def test_sequence_metadata() -> None:
    actions = [_action(f"a{i}") for i in range(6)]
    sequence = build_sequence("big", "six steps", actions)

    assert sequence.complexity == Complexity.COMPLEX
    assert sequence.estimated_time == 12
    assert sequence.dependencies == [f"a{i}" for i in range(5)]
    assert actions[1].dependencies == []

    loose = build_sequence("loose", "", actions[:2], chained=False)
    assert loose.dependencies == []
    assert loose.complexity == Complexity.SIMPLE


def test_unit_state_machine() -> None:
    unit = ActionExecution(action_id="a1", plan_id="p1", action_type=ActionType.CREATE_SINGLE)

    unit.mark_started()
    unit.mark_retry()
    assert unit.status == ExecutionStatus.PENDING
    assert unit.retry_count == 1

    unit.mark_started()
    unit.mark_completed(ExecutionResult(success=True, message="ok"))
    assert unit.status.is_terminal
    assert unit.duration_ms is not None

    with pytest.raises(InvalidTransitionError):
        unit.transition(ExecutionStatus.RUNNING)
