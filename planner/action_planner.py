"""Turns detected actions into a grouped execution plan."""

from __future__ import annotations

import logging
from typing import Any

from core.errors import PlanningError
from detection.types import DetectedAction
from planner.dependency_graph import DependencyGraph
from planner.execution_plan import ActionExecution, ExecutionPlan, PlanComplexity, new_plan_id

logger = logging.getLogger("ao.planner")

BASE_UNIT_COST_MS = 2000
PARALLEL_EFFICIENCY = 0.8


class ExecutionPlanner:
    """Builds the unit DAG, its parallel groups and the cost estimate."""

    def __init__(self, max_parallel: int = 3) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self.max_parallel = max_parallel

    def plan(self, actions: list[DetectedAction], context: Any = None) -> ExecutionPlan:
        """Raise ``PlanningError`` for duplicate ids, unknown dependencies or cycles."""
        plan_id = new_plan_id()
        seen: set[str] = set()
        for action in actions:
            if action.id in seen:
                raise PlanningError(f"Duplicate action id: {action.id}")
            seen.add(action.id)

        executions = [
            ActionExecution(action_id=action.id, plan_id=plan_id, action_type=action.action_type)
            for action in actions
        ]
        exec_for_action = {execution.action_id: execution.id for execution in executions}

        dependencies: dict[str, list[str]] = {}
        for action, execution in zip(actions, executions):
            missing = [dep for dep in action.dependencies if dep not in exec_for_action]
            if missing:
                raise PlanningError(
                    f"Action {action.id} depends on action(s) outside the plan: {', '.join(missing)}"
                )
            execution.dependencies = [exec_for_action[dep] for dep in dict.fromkeys(action.dependencies)]
            dependencies[execution.id] = execution.dependencies

        graph = DependencyGraph.from_dependencies(dependencies)
        for execution in executions:
            execution.dependents = graph.dependents_of(execution.id)

        groups = graph.parallel_groups(self.max_parallel)
        by_id = {execution.id: execution for execution in executions}
        ordered = [by_id[node] for node in graph.topological_order()]

        plan = ExecutionPlan(
            id=plan_id,
            name=f"Execution Plan {plan_id}",
            description=f"Execute {len(actions)} actions with {len(groups)} parallel groups",
            actions=ordered,
            total_steps=len(ordered),
            parallel_groups=groups,
            critical_path=[execution.id for execution in ordered if execution.dependencies],
            longest_path=graph.longest_path(cost=BASE_UNIT_COST_MS),
            estimated_time=self.estimate_time(groups),
            complexity=self.classify(ordered),
        )
        logger.info(
            "Plan %s: %d unit(s), %d group(s), complexity=%s, estimate=%dms",
            plan.id,
            plan.total_steps,
            len(groups),
            plan.complexity.value,
            plan.estimated_time,
        )
        return plan

    @staticmethod
    def estimate_time(groups: list[list[str]]) -> int:
        return int(sum(BASE_UNIT_COST_MS * PARALLEL_EFFICIENCY for group in groups if group))

    @staticmethod
    def classify(executions: list[ActionExecution]) -> PlanComplexity:
        edges = sum(len(execution.dependencies) for execution in executions)
        if len(executions) <= 3 and edges <= 2:
            return PlanComplexity.SIMPLE
        if len(executions) <= 8 and edges <= 6:
            return PlanComplexity.MODERATE
        return PlanComplexity.COMPLEX
