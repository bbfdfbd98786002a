"""Folds unit outcomes into an ``ExecutionReport``."""

from __future__ import annotations

from executor.schemas import (
    ExecutionError,
    ExecutionPerformance,
    ExecutionReport,
    ExecutionResult,
    ExecutionSummary,
    PlanStatus,
    ResultMetadata,
)
from planner.action_planner import BASE_UNIT_COST_MS
from planner.execution_plan import ExecutionPlan, PlanComplexity

CONVERSATIONAL_HINT = (
    "Input appears to be conversational - consider using Node-Aware mode for structured responses"
)
FIX_ERRORS = "Review and fix errors before retrying"
BREAK_DOWN = "Consider breaking down complex actions into simpler steps"
REUSE_TEMPLATES = "Successful actions can be used as templates for future executions"
RETRY_PLAN = "Review execution plan and try again"


class ReportGenerator:
    """Builds the terminal report of one orchestration call."""

    @staticmethod
    def empty(plan_id: str, skipped: int) -> ExecutionReport:
        """Trivial success for input with nothing actionable."""
        return ExecutionReport(
            plan_id=plan_id,
            success=True,
            status=PlanStatus.COMPLETED,
            summary=ExecutionSummary(skipped_actions=skipped),
            performance=ExecutionPerformance(parallel_efficiency=1.0, time_vs_budget=1.0, success_rate=1.0),
            recommendations=[CONVERSATIONAL_HINT],
        )

    @staticmethod
    def catastrophic(plan_id: str, total_steps: int, error: BaseException) -> ExecutionReport:
        return ExecutionReport(
            plan_id=plan_id,
            success=False,
            status=PlanStatus.FAILED,
            summary=ExecutionSummary(total_actions=total_steps, failed_actions=total_steps),
            errors=[
                ExecutionError(
                    code="CATASTROPHIC_FAILURE",
                    message=str(error) or "Unknown catastrophic failure",
                    details=type(error).__name__,
                    recoverable=False,
                )
            ],
            performance=ExecutionPerformance(parallel_efficiency=0.0, time_vs_budget=0.0, success_rate=0.0),
            recommendations=[RETRY_PLAN],
        )

    def build(
        self,
        plan: ExecutionPlan,
        results: list[ExecutionResult],
        errors: list[ExecutionError],
        total_time_ms: int,
        status: PlanStatus,
    ) -> ExecutionReport:
        total = plan.total_steps
        completed = sum(1 for result in results if result.success)
        failed = len(errors)
        summary = ExecutionSummary(
            total_actions=total,
            completed_actions=completed,
            failed_actions=failed,
            skipped_actions=max(0, total - completed - failed),
            total_time=total_time_ms,
            average_action_time=total_time_ms / total if total else 0.0,
        )
        return ExecutionReport(
            plan_id=plan.id,
            success=failed == 0,
            status=status,
            summary=summary,
            results=results,
            errors=errors,
            performance=self.performance(plan, completed, total_time_ms),
            recommendations=self.recommendations(plan, results, errors),
            partial_changes=self.partial_changes(plan),
        )

    @staticmethod
    def partial_changes(plan: ExecutionPlan) -> ResultMetadata:
        changes = ResultMetadata()
        for execution in plan.actions:
            changes.merge(execution.partial_changes)
        return changes

    @staticmethod
    def performance(plan: ExecutionPlan, completed: int, total_time_ms: int) -> ExecutionPerformance:
        sequential = plan.total_steps * BASE_UNIT_COST_MS
        efficiency = min(1.0, sequential / total_time_ms) if total_time_ms > 0 else 1.0
        budget = total_time_ms / plan.estimated_time if plan.estimated_time else 0.0
        rate = completed / plan.total_steps if plan.total_steps else 1.0
        return ExecutionPerformance(
            parallel_efficiency=round(efficiency, 4),
            time_vs_budget=round(budget, 4),
            success_rate=round(rate, 4),
        )

    @staticmethod
    def recommendations(
        plan: ExecutionPlan,
        results: list[ExecutionResult],
        errors: list[ExecutionError],
    ) -> list[str]:
        recommendations = []
        if errors:
            recommendations.append(FIX_ERRORS)
        if plan.complexity == PlanComplexity.COMPLEX:
            recommendations.append(BREAK_DOWN)
        if any(result.success for result in results):
            recommendations.append(REUSE_TEMPLATES)
        return recommendations
