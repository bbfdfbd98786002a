"""Execution plan models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from core.errors import InvalidTransitionError
from detection.types import ActionType
from executor.schemas import ExecutionError, ExecutionResult, ExecutionStatus, ResultMetadata

_S = ExecutionStatus

ALLOWED_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    _S.PENDING: frozenset({_S.WAITING_DEPENDENCIES, _S.READY, _S.RUNNING, _S.CANCELLED}),
    _S.WAITING_DEPENDENCIES: frozenset({_S.READY, _S.CANCELLED}),
    _S.READY: frozenset({_S.RUNNING, _S.CANCELLED}),
    _S.RUNNING: frozenset({_S.COMPLETED, _S.FAILED, _S.PENDING, _S.CANCELLED}),
    _S.COMPLETED: frozenset({_S.ROLLED_BACK}),
    _S.FAILED: frozenset(),
    _S.CANCELLED: frozenset(),
    _S.ROLLED_BACK: frozenset(),
}


class PlanComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:12]}"


def new_plan_id() -> str:
    return f"plan_{uuid.uuid4().hex[:12]}"


class ActionExecution(BaseModel):
    """One schedulable unit, derived 1:1 from a detected action."""

    id: str = Field(default_factory=new_execution_id)
    action_id: str
    plan_id: str
    action_type: ActionType
    status: ExecutionStatus = ExecutionStatus.PENDING
    retry_count: int = 0
    dependencies: list[str] = Field(default_factory=list)
    dependents: list[str] = Field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_ms: int | None = None
    result: ExecutionResult | None = None
    error: ExecutionError | None = None
    partial_changes: ResultMetadata = Field(default_factory=ResultMetadata)

    def transition(self, target: ExecutionStatus) -> None:
        """Move to ``target`` or raise ``InvalidTransitionError``."""
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.id}: {self.status.value} -> {target.value} is not allowed"
            )
        self.status = target

    def mark_started(self) -> None:
        self.transition(ExecutionStatus.RUNNING)
        self.start_time = datetime.now(UTC)
        self.end_time = None
        self.duration_ms = None

    def _stamp_end(self) -> None:
        self.end_time = datetime.now(UTC)
        if self.start_time is not None:
            self.duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

    def mark_completed(self, result: ExecutionResult) -> None:
        self.transition(ExecutionStatus.COMPLETED)
        self._stamp_end()
        self.result = result
        self.error = None

    def mark_failed(self, error: ExecutionError) -> None:
        self.transition(ExecutionStatus.FAILED)
        self._stamp_end()
        self.error = error
        self.result = None

    def mark_retry(self) -> None:
        self.transition(ExecutionStatus.PENDING)
        self._stamp_end()
        self.retry_count += 1


class ExecutionPlan(BaseModel):
    """The unit DAG plus its grouping and timing estimate."""

    id: str = Field(default_factory=new_plan_id)
    name: str = ""
    description: str = ""
    actions: list[ActionExecution] = Field(default_factory=list)
    total_steps: int = 0
    parallel_groups: list[list[str]] = Field(default_factory=list)
    critical_path: list[str] = Field(
        default_factory=list,
        description="Heuristic: every unit with at least one dependency",
    )
    longest_path: list[str] = Field(
        default_factory=list,
        description="Longest dependency chain by unit cost; informational only",
    )
    estimated_time: int = Field(default=0, description="Milliseconds")
    complexity: PlanComplexity = PlanComplexity.SIMPLE

    def get(self, execution_id: str) -> ActionExecution:
        for execution in self.actions:
            if execution.id == execution_id:
                return execution
        raise KeyError(execution_id)

    def by_status(self, status: ExecutionStatus) -> list[ActionExecution]:
        return [execution for execution in self.actions if execution.status == status]
