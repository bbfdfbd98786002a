"""Execution-side schemas: unit results, errors, progress and the final report.

Plans themselves live in ``planner.execution_plan``; these records describe
what happens while and after a plan runs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Lifecycle of one execution unit."""

    PENDING = "pending"
    WAITING_DEPENDENCIES = "waiting_dependencies"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
        ExecutionStatus.CANCELLED,
        ExecutionStatus.ROLLED_BACK,
    }
)


class PlanStatus(str, Enum):
    """Lifecycle of a whole run."""

    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ResultMetadata(BaseModel):
    nodes_created: list[str] = Field(default_factory=list)
    node_titles: list[str] = Field(default_factory=list)
    connections_created: list[str] = Field(default_factory=list)
    board_changes: list[dict[str, Any]] = Field(default_factory=list)
    analytics: dict[str, Any] | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.nodes_created or self.connections_created)

    def merge(self, other: ResultMetadata) -> None:
        self.nodes_created.extend(other.nodes_created)
        self.node_titles.extend(other.node_titles)
        self.connections_created.extend(other.connections_created)
        self.board_changes.extend(other.board_changes)


class ExecutionError(BaseModel):
    """User-facing description of a unit (or plan) failure."""

    code: str
    message: str
    details: Any = None
    recoverable: bool = True
    suggestions: list[str] = Field(default_factory=list)
    action_id: str | None = None
    execution_id: str | None = None
    partial_changes: ResultMetadata | None = Field(
        default=None, description="Board writes left behind by abandoned attempts"
    )


class ExecutionResult(BaseModel):
    """Outcome of one Command Executor call.

    ``success=False`` results carry ``error``; they fail the unit without
    raising.
    """

    success: bool
    message: str = ""
    data: dict[str, Any] | None = None
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    error: ExecutionError | None = None
    action_id: str | None = None
    execution_id: str | None = None
    action_type: str | None = None


class ExecutionProgress(BaseModel):
    """Snapshot handed to progress sinks."""

    plan_id: str
    status: PlanStatus = PlanStatus.PLANNING
    current_step: int = 0
    total_steps: int = 0
    completed_actions: int = 0
    failed_actions: int = 0
    skipped_actions: int = 0
    elapsed_time: int = Field(default=0, description="Milliseconds since the run started")
    estimated_time_remaining: int = 0
    current_action: str | None = None


class ExecutionSummary(BaseModel):
    total_actions: int = 0
    completed_actions: int = 0
    failed_actions: int = 0
    skipped_actions: int = 0
    total_time: int = Field(default=0, description="Wall time in milliseconds")
    average_action_time: float = 0.0


class ExecutionPerformance(BaseModel):
    parallel_efficiency: float = 1.0
    time_vs_budget: float = 1.0
    success_rate: float = 1.0


class ExecutionReport(BaseModel):
    """Terminal artifact of one orchestration call."""

    plan_id: str
    success: bool
    status: PlanStatus = PlanStatus.COMPLETED
    summary: ExecutionSummary = Field(default_factory=ExecutionSummary)
    results: list[ExecutionResult] = Field(default_factory=list)
    errors: list[ExecutionError] = Field(default_factory=list)
    performance: ExecutionPerformance = Field(default_factory=ExecutionPerformance)
    recommendations: list[str] = Field(default_factory=list)
    partial_changes: ResultMetadata = Field(default_factory=ResultMetadata)

    @property
    def created_node_ids(self) -> list[str]:
        """Every node this run put on the board, including ones from abandoned attempts."""
        ids = [node_id for result in self.results for node_id in result.metadata.nodes_created]
        return ids + self.partial_changes.nodes_created
