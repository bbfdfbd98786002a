"""Registry of in-flight plans."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable

from executor.cancellation import CancellationToken
from executor.schemas import ExecutionProgress, PlanStatus
from planner.execution_plan import ExecutionPlan

ProgressSink = Callable[[ExecutionProgress], None]


@dataclass
class ActivePlan:
    """Bookkeeping for one plan while it runs."""

    plan: ExecutionPlan
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    tokens: dict[str, CancellationToken] = field(default_factory=dict)
    progress_sink: ProgressSink | None = None
    status: PlanStatus = PlanStatus.PLANNING
    cancelled: bool = False

    def elapsed_ms(self) -> int:
        return int((datetime.now(UTC) - self.started_at).total_seconds() * 1000)


class StateManager:
    """Thread-safe map of plan id to ``ActivePlan``; released on completion or cancel."""

    def __init__(self) -> None:
        self._plans: dict[str, ActivePlan] = {}
        self._lock = threading.Lock()

    def register(self, plan: ExecutionPlan, progress_sink: ProgressSink | None = None) -> ActivePlan:
        entry = ActivePlan(
            plan=plan,
            tokens={execution.id: CancellationToken() for execution in plan.actions},
            progress_sink=progress_sink,
        )
        with self._lock:
            self._plans[plan.id] = entry
        return entry

    def get(self, plan_id: str) -> ActivePlan | None:
        with self._lock:
            return self._plans.get(plan_id)

    def release(self, plan_id: str) -> ActivePlan | None:
        with self._lock:
            return self._plans.pop(plan_id, None)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._plans)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._plans
