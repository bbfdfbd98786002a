"""Exception hierarchy for detection, planning and execution.

Unit-level failures are contained by the orchestrator and surface as
``ExecutionError`` records in the report; only the classes below are raised
between components.
"""

from __future__ import annotations

FATAL_MARKER = "FATAL"


class OrchestratorError(RuntimeError):
    """Base class for all orchestrator errors."""


class ActionExecutionError(OrchestratorError):
    """A single execution unit failed.

    ``recoverable`` decides whether the scheduler may retry the unit.
    """

    def __init__(
        self,
        message: str,
        code: str = "ACTION_EXECUTION_FAILED",
        recoverable: bool = True,
        suggestions: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recoverable = recoverable
        self.suggestions = list(suggestions or [])


class FatalActionError(ActionExecutionError):
    """Unit failure that must never be retried."""

    def __init__(self, message: str, code: str = "FATAL_ACTION_ERROR") -> None:
        super().__init__(message, code=code, recoverable=False)


class UnitTimeoutError(ActionExecutionError):
    """An attempt exceeded the configured per-unit deadline."""

    def __init__(self, execution_id: str, timeout_ms: int) -> None:
        super().__init__(
            f"Execution {execution_id} exceeded {timeout_ms}ms",
            code="UNIT_TIMEOUT",
            recoverable=True,
            suggestions=["Increase orchestrator.timeout_ms or simplify the request"],
        )
        self.execution_id = execution_id
        self.timeout_ms = timeout_ms


class ExecutionCancelledError(OrchestratorError):
    """Raised cooperatively once a unit's cancellation token is set."""


class PlanningError(OrchestratorError):
    """The dependency graph or group partition cannot be built."""


class InvalidTransitionError(OrchestratorError):
    """Illegal execution status transition."""


def is_recoverable(error: BaseException) -> bool:
    """Return whether a unit failure may be retried.

    Typed errors carry their own flag; anything else is recoverable unless its
    message contains the fatal marker.
    """
    if isinstance(error, ExecutionCancelledError):
        return False
    if isinstance(error, ActionExecutionError):
        return error.recoverable and FATAL_MARKER not in str(error)
    return FATAL_MARKER not in str(error)


def error_code(error: BaseException) -> str:
    """Stable error code for report entries."""
    if isinstance(error, ActionExecutionError):
        return error.code
    if isinstance(error, ExecutionCancelledError):
        return "CANCELLED"
    return "ACTION_EXECUTION_FAILED"
