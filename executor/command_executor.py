"""Command Executor: dispatches one execution unit to its action-type handler."""

from __future__ import annotations

import logging
import threading

from board.graph_document import GraphDocument
from core.errors import ActionExecutionError
from detection.context import AIContext
from detection.types import ActionType, DetectedAction
from executor.cancellation import CancellationToken
from executor.content_generator import ContentGenerator
from executor.handlers import DEFAULT_HANDLERS, Handler, HandlerContext
from executor.journal import AttemptJournal, JournaledDocument
from executor.placement import PlacementGrid
from executor.schemas import ExecutionError, ExecutionResult
from planner.execution_plan import ActionExecution

logger = logging.getLogger("ao.command_executor")

UNSUPPORTED_CODE = "UNSUPPORTED_ACTION_TYPE"


class CommandExecutor:
    """Maps ``ActionType`` to a handler and runs it against the Graph Document.

    ``handlers`` must cover every action type; ``None`` marks a type as
    explicitly unsupported. Handler exceptions propagate to the caller, which
    decides about retries; unsupported types return a failed result instead.
    """

    def __init__(
        self,
        document: GraphDocument,
        content: ContentGenerator | None = None,
        placement: PlacementGrid | None = None,
        handlers: dict[ActionType, Handler | None] | None = None,
    ) -> None:
        self.document = document
        self.content = content or ContentGenerator()
        self.placement = placement or PlacementGrid()
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)
        missing = [t.value for t in ActionType if t not in self.handlers]
        if missing:
            raise ValueError(f"No handler registered for action type(s): {', '.join(missing)}")
        self._actions: dict[str, dict[str, DetectedAction]] = {}
        self._lock = threading.Lock()

    def register_actions(self, plan_id: str, actions: list[DetectedAction]) -> None:
        """Cache the detected actions ``plan_id`` refers to by id.

        Entries are scoped to the plan, so concurrent runs of the same
        actions never release each other's cache.
        """
        with self._lock:
            self._actions[plan_id] = {action.id: action for action in actions}

    def forget_actions(self, plan_id: str) -> None:
        with self._lock:
            self._actions.pop(plan_id, None)

    def get_action(self, plan_id: str, action_id: str) -> DetectedAction | None:
        with self._lock:
            return self._actions.get(plan_id, {}).get(action_id)

    def supports(self, action_type: ActionType) -> bool:
        return self.handlers.get(action_type) is not None

    def execute(
        self,
        execution: ActionExecution,
        context: AIContext | None = None,
        token: CancellationToken | None = None,
        journal: AttemptJournal | None = None,
    ) -> ExecutionResult:
        """Run one unit. With ``journal``, every Graph Document write is recorded in it."""
        action = self.get_action(execution.plan_id, execution.action_id)
        if action is None:
            raise ActionExecutionError(
                f"Detected action {execution.action_id} not found in plan {execution.plan_id}",
                code="ACTION_NOT_FOUND",
                recoverable=False,
            )

        handler = self.handlers.get(action.action_type)
        if handler is None:
            logger.info("Unsupported action type %s for %s", action.action_type.value, execution.id)
            return self._tag(
                ExecutionResult(
                    success=False,
                    message=f"Unsupported action type: {action.action_type.value}",
                    error=ExecutionError(
                        code=UNSUPPORTED_CODE,
                        message=f"Unsupported action type: {action.action_type.value}",
                        recoverable=False,
                        suggestions=["Rephrase the request as a create, connect or analyze action"],
                    ),
                ),
                action,
                execution,
            )

        token = token or CancellationToken()
        token.raise_if_cancelled()
        logger.debug(
            "Executing %s (%s) topic=%s prompt=%r",
            execution.id,
            action.action_type.value,
            action.parameters.topic or "none",
            action.metadata.original_text,
        )
        document = self.document if journal is None else JournaledDocument(self.document, journal, token)
        ctx = HandlerContext(
            document=document,
            placement=self.placement,
            content=self.content,
            context=context or AIContext(),
            token=token,
        )
        return self._tag(handler(action, ctx), action, execution)

    @staticmethod
    def _tag(result: ExecutionResult, action: DetectedAction, execution: ActionExecution) -> ExecutionResult:
        result.action_id = action.id
        result.execution_id = execution.id
        result.action_type = action.action_type.value
        if result.error is not None:
            result.error.action_id = action.id
            result.error.execution_id = execution.id
        return result
