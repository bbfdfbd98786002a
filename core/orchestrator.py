"""Group-synchronous scheduler for detected actions."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any

from core import event_bus as events
from core.audit_logger import AuditLogger
from core.errors import (
    ActionExecutionError,
    ExecutionCancelledError,
    UnitTimeoutError,
    error_code,
    is_recoverable,
)
from core.event_bus import EventBus
from core.policy_runtime import ExecutionCapabilities
from core.report_generator import ReportGenerator
from core.state_manager import ActivePlan, ProgressSink, StateManager
from detection.context import AIContext
from detection.sequence import ActionSequence
from detection.types import DetectedAction
from executor.cancellation import CancellationToken
from executor.command_executor import CommandExecutor
from executor.content_generator import ContentGenerator
from executor.journal import AttemptJournal
from executor.schemas import (
    ExecutionError,
    ExecutionProgress,
    ExecutionReport,
    ExecutionResult,
    ExecutionStatus,
    PlanStatus,
)
from planner.action_planner import ExecutionPlanner
from planner.execution_plan import ActionExecution, ExecutionPlan

logger = logging.getLogger("ao.orchestrator")

_BLOCKING = frozenset({ExecutionStatus.FAILED, ExecutionStatus.CANCELLED})


class ActionOrchestrator:
    """Plans detected actions and runs the plan group by group.

    Groups run strictly in order; members of one group run concurrently and a
    failing member never cancels its siblings. No exception escapes
    ``execute_actions``: planning failures become a catastrophic report.
    """

    def __init__(
        self,
        command_executor: CommandExecutor,
        capabilities: ExecutionCapabilities | None = None,
        event_bus: EventBus | None = None,
        audit_logger: AuditLogger | None = None,
        reports: ReportGenerator | None = None,
    ) -> None:
        self.command_executor = command_executor
        self.capabilities = capabilities or ExecutionCapabilities()
        self.planner = ExecutionPlanner(max_parallel=self.capabilities.max_parallel_actions)
        self.event_bus = event_bus or EventBus()
        self.audit_logger = audit_logger
        self.reports = reports or ReportGenerator()
        self.state = StateManager()
        self._status_lock = threading.RLock()

    # ── public API ───────────────────────────────────────────────────

    def execute_actions(
        self,
        actions: list[DetectedAction],
        context: AIContext | None = None,
        on_progress: ProgressSink | None = None,
    ) -> ExecutionReport:
        context = context or AIContext()
        threshold = self.capabilities.confidence_threshold
        accepted = list(actions)
        if threshold is not None:
            accepted = [action for action in actions if action.confidence >= threshold]
            if len(accepted) < len(actions):
                logger.info(
                    "Filtered out %d low-confidence action(s) (< %.2f)",
                    len(actions) - len(accepted),
                    threshold,
                )
        if not accepted:
            logger.info("No actionable input; treating as conversational")
            return self.reports.empty(f"empty_{uuid.uuid4().hex[:12]}", skipped=len(actions))

        try:
            plan = self.planner.plan(accepted, context)
        except Exception as exc:
            logger.exception("Planning failed for %d action(s)", len(accepted))
            return self.reports.catastrophic(f"plan_failed_{uuid.uuid4().hex[:12]}", len(accepted), exc)

        entry = self.state.register(plan, on_progress)
        self.command_executor.register_actions(plan.id, accepted)
        self.event_bus.emit(
            events.PLAN_CREATED,
            {"plan_id": plan.id, "total_steps": plan.total_steps, "groups": plan.parallel_groups},
        )
        self._notify(entry)
        try:
            return self._run_plan(entry, context)
        except Exception as exc:
            logger.exception("Plan %s aborted", plan.id)
            return self.reports.catastrophic(plan.id, plan.total_steps, exc)
        finally:
            self.state.release(plan.id)
            self.command_executor.forget_actions(plan.id)
            if self.state.is_empty():
                self.command_executor.placement.release_all()

    def execute_sequence(
        self,
        sequence: ActionSequence,
        context: AIContext | None = None,
        on_progress: ProgressSink | None = None,
    ) -> ExecutionReport:
        return self.execute_actions(sequence.actions, context, on_progress)

    def cancel_execution(self, plan_id: str) -> bool:
        """Cancel every unit that has not started; running units finish on their own."""
        entry = self.state.get(plan_id)
        if entry is None:
            return False
        with self._status_lock:
            entry.cancelled = True
            for token in entry.tokens.values():
                token.cancel(f"Plan {plan_id} cancelled")
            for execution in entry.plan.actions:
                if not execution.status.is_terminal and execution.status != ExecutionStatus.RUNNING:
                    execution.transition(ExecutionStatus.CANCELLED)
        self.state.release(plan_id)
        logger.info("Plan %s cancelled", plan_id)
        self.event_bus.emit(events.PLAN_CANCELLED, {"plan_id": plan_id})
        return True

    def get_execution_progress(self, plan_id: str) -> ExecutionProgress | None:
        entry = self.state.get(plan_id)
        if entry is None:
            return None
        return self._progress(entry)

    def get_active_executions(self) -> list[str]:
        return self.state.active_ids()

    # ── plan execution ───────────────────────────────────────────────

    def _run_plan(self, entry: ActivePlan, context: AIContext) -> ExecutionReport:
        plan = entry.plan
        started = time.monotonic()
        with self._status_lock:
            for execution in plan.actions:
                if execution.dependencies and execution.status == ExecutionStatus.PENDING:
                    execution.transition(ExecutionStatus.WAITING_DEPENDENCIES)
            entry.status = PlanStatus.EXECUTING
        self._notify(entry)

        stopped_early = False
        for index, group in enumerate(plan.parallel_groups):
            if entry.cancelled:
                break
            runnable = self._prepare_group(entry, group)
            self.event_bus.emit(
                events.GROUP_STARTED,
                {"plan_id": plan.id, "group": index, "executions": [e.id for e in runnable]},
            )
            logger.info("Plan %s group %d: running %d unit(s)", plan.id, index, len(runnable))
            failed_here = self._run_group(entry, runnable, context)
            self.event_bus.emit(
                events.GROUP_COMPLETED,
                {"plan_id": plan.id, "group": index, "failed": failed_here},
            )
            self._notify(entry)
            if failed_here and not self.capabilities.rollback_enabled:
                logger.info("Plan %s stops after group %d: failures with rollback disabled", plan.id, index)
                stopped_early = True
                break

        with self._status_lock:
            for execution in plan.actions:
                if not execution.status.is_terminal and execution.status != ExecutionStatus.RUNNING:
                    execution.transition(ExecutionStatus.CANCELLED)
                    self._audit(plan, execution, "")

        results = [e.result for e in plan.actions if e.status == ExecutionStatus.COMPLETED and e.result]
        errors = [e.error for e in plan.actions if e.status == ExecutionStatus.FAILED and e.error]
        if entry.cancelled:
            entry.status = PlanStatus.CANCELLED
        elif errors or stopped_early:
            entry.status = PlanStatus.FAILED
        else:
            entry.status = PlanStatus.COMPLETED
        self._notify(entry)

        total_ms = int((time.monotonic() - started) * 1000)
        report = self.reports.build(plan, results, errors, total_ms, entry.status)
        logger.info(
            "Plan %s finished: %d/%d completed, %d failed, %d skipped in %dms",
            plan.id,
            report.summary.completed_actions,
            report.summary.total_actions,
            report.summary.failed_actions,
            report.summary.skipped_actions,
            total_ms,
        )
        self.event_bus.emit(
            events.PLAN_FINISHED,
            {"plan_id": plan.id, "status": entry.status.value, "success": report.success},
        )
        return report

    def _prepare_group(self, entry: ActivePlan, group: list[str]) -> list[ActionExecution]:
        """Ready the group's units; units behind a failed or cancelled dependency are skipped."""
        plan = entry.plan
        runnable = []
        with self._status_lock:
            for execution_id in group:
                execution = plan.get(execution_id)
                if execution.status.is_terminal:
                    continue
                blocked = [d for d in execution.dependencies if plan.get(d).status in _BLOCKING]
                if blocked:
                    execution.transition(ExecutionStatus.CANCELLED)
                    logger.info("Skipping %s: dependency %s did not complete", execution.id, blocked[0])
                    self._audit(plan, execution, f"dependency {blocked[0]} did not complete")
                    continue
                execution.transition(ExecutionStatus.READY)
                runnable.append(execution)
        return runnable

    def _run_group(self, entry: ActivePlan, runnable: list[ActionExecution], context: AIContext) -> int:
        if not runnable:
            return 0
        failed = 0
        workers = min(len(runnable), self.capabilities.max_parallel_actions)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ao-unit") as pool:
            futures = {
                pool.submit(self._run_unit, entry, execution, context): execution
                for execution in runnable
            }
            for future in as_completed(futures):
                execution = futures[future]
                try:
                    status = future.result()
                except Exception:
                    logger.exception("Unit %s crashed outside its error handling", execution.id)
                    with self._status_lock:
                        if execution.status == ExecutionStatus.RUNNING:
                            execution.mark_failed(
                                ExecutionError(
                                    code="ACTION_EXECUTION_FAILED",
                                    message="Unit crashed",
                                    recoverable=False,
                                    action_id=execution.action_id,
                                    execution_id=execution.id,
                                )
                            )
                    status = ExecutionStatus.FAILED
                if status == ExecutionStatus.FAILED:
                    failed += 1
        return failed

    def _run_unit(self, entry: ActivePlan, execution: ActionExecution, context: AIContext) -> ExecutionStatus:
        """Run one unit with bounded retries; never raises for unit failures."""
        plan = entry.plan
        token = entry.tokens[execution.id]
        while True:
            with self._status_lock:
                if execution.status == ExecutionStatus.CANCELLED:
                    return ExecutionStatus.CANCELLED
                if token.cancelled:
                    execution.transition(ExecutionStatus.CANCELLED)
                    self._audit(plan, execution, token.reason)
                    return ExecutionStatus.CANCELLED
                execution.mark_started()

            journal = AttemptJournal()
            try:
                result = self._attempt(execution, context, token, journal)
            except ExecutionCancelledError as exc:
                with self._status_lock:
                    self._abandon(execution, journal)
                    execution.transition(ExecutionStatus.CANCELLED)
                self._audit(plan, execution, str(exc))
                return ExecutionStatus.CANCELLED
            except Exception as exc:
                self._abandon(execution, journal)
                error = self._error_from_exception(exc, execution)
            else:
                if result.success:
                    with self._status_lock:
                        execution.mark_completed(result)
                    logger.info("Unit %s (%s) completed: %s", execution.id, execution.action_type.value, result.message)
                    self.event_bus.emit(
                        events.UNIT_COMPLETED,
                        {"plan_id": plan.id, "execution_id": execution.id, "message": result.message},
                    )
                    self._audit(plan, execution, "")
                    return ExecutionStatus.COMPLETED
                self._abandon(execution, journal)
                error = result.error or ExecutionError(
                    code="ACTION_EXECUTION_FAILED",
                    message=result.message or "Action reported failure",
                    recoverable=True,
                )
                error.action_id = execution.action_id
                error.execution_id = execution.id

            if error.recoverable and execution.retry_count < self.capabilities.retry_attempts:
                with self._status_lock:
                    if execution.status != ExecutionStatus.RUNNING:
                        return execution.status
                    execution.mark_retry()
                logger.warning(
                    "Retrying %s (%d/%d) after %s: %s",
                    execution.id,
                    execution.retry_count,
                    self.capabilities.retry_attempts,
                    error.code,
                    error.message,
                )
                self.event_bus.emit(
                    events.UNIT_RETRY,
                    {"plan_id": plan.id, "execution_id": execution.id, "retry_count": execution.retry_count},
                )
                continue

            if not execution.partial_changes.is_empty:
                error.partial_changes = execution.partial_changes.model_copy(deep=True)
            with self._status_lock:
                execution.mark_failed(error)
            logger.info("Unit %s failed: %s %s", execution.id, error.code, error.message)
            self.event_bus.emit(
                events.UNIT_FAILED,
                {"plan_id": plan.id, "execution_id": execution.id, "code": error.code},
            )
            self._audit(plan, execution, f"{error.code}: {error.message}")
            return ExecutionStatus.FAILED

    @staticmethod
    def _abandon(execution: ActionExecution, journal: AttemptJournal) -> None:
        """Seal a failed attempt's journal and keep whatever it left on the board."""
        changes = journal.seal()
        if changes.is_empty:
            return
        execution.partial_changes.merge(changes)
        logger.warning(
            "Unit %s attempt %d left %d node(s) and %d edge(s) on the board",
            execution.id,
            execution.retry_count + 1,
            len(changes.nodes_created),
            len(changes.connections_created),
        )

    def _attempt(
        self,
        execution: ActionExecution,
        context: AIContext,
        token: CancellationToken,
        journal: AttemptJournal,
    ) -> ExecutionResult:
        """One Command Executor call raced against the per-unit deadline."""
        attempt_token = token.child()
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ao-attempt")
        try:
            future = pool.submit(self.command_executor.execute, execution, context, attempt_token, journal)
            try:
                return future.result(timeout=self.capabilities.timeout_ms / 1000)
            except FuturesTimeoutError:
                attempt_token.cancel("timed out")
                logger.warning("Unit %s timed out after %dms", execution.id, self.capabilities.timeout_ms)
                raise UnitTimeoutError(execution.id, self.capabilities.timeout_ms) from None
        finally:
            pool.shutdown(wait=False)

    @staticmethod
    def _error_from_exception(exc: BaseException, execution: ActionExecution) -> ExecutionError:
        return ExecutionError(
            code=error_code(exc),
            message=str(exc) or type(exc).__name__,
            details=type(exc).__name__,
            recoverable=is_recoverable(exc),
            suggestions=list(exc.suggestions) if isinstance(exc, ActionExecutionError) else [],
            action_id=execution.action_id,
            execution_id=execution.id,
        )

    # ── progress & audit ─────────────────────────────────────────────

    def _progress(self, entry: ActivePlan) -> ExecutionProgress:
        plan = entry.plan
        with self._status_lock:
            completed = len(plan.by_status(ExecutionStatus.COMPLETED))
            failed = len(plan.by_status(ExecutionStatus.FAILED))
            skipped = len(plan.by_status(ExecutionStatus.CANCELLED))
            running = plan.by_status(ExecutionStatus.RUNNING)
        elapsed = entry.elapsed_ms()
        return ExecutionProgress(
            plan_id=plan.id,
            status=entry.status,
            current_step=completed + failed,
            total_steps=plan.total_steps,
            completed_actions=completed,
            failed_actions=failed,
            skipped_actions=skipped,
            elapsed_time=elapsed,
            estimated_time_remaining=max(0, plan.estimated_time - elapsed),
            current_action=running[0].id if running else None,
        )

    def _notify(self, entry: ActivePlan) -> None:
        if entry.progress_sink is None or not self.capabilities.progress_tracking:
            return
        progress = self._progress(entry)
        try:
            entry.progress_sink(progress)
        except Exception:
            logger.exception("Progress sink failed for plan %s", entry.plan.id)

    def _audit(self, plan: ExecutionPlan, execution: ActionExecution, error: str) -> None:
        if self.audit_logger is None:
            return
        action = self.command_executor.get_action(plan.id, execution.action_id)
        parameters: dict[str, Any] = action.parameters.model_dump() if action else {}
        attempts = execution.retry_count + 1 if execution.start_time else 0
        try:
            self.audit_logger.log(
                plan_id=plan.id,
                execution_id=execution.id,
                action_type=execution.action_type.value,
                status=execution.status.value,
                attempts=attempts,
                parameters=parameters,
                error=error,
            )
        except OSError:
            logger.exception("Audit write failed for %s", execution.id)


def build_orchestrator(
    document,
    capabilities: ExecutionCapabilities | None = None,
    llm=None,
    placement=None,
    event_bus: EventBus | None = None,
    audit_logger: AuditLogger | None = None,
) -> ActionOrchestrator:
    """Wire a Command Executor over ``document`` and return a scheduler for it."""
    executor = CommandExecutor(document=document, content=ContentGenerator(llm), placement=placement)
    return ActionOrchestrator(
        executor,
        capabilities=capabilities,
        event_bus=event_bus,
        audit_logger=audit_logger,
    )
