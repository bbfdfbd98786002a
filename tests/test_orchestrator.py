"""Scheduler behavior: grouping, isolation, retries, cancellation and reporting."""

from __future__ import annotations

import random
import threading
import time
from collections import Counter
from pathlib import Path

from board.graph_document import InMemoryGraphDocument
from board.models import NodeSpec, Position
from core import event_bus as events
from core.audit_logger import AuditLogger
from core.event_bus import EventBus
from core.orchestrator import ActionOrchestrator, build_orchestrator
from core.policy_runtime import ExecutionCapabilities
from detection.action_detector import ActionDetector
from detection.context import AIContext
from detection.sequence import build_sequence
from detection.types import ActionMetadata, ActionType, DetectedAction
from executor.command_executor import CommandExecutor
from executor.content_generator import ContentGenerator
from executor.handlers import DEFAULT_HANDLERS, HandlerContext
from executor.placement import PlacementGrid
from executor.schemas import ExecutionError, ExecutionResult, PlanStatus, ResultMetadata


def _action(action_type: ActionType, text: str = "create a node", confidence: float = 0.9) -> DetectedAction:
    return DetectedAction(
        action_type=action_type,
        confidence=confidence,
        metadata=ActionMetadata(original_text=text),
    )


def _orchestrator(
    document: InMemoryGraphDocument | None = None,
    overrides: dict | None = None,
    audit_logger: AuditLogger | None = None,
    event_bus: EventBus | None = None,
    **handlers,
) -> ActionOrchestrator:
    table = dict(DEFAULT_HANDLERS)
    for name, handler in handlers.items():
        table[ActionType(name)] = handler
    executor = CommandExecutor(
        document or InMemoryGraphDocument(),
        content=ContentGenerator(None),
        placement=PlacementGrid(rng=random.Random(3)),
        handlers=table,
    )
    capabilities = ExecutionCapabilities(**(overrides or {}))
    return ActionOrchestrator(executor, capabilities=capabilities, event_bus=event_bus, audit_logger=audit_logger)


def test_failing_unit_does_not_stop_its_siblings() -> None:
    document = InMemoryGraphDocument()
    orchestrator = _orchestrator(document)
    actions = [
        _action(ActionType.CREATE_SINGLE, "create a marketing node"),
        _action(ActionType.ANALYZE_NODE, "analyze this node"),
        _action(ActionType.BRAINSTORM_IDEAS, "brainstorm ideas"),
    ]

    report = orchestrator.execute_actions(actions)

    assert report.success is False
    assert report.status == PlanStatus.FAILED
    assert report.summary.total_actions == 3
    assert report.summary.completed_actions == 2
    assert report.summary.failed_actions == 1
    assert report.summary.skipped_actions == 0
    assert report.errors[0].code == "NO_NODE_SELECTED"
    assert report.errors[0].action_id == actions[1].id
    assert len(document.list_nodes()) == 4
    assert sorted(report.created_node_ids) == sorted(node.id for node in document.list_nodes())
    assert "Review and fix errors before retrying" in report.recommendations


def test_recoverable_failures_are_retried_up_to_the_limit() -> None:
    calls = []

    def flaky(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append(action.id)
        raise RuntimeError("temporary glitch")

    report = _orchestrator(overrides={"retry_attempts": 2}, create_single=flaky).execute_actions(
        [_action(ActionType.CREATE_SINGLE)]
    )

    assert len(calls) == 3
    assert report.summary.failed_actions == 1
    assert report.errors[0].code == "ACTION_EXECUTION_FAILED"
    assert report.errors[0].recoverable is True
    assert report.errors[0].message == "temporary glitch"


def test_unit_succeeding_on_retry_completes() -> None:
    calls = []

    def second_time_lucky(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append(action.id)
        if len(calls) == 1:
            raise RuntimeError("first attempt fails")
        return ExecutionResult(success=True, message="done")

    report = _orchestrator(create_single=second_time_lucky).execute_actions([_action(ActionType.CREATE_SINGLE)])

    assert len(calls) == 2
    assert report.success is True
    assert report.summary.completed_actions == 1


def test_fatal_marker_and_unrecoverable_results_are_not_retried() -> None:
    calls = []

    def fatal(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append("fatal")
        raise RuntimeError("FATAL: board is read-only")

    def refused(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append("refused")
        return ExecutionResult(
            success=False,
            message="refused",
            error=ExecutionError(code="REFUSED", message="refused", recoverable=False),
        )

    report = _orchestrator(create_single=fatal, create_multiple=refused).execute_actions(
        [_action(ActionType.CREATE_SINGLE), _action(ActionType.CREATE_MULTIPLE)]
    )

    assert sorted(calls) == ["fatal", "refused"]
    assert sorted(error.code for error in report.errors) == ["ACTION_EXECUTION_FAILED", "REFUSED"]


def test_recoverable_failed_results_are_retried() -> None:
    calls = []

    def soft_failure(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append(action.id)
        return ExecutionResult(success=False, message="busy")

    report = _orchestrator(overrides={"retry_attempts": 1}, create_single=soft_failure).execute_actions(
        [_action(ActionType.CREATE_SINGLE)]
    )

    assert len(calls) == 2
    assert report.errors[0].message == "busy"


def test_unsupported_action_fails_once(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "audit.jsonl")
    report = _orchestrator(audit_logger=audit).execute_actions([_action(ActionType.ORGANIZE_NODES, "organize the nodes")])

    assert report.success is False
    assert report.errors[0].code == "UNSUPPORTED_ACTION_TYPE"
    [entry] = audit.read()
    assert entry["status"] == "failed"
    assert entry["attempts"] == 1
    assert entry["action_type"] == "organize_nodes"
    assert entry["plan_id"] == report.plan_id
    assert len(entry["parameters_hash"]) == 64


def test_dependent_of_failed_unit_is_skipped() -> None:
    document = InMemoryGraphDocument()
    sequence = build_sequence(
        "analysis then create",
        "",
        [_action(ActionType.ANALYZE_NODE, "analyze this node"), _action(ActionType.CREATE_SINGLE)],
    )

    report = _orchestrator(document).execute_sequence(sequence)

    assert report.summary.failed_actions == 1
    assert report.summary.skipped_actions == 1
    assert report.summary.completed_actions == 0
    assert document.list_nodes() == []


def test_rollback_disabled_stops_after_failing_group() -> None:
    document = InMemoryGraphDocument()
    orchestrator = _orchestrator(document, overrides={"rollback_enabled": False, "max_parallel_actions": 1})

    report = orchestrator.execute_actions(
        [_action(ActionType.ANALYZE_NODE, "analyze this node"), _action(ActionType.CREATE_SINGLE)]
    )

    assert report.status == PlanStatus.FAILED
    assert report.summary.failed_actions == 1
    assert report.summary.skipped_actions == 1
    assert document.list_nodes() == []


def test_slow_unit_times_out() -> None:
    def slow(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        time.sleep(0.3)
        return ExecutionResult(success=True, message="late")

    report = _orchestrator(overrides={"timeout_ms": 50, "retry_attempts": 0}, create_single=slow).execute_actions(
        [_action(ActionType.CREATE_SINGLE)]
    )

    assert report.success is False
    assert report.errors[0].code == "UNIT_TIMEOUT"
    assert report.errors[0].recoverable is True


def test_low_confidence_actions_produce_conversational_report() -> None:
    report = _orchestrator().execute_actions(
        [_action(ActionType.CREATE_SINGLE, confidence=0.1), _action(ActionType.ANALYZE_BOARD, confidence=0.2)]
    )

    assert report.success is True
    assert report.plan_id.startswith("empty_")
    assert report.summary.total_actions == 0
    assert report.summary.skipped_actions == 2
    assert report.recommendations[0].startswith("Input appears to be conversational")


def test_threshold_can_be_disabled() -> None:
    report = _orchestrator(overrides={"confidence_threshold": None}).execute_actions(
        [_action(ActionType.CREATE_SINGLE, confidence=0.1)]
    )
    assert report.summary.completed_actions == 1


def test_empty_input_is_a_trivial_success() -> None:
    report = _orchestrator().execute_actions([])
    assert report.success is True
    assert report.summary.skipped_actions == 0
    assert report.performance.success_rate == 1.0


def test_planning_failure_becomes_catastrophic_report() -> None:
    orphan = _action(ActionType.CREATE_SINGLE)
    orphan.dependencies.append("action_missing")
    orchestrator = _orchestrator()

    report = orchestrator.execute_actions([orphan, _action(ActionType.CREATE_SINGLE)])

    assert report.success is False
    assert report.plan_id.startswith("plan_failed_")
    assert report.errors[0].code == "CATASTROPHIC_FAILURE"
    assert report.summary.failed_actions == 2
    assert report.performance.success_rate == 0.0
    assert report.recommendations == ["Review execution plan and try again"]
    assert orchestrator.get_active_executions() == []


def test_progress_is_reported_from_planning_to_completion() -> None:
    seen = []
    report = _orchestrator().execute_actions(
        [_action(ActionType.CREATE_SINGLE), _action(ActionType.CREATE_SINGLE)], on_progress=seen.append
    )

    assert report.success is True
    assert seen[0].status == PlanStatus.PLANNING
    assert seen[-1].status == PlanStatus.COMPLETED
    assert seen[-1].completed_actions == 2
    assert seen[-1].total_steps == 2
    assert all(p.plan_id == report.plan_id for p in seen)


def test_progress_tracking_can_be_disabled() -> None:
    seen = []
    _orchestrator(overrides={"progress_tracking": False}).execute_actions(
        [_action(ActionType.CREATE_SINGLE)], on_progress=seen.append
    )
    assert seen == []


def test_failing_progress_sink_does_not_abort_the_run() -> None:
    def broken_sink(progress) -> None:
        raise RuntimeError("ui went away")

    report = _orchestrator().execute_actions([_action(ActionType.CREATE_SINGLE)], on_progress=broken_sink)
    assert report.success is True


def test_cancel_skips_units_that_have_not_started() -> None:
    started = threading.Event()
    release = threading.Event()

    def blocking(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        started.set()
        release.wait(5)
        return ExecutionResult(success=True, message="finished")

    orchestrator = _orchestrator(create_single=blocking)
    sequence = build_sequence("two steps", "", [_action(ActionType.CREATE_SINGLE), _action(ActionType.CREATE_MULTIPLE)])
    reports = []
    worker = threading.Thread(target=lambda: reports.append(orchestrator.execute_sequence(sequence)))
    worker.start()

    assert started.wait(5)
    [plan_id] = orchestrator.get_active_executions()
    progress = orchestrator.get_execution_progress(plan_id)
    assert progress is not None
    assert progress.status == PlanStatus.EXECUTING

    assert orchestrator.cancel_execution(plan_id) is True
    release.set()
    worker.join(5)

    [report] = reports
    assert report.status == PlanStatus.CANCELLED
    assert report.summary.completed_actions == 1
    assert report.summary.skipped_actions == 1
    assert orchestrator.get_active_executions() == []
    assert orchestrator.cancel_execution(plan_id) is False
    assert orchestrator.get_execution_progress(plan_id) is None


def test_events_are_emitted_for_units_and_plan() -> None:
    bus = EventBus()
    received: list[str] = []

    for name in (events.PLAN_CREATED, events.GROUP_STARTED, events.UNIT_COMPLETED, events.PLAN_FINISHED):
        bus.subscribe(name, lambda payload, name=name: received.append(name))

    _orchestrator(event_bus=bus).execute_actions([_action(ActionType.CREATE_SINGLE), _action(ActionType.CREATE_SINGLE)])

    assert Counter(received) == {
        events.PLAN_CREATED: 1,
        events.GROUP_STARTED: 1,
        events.UNIT_COMPLETED: 2,
        events.PLAN_FINISHED: 1,
    }


def test_detected_request_runs_end_to_end() -> None:
    document = InMemoryGraphDocument()
    orchestrator = build_orchestrator(document)
    context = AIContext.from_graph(document)
    actions = ActionDetector().detect("create a marketing node", context)

    report = orchestrator.execute_actions(actions, context)

    assert report.success is True
    [node] = document.list_nodes()
    assert node.label == "Marketing"
    assert report.created_node_ids == [node.id]
    assert report.performance.success_rate == 1.0
    assert "Successful actions can be used as templates for future executions" in report.recommendations


def test_concurrent_units_get_distinct_positions() -> None:
    document = InMemoryGraphDocument()
    actions = [_action(ActionType.CREATE_SINGLE, f"create node {i}") for i in range(6)]

    report = _orchestrator(document).execute_actions(actions)

    assert report.summary.completed_actions == 6
    positions = [(node.position.x, node.position.y) for node in document.list_nodes()]
    assert len(set(positions)) == 6


def test_overlapping_runs_of_the_same_actions_keep_their_own_cache() -> None:
    first_started = threading.Event()
    release = threading.Event()
    calls = []

    def held_once(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append(action.id)
        if len(calls) == 1:
            first_started.set()
            release.wait(5)
        return ExecutionResult(success=True, message="done")

    orchestrator = _orchestrator(create_single=held_once)
    sequence = build_sequence("two steps", "", [_action(ActionType.CREATE_SINGLE), _action(ActionType.ANALYZE_BOARD)])
    reports = []
    worker = threading.Thread(target=lambda: reports.append(orchestrator.execute_sequence(sequence)))
    worker.start()
    assert first_started.wait(5)

    second = orchestrator.execute_sequence(sequence)
    release.set()
    worker.join(5)

    [first] = reports
    assert second.success is True
    assert first.success is True
    assert first.errors == []
    assert first.summary.completed_actions == 2


def test_retry_after_timeout_reports_nodes_left_by_the_abandoned_attempt() -> None:
    document = InMemoryGraphDocument()
    calls = []
    first_done = threading.Event()

    def slow_first_write(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        calls.append(action.id)
        attempt = len(calls)
        try:
            node_id = ctx.document.add_node(NodeSpec(label=f"Hub {attempt}", position=Position(x=attempt * 400, y=0)))
            if attempt == 1:
                time.sleep(0.3)
                ctx.document.add_node(NodeSpec(label="Late finding", position=Position(x=0, y=400)))
            return ExecutionResult(success=True, message="done", metadata=ResultMetadata(nodes_created=[node_id]))
        finally:
            if attempt == 1:
                first_done.set()

    report = _orchestrator(
        document, overrides={"timeout_ms": 100, "retry_attempts": 1}, research_topic=slow_first_write
    ).execute_actions([_action(ActionType.RESEARCH_TOPIC, "research competitors")])
    assert first_done.wait(5)

    assert report.success is True
    assert len(calls) == 2
    board_ids = sorted(node.id for node in document.list_nodes())
    assert len(board_ids) == 2
    assert sorted(report.created_node_ids) == board_ids
    [orphan] = report.partial_changes.nodes_created
    assert document.get_node(orphan).label == "Hub 1"


def test_failed_unit_lists_its_partial_writes() -> None:
    document = InMemoryGraphDocument()

    def half_done(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
        ctx.document.add_node(NodeSpec(label="Half", position=Position(x=0, y=0)))
        raise RuntimeError("FATAL: lost connection to the board")

    report = _orchestrator(document, create_single=half_done).execute_actions([_action(ActionType.CREATE_SINGLE)])

    [error] = report.errors
    [node] = document.list_nodes()
    assert error.partial_changes is not None
    assert error.partial_changes.nodes_created == [node.id]
    assert report.created_node_ids == [node.id]
