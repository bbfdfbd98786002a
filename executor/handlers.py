"""Per-action-type effects against the Graph Document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from board.graph_document import GraphDocument
from board.models import NodeSpec
from core.errors import FatalActionError
from detection.context import AIContext
from detection.types import ActionType, DetectedAction
from executor import board_analysis
from executor.cancellation import CancellationToken
from executor.content_generator import ContentGenerator, NodeContent, resolve_topic
from executor.placement import PlacementGrid
from executor.schemas import ExecutionResult, ResultMetadata

logger = logging.getLogger("ao.handlers")

MIN_COUNT = 1
MAX_COUNT = 12
CONNECT_THRESHOLD = 0.2


@dataclass
class HandlerContext:
    """Collaborators a handler may touch while running one unit."""

    document: GraphDocument
    placement: PlacementGrid
    content: ContentGenerator
    context: AIContext = field(default_factory=AIContext)
    token: CancellationToken = field(default_factory=CancellationToken)

    def add_nodes(self, contents: list[NodeContent], metadata: ResultMetadata) -> list[str]:
        ids = []
        for item in contents:
            self.token.raise_if_cancelled()
            spec = NodeSpec(
                label=item.title,
                content=item.description,
                position=self.placement.reserve(self.document),
            )
            node_id = self.document.add_node(spec)
            ids.append(node_id)
            metadata.nodes_created.append(node_id)
            metadata.node_titles.append(item.title)
            metadata.board_changes.append({"op": "add_node", "id": node_id, "label": item.title})
        return ids

    def add_edge(self, source: str, target: str, metadata: ResultMetadata, **attrs) -> str:
        self.token.raise_if_cancelled()
        edge_id = self.document.add_edge(source, target, attrs or None)
        metadata.connections_created.append(edge_id)
        metadata.board_changes.append({"op": "add_edge", "id": edge_id, "source": source, "target": target})
        return edge_id


Handler = Callable[[DetectedAction, HandlerContext], ExecutionResult]


def clamp_count(action: DetectedAction, default: int) -> int:
    count = action.parameters.count if action.parameters.count is not None else default
    return max(MIN_COUNT, min(MAX_COUNT, count))


def selected_node(action: DetectedAction) -> str | None:
    if action.parameters.target:
        return action.parameters.target
    return action.context.selected_nodes[0] if action.context.selected_nodes else None


def create_single(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    content = ctx.content.single(action)
    ctx.add_nodes([content], metadata)
    return ExecutionResult(
        success=True,
        message=f'Created "{content.title}" node based on your request',
        metadata=metadata,
    )


def create_multiple(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    contents = ctx.content.many(action, clamp_count(action, 3), kind="idea")
    ctx.add_nodes(contents, metadata)
    return ExecutionResult(
        success=True,
        message=f"Created {len(contents)} nodes based on your request",
        metadata=metadata,
    )


def brainstorm_ideas(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    contents = ctx.content.many(action, clamp_count(action, 3), kind="idea")
    ctx.add_nodes(contents, metadata)
    return ExecutionResult(
        success=True,
        message=f"Generated {len(contents)} brainstorming ideas based on your request",
        metadata=metadata,
    )


def research_topic(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    topic = resolve_topic(action)
    hub = NodeContent(
        f"Research: {topic.title()}",
        f"Findings gathered for {topic}; each connected node covers one angle.",
    )
    [hub_id] = ctx.add_nodes([hub], metadata)
    findings = ctx.content.many(action, clamp_count(action, 6), kind="finding")
    for finding_id in ctx.add_nodes(findings, metadata):
        ctx.add_edge(hub_id, finding_id, metadata, relation="finding")
    return ExecutionResult(
        success=True,
        message=f"Researched {topic} with {len(findings)} findings",
        metadata=metadata,
    )


def create_sequence(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    steps = ctx.content.many(action, clamp_count(action, 3), kind="step")
    ids = ctx.add_nodes(steps, metadata)
    for previous, current in zip(ids, ids[1:]):
        ctx.add_edge(previous, current, metadata, relation="next")
    return ExecutionResult(
        success=True,
        message=f"Created a sequence of {len(ids)} steps",
        metadata=metadata,
    )


def create_hierarchy(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    [root_id] = ctx.add_nodes([ctx.content.single(action)], metadata)
    children = ctx.content.many(action, clamp_count(action, 3), kind="child")
    for child_id in ctx.add_nodes(children, metadata):
        ctx.add_edge(root_id, child_id, metadata, relation="child")
    return ExecutionResult(
        success=True,
        message=f"Created a hierarchy with {len(children)} children",
        metadata=metadata,
    )


def plan_project(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    phases = ctx.content.plan_phases(action)
    ids = ctx.add_nodes(phases, metadata)
    for previous, current in zip(ids, ids[1:]):
        ctx.add_edge(previous, current, metadata, relation="next_phase")
    return ExecutionResult(
        success=True,
        message=f"Created {len(phases)} project plan nodes based on your request",
        metadata=metadata,
    )


def expand_concept(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    parent = selected_node(action)
    if parent is None or parent not in {node.id for node in ctx.document.list_nodes()}:
        [parent] = ctx.add_nodes([ctx.content.single(action)], metadata)
    children = ctx.content.many(action, clamp_count(action, 3), kind="child")
    for child_id in ctx.add_nodes(children, metadata):
        ctx.add_edge(parent, child_id, metadata, relation="expands")
    return ExecutionResult(
        success=True,
        message=f"Expanded concept with {len(children)} new nodes",
        metadata=metadata,
    )


def connect_nodes(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    metadata = ResultMetadata()
    limit = clamp_count(action, 5)
    candidates = board_analysis.connection_candidates(
        ctx.document.snapshot(), CONNECT_THRESHOLD, preferred_source=selected_node(action)
    )
    for source, target, score in candidates[:limit]:
        ctx.add_edge(source, target, metadata, relation="related", score=round(score, 3))
    count = len(metadata.connections_created)
    message = f"Created {count} connection(s) between related nodes" if count else "No related unconnected nodes found"
    return ExecutionResult(
        success=True,
        message=message,
        metadata=metadata,
    )


def _analysis_result(message: str, analytics: dict) -> ExecutionResult:
    return ExecutionResult(
        success=True,
        message=message,
        data=analytics,
        metadata=ResultMetadata(board_changes=[{"op": "analysis_performed"}], analytics=analytics),
    )


def analyze_board(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    documents = ctx.context.documents.documents if ctx.context.documents else []
    analytics = board_analysis.analyze_board(ctx.document.snapshot(), document_count=len(documents))
    return _analysis_result(
        f"Board analysis complete: {analytics['node_count']} nodes, "
        f"{analytics['document_count']} documents analyzed",
        analytics,
    )


def analyze_node(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    node_id = selected_node(action)
    if node_id is None:
        raise FatalActionError("Select a node to analyze", code="NO_NODE_SELECTED")
    analytics = board_analysis.analyze_node(ctx.document.snapshot(), node_id)
    return _analysis_result(
        f'Node "{analytics["label"]}" has {analytics["degree"]} connection(s)',
        analytics,
    )


def analyze_gap(action: DetectedAction, ctx: HandlerContext) -> ExecutionResult:
    analytics = board_analysis.analyze_gaps(ctx.document.snapshot())
    return _analysis_result(
        f"Gap analysis found {len(analytics['isolated_nodes'])} isolated node(s) "
        f"and {len(analytics['dead_ends'])} dead end(s)",
        analytics,
    )


DEFAULT_HANDLERS: dict[ActionType, Handler | None] = {
    ActionType.CREATE_SINGLE: create_single,
    ActionType.CREATE_MULTIPLE: create_multiple,
    ActionType.CREATE_SEQUENCE: create_sequence,
    ActionType.CREATE_HIERARCHY: create_hierarchy,
    ActionType.ANALYZE_BOARD: analyze_board,
    ActionType.ANALYZE_NODE: analyze_node,
    ActionType.ANALYZE_GAP: analyze_gap,
    ActionType.CONNECT_NODES: connect_nodes,
    ActionType.EXPAND_CONCEPT: expand_concept,
    ActionType.RESEARCH_TOPIC: research_topic,
    ActionType.BRAINSTORM_IDEAS: brainstorm_ideas,
    ActionType.PLAN_PROJECT: plan_project,
    # The Graph Document exposes no move, update or ingest operation.
    ActionType.ORGANIZE_NODES: None,
    ActionType.IMPROVE_CONTENT: None,
    ActionType.DOCUMENT_PROCESS: None,
    ActionType.CUSTOM_WORKFLOW: None,
}
