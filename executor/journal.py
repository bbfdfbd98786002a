"""Per-attempt record of Graph Document writes."""

from __future__ import annotations

import threading
from typing import Any

from board.graph_document import GraphDocument
from board.models import BoardEdge, BoardNode, GraphState, NodeSpec
from core.errors import ExecutionCancelledError
from executor.cancellation import CancellationToken
from executor.schemas import ResultMetadata


class AttemptJournal:
    """Collects the nodes and edges one handler attempt put on the board.

    Once sealed, the journal refuses further writes; the orchestrator seals
    it when an attempt is abandoned so late writes from a timed-out thread
    cannot slip past the report.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.sealed = False
        self._changes = ResultMetadata()

    def record_node(self, node_id: str, label: str) -> None:
        self._changes.nodes_created.append(node_id)
        self._changes.node_titles.append(label)
        self._changes.board_changes.append({"op": "add_node", "id": node_id, "label": label})

    def record_edge(self, edge_id: str, source: str, target: str) -> None:
        self._changes.connections_created.append(edge_id)
        self._changes.board_changes.append({"op": "add_edge", "id": edge_id, "source": source, "target": target})

    def seal(self) -> ResultMetadata:
        """Stop accepting writes and return what was written so far."""
        with self.lock:
            self.sealed = True
            return self._changes.model_copy(deep=True)


class JournaledDocument(GraphDocument):
    """Graph Document view handed to one attempt; writes go through the journal."""

    def __init__(self, document: GraphDocument, journal: AttemptJournal, token: CancellationToken) -> None:
        self.document = document
        self.journal = journal
        self.token = token

    def _check(self) -> None:
        if self.journal.sealed:
            raise ExecutionCancelledError("Attempt was abandoned")
        self.token.raise_if_cancelled()

    def add_node(self, spec: NodeSpec) -> str:
        with self.journal.lock:
            self._check()
            node_id = self.document.add_node(spec)
            self.journal.record_node(node_id, spec.label)
        return node_id

    def add_edge(self, source_id: str, target_id: str, attrs: dict[str, Any] | None = None) -> str:
        with self.journal.lock:
            self._check()
            edge_id = self.document.add_edge(source_id, target_id, attrs)
            self.journal.record_edge(edge_id, source_id, target_id)
        return edge_id

    def list_nodes(self) -> list[BoardNode]:
        return self.document.list_nodes()

    def list_edges(self) -> list[BoardEdge]:
        return self.document.list_edges()

    def snapshot(self) -> GraphState:
        return self.document.snapshot()

    def __getattr__(self, name: str) -> Any:
        return getattr(self.document, name)
