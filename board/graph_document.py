"""Graph Document contract and in-memory store."""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any

from board.models import BoardEdge, BoardNode, GraphState, NodeSpec


class GraphDocument(ABC):
    """External node/edge store mutated only by the Command Executor.

    Implementations must make ``add_node`` and ``add_edge`` individually
    atomic; the orchestrator calls them concurrently from one group.
    """

    @abstractmethod
    def add_node(self, spec: NodeSpec) -> str:
        """Create a node and return its id."""

    @abstractmethod
    def add_edge(self, source_id: str, target_id: str, attrs: dict[str, Any] | None = None) -> str:
        """Connect two existing nodes and return the edge id."""

    @abstractmethod
    def list_nodes(self) -> list[BoardNode]:
        """Return the current nodes."""

    @abstractmethod
    def list_edges(self) -> list[BoardEdge]:
        """Return the current edges."""

    @abstractmethod
    def snapshot(self) -> GraphState:
        """Return an immutable copy of the whole graph."""


class InMemoryGraphDocument(GraphDocument):
    """Thread-safe in-memory graph used by the CLI and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: dict[str, BoardNode] = {}
        self._edges: dict[str, BoardEdge] = {}

    def add_node(self, spec: NodeSpec) -> str:
        node_id = f"node_{uuid.uuid4().hex[:12]}"
        node = BoardNode(id=node_id, **spec.model_dump())
        with self._lock:
            self._nodes[node_id] = node
        return node_id

    def add_edge(self, source_id: str, target_id: str, attrs: dict[str, Any] | None = None) -> str:
        if source_id == target_id:
            raise ValueError(f"Self-loop rejected for node {source_id}")
        with self._lock:
            missing = [n for n in (source_id, target_id) if n not in self._nodes]
            if missing:
                raise KeyError(f"Unknown node id(s): {', '.join(missing)}")
            edge_id = f"edge_{uuid.uuid4().hex[:12]}"
            self._edges[edge_id] = BoardEdge(
                id=edge_id, source=source_id, target=target_id, attrs=dict(attrs or {})
            )
        return edge_id

    def list_nodes(self) -> list[BoardNode]:
        with self._lock:
            return [n.model_copy(deep=True) for n in self._nodes.values()]

    def list_edges(self) -> list[BoardEdge]:
        with self._lock:
            return [e.model_copy(deep=True) for e in self._edges.values()]

    def snapshot(self) -> GraphState:
        with self._lock:
            return GraphState(
                nodes=[n.model_copy(deep=True) for n in self._nodes.values()],
                edges=[e.model_copy(deep=True) for e in self._edges.values()],
            )

    def get_node(self, node_id: str) -> BoardNode | None:
        with self._lock:
            node = self._nodes.get(node_id)
            return node.model_copy(deep=True) if node else None
