"""Board node/edge models shared with the Graph Document."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class Position(BaseModel):
    """Canvas coordinates of a node."""

    x: float
    y: float


class NodeSpec(BaseModel):
    """Everything needed to create a node; the document assigns the id."""

    label: str
    content: str = ""
    position: Position
    node_type: str = "default"
    ai_generated: bool = True
    expanded: bool = False


class BoardNode(NodeSpec):
    """Persisted node as returned by the Graph Document."""

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BoardEdge(BaseModel):
    """Directed connection between two nodes."""

    id: str
    source: str
    target: str
    attrs: dict[str, Any] = Field(default_factory=dict)


class GraphState(BaseModel):
    """Immutable snapshot of the board."""

    nodes: list[BoardNode] = Field(default_factory=list)
    edges: list[BoardEdge] = Field(default_factory=list)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)
