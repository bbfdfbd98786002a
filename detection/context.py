"""Caller-supplied context and its reduction to an ``ActionContext``."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from board.graph_document import GraphDocument
from board.models import BoardEdge, BoardNode
from detection.types import ActionContext, BoardDensity


class BoardContext(BaseModel):
    nodes: list[BoardNode] = Field(default_factory=list)
    edges: list[BoardEdge] = Field(default_factory=list)
    selected_node_id: str | None = None
    focused_node_ids: list[str] = Field(default_factory=list)


class DocumentInfo(BaseModel):
    id: str
    name: str
    doc_type: str = "text"
    content: str = ""
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class DocumentContext(BaseModel):
    documents: list[DocumentInfo] = Field(default_factory=list)


class ChatMessage(BaseModel):
    role: str
    content: str


class ConversationContext(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)


class AIContext(BaseModel):
    """Everything the UI knows when the user sends a message."""

    board: BoardContext | None = None
    documents: DocumentContext | None = None
    conversation: ConversationContext | None = None
    topic: str | None = None

    @property
    def has_documents(self) -> bool:
        return self.documents is not None and bool(self.documents.documents)

    @classmethod
    def from_graph(
        cls,
        document: GraphDocument,
        selected_node_id: str | None = None,
        documents: list[DocumentInfo] | None = None,
        conversation: list[ChatMessage] | None = None,
        topic: str | None = None,
    ) -> AIContext:
        """Build a context from a Graph Document snapshot."""
        state = document.snapshot()
        return cls(
            board=BoardContext(
                nodes=state.nodes,
                edges=state.edges,
                selected_node_id=selected_node_id,
                focused_node_ids=[selected_node_id] if selected_node_id else [],
            ),
            documents=DocumentContext(documents=documents) if documents is not None else None,
            conversation=ConversationContext(messages=conversation) if conversation else None,
            topic=topic,
        )


def board_density(node_count: int) -> BoardDensity:
    if node_count == 0:
        return BoardDensity.EMPTY
    if node_count < 5:
        return BoardDensity.SPARSE
    if node_count < 15:
        return BoardDensity.MODERATE
    return BoardDensity.DENSE


class ContextAnalyzer:
    """Reduces an ``AIContext`` to the immutable snapshot stored on actions."""

    def analyze(self, context: AIContext) -> ActionContext:
        board = context.board
        node_count = len(board.nodes) if board else 0
        return ActionContext(
            selected_nodes=[board.selected_node_id] if board and board.selected_node_id else [],
            board_present=board is not None,
            board_state=board_density(node_count),
            node_count=node_count,
            edge_count=len(board.edges) if board else 0,
            document_present=context.has_documents,
            conversation_history=len(context.conversation.messages) if context.conversation else 0,
        )
