"""Typed records produced by action detection."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ActionType(str, Enum):
    """Closed set of actions the assistant can take on a board."""

    CREATE_SINGLE = "create_single"
    CREATE_MULTIPLE = "create_multiple"
    CREATE_SEQUENCE = "create_sequence"
    CREATE_HIERARCHY = "create_hierarchy"
    ANALYZE_BOARD = "analyze_board"
    ANALYZE_NODE = "analyze_node"
    ANALYZE_GAP = "analyze_gap"
    ORGANIZE_NODES = "organize_nodes"
    CONNECT_NODES = "connect_nodes"
    EXPAND_CONCEPT = "expand_concept"
    RESEARCH_TOPIC = "research_topic"
    BRAINSTORM_IDEAS = "brainstorm_ideas"
    PLAN_PROJECT = "plan_project"
    IMPROVE_CONTENT = "improve_content"
    DOCUMENT_PROCESS = "document_process"
    CUSTOM_WORKFLOW = "custom_workflow"

    @property
    def is_creation(self) -> bool:
        return self.value.startswith("create")

    @property
    def is_analysis(self) -> bool:
        return self.value.startswith("analyze")

    @property
    def is_organization(self) -> bool:
        return self.value.startswith("organize")

    @property
    def needs_board(self) -> bool:
        return "node" in self.value

    @property
    def needs_document(self) -> bool:
        return "document" in self.value


class Scope(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    BOARD = "board"
    DOCUMENT = "document"
    GLOBAL = "global"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class BoardDensity(str, Enum):
    EMPTY = "empty"
    SPARSE = "sparse"
    MODERATE = "moderate"
    DENSE = "dense"


class ActionIntent(BaseModel):
    """What the user is trying to achieve, independent of the matched pattern."""

    primary_goal: str = "general"
    secondary: str | None = None
    scope: Scope = Scope.SINGLE
    urgency: Urgency = Urgency.MEDIUM
    complexity: Complexity = Complexity.MODERATE


class ActionParameters(BaseModel):
    """Open parameter bag; unknown keys are kept."""

    model_config = {"extra": "allow"}

    count: int | None = None
    topic: str | None = None
    style: str | None = None
    target: str | None = None
    constraints: list[str] = Field(default_factory=list)
    custom_instructions: str | None = None

    def merged_over(self, defaults: dict[str, Any]) -> ActionParameters:
        """Return defaults overridden by every explicitly extracted value."""
        explicit = self.model_dump(exclude_none=True)
        if not explicit.get("constraints"):
            explicit.pop("constraints", None)
        return ActionParameters(**{**defaults, **explicit})


class ActionContext(BaseModel):
    """Board/document snapshot taken at classification time."""

    selected_nodes: list[str] = Field(default_factory=list)
    board_present: bool = False
    board_state: BoardDensity = BoardDensity.EMPTY
    node_count: int = 0
    edge_count: int = 0
    document_present: bool = False
    conversation_history: int = 0
    user_expertise: str = "intermediate"


class ActionMetadata(BaseModel):
    original_text: str = ""
    keywords: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    sentiment: Sentiment = Sentiment.NEUTRAL


def new_action_id() -> str:
    return f"action_{uuid.uuid4().hex[:12]}"


class DetectedAction(BaseModel):
    """One candidate interpretation of user input."""

    id: str = Field(default_factory=new_action_id)
    action_type: ActionType
    intent: ActionIntent = Field(default_factory=ActionIntent)
    parameters: ActionParameters = Field(default_factory=ActionParameters)
    context: ActionContext = Field(default_factory=ActionContext)
    confidence: float = Field(ge=0.0, le=1.0)
    dependencies: list[str] = Field(default_factory=list)
    metadata: ActionMetadata = Field(default_factory=ActionMetadata)
