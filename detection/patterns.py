"""Registered action patterns and their scoring."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from detection.types import ActionType

REGEX_WEIGHT = 0.4
KEYWORD_WEIGHT = 0.6
MATCH_FLOOR = 0.3

_NO_COUNT = r"(?!\d|some\b|several\b|multiple\b)"


@dataclass
class ActionPattern:
    """Regex + keyword signature of one action type."""

    id: str
    name: str
    description: str
    patterns: list[str]
    keywords: list[str]
    action_type: ActionType
    default_parameters: dict[str, Any] = field(default_factory=dict)
    examples: list[str] = field(default_factory=list)
    base_confidence: float = 0.5
    _compiled: list[re.Pattern[str]] = field(init=False, repr=False, default_factory=list)

    def __post_init__(self) -> None:
        self._compiled = [re.compile(p) for p in self.patterns]

    def regex_hit(self, normalized: str) -> bool:
        return any(rx.search(normalized) for rx in self._compiled)

    def matched_keywords(self, keywords: list[str]) -> list[str]:
        return [kw for kw in self.keywords if any(kw in token for token in keywords)]

    def score(self, normalized: str, keywords: list[str]) -> float:
        """Regex hit (first only) plus weighted keyword overlap, within [0, 1]."""
        confidence = REGEX_WEIGHT if self.regex_hit(normalized) else 0.0
        if self.keywords:
            confidence += len(self.matched_keywords(keywords)) / len(self.keywords) * KEYWORD_WEIGHT
        return max(0.0, min(1.0, confidence))


def default_patterns() -> list[ActionPattern]:
    """Pattern table, most specific first."""
    return [
        ActionPattern(
            id="brainstorm_ideas",
            name="Brainstorm Ideas",
            description="Generate creative ideas and concepts",
            patterns=[
                r"\bbrainstorm\s+(.+)",
                r"\bideas?\s+for\s+(.+)",
                r"\b(\w+(?:\s+\w+){0,4})\s+ideas?\b",
                r"\bcreate\b(?:\s+\w+){0,6}?\s+ideas?\b",
                r"\bgenerate\b(?:\s+\w+){0,6}?\s+ideas?\b",
                r"\bcome\s+up\s+with\s+(.+)",
                r"\bthink\s+of\s+(.+)",
            ],
            keywords=["brainstorm", "ideas", "think", "creative", "concepts", "flavor", "generate"],
            action_type=ActionType.BRAINSTORM_IDEAS,
            default_parameters={"count": 3},
            examples=["brainstorm marketing ideas", "coffee flavor ideas"],
            base_confidence=0.9,
        ),
        ActionPattern(
            id="create_single",
            name="Create Single Node",
            description="Create one node with specific content",
            patterns=[
                rf"\bcreate\s+{_NO_COUNT}(?:a\s+|an\s+)?(.+?)(?:\s+node)?$",
                rf"\bmake\s+{_NO_COUNT}(?:a\s+|an\s+)?(.+?)(?:\s+node)?$",
                rf"\badd\s+{_NO_COUNT}(?:a\s+|an\s+)?(.+?)(?:\s+node)?$",
            ],
            keywords=["create", "make", "add", "new", "node"],
            action_type=ActionType.CREATE_SINGLE,
            default_parameters={"count": 1},
            examples=["create a marketing node", "add user research"],
            base_confidence=0.8,
        ),
        ActionPattern(
            id="create_multiple",
            name="Create Multiple Nodes",
            description="Create multiple nodes with specific count",
            patterns=[
                r"\bcreate\s+(\d+)\s+(.+?)(?:\s+nodes?)?$",
                r"\bcreate\s+(?:some|several|multiple)\s+(.+?)(?:\s+nodes?)?",
                r"\bmake\s+(\d+)\s+(.+?)(?:\s+nodes?)?$",
                r"\bmake\s+(?:some|several|multiple)\s+(.+?)(?:\s+nodes?)?",
                r"\bgenerate\s+(\d+)\s+(.+?)(?:\s+nodes?)?$",
                r"\bgenerate\s+(?:some|several|multiple)\s+(.+?)(?:\s+nodes?)?",
            ],
            keywords=["create", "make", "generate", "multiple", "nodes", "some", "several"],
            action_type=ActionType.CREATE_MULTIPLE,
            default_parameters={"count": 3},
            examples=["create 5 marketing nodes", "generate several nodes"],
            base_confidence=0.8,
        ),
        ActionPattern(
            id="create_sequence",
            name="Create Sequence",
            description="Create a chain of connected step nodes",
            patterns=[
                r"\b(?:sequence|flow|pipeline|chain)\s+(?:of|for)\s+(.+)",
                r"\bstep\s+by\s+step\s+(.+)",
                r"\b(\d+)\s+steps?\b",
                r"\bprocess\s+flow\b",
            ],
            keywords=["sequence", "flow", "steps", "pipeline", "chain", "order"],
            action_type=ActionType.CREATE_SEQUENCE,
            default_parameters={"count": 3},
            examples=["sequence of onboarding steps", "5 steps to launch"],
            base_confidence=0.75,
        ),
        ActionPattern(
            id="create_hierarchy",
            name="Create Hierarchy",
            description="Create a parent node with connected children",
            patterns=[
                r"\b(?:hierarchy|tree|taxonomy|breakdown)\s+(?:of|for)\s+(.+)",
                r"\bbreak\s+down\s+(.+)",
                r"\bparent\s+(?:and|with)\s+child",
                r"\bmind\s*map\b",
            ],
            keywords=["hierarchy", "tree", "taxonomy", "breakdown", "parent", "child", "subtopics"],
            action_type=ActionType.CREATE_HIERARCHY,
            default_parameters={"count": 3},
            examples=["break down the product launch", "taxonomy of user needs"],
            base_confidence=0.75,
        ),
        ActionPattern(
            id="analyze_board",
            name="Analyze Board",
            description="Analyze the current board state",
            patterns=[
                r"\banaly[sz]e\s+(?:the\s+|my\s+)?board",
                r"\bwhat.*missing",
                r"\breview\s+(?:the\s+|my\s+)?board",
                r"\boverview\s+(?:of\s+)?(?:the\s+|my\s+)?board",
            ],
            keywords=["analyze", "review", "overview", "missing", "board"],
            action_type=ActionType.ANALYZE_BOARD,
            examples=["analyze the board", "review my board"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="analyze_node",
            name="Analyze Node",
            description="Analyze the selected node and its neighbourhood",
            patterns=[
                r"\banaly[sz]e\s+(?:this|the|selected|that)\s+node",
                r"\bwhat\s+(?:is|does)\s+this\s+node",
                r"\bexplain\s+(?:this|the\s+selected)\s+node",
            ],
            keywords=["analyze", "node", "selected", "this", "explain"],
            action_type=ActionType.ANALYZE_NODE,
            examples=["analyze this node", "explain the selected node"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="analyze_gap",
            name="Analyze Gaps",
            description="Find missing elements and weakly covered themes",
            patterns=[
                r"\bgaps?\b",
                r"\bmissing\s+(?:pieces|topics|elements|parts)",
                r"\bwhat\s+else\b",
                r"\bblind\s+spots?\b",
            ],
            keywords=["gap", "missing", "incomplete", "else", "lacking", "blind"],
            action_type=ActionType.ANALYZE_GAP,
            examples=["find the gaps", "what else should be here"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="organize_nodes",
            name="Organize Nodes",
            description="Reorganize and structure nodes",
            patterns=[
                r"\borganize\s+(?:the\s+)?nodes",
                r"\bclean\s+up\s+(?:the\s+)?board",
                r"\bstructure\s+(?:the\s+)?board",
                r"\barrange\s+(?:the\s+)?nodes",
            ],
            keywords=["organize", "clean", "structure", "arrange", "layout"],
            action_type=ActionType.ORGANIZE_NODES,
            examples=["organize the nodes", "clean up the board"],
            base_confidence=0.6,
        ),
        ActionPattern(
            id="connect_nodes",
            name="Connect Nodes",
            description="Create connections between related nodes",
            patterns=[
                r"\bconnect\s+(.+)",
                r"\blink\s+(.+)",
                r"\brelationships?\s+between\s+(.+)",
                r"\brelate\s+(.+)",
            ],
            keywords=["connect", "link", "relate", "relationship", "nodes", "edges", "related"],
            action_type=ActionType.CONNECT_NODES,
            default_parameters={"count": 5},
            examples=["connect the related nodes", "link these ideas"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="expand_concept",
            name="Expand Concept",
            description="Expand on an idea with child nodes",
            patterns=[
                r"\bexpand\s+(?:on\s+)?(.+)",
                r"\belaborate\s+(?:on\s+)?(.+)",
                r"\bgo\s+deeper\b",
                r"\bmore\s+detail",
            ],
            keywords=["expand", "elaborate", "deeper", "detail", "more", "concept", "develop"],
            action_type=ActionType.EXPAND_CONCEPT,
            default_parameters={"count": 3},
            examples=["expand on pricing", "go deeper on this"],
            base_confidence=0.75,
        ),
        ActionPattern(
            id="plan_project",
            name="Plan Project",
            description="Create comprehensive project plan",
            patterns=[
                r"\bplan\s+(?:a\s+)?(.+?)(?:\s+project)?$",
                r"\bcreate\s+(?:a\s+)?(.+?)\s+plan$",
                r"\bdesign\s+(?:a\s+)?(.+?)(?:\s+strategy)?$",
                r"\broadmap\s+for\s+(.+)",
                r"\btimeline\s+for\s+(.+)",
            ],
            keywords=["plan", "project", "strategy", "roadmap", "timeline", "phases", "steps"],
            action_type=ActionType.PLAN_PROJECT,
            default_parameters={"count": 3},
            examples=["plan a startup", "create a marketing plan"],
            base_confidence=0.8,
        ),
        ActionPattern(
            id="research_topic",
            name="Research Topic",
            description="Research and analyze a specific topic",
            patterns=[
                r"\bresearch\s+(.+)",
                r"\binvestigate\s+(.+)",
                r"\blearn\s+about\s+(.+)",
                r"\bexplore\s+(.+)",
            ],
            keywords=["research", "investigate", "learn", "explore", "study"],
            action_type=ActionType.RESEARCH_TOPIC,
            default_parameters={"count": 6},
            examples=["research competitors", "learn about AI"],
            base_confidence=0.75,
        ),
        ActionPattern(
            id="improve_content",
            name="Improve Content",
            description="Enhance existing node content",
            patterns=[
                r"\bimprove\s+(.+)",
                r"\benhance\s+(.+)",
                r"\brefine\s+(.+)",
                r"\brewrite\s+(.+)",
                r"\bpolish\s+(.+)",
            ],
            keywords=["improve", "enhance", "refine", "rewrite", "better", "polish", "clarify"],
            action_type=ActionType.IMPROVE_CONTENT,
            examples=["improve this description", "polish the summary"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="document_process",
            name="Process Document",
            description="Turn an uploaded document into board content",
            patterns=[
                r"\b(?:summari[sz]e|process|analy[sz]e|extract\s+from)\s+(?:the\s+|this\s+|my\s+)?(?:document|pdf|file|upload)",
                r"\bfrom\s+(?:the\s+|this\s+|my\s+)?(?:document|pdf|file)\b",
            ],
            keywords=["document", "pdf", "file", "summarize", "extract", "upload", "paper"],
            action_type=ActionType.DOCUMENT_PROCESS,
            examples=["summarize the document", "create nodes from the pdf"],
            base_confidence=0.7,
        ),
        ActionPattern(
            id="custom_workflow",
            name="Custom Workflow",
            description="Multi-step request spanning several actions",
            patterns=[
                r"\bworkflow\b",
                r"\bautomate\s+(.+)",
                r"\bthen\b",
                r"\bafter\s+that\b",
            ],
            keywords=["workflow", "then", "after", "automate", "pipeline", "multi"],
            action_type=ActionType.CUSTOM_WORKFLOW,
            examples=["create a node then connect it", "automate my review workflow"],
            base_confidence=0.6,
        ),
    ]
