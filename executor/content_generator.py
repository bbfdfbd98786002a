"""Titles and descriptions for nodes created by the Command Executor."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from detection.types import DetectedAction
from llm.base_llm import BaseLLM, LLMError

logger = logging.getLogger("ao.content")

SYSTEM_PROMPT = (
    "You write concise board node content for a visual thinking board. "
    "Reply with exactly one board node per line formatted as 'Title: description'. "
    "No numbering, no headers, no commentary."
)
TEMPERATURE = 0.7
MAX_TOKENS = 600

_LINE = re.compile(r"^\s*(?:[-*•]\s*|\d+[.)]\s*)?([^:\n]{1,80}?)\s*:\s*(.+?)\s*$")
_LEADING_VERB = re.compile(r"^(create|make|add|generate|can you|please)\s+", re.IGNORECASE)
_LEADING_ARTICLE = re.compile(r"^(a|an|the)\s+", re.IGNORECASE)
_TRAILING_NODE = re.compile(r"(?:^|\s+)nodes?$", re.IGNORECASE)
_TOPIC_HINT = re.compile(
    r"\b(flavor|plan|idea|concept|strategy|design|business|coffee|marketing|development)\w*\b"
)

_FLAVORS = [
    (
        "Lavender Honey Latte",
        "A soothing blend of organic lavender and wildflower honey. The floral notes "
        "complement the espresso while the honey adds a silky sweetness.",
    ),
    (
        "Maple Cinnamon Cold Brew",
        "Cold brew infused with maple syrup and Ceylon cinnamon, served over ice. "
        "Maple brings caramel sweetness and cinnamon adds warmth.",
    ),
    (
        "Cardamom Rose Cappuccino",
        "A classic cappuccino with ground cardamom and rose water, finished with "
        "rose petals for presentation.",
    ),
]

_PLAN_PILLARS = [
    (
        "Market Analysis",
        "Target market identification, competitor analysis and market size evaluation.",
    ),
    (
        "Financial Projections",
        "Revenue forecasts, cost analysis, break-even point and funding requirements.",
    ),
    (
        "Implementation Strategy",
        "Step-by-step execution plan, resource allocation and timeline to market.",
    ),
]

_APPROACHES = [
    "First approach to {topic}, focusing on foundational elements and core requirements.",
    "Alternative approach to {topic}, exploring different angles and possibilities.",
    "Advanced approach to {topic}, incorporating innovative ideas and best practices.",
    "Further angle on {topic}, covering details the other concepts leave open.",
]


@dataclass
class NodeContent:
    title: str
    description: str


def topic_from_prompt(prompt: str) -> str:
    match = _TOPIC_HINT.search(prompt.lower())
    return match.group(0) if match else "general"


def title_from_prompt(prompt: str) -> str:
    """First three words after a leading verb and article, capitalised.

    A trailing "node" is dropped: "create a marketing node" becomes "Marketing".
    """
    cleaned = _LEADING_VERB.sub("", prompt.strip(), count=1)
    cleaned = _LEADING_ARTICLE.sub("", cleaned, count=1)
    cleaned = _TRAILING_NODE.sub("", cleaned)
    words = [word for word in cleaned.split(" ") if word][:3]
    return " ".join(word[:1].upper() + word[1:] for word in words) or "New Node"


def resolve_topic(action: DetectedAction) -> str:
    return action.parameters.topic or topic_from_prompt(action.metadata.original_text)


class ContentGenerator:
    """Asks the Language Model Gateway for node text, with template fallback."""

    def __init__(self, llm: BaseLLM | None = None) -> None:
        self.llm = llm

    def single(self, action: DetectedAction) -> NodeContent:
        generated = self._from_llm(action, 1, "node")
        if generated:
            return generated[0]
        return self.single_template(action)

    def many(self, action: DetectedAction, count: int, kind: str = "idea") -> list[NodeContent]:
        if count <= 0:
            return []
        generated = self._from_llm(action, count, kind)
        if generated:
            return generated
        return self.many_template(action, count, kind)

    def plan_phases(self, action: DetectedAction) -> list[NodeContent]:
        topic = resolve_topic(action)
        if "business" in topic or "coffee" in topic:
            return [
                NodeContent(
                    "Phase 1: Planning & Research",
                    "Complete market research, finalize the business plan, secure permits "
                    "and licenses. Timeline: months 1-2.",
                ),
                NodeContent(
                    "Phase 2: Funding & Location",
                    "Secure funding, lease a location and design the interior layout. "
                    "Timeline: months 3-4.",
                ),
                NodeContent(
                    "Phase 3: Launch & Operations",
                    "Install equipment, hire staff, run the launch campaign and open. "
                    "Timeline: months 5-6.",
                ),
            ]
        return [
            NodeContent(
                "Phase 1: Planning & Design",
                f"Initial planning and design phase for {topic}. Define requirements, "
                "create specifications and establish a timeline.",
            ),
            NodeContent(
                "Phase 2: Development & Implementation",
                f"Development and implementation phase for {topic}. Execute the plan, "
                "build components and integrate systems.",
            ),
            NodeContent(
                "Phase 3: Testing & Launch",
                f"Testing and launch phase for {topic}. Quality assurance, user testing "
                "and final deployment.",
            ),
        ]

    @staticmethod
    def single_template(action: DetectedAction) -> NodeContent:
        prompt = action.metadata.original_text
        topic = resolve_topic(action)
        if "flavor" in topic:
            return NodeContent(
                "Signature Coffee Blend",
                "A house blend of Ethiopian Yirgacheffe for brightness, Colombian Supremo "
                "for body and Brazilian Santos for chocolate notes.",
            )
        if "plan" in topic:
            return NodeContent(
                "Project Vision",
                "High-level overview and vision for the project, the foundation for "
                "all planning and development activities.",
            )
        return NodeContent(
            title_from_prompt(prompt),
            f'Generated based on your request: "{prompt}".',
        )

    @staticmethod
    def many_template(action: DetectedAction, count: int, kind: str = "idea") -> list[NodeContent]:
        prompt = action.metadata.original_text
        topic = resolve_topic(action)
        if "flavor" in topic:
            source = _FLAVORS
        elif "plan" in topic:
            source = _PLAN_PILLARS
        else:
            base = title_from_prompt(prompt)
            label = {"step": "Step", "finding": "Finding", "child": "Aspect"}.get(kind, "Concept")
            subject = action.parameters.topic or "your request"
            return [
                NodeContent(
                    f"{base} - {label} {index + 1}",
                    _APPROACHES[min(index, len(_APPROACHES) - 1)].format(topic=subject),
                )
                for index in range(count)
            ]

        contents = []
        for index in range(count):
            title, description = source[index % len(source)]
            rounds = index // len(source)
            contents.append(NodeContent(f"{title} {rounds + 1}" if rounds else title, description))
        return contents

    def _from_llm(self, action: DetectedAction, count: int, kind: str) -> list[NodeContent]:
        if self.llm is None:
            return []
        prompt = self._prompt(action, count, kind)
        try:
            completion = self.llm.complete(
                prompt,
                system_prompt=SYSTEM_PROMPT,
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except LLMError as exc:
            logger.warning("Content generation fell back to templates: %s", exc)
            return []

        parsed = self.parse_lines(completion.text)
        if len(parsed) < count:
            logger.warning(
                "LLM returned %d usable line(s), %d needed; using templates", len(parsed), count
            )
            return []
        return parsed[:count]

    @staticmethod
    def _prompt(action: DetectedAction, count: int, kind: str) -> str:
        params = action.parameters
        lines = [
            f"Generate {count} {kind} board node(s).",
            f"Topic: {resolve_topic(action)}",
            f"Request: {action.metadata.original_text}",
        ]
        if params.style:
            lines.append(f"Style: {params.style}")
        if params.custom_instructions:
            lines.append(f"Instructions: {params.custom_instructions}")
        if params.constraints:
            lines.append(f"Constraints: {'; '.join(params.constraints)}")
        return "\n".join(lines)

    @staticmethod
    def parse_lines(text: str) -> list[NodeContent]:
        contents = []
        for line in text.splitlines():
            match = _LINE.match(line)
            if match and match.group(1).strip() and match.group(2).strip():
                contents.append(NodeContent(match.group(1).strip(), match.group(2).strip()))
        return contents
