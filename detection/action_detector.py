"""Action detection: free text plus context to ranked ``DetectedAction`` values."""

from __future__ import annotations

import logging

from detection.context import AIContext, ContextAnalyzer
from detection.intent_analyzer import IntentAnalyzer
from detection.parameter_extractor import ParameterExtractor
from detection.patterns import MATCH_FLOOR, ActionPattern, default_patterns
from detection.text_analysis import analyze_sentiment, extract_entities, extract_keywords, normalize
from detection.types import (
    ActionContext,
    ActionMetadata,
    ActionType,
    DetectedAction,
)

logger = logging.getLogger("ao.detection")

VALIDATION_FLOOR = 0.2
MAX_SCAN_CHARS = 1000
CREATE_SPARSE_BONUS = 0.2
ORGANIZE_DENSE_BONUS = 0.2
ANALYZE_SELECTED_BONUS = 0.3


class ActionDetector:
    """Scores every registered pattern and keeps the strongest candidates.

    Detection never raises for ordinary input: text that matches nothing
    produces an empty list, which callers treat as conversational. Pattern
    matching looks at the first ``MAX_SCAN_CHARS`` normalised characters, so
    pasted walls of text stay cheap.
    """

    def __init__(
        self,
        patterns: list[ActionPattern] | None = None,
        max_candidates: int = 3,
        max_results: int = 5,
    ) -> None:
        self.patterns = patterns if patterns is not None else default_patterns()
        self.max_candidates = max_candidates
        self.max_results = max_results
        self.context_analyzer = ContextAnalyzer()
        self.intent_analyzer = IntentAnalyzer()
        self.parameter_extractor = ParameterExtractor()

    def detect(self, text: str, context: AIContext | None = None) -> list[DetectedAction]:
        context = context or AIContext()
        normalized = normalize(text)
        if not normalized:
            return []
        if len(normalized) > MAX_SCAN_CHARS:
            logger.debug("Scanning the first %d of %d characters", MAX_SCAN_CHARS, len(normalized))
            normalized = normalized[:MAX_SCAN_CHARS]

        keywords = extract_keywords(normalized)
        metadata = ActionMetadata(
            original_text=text,
            keywords=keywords,
            entities=extract_entities(text),
            sentiment=analyze_sentiment(normalized),
        )
        action_context = self.context_analyzer.analyze(context)
        intent = self.intent_analyzer.classify(normalized)
        extracted = self.parameter_extractor.extract(normalized, text, action_context)

        ranked: list[tuple[float, float, int, DetectedAction]] = []
        for order, (pattern, score) in enumerate(self.match_patterns(normalized, keywords)[: self.max_candidates]):
            if not self._valid(pattern.action_type, score, context):
                logger.debug("Dropping %s (score %.2f) for missing context", pattern.id, score)
                continue
            confidence = min(1.0, score + self._relevance(pattern.action_type, action_context))
            action = DetectedAction(
                action_type=pattern.action_type,
                intent=intent.model_copy(),
                parameters=extracted.merged_over(pattern.default_parameters),
                context=action_context.model_copy(deep=True),
                confidence=round(confidence, 4),
                metadata=metadata.model_copy(deep=True),
            )
            ranked.append((confidence, pattern.base_confidence, order, action))

        ranked.sort(key=lambda item: (-item[0], -item[1], item[2]))
        actions = [item[3] for item in ranked[: self.max_results]]
        logger.info(
            "Detected %d action(s) for %r: %s",
            len(actions),
            text,
            ", ".join(f"{a.action_type.value}={a.confidence:.2f}" for a in actions) or "none",
        )
        return actions

    def match_patterns(self, normalized: str, keywords: list[str]) -> list[tuple[ActionPattern, float]]:
        """Patterns scoring above the match floor, strongest first.

        Ties fall back to base confidence, then registration order.
        """
        scored = []
        for index, pattern in enumerate(self.patterns):
            score = pattern.score(normalized, keywords)
            if score > MATCH_FLOOR:
                scored.append((score, pattern.base_confidence, index, pattern))
        scored.sort(key=lambda item: (-item[0], -item[1], item[2]))
        return [(item[3], item[0]) for item in scored]

    @staticmethod
    def _valid(action_type: ActionType, score: float, context: AIContext) -> bool:
        if score < VALIDATION_FLOOR:
            return False
        if action_type.needs_board and context.board is None:
            return False
        if action_type.needs_document and not context.has_documents:
            return False
        return True

    @staticmethod
    def _relevance(action_type: ActionType, context: ActionContext) -> float:
        if not context.board_present:
            return 0.0
        bonus = 0.0
        if action_type.is_creation and context.node_count < 5:
            bonus += CREATE_SPARSE_BONUS
        if action_type.is_organization and context.node_count > 10:
            bonus += ORGANIZE_DENSE_BONUS
        if action_type.is_analysis and context.selected_nodes:
            bonus += ANALYZE_SELECTED_BONUS
        return bonus
