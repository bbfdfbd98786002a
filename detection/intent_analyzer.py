"""Keyword heuristics for the intent record attached to every action."""

from __future__ import annotations

import re

from detection.text_analysis import tokens
from detection.types import ActionIntent, Complexity, Scope, Urgency

_GOALS: list[tuple[str, frozenset[str]]] = [
    ("create", frozenset({"create", "make", "add"})),
    ("analyze", frozenset({"analyze", "analyse", "review"})),
    ("organize", frozenset({"organize", "structure"})),
    ("plan", frozenset({"plan", "design"})),
    ("brainstorm", frozenset({"brainstorm", "idea", "ideas"})),
    ("research", frozenset({"research", "investigate"})),
]

_URGENCY: list[tuple[Urgency, frozenset[str]]] = [
    (Urgency.HIGH, frozenset({"urgent", "asap", "immediately", "now", "quick"})),
    (Urgency.MEDIUM, frozenset({"soon", "important", "needed"})),
    (Urgency.LOW, frozenset({"later", "eventually", "someday"})),
]

_COMPLEXITY: list[tuple[Complexity, frozenset[str]]] = [
    (Complexity.SIMPLE, frozenset({"simple", "basic", "quick", "easy"})),
    (Complexity.MODERATE, frozenset({"detailed", "thorough", "comprehensive"})),
    (Complexity.COMPLEX, frozenset({"complete", "full", "advanced", "complex"})),
]

_SCOPE: list[tuple[Scope, frozenset[str]]] = [
    (Scope.MULTIPLE, frozenset({"multiple", "several", "some"})),
    (Scope.DOCUMENT, frozenset({"document", "pdf", "file"})),
    (Scope.BOARD, frozenset({"board", "all"})),
    (Scope.GLOBAL, frozenset({"everything", "global", "whole"})),
]


class IntentAnalyzer:
    """Derives goal, scope, urgency and complexity from normalised text."""

    def classify(self, normalized: str) -> ActionIntent:
        words = set(tokens(normalized))
        goals = self._goals(words)
        return ActionIntent(
            primary_goal=goals[0] if goals else "general",
            secondary=goals[1] if len(goals) > 1 else None,
            scope=self._scope(normalized, words),
            urgency=_first_match(_URGENCY, words, Urgency.MEDIUM),
            complexity=_first_match(_COMPLEXITY, words, Complexity.MODERATE),
        )

    @staticmethod
    def _goals(words: set[str]) -> list[str]:
        return [goal for goal, family in _GOALS if words & family]

    @staticmethod
    def _scope(normalized: str, words: set[str]) -> Scope:
        if re.search(r"\d", normalized):
            return Scope.MULTIPLE
        return _first_match(_SCOPE, words, Scope.SINGLE)


def _first_match(table, words: set[str], default):
    for level, family in table:
        if words & family:
            return level
    return default
