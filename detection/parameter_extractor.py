"""Structured parameters pulled out of a request."""

from __future__ import annotations

import re

from detection.types import ActionContext, ActionParameters

STYLES = ("simple", "detailed", "creative", "professional", "technical")
MAX_TOPIC_WORDS = 5

_TOPIC_STOP = frozenset({"without", "no", "must", "only", "and", "then", "with"})


class ParameterExtractor:
    """Counts, topics, quoted instructions, style hints and constraints.

    ``normalized`` is the lowercased, punctuation-free text; quoted
    instructions are read from ``raw_text`` because normalisation drops quotes.
    """

    def extract(self, normalized: str, raw_text: str = "", context: ActionContext | None = None) -> ActionParameters:
        params = ActionParameters()

        count = re.search(r"\b(\d+)\b", normalized)
        if count:
            params.count = int(count.group(1))

        params.topic = self.extract_topic(normalized)

        quoted = re.search(r"\"([^\"]*)\"", raw_text)
        if quoted and quoted.group(1).strip():
            params.custom_instructions = quoted.group(1).strip()

        words = normalized.split()
        for style in STYLES:
            if style in words:
                params.style = style
                break

        params.constraints = self.extract_constraints(normalized)

        if context is not None and context.selected_nodes:
            params.target = context.selected_nodes[0]
        return params

    @staticmethod
    def extract_topic(normalized: str) -> str | None:
        match = re.search(r"\b(?:about|for|on)\s+(.+)$", normalized)
        if not match:
            return None
        words: list[str] = []
        for word in match.group(1).split():
            if word in _TOPIC_STOP or len(words) == MAX_TOPIC_WORDS:
                break
            words.append(word)
        while words and words[-1] in ("node", "nodes"):
            words.pop()
        return " ".join(words) or None

    @staticmethod
    def extract_constraints(normalized: str) -> list[str]:
        found = []
        for match in re.finditer(r"\b(without|no|must|only)\s+((?:\w+\s*){1,4})", normalized):
            phrase = f"{match.group(1)} {match.group(2).strip()}"
            found.append(phrase)
        return found
