"""Tokenisation helpers shared by the detector and the extractors."""

from __future__ import annotations

import re

from detection.types import Sentiment

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he",
        "in", "is", "it", "its", "of", "on", "that", "the", "to", "was", "were",
        "will", "with",
    }
)
MAX_KEYWORDS = 10

_POSITIVE = frozenset(
    {"good", "great", "excellent", "amazing", "awesome", "love", "like", "best", "perfect", "wonderful"}
)
_NEGATIVE = frozenset(
    {"bad", "terrible", "awful", "hate", "worst", "horrible", "sucks", "broken", "wrong", "error"}
)


def normalize(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    lowered = re.sub(r"[^\w\s]", " ", text.lower())
    return re.sub(r"\s+", " ", lowered).strip()


def tokens(normalized: str) -> list[str]:
    return normalized.split() if normalized else []


def extract_entities(raw_text: str) -> list[str]:
    """Integers, quoted substrings and capitalised words, de-duplicated in order."""
    found: list[str] = []
    found.extend(re.findall(r"\b\d+\b", raw_text))
    found.extend(re.findall(r"\"([^\"]*)\"", raw_text))
    found.extend(re.findall(r"\b[A-Z][a-z]+\b", raw_text))
    return list(dict.fromkeys(item for item in found if item))


def extract_keywords(normalized: str) -> list[str]:
    words = [w for w in tokens(normalized) if len(w) > 2 and w not in STOP_WORDS]
    return words[:MAX_KEYWORDS]


def analyze_sentiment(normalized: str) -> Sentiment:
    words = tokens(normalized)
    positive = sum(1 for w in words if w in _POSITIVE)
    negative = sum(1 for w in words if w in _NEGATIVE)
    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL
