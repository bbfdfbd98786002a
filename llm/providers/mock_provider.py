"""Deterministic local fallback LLM provider for offline usage."""

from __future__ import annotations

import re
from collections import Counter

from llm.base_llm import BaseLLM, Completion, Usage

_FACETS = [
    "Foundations",
    "Key Drivers",
    "Open Questions",
    "Risks",
    "Opportunities",
    "Next Steps",
    "Stakeholders",
    "Metrics",
    "Alternatives",
    "Examples",
    "Constraints",
    "Resources",
]


class MockProvider(BaseLLM):
    """Rule-based local responder when external LLM backends are unavailable."""

    name = "mock"

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        return [token for token in re.split(r"[^a-zA-Z0-9]+", text.lower()) if token]

    @staticmethod
    def _summarize_tokens(tokens: list[str], max_items: int = 8) -> str:
        if not tokens:
            return "no salient terms detected"
        top = Counter(tokens).most_common(max_items)
        return ", ".join(term for term, _ in top)

    def _node_lines(self, prompt: str) -> str:
        count_match = re.search(r"generate\s+(\d+)", prompt, flags=re.IGNORECASE)
        count = int(count_match.group(1)) if count_match else 1
        topic_match = re.search(r"^topic:\s*(.+)$", prompt, flags=re.IGNORECASE | re.MULTILINE)
        topic = topic_match.group(1).strip() if topic_match else "General"
        topic = " ".join(word.capitalize() for word in topic.split()) or "General"
        lines = []
        for idx in range(count):
            facet = _FACETS[idx % len(_FACETS)]
            lines.append(f"{topic} {facet}: {facet} of {topic.lower()} worth capturing on the board.")
        return "\n".join(lines)

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> Completion:
        """Generate deterministic text; node requests get parseable lines."""
        _ = (temperature, max_tokens)
        if not prompt.strip():
            return Completion(text="No input received.", model=self.name)

        if system_prompt and "board node" in system_prompt.lower():
            text = self._node_lines(prompt)
        else:
            salient = self._summarize_tokens(self._tokenize(prompt))
            text = f"Local fallback response. Salient terms: {salient}."
        usage = Usage(
            prompt_tokens=len(self._tokenize(prompt)) + len(self._tokenize(system_prompt or "")),
            completion_tokens=len(self._tokenize(text)),
        )
        return Completion(text=text, usage=usage, model=self.name)
