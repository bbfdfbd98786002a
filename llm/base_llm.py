"""Language Model Gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class LLMError(RuntimeError):
    """Provider failed or is unavailable."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider

    def __str__(self) -> str:
        return f"[{self.provider}] {super().__str__()}"


class Usage(BaseModel):
    """Token accounting for one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class Completion(BaseModel):
    """Text returned by a provider."""

    text: str
    usage: Usage = Usage()
    model: str = ""


class BaseLLM(ABC):
    """Abstract LLM provider interface."""

    name: str = "base"

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> Completion:
        """Return a completion for ``prompt`` or raise ``LLMError``."""
