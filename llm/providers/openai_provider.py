"""OpenAI chat-completions provider."""

from __future__ import annotations

import os

from llm.base_llm import BaseLLM, Completion, LLMError, Usage


class OpenAIProvider(BaseLLM):
    """OpenAI API adapter. Works only when dependency and API key are present."""

    name = "openai"

    def __init__(self, model: str = "gpt-4o-mini", api_key_env: str = "OPENAI_API_KEY") -> None:
        self.model = model
        self.api_key_env = api_key_env

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> Completion:
        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise LLMError(self.name, f"{self.api_key_env} not set")
        try:
            from openai import OpenAI
        except ImportError as exc:
            raise LLMError(self.name, "`openai` package missing; install the openai extra") from exc

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        try:
            client = OpenAI(api_key=api_key)
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:  # pragma: no cover - external API path
            raise LLMError(self.name, f"request failed: {exc}") from exc

        content = response.choices[0].message.content or ""
        usage = Usage()
        if response.usage is not None:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        return Completion(text=content, usage=usage, model=self.model)
