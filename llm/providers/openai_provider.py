"""OpenAI chat provider."""

from __future__ import annotations

import os
from typing import Any

from openai import OpenAI, OpenAIError

from core.errors import LLMError
from llm.base_llm import BaseLLM


class OpenAIProvider(BaseLLM):
    """OpenAI API adapter. Needs ``OPENAI_API_KEY``."""

    API_KEY_ENV = "OPENAI_API_KEY"
    BASE_URL: str | None = None

    def __init__(self, model: str = "gpt-4o-mini") -> None:
        self.model = model

    def _client(self) -> OpenAI:
        api_key = os.getenv(self.API_KEY_ENV)
        if not api_key:
            raise LLMError(f"{type(self).__name__} unavailable: {self.API_KEY_ENV} not set.")
        return OpenAI(api_key=api_key, base_url=self.BASE_URL)

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        options = {
            key: kwargs[key] for key in ("temperature", "max_tokens") if kwargs.get(key) is not None
        }
        try:
            response = self._client().chat.completions.create(
                model=self.model, messages=messages, **options
            )
        except OpenAIError as exc:  # pragma: no cover - external API path
            raise LLMError(f"{type(self).__name__} call failed: {exc}") from exc
        content = response.choices[0].message.content
        if not content:
            raise LLMError(f"{type(self).__name__} returned an empty response.")
        return content.strip()
