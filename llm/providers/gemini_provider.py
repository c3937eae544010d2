"""Google Gemini LLM provider with exponential backoff.

Uses the google-genai SDK. Rate-limit and quota errors are retried up to 5
times with exponential backoff (2s, 4s, 8s, 16s, 32s); anything else fails
immediately.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

from google import genai

from core.errors import LLMError
from llm.base_llm import BaseLLM

logger = logging.getLogger("ir.llm.gemini")

_MAX_RETRIES = 5
_BASE_WAIT_SECONDS = 2.0
_RATE_LIMIT_MARKERS = ("429", "rate limit", "quota", "resource exhausted", "too many")


class GeminiProvider(BaseLLM):
    """Google Gemini API adapter. Needs ``GEMINI_API_KEY``."""

    def __init__(self, model: str = "gemini-2.5-flash") -> None:
        self.model = model

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise LLMError("Gemini provider unavailable: GEMINI_API_KEY not set.")

        client = genai.Client(api_key=api_key)
        contents, system_text = self._convert_messages(messages)
        config: dict[str, Any] = {}
        if system_text:
            config["system_instruction"] = system_text
        if kwargs.get("temperature") is not None:
            config["temperature"] = kwargs["temperature"]
        if kwargs.get("max_tokens") is not None:
            config["max_output_tokens"] = kwargs["max_tokens"]

        last_error: Exception | None = None
        for attempt in range(1, _MAX_RETRIES + 1):
            try:
                response = client.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config or None,
                )
            except Exception as exc:  # SDK raises several unrelated types
                last_error = exc
                if not any(marker in str(exc).lower() for marker in _RATE_LIMIT_MARKERS):
                    raise LLMError(f"Gemini call failed: {exc}") from exc
                wait = _BASE_WAIT_SECONDS * (2 ** (attempt - 1))
                logger.warning(
                    "Gemini rate limit hit (attempt %d/%d). Waiting %.1fs before retry: %s",
                    attempt,
                    _MAX_RETRIES,
                    wait,
                    exc,
                )
                time.sleep(wait)
                continue
            if not response.text:
                raise LLMError("Gemini returned an empty response.")
            return response.text.strip()

        raise LLMError(f"Gemini provider failed after {_MAX_RETRIES} retries: {last_error}")

    @staticmethod
    def _convert_messages(messages: list[dict[str, str]]) -> tuple[list[dict[str, Any]], str]:
        """Split OpenAI-style messages into Gemini contents and a system instruction."""
        contents: list[dict[str, Any]] = []
        system_parts: list[str] = []
        for msg in messages:
            role = msg.get("role", "user")
            text = msg.get("content", "")
            if role == "system":
                system_parts.append(text)
                continue
            contents.append({
                "role": "model" if role == "assistant" else "user",
                "parts": [{"text": text}],
            })
        return contents, "\n\n".join(system_parts)
