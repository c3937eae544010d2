"""Ollama provider adapter."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Any

from core.errors import LLMError
from llm.base_llm import BaseLLM

logger = logging.getLogger("ir.llm.ollama")


class OllamaProvider(BaseLLM):
    """Talks to a local ``ollama`` binary; the whole conversation is flattened into one prompt."""

    def __init__(self, model: str = "llama3.1", timeout_seconds: float = 300.0) -> None:
        self.model = model
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def is_available() -> bool:
        return shutil.which("ollama") is not None

    @staticmethod
    def _flatten(messages: list[dict[str, str]]) -> str:
        lines = [f"{m.get('role', 'user').upper()}: {m.get('content', '')}" for m in messages]
        lines.append("ASSISTANT:")
        return "\n\n".join(lines)

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        _ = kwargs
        if not self.is_available():
            raise LLMError("Ollama unavailable: binary not found.")
        try:
            proc = subprocess.run(
                ["ollama", "run", self.model],
                input=self._flatten(messages),
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout_seconds,
            )
        except (subprocess.SubprocessError, OSError) as exc:  # pragma: no cover - external binary path
            raise LLMError(f"Ollama call failed: {exc}") from exc
        text = proc.stdout.strip()
        if not text:
            raise LLMError("Ollama returned no text.")
        logger.debug("Ollama replied with %d characters", len(text))
        return text
