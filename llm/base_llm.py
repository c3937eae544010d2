"""Base LLM interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseLLM(ABC):
    """Abstract chat provider used by the resolver, the planner and ``generate text``."""

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Return assistant response text for a message list.

        Supported keyword arguments are ``temperature`` and ``max_tokens``.
        Raises ``LLMError`` when the provider cannot answer.
        """
