"""LLM provider factory."""

from __future__ import annotations

import logging
from typing import Any

from llm.base_llm import BaseLLM
from llm.local.ollama_provider import OllamaProvider
from llm.providers.gemini_provider import GeminiProvider
from llm.providers.groq_provider import GroqProvider
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OpenAIProvider

logger = logging.getLogger("ir.llm")

PROVIDER_TYPES: dict[str, tuple[type[BaseLLM], str]] = {
    "openai": (OpenAIProvider, "gpt-4o-mini"),
    "gemini": (GeminiProvider, "gemini-2.5-flash"),
    "groq": (GroqProvider, "llama-3.3-70b-versatile"),
    "ollama": (OllamaProvider, "llama3.1"),
}

CHAT_DEFAULT_KEYS = ("temperature", "max_tokens")


class ConfiguredLLM(BaseLLM):
    """Applies configured chat defaults underneath per-call keyword arguments."""

    def __init__(self, provider: BaseLLM, defaults: dict[str, Any]) -> None:
        self.provider = provider
        self.defaults = defaults

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        options = {**self.defaults, **{k: v for k, v in kwargs.items() if v is not None}}
        return self.provider.chat(messages, **options)


def build_llm(config: dict[str, Any]) -> BaseLLM:
    """Build the active provider from ``models.llm``, falling back to mock.

    ``temperature`` and ``max_tokens`` set on the provider entry become
    defaults for every chat call; callers that pass their own value win.
    """
    models_cfg = config.get("models", {}).get("llm", {})
    active = models_cfg.get("active_provider", "mock")
    active_cfg = models_cfg.get("providers", {}).get(active, {})
    provider_type = active_cfg.get("type", active)

    if provider_type == "mock":
        return MockProvider()
    if provider_type not in PROVIDER_TYPES:
        logger.warning("Unknown LLM provider type %r, using mock", provider_type)
        return MockProvider()

    provider_cls, default_model = PROVIDER_TYPES[provider_type]
    options: dict[str, Any] = {"model": active_cfg.get("model", default_model)}
    if provider_type == "ollama" and "timeout_seconds" in active_cfg:
        options["timeout_seconds"] = float(active_cfg["timeout_seconds"])
    provider = provider_cls(**options)
    logger.debug("Using LLM provider %s (%s, model=%s)", active, provider_type, options["model"])

    defaults = {key: active_cfg[key] for key in CHAT_DEFAULT_KEYS if active_cfg.get(key) is not None}
    if not defaults:
        return provider
    return ConfiguredLLM(provider, defaults)
