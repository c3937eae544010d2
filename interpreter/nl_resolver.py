"""Natural-language fallback: map free text onto literal command strings."""

from __future__ import annotations

import ast
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from core.errors import LLMError
from interpreter.command_types import CommandExample, Format

logger = logging.getLogger("ir.nl_resolver")

_RESOLVER_SYSTEM_PROMPT = """\
Determine which command to run, and which arguments to provide, based on an
input prompt and a list of available commands.

Do not suggest any commands that aren't listed below. Reply with ONLY a JSON
list of command strings on a single line, for example ["console log hi"].
Reply with [] when no listed command fits.

Available Commands:
{commands}"""

_NEGATIVE_EXAMPLE = "This is an invalid command that doesnt exist"


class CommandResolver(ABC):
    """Maps input text to zero or more literal command strings."""

    @abstractmethod
    def resolve(
        self, text: str, formats: list[Format], examples: list[CommandExample]
    ) -> list[str]:
        """Return candidate command strings; an empty list means no match."""


class NullCommandResolver(CommandResolver):
    """Resolver used when no language model is configured."""

    def resolve(
        self, text: str, formats: list[Format], examples: list[CommandExample]
    ) -> list[str]:
        _ = (text, formats, examples)
        return []


class LLMCommandResolver(CommandResolver):
    """Few-shot chat prompt over the searchable formats."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    def build_messages(
        self, text: str, formats: list[Format], examples: list[CommandExample]
    ) -> list[dict[str, str]]:
        listing = "\n".join(
            f"{fmt.template} - {fmt.description}" if fmt.description else fmt.template
            for fmt in formats
        )
        messages = [
            {"role": "system", "content": _RESOLVER_SYSTEM_PROMPT.format(commands=listing)}
        ]
        for example in examples:
            messages.append({"role": "user", "content": example.prompt})
            messages.append({"role": "assistant", "content": json.dumps(example.output)})
        messages.append({"role": "user", "content": _NEGATIVE_EXAMPLE})
        messages.append({"role": "assistant", "content": "[]"})
        messages.append({"role": "user", "content": text})
        return messages

    def resolve(
        self, text: str, formats: list[Format], examples: list[CommandExample]
    ) -> list[str]:
        try:
            response = self.llm.chat(self.build_messages(text, formats, examples), temperature=0)
        except LLMError as exc:
            logger.warning("Command resolution unavailable: %s", exc)
            return []
        commands = parse_command_list(response)
        if not commands:
            logger.info("Could not identify suitable commands for input: %s", text)
        return commands


def parse_command_list(response: str) -> list[str]:
    """Parse a JSON (or Python-literal) list of strings out of a model reply."""
    cleaned = re.sub(r"```(?:json)?\s*|```", "", response or "").strip()
    match = re.search(r"\[.*\]", cleaned, re.DOTALL)
    if not match:
        logger.debug("No list found in resolver output: %s", cleaned[:200])
        return []
    raw = match.group()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        try:
            data = ast.literal_eval(raw)
        except (ValueError, SyntaxError):
            logger.warning("Error parsing resolver output: %s", raw[:200])
            return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, str) and item.strip()]
