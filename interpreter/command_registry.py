"""Registry of resolvable commands and flow-control constructs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from interpreter.command_types import Command, CommandExample, Format
from interpreter.pattern_matcher import match_formats

logger = logging.getLogger("ir.command_registry")


@dataclass
class RegisteredCommand:
    """Metadata for command listing output."""

    template: str
    kind: str
    source: str
    description: str


class CommandRegistry:
    """Closed table of commands, filled once at startup."""

    def __init__(self, flow_commands: dict[str, Command] | None = None) -> None:
        self._commands: dict[str, Command] = {}
        self._flow_commands: dict[str, Command] = dict(flow_commands or {})

    def register(self, command: Command) -> None:
        template = command.template
        if template in self._commands or template in self._flow_commands:
            raise ValueError(f"Command format already registered: {template}")
        self._commands[template] = command

    def register_many(self, commands: Iterable[Command]) -> int:
        """Register commands, skipping duplicates with a warning."""
        count = 0
        for command in commands:
            try:
                self.register(command)
            except ValueError as exc:
                logger.warning("%s (source=%s)", exc, command.source)
                continue
            count += 1
        return count

    def get(self, template: str) -> Command | None:
        return self._commands.get(template) or self._flow_commands.get(template)

    def match_commands(self, text: str) -> list[Command]:
        return [self._commands[t] for t in match_formats(text, self._commands)]

    def match_flow_controls(self, text: str) -> list[Command]:
        return [self._flow_commands[t] for t in match_formats(text, self._flow_commands)]

    def formats(self, searchable_only: bool = False) -> list[Format]:
        """Formats of every command; exact-match-only ones are left out when searching."""
        formats = [command.format for command in self._commands.values()]
        formats.extend(command.format for command in self._flow_commands.values())
        if searchable_only:
            formats = [fmt for fmt in formats if not fmt.exact_match]
        return formats

    def examples(self) -> list[CommandExample]:
        return [
            example
            for command in self._commands.values()
            for example in command.format.examples
        ]

    def list_commands(self) -> list[RegisteredCommand]:
        entries = [
            RegisteredCommand(
                template=command.template,
                kind=command.kind.value,
                source=command.source,
                description=command.format.description,
            )
            for command in [*self._commands.values(), *self._flow_commands.values()]
        ]
        return sorted(entries, key=lambda entry: entry.template)

    def __len__(self) -> int:
        return len(self._commands) + len(self._flow_commands)
