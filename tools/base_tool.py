"""Base tool interface: a named group of native commands run through the safe runner."""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from executor.safe_runner import SafeRunner
from interpreter.command_types import Command, CommandKind, CommandResult, Format

NativeRun = Callable[[dict[str, str]], CommandResult | str | None]


@dataclass(frozen=True)
class NativeCommandSpec:
    """Template, description and implementation of one native command."""

    template: str
    description: str
    run: NativeRun
    exact_match: bool = False


class BaseTool(ABC):
    """Base class for all tools with safe-runner integration."""

    def __init__(
        self,
        name: str,
        safe_runner: SafeRunner,
        workspace_dir: Path,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.safe_runner = safe_runner
        self.workspace_dir = workspace_dir
        self.enabled = enabled
        self.settings = settings or {}

    @abstractmethod
    def command_specs(self) -> list[NativeCommandSpec]:
        """Native commands contributed by this tool."""

    def metadata(self, template: str, args: dict[str, str]) -> dict[str, Any]:
        """Optional metadata used for policy checks."""
        _ = (template, args)
        return {}

    def execute(self, spec: NativeCommandSpec, args: dict[str, str]) -> CommandResult:
        """Execute one native command with governance checks."""
        if not self.enabled:
            return CommandResult.fail(f"Tool '{self.name}' disabled.")
        return self.safe_runner.run(
            command=spec.template,
            tool_name=self.name,
            inputs=args,
            metadata=self.metadata(spec.template, args),
            execute=lambda: spec.run(args),
        )

    def build_commands(self) -> list[Command]:
        """Function commands bound to this tool; none when the tool is disabled."""
        if not self.enabled:
            return []
        return [
            Command(
                format=Format(
                    template=spec.template,
                    description=spec.description,
                    exact_match=spec.exact_match,
                ),
                kind=CommandKind.FUNCTION,
                handler=functools.partial(self.execute, spec),
                source=self.name,
            )
            for spec in self.command_specs()
        ]

    def resolve_path(self, raw: str) -> Path:
        """Resolve a user path; relative paths are taken from the workspace."""
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.workspace_dir / path
        return path.resolve()
