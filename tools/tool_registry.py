"""Tool registry and default tool wiring."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.notifications import NotificationCenter
from core.session import InterpreterSession
from executor.safe_runner import SafeRunner
from interpreter.command_types import Command
from tools.base_tool import BaseTool
from tools.browser_tools.web_tool import WebTool
from tools.system_tools.console_tool import ConsoleTool
from tools.system_tools.file_tool import FileTool
from tools.system_tools.text_tool import TextTool


@dataclass
class RegisteredTool:
    """Metadata for tool listing output."""

    name: str
    enabled: bool
    commands: list[str]


class ToolRegistry:
    """Simple in-memory tool registry."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, name: str, tool: BaseTool) -> None:
        self._tools[name] = tool

    def get(self, name: str) -> BaseTool | None:
        tool = self._tools.get(name)
        if tool and tool.enabled:
            return tool
        return None

    def list_tools(self) -> list[RegisteredTool]:
        return [
            RegisteredTool(
                name=name,
                enabled=tool.enabled,
                commands=[spec.template for spec in tool.command_specs()],
            )
            for name, tool in sorted(self._tools.items())
        ]

    def native_commands(self) -> list[Command]:
        """Function commands of every enabled tool, in registration order."""
        commands: list[Command] = []
        for tool in self._tools.values():
            commands.extend(tool.build_commands())
        return commands


def _tool_enabled(config: dict[str, Any], tool_name: str, default: bool) -> bool:
    tool_cfg = config.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return default
    return bool(tool_cfg.get("enabled", default))


def _tool_settings(config: dict[str, Any], tool_name: str) -> dict[str, Any]:
    tool_cfg = config.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return {}
    return dict(tool_cfg)


def build_default_registry(
    *,
    workspace_dir: Path,
    config: dict[str, Any],
    safe_runner: SafeRunner,
    session: InterpreterSession,
    notifications: NotificationCenter,
    llm: Any | None = None,
) -> ToolRegistry:
    """Build default tool registry from the ``tools`` config section."""

    def common(name: str, default: bool = True) -> dict[str, Any]:
        return {
            "name": name,
            "safe_runner": safe_runner,
            "workspace_dir": workspace_dir,
            "enabled": _tool_enabled(config, name, default),
            "settings": _tool_settings(config, name),
        }

    registry = ToolRegistry()
    registry.register(
        "console_tool",
        ConsoleTool(session=session, notifications=notifications, **common("console_tool")),
    )
    registry.register("file_tool", FileTool(session=session, **common("file_tool")))
    registry.register("web_tool", WebTool(session=session, **common("web_tool")))
    registry.register("text_tool", TextTool(session=session, llm=llm, **common("text_tool")))
    return registry
