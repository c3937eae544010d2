"""Console, timing, notification and store commands."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import typer

from core.errors import CommandExecutionError
from core.notifications import NotificationCenter
from core.session import InterpreterSession
from interpreter.command_types import CommandResult
from tools.base_tool import BaseTool, NativeCommandSpec

logger = logging.getLogger("ir.tools.console")


def _parse_duration(raw: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise CommandExecutionError(f"Invalid duration: {raw}") from exc
    if value < 0:
        raise CommandExecutionError(f"Invalid duration: {raw}")
    return value


class ConsoleTool(BaseTool):
    """Commands that touch the terminal, the clock or the session itself."""

    def __init__(
        self,
        *args: Any,
        session: InterpreterSession,
        notifications: NotificationCenter,
        echo: Callable[[str], None] = typer.echo,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.session = session
        self.notifications = notifications
        self.echo = echo

    def command_specs(self) -> list[NativeCommandSpec]:
        return [
            NativeCommandSpec("console log ${log}", "Print a message to the console", self._log),
            NativeCommandSpec(
                "wait ${duration} seconds", "Pause for a number of seconds", self._wait_seconds
            ),
            NativeCommandSpec(
                "wait ${duration} milliseconds",
                "Pause for a number of milliseconds",
                self._wait_milliseconds,
            ),
            NativeCommandSpec(
                "notification ${title} ${body}", "Push a notification", self._notify
            ),
            NativeCommandSpec("store ${key} ${value}", "Store a value in a variable", self._store),
            NativeCommandSpec(
                "uninterrupt",
                "Clear a pending interrupt",
                self._uninterrupt,
                exact_match=True,
            ),
        ]

    def _log(self, args: dict[str, str]) -> CommandResult:
        message = args.get("log", "").replace("\\n", "\n")
        self.echo(message)
        return CommandResult.ok(message)

    def _wait_seconds(self, args: dict[str, str]) -> CommandResult:
        duration = _parse_duration(args.get("duration", ""))
        time.sleep(duration)
        return CommandResult.ok(f"Waited {args['duration']} seconds")

    def _wait_milliseconds(self, args: dict[str, str]) -> CommandResult:
        duration = _parse_duration(args.get("duration", ""))
        time.sleep(duration / 1000)
        return CommandResult.ok(f"Waited {args['duration']} milliseconds")

    def _notify(self, args: dict[str, str]) -> CommandResult:
        self.notifications.push(args.get("title", ""), args.get("body", ""))
        return CommandResult.ok(f"Notification sent: {args.get('title', '')}")

    def _store(self, args: dict[str, str]) -> CommandResult:
        key = args.get("key", "")
        if not key:
            raise CommandExecutionError("No variable name provided")
        self.session.store.set(key, args.get("value", ""))
        return CommandResult.ok(f"Stored {key}")

    def _uninterrupt(self, args: dict[str, str]) -> CommandResult:
        _ = args
        self.session.uninterrupt()
        return CommandResult.ok("Interrupt cleared")
