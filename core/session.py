"""Session state shared by every command of one interpreter run."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping
from typing import Any

from core.errors import MissingVariableError
from interpreter.command_types import CommandInput, FlowCommandInput

logger = logging.getLogger("ir.session")

VARIABLE_PATTERN = re.compile(r"\$\{(\w+)\}")

StoreValue = str | int | float


class VariableStore:
    """Name to value mapping that lives as long as its session.

    Writes are last-write-wins. A name bound to ``""`` is still bound; only
    names that were never set are reported as missing.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, StoreValue] = {}
        if initial:
            self.merge(initial)

    def get(self, name: str) -> StoreValue | None:
        return self._values.get(name)

    def set(self, name: str, value: StoreValue) -> None:
        self._values[name] = value

    def merge(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self._values[str(key)] = value if isinstance(value, int | float) else str(value)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def snapshot(self) -> dict[str, StoreValue]:
        """Return a copy of every binding."""
        return dict(self._values)

    def inject_into_string(self, text: str) -> str:
        """Replace every ``${name}`` in text, failing on the first unbound name."""

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1)
            value = self._values.get(name)
            if value is None:
                raise MissingVariableError(name)
            return str(value)

        return VARIABLE_PATTERN.sub(_replace, text)

    def expand_known(self, text: str) -> str:
        """Replace ``${name}`` for bound names and leave the others untouched."""

        def _replace(match: re.Match[str]) -> str:
            value = self._values.get(match.group(1))
            return match.group(0) if value is None else str(value)

        return VARIABLE_PATTERN.sub(_replace, text)

    def inject_into_command_input(self, command_input: CommandInput) -> CommandInput:
        """Inject into the node's own command string only.

        Nested sequences are left as written; they are injected when the
        interpreter reaches them.
        """
        if isinstance(command_input, FlowCommandInput):
            return command_input.model_copy(
                update={"command": self.inject_into_string(command_input.command)}
            )
        return self.inject_into_string(command_input)


class InterpreterSession:
    """Variable store plus the running and interrupted flags of one interpreter."""

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self.store = VariableStore(variables)
        self.is_running = False
        self._interrupted = threading.Event()

    @property
    def interrupted(self) -> bool:
        return self._interrupted.is_set()

    def interrupt(self) -> None:
        """Request cancellation; safe to call from any thread."""
        logger.info("Interrupt requested")
        self._interrupted.set()

    def uninterrupt(self) -> None:
        self._interrupted.clear()
