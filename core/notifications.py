"""Title/body notifications fanned out to registered handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger("ir.notifications")

NotificationHandler = Callable[[str, str], None]


def log_notification(title: str, body: str) -> None:
    logger.info("[notification] %s: %s", title, body)


class NotificationCenter:
    """Dispatches notifications to every registered handler, in registration order."""

    def __init__(self, include_log_handler: bool = True) -> None:
        self._handlers: dict[str, NotificationHandler] = {}
        if include_log_handler:
            self.register("log", log_notification)

    def register(self, name: str, handler: NotificationHandler) -> None:
        """Register (or replace) a named handler."""
        self._handlers[name] = handler

    def unregister(self, name: str) -> None:
        self._handlers.pop(name, None)

    def handler_names(self) -> list[str]:
        return list(self._handlers)

    def push(self, title: str, body: str) -> None:
        """Deliver a notification to all handlers."""
        for handler in list(self._handlers.values()):
            handler(title, body)
