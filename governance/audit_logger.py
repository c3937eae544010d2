"""Structured JSONL audit logger."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Appends one JSON line per native command execution."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("ir.audit")

    @staticmethod
    def _hash_inputs(inputs: dict[str, Any]) -> str:
        payload = json.dumps(inputs, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def log(
        self,
        command: str,
        tool: str,
        inputs: dict[str, Any],
        outcome: str,
        allowed: bool,
        reason: str = "",
    ) -> None:
        """Append one JSONL audit event."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "command": command,
            "tool": tool,
            "inputs_hash": self._hash_inputs(inputs),
            "outcome": outcome,
            "allowed": allowed,
            "reason": reason,
        }
        line = json.dumps(event, ensure_ascii=True)
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        self.logger.debug(line)

    def read_events(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Return recorded events, newest last."""
        if not self.log_path.exists():
            return []
        with self.log_path.open("r", encoding="utf-8") as fh:
            events = [json.loads(line) for line in fh if line.strip()]
        return events[-limit:] if limit else events
