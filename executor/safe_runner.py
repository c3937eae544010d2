"""Safe execution gate wrapping permission checks and auditing."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionEngine
from interpreter.command_types import CommandResult

logger = logging.getLogger("ir.safe_runner")


class SafeRunner:
    """Runs native handlers only when policy allows, never letting them raise."""

    def __init__(
        self,
        permission_engine: PermissionEngine,
        audit_logger: AuditLogger,
        workspace_dir: Path,
    ) -> None:
        self.permission_engine = permission_engine
        self.audit_logger = audit_logger
        self.workspace_dir = workspace_dir

    def run(
        self,
        *,
        command: str,
        tool_name: str,
        inputs: dict[str, Any],
        metadata: dict[str, Any] | None,
        execute: Callable[[], CommandResult | str | None],
    ) -> CommandResult:
        """Check policy, execute, audit, and convert any exception into a failing result."""
        decision = self.permission_engine.check(
            command=command,
            tool_name=tool_name,
            metadata=metadata or {},
            workspace_dir=self.workspace_dir,
        )
        if not decision.allowed:
            self.audit_logger.log(
                command=command,
                tool=tool_name,
                inputs=inputs,
                outcome="blocked",
                allowed=False,
                reason=decision.reason,
            )
            return CommandResult.fail(f"Blocked: {decision.reason}")

        try:
            output = execute()
        except Exception as exc:
            logger.warning("Command %s failed: %s", command, exc)
            self.audit_logger.log(
                command=command,
                tool=tool_name,
                inputs=inputs,
                outcome="failed",
                allowed=True,
                reason=str(exc),
            )
            return CommandResult.fail(f"Execution failed: {exc}")

        result = output if isinstance(output, CommandResult) else CommandResult.ok(str(output or ""))
        self.audit_logger.log(
            command=command,
            tool=tool_name,
            inputs=inputs,
            outcome="success" if result.success else "failed",
            allowed=True,
            reason="" if result.success else result.message,
        )
        return result
