"""Permission policy enforcement for built-in native commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


@dataclass
class PermissionDecision:
    """Represents allow/block decision."""

    allowed: bool
    reason: str


def is_within_workspace(path: Path, workspace_dir: Path) -> bool:
    """Return True if path is inside workspace directory."""
    try:
        path.resolve().relative_to(workspace_dir.resolve())
        return True
    except ValueError:
        return False


class PermissionEngine:
    """Policy engine for command allow/deny checks."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        cfg = config or {}
        self.allow_network = bool(cfg.get("allow_network", False))
        self.allow_file_write_outside_workspace = bool(
            cfg.get("allow_file_write_outside_workspace", False)
        )
        self.blocked_commands = [str(item).lower() for item in cfg.get("blocked_commands", [])]

    @classmethod
    def from_yaml(cls, path: Path) -> PermissionEngine:
        """Build engine from YAML file path."""
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError("permissions.yaml must be a mapping.")
        return cls(config=data)

    def check(
        self,
        *,
        command: str,
        tool_name: str,
        metadata: dict[str, Any] | None = None,
        workspace_dir: Path | None = None,
    ) -> PermissionDecision:
        """Evaluate policy for a requested command."""
        metadata = metadata or {}
        command_l = command.lower()

        blocked_hits = [word for word in self.blocked_commands if word in command_l]
        if blocked_hits:
            return PermissionDecision(
                False, f"Command blocked by policy: {', '.join(sorted(blocked_hits))}."
            )
        if metadata.get("requires_network") and not self.allow_network:
            return PermissionDecision(False, f"Network operations disabled by policy ({tool_name}).")

        target_path = metadata.get("target_path")
        if target_path and workspace_dir is not None:
            if not self.allow_file_write_outside_workspace and not is_within_workspace(
                Path(str(target_path)), workspace_dir
            ):
                return PermissionDecision(False, "Write outside workspace is blocked.")

        return PermissionDecision(True, "Allowed by policy.")
