"""File commands that move data between files and session variables."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.errors import CommandExecutionError
from core.session import InterpreterSession
from interpreter.command_types import CommandResult
from tools.base_tool import BaseTool, NativeCommandSpec

_WRITE_TEMPLATES = {
    "write ${variableName} to file ${filePath}",
    "append ${variableName} to file ${filePath}",
}


class FileTool(BaseTool):
    """Read/write/list files; relative paths resolve inside the workspace."""

    def __init__(self, *args: Any, session: InterpreterSession, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.session = session

    def command_specs(self) -> list[NativeCommandSpec]:
        return [
            NativeCommandSpec(
                "write ${variableName} to file ${filePath}",
                "Write the value of a variable to a file, replacing it",
                self._write,
            ),
            NativeCommandSpec(
                "append ${variableName} to file ${filePath}",
                "Append the value of a variable to a file",
                self._append,
            ),
            NativeCommandSpec(
                "read file ${filePath} into ${variableName}",
                "Read a file into a variable",
                self._read,
            ),
            NativeCommandSpec(
                "list files in ${directoryPath} into ${variableName}",
                "Store a comma-separated list of file names in a variable",
                self._list,
            ),
        ]

    def metadata(self, template: str, args: dict[str, str]) -> dict[str, Any]:
        if template in _WRITE_TEMPLATES and args.get("filePath"):
            return {"target_path": str(self.resolve_path(args["filePath"]))}
        return {}

    def _variable(self, name: str) -> str:
        value = self.session.store.get(name)
        if value is None:
            raise CommandExecutionError(f"Variable {name} not found")
        return str(value).replace("\\n", "\n")

    def _write(self, args: dict[str, str]) -> CommandResult:
        content = self._variable(args["variableName"])
        target = self.resolve_path(args["filePath"])
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return CommandResult.ok(f"Wrote file {target}")

    def _append(self, args: dict[str, str]) -> CommandResult:
        content = self._variable(args["variableName"])
        target = self.resolve_path(args["filePath"])
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(content)
        return CommandResult.ok(f"Appended to file {target}")

    def _read(self, args: dict[str, str]) -> CommandResult:
        target = self.resolve_path(args["filePath"])
        if not target.is_file():
            raise CommandExecutionError(f"File not found: {target}")
        self.session.store.set(args["variableName"], target.read_text(encoding="utf-8"))
        return CommandResult.ok(f"Read {target} into {args['variableName']}")

    def _list(self, args: dict[str, str]) -> CommandResult:
        base = self.resolve_path(args["directoryPath"])
        if not base.is_dir():
            raise CommandExecutionError(f"Directory not found: {base}")
        names = sorted(entry.name for entry in base.iterdir() if entry.is_file())
        self.session.store.set(args["variableName"], ", ".join(names))
        return CommandResult.ok(f"Listed {len(names)} files in {Path(args['directoryPath'])}")
