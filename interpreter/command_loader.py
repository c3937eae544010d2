"""Load user command definitions from YAML/JSON files.

A definition file looks like::

    namespace: office
    requires:
      application: libreoffice
    commands:
      - format: greet ${name}
        description: Say hello
        sequence:
          - console log hello ${name}
        examples:
          - prompt: say hi to bob
            output: ["office:greet bob"]
        requires:
          exactMatch: false

Broken files and records are skipped with a log message; loading never
aborts startup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from interpreter.command_types import (
    Command,
    CommandExample,
    CommandInput,
    CommandKind,
    Format,
    dump_command_input,
)

logger = logging.getLogger("ir.command_loader")

DEFINITION_SUFFIXES = (".yaml", ".yml", ".json")


class CommandRequirements(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    application: str | None = None
    exact_match: bool = Field(default=False, alias="exactMatch")


class CommandDefinition(BaseModel):
    """One user command record."""

    model_config = ConfigDict(populate_by_name=True)

    format: str = Field(min_length=1)
    description: str = ""
    sequence: list[CommandInput] = Field(min_length=1)
    examples: list[CommandExample] = Field(default_factory=list)
    requires: CommandRequirements = Field(default_factory=CommandRequirements)


def create_command(
    record: dict[str, Any],
    namespace: str | None = None,
    default_application: str | None = None,
    source: str = "user",
) -> Command:
    """Build a Sequence command from a definition record.

    Raises ``ValueError`` for records without a format or with an empty
    sequence.
    """
    try:
        definition = CommandDefinition.model_validate(record)
    except ValidationError as exc:
        raise ValueError(f"Invalid command: {exc.errors()[0]['msg']}") from exc

    template = f"{namespace}:{definition.format}" if namespace else definition.format
    return Command(
        format=Format(
            template=template,
            description=definition.description,
            application=definition.requires.application or default_application,
            exact_match=definition.requires.exact_match,
            examples=tuple(definition.examples),
        ),
        kind=CommandKind.SEQUENCE,
        sequence=list(definition.sequence),
        source=source,
    )


def load_definition_file(path: Path) -> dict[str, Any] | None:
    """Parse one YAML or JSON file; None when it is unreadable or not a mapping."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Skipping unreadable definition file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Skipping definition file %s: top level must be a mapping", path)
        return None
    return data


def iter_definition_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in DEFINITION_SUFFIXES)


def load_command_files(directory: Path) -> list[Command]:
    """Load every command definition found in directory."""
    commands: list[Command] = []
    for path in iter_definition_files(directory):
        data = load_definition_file(path)
        if data is None:
            continue
        namespace = data.get("namespace") or None
        file_requires = data.get("requires") or {}
        default_application = (
            file_requires.get("application") if isinstance(file_requires, dict) else None
        )
        records = data.get("commands") or []
        if not isinstance(records, list):
            logger.warning("Skipping %s: 'commands' must be a list", path)
            continue
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                logger.warning("Skipping record %d in %s: not a mapping", index, path)
                continue
            try:
                commands.append(
                    create_command(
                        record,
                        namespace=namespace,
                        default_application=default_application,
                        source=path.name,
                    )
                )
            except ValueError as exc:
                logger.warning("Skipping record %d in %s: %s", index, path, exc)
    logger.info("Loaded %d user commands from %s", len(commands), directory)
    return commands


def command_record(
    template: str, description: str, sequence: list[CommandInput]
) -> dict[str, Any]:
    """Build a definition record in the on-disk layout."""
    return {
        "format": template,
        "description": description,
        "sequence": [dump_command_input(item) for item in sequence],
    }


def save_command_file(path: Path, records: list[dict[str, Any]], namespace: str | None = None) -> Path:
    """Write records as a definition file, appending to an existing one."""
    existing = load_definition_file(path) if path.exists() else None
    data: dict[str, Any] = existing or {}
    if namespace and not data.get("namespace"):
        data["namespace"] = namespace
    data.setdefault("commands", [])
    data["commands"].extend(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, sort_keys=False, allow_unicode=True)
    return path
