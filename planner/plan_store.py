"""Plan persistence: YAML/JSON plan files in the plans directory."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from interpreter.command_loader import (
    command_record,
    iter_definition_files,
    load_definition_file,
    save_command_file,
)
from planner.task_tree import Plan, leaf_tasks

logger = logging.getLogger("ir.plan_store")

DEFAULT_PLAN_FILE = "default.yaml"


class PlanStore:
    """Plans keyed by name; each one remembers the file it came from."""

    def __init__(self, plans_dir: Path) -> None:
        self.plans_dir = plans_dir
        self._plans: dict[str, Plan] = {}
        self._sources: dict[str, Path] = {}

    def load_all(self) -> list[Plan]:
        """(Re)load every plan file; broken files and records are skipped."""
        self._plans.clear()
        self._sources.clear()
        for path in iter_definition_files(self.plans_dir):
            data = load_definition_file(path)
            if data is None:
                continue
            records = data.get("plans") or []
            if not isinstance(records, list):
                logger.warning("Skipping %s: 'plans' must be a list", path)
                continue
            for index, record in enumerate(records):
                try:
                    plan = Plan.model_validate(record)
                except ValidationError as exc:
                    logger.warning("Skipping plan %d in %s: %s", index, path, exc.errors()[0]["msg"])
                    continue
                if plan.name in self._plans:
                    logger.warning("Skipping duplicate plan %r in %s", plan.name, path)
                    continue
                self._plans[plan.name] = plan
                self._sources[plan.name] = path
        logger.info("Loaded %d plans from %s", len(self._plans), self.plans_dir)
        return list(self._plans.values())

    def list_plans(self) -> list[Plan]:
        return list(self._plans.values())

    def get(self, name: str) -> Plan | None:
        return self._plans.get(name)

    def add(self, plan: Plan) -> None:
        """Add or replace a plan; new plans are saved to the default file."""
        self._plans[plan.name] = plan
        self._sources.setdefault(plan.name, self.plans_dir / DEFAULT_PLAN_FILE)

    def save(self, plan: Plan | None = None) -> None:
        """Write plans back to their files (only the given plan's file when set)."""
        if plan is not None:
            self.add(plan)
            targets = {self._sources[plan.name]}
        else:
            targets = set(self._sources.values())
        for path in targets:
            records = [
                self._plans[name].to_record()
                for name, source in self._sources.items()
                if source == path
            ]
            self._write(path, records)

    @staticmethod
    def _write(path: Path, records: list[dict[str, Any]]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            yaml.safe_dump({"plans": records}, fh, sort_keys=False, allow_unicode=True)


def plan_command_filename(plan_name: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9 ]", "", plan_name).strip().replace(" ", "-").lower()
    return f"{slug or 'plan'}.yaml"


def save_plan_as_command(plan: Plan, commands_dir: Path) -> Path:
    """Save the leaf commands of a fully planned plan as a Sequence command.

    Raises ``ValueError`` naming the first leaf that has no command.
    """
    leaves = leaf_tasks(plan.task)
    for leaf in leaves:
        if leaf.command is None:
            raise ValueError(f"No command found for subtask: {leaf.objective}")
    record = command_record(
        plan.name,
        plan.task.objective,
        [leaf.command for leaf in leaves if leaf.command is not None],
    )
    path = save_command_file(commands_dir / plan_command_filename(plan.name), [record])
    logger.info("Saved plan %s as command in %s", plan.name, path)
    return path
