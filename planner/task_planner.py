"""Planner interface and the language-model planner.

The plan engine only needs ``expand`` and ``synthesize_sequence``.
``create_plan`` and ``identify_relevant_commands`` feed the CLI's
``plan create``.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from core.errors import LLMError, PlannerError
from interpreter.command_loader import create_command
from interpreter.command_registry import CommandRegistry
from interpreter.command_types import CommandInput
from planner.prompts import (
    CREATE_PLAN_PROMPT,
    CREATE_SUBTASKS_PROMPT,
    RELEVANT_COMMANDS_PROMPT,
    SEQUENCE_OF_COMMANDS_PROMPT,
)
from planner.task_tree import Plan, PlanState, Task, TaskCategory

logger = logging.getLogger("ir.planner")


class Planner(ABC):
    """Collaborator that grows the task tree."""

    @abstractmethod
    def expand(self, objective: str, tree: str, formats: list[str]) -> list[Task]:
        """Break an objective into subtasks."""

    @abstractmethod
    def synthesize_sequence(self, objective: str, formats: list[str]) -> CommandInput:
        """Produce a runnable command for an objective, or raise PlannerError."""

    def identify_relevant_commands(self, objective: str, formats: list[str]) -> list[str]:
        _ = objective
        return list(formats)

    def create_plan(self, description: str, formats: list[str]) -> Plan:
        """Plan with a single, unexpanded Complex root."""
        _ = formats
        root = Task(objective=description, category=TaskCategory.COMPLEX, execution_order=1)
        return Plan(
            name=description,
            task=root,
            current_state=PlanState(current_task_id=root.id),
        )


def _extract_json(response: str) -> Any:
    cleaned = re.sub(r"```(?:json)?\s*|```", "", response or "").strip()
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if not match:
        raise PlannerError(f"No JSON object in planner response: {cleaned[:200]}")
    try:
        return json.loads(match.group())
    except json.JSONDecodeError as exc:
        raise PlannerError(f"Unparsable planner response: {exc}") from exc


def subtask_from_record(record: dict[str, Any]) -> Task:
    """Build a Task from a planner record; a concrete command makes it Discrete."""
    command = str(record.get("availableCommand") or "").strip()
    data = {
        "objective": record.get("objective", ""),
        "category": TaskCategory.DISCRETE if command else record.get("category", "complex"),
        "command": command or None,
        "impact": record.get("impact", 0.5),
        "impactRationale": record.get("impactRationale", ""),
        "feasibility": record.get("feasibility", 0.5),
        "feasibilityRationale": record.get("feasibilityRationale", ""),
        "executionOrder": record.get("executionOrder", 0),
    }
    try:
        return Task.model_validate(data)
    except ValidationError as exc:
        raise PlannerError(f"Invalid subtask from planner: {exc.errors()[0]['msg']}") from exc


class LLMTaskPlanner(Planner):
    """Planner backed by any ``BaseLLM`` chat provider.

    Synthesised sequences are registered as new commands when a registry is
    given, so the task's command is just the new command's name.
    """

    def __init__(self, llm: Any, registry: CommandRegistry | None = None) -> None:
        self.llm = llm
        self.registry = registry

    def _ask(self, prompt: str) -> str:
        try:
            return self.llm.chat([{"role": "user", "content": prompt}], temperature=0)
        except LLMError as exc:
            raise PlannerError(f"Planner model unavailable: {exc}") from exc

    def identify_relevant_commands(self, objective: str, formats: list[str]) -> list[str]:
        response = self._ask(
            RELEVANT_COMMANDS_PROMPT.format(commands="\n".join(sorted(formats)), objective=objective)
        )
        match = re.search(r"<relevant_commands>(.*?)</relevant_commands>", response, re.DOTALL)
        if not match:
            logger.info("No relevant command list in planner response; using all commands")
            return list(formats)
        known = set(formats)
        return [
            line.strip()
            for line in match.group(1).splitlines()
            if line.strip() in known
        ]

    def create_plan(self, description: str, formats: list[str]) -> Plan:
        data = _extract_json(
            self._ask(CREATE_PLAN_PROMPT.format(description=description, commands="\n".join(formats)))
        )
        if not isinstance(data, dict) or not data.get("objective") or not data.get("name"):
            raise PlannerError("Planner did not return a plan name and objective")
        root = Task(
            objective=str(data["objective"]),
            category=TaskCategory.COMPLEX,
            execution_order=1,
        )
        return Plan(
            name=str(data["name"]),
            task=root,
            additional_info_needed=str(data.get("additionalInfoNeeded") or ""),
            current_state=PlanState(current_task_id=root.id),
        )

    def expand(self, objective: str, tree: str, formats: list[str]) -> list[Task]:
        data = _extract_json(
            self._ask(
                CREATE_SUBTASKS_PROMPT.format(
                    objective=objective, tree=tree, commands="\n".join(formats)
                )
            )
        )
        records = data.get("subtasks") if isinstance(data, dict) else None
        if not isinstance(records, list) or not records:
            raise PlannerError(f"Planner returned no subtasks for: {objective}")
        return [subtask_from_record(record) for record in records if isinstance(record, dict)]

    def synthesize_sequence(self, objective: str, formats: list[str]) -> CommandInput:
        data = _extract_json(
            self._ask(
                SEQUENCE_OF_COMMANDS_PROMPT.format(
                    commands="\n".join(formats), objective=objective
                )
            )
        )
        if not isinstance(data, dict):
            raise PlannerError("Planner returned no command definition")
        try:
            command = create_command(data, source="planner")
        except ValueError as exc:
            raise PlannerError(f"Error identifying sequence of commands: {exc}") from exc

        if self.registry is None:
            if len(command.sequence) == 1:
                return command.sequence[0]
            raise PlannerError("Multi-step sequence needs a command registry to register it")
        if self.registry.get(command.template) is None:
            self.registry.register(command)
        logger.info("Registered synthesised command: %s", command.template)
        return command.template
