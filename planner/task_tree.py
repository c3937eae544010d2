"""Task tree model and read-only tree queries.

A plan owns its tasks through ``subtasks``. Parent links are never stored on
tasks; the plan keeps a ``child id -> parent id`` index that is rebuilt after
loading and after every expansion.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from interpreter.command_types import CommandInput, command_text

IMPACT_THRESHOLD = 0.1


class TaskCategory(str, Enum):
    """How a task gets done."""

    DISCRETE = "discrete"
    SEQUENCE = "sequence"
    MANUAL = "manual"
    COMPLEX = "complex"


def new_task_id() -> str:
    return str(uuid.uuid4())


class Task(BaseModel):
    """One node of a plan's task tree."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=new_task_id)
    objective: str
    category: TaskCategory = TaskCategory.COMPLEX
    command: CommandInput | None = None
    impact: float = Field(default=1.0, ge=0.0, le=1.0)
    impact_rationale: str = Field(default="", alias="impactRationale")
    feasibility: float = Field(default=1.0, ge=0.0, le=1.0)
    feasibility_rationale: str = Field(default="", alias="feasibilityRationale")
    execution_order: int = Field(default=0, alias="executionOrder")
    subtasks: list[Task] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("command", mode="before")
    @classmethod
    def _blank_command_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_leaf(self) -> bool:
        return not self.subtasks

    def ordered_subtasks(self) -> list[Task]:
        """Subtasks by ``executionOrder``; ties keep insertion order."""
        return sorted(self.subtasks, key=lambda task: task.execution_order)


class PlanState(BaseModel):
    """Progress of a plan run."""

    model_config = ConfigDict(populate_by_name=True)

    current_task_id: str = Field(default="", alias="currentTaskId")
    completed_tasks: list[str] = Field(default_factory=list, alias="completedTasks")


class Plan(BaseModel):
    """Named task tree plus its execution state."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    task: Task
    additional_info_needed: str = Field(default="", alias="additionalInfoNeeded")
    current_state: PlanState = Field(default_factory=PlanState, alias="currentState")

    _tasks: dict[str, Task] = PrivateAttr(default_factory=dict)
    _parents: dict[str, str] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _unique_task_ids(self) -> Plan:
        seen: set[str] = set()
        for task in iter_tasks(self.task):
            if task.id in seen:
                raise ValueError(f"Duplicate task id in plan {self.name}: {task.id}")
            seen.add(task.id)
        return self

    def model_post_init(self, __context: Any) -> None:
        self.rebuild_parent_index()

    def rebuild_parent_index(self) -> None:
        """Re-derive the id lookup and parent links from the subtasks tree."""
        tasks: dict[str, Task] = {}
        parents: dict[str, str] = {}
        for task in iter_tasks(self.task):
            if task.id in tasks:
                raise ValueError(f"Duplicate task id in plan {self.name}: {task.id}")
            tasks[task.id] = task
            for child in task.subtasks:
                parents[child.id] = task.id
        self._tasks = tasks
        self._parents = parents

    def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        if task is None:
            # The tree may have been edited directly; fall back to a search.
            task = find_task(self, task_id)
        return task

    def parent_of(self, task: Task) -> Task | None:
        parent_id = self._parents.get(task.id)
        return self._tasks.get(parent_id) if parent_id else None

    def to_record(self) -> dict[str, Any]:
        """Serialise with the camelCase keys used on disk; no parent links."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def iter_tasks(root: Task) -> Iterator[Task]:
    """Depth-first, pre-order walk over a task and all of its descendants."""
    stack = [root]
    while stack:
        task = stack.pop()
        yield task
        stack.extend(reversed(task.subtasks))


def find_task(plan: Plan, task_id: str) -> Task | None:
    for task in iter_tasks(plan.task):
        if task.id == task_id:
            return task
    return None


def leaf_tasks(root: Task) -> list[Task]:
    """Leaves in execution order."""
    if root.is_leaf:
        return [root]
    leaves: list[Task] = []
    for child in root.ordered_subtasks():
        leaves.extend(leaf_tasks(child))
    return leaves


def is_task_complete(plan: Plan, task: Task) -> bool:
    """A leaf is complete once recorded; Complex leaves still need expanding."""
    if task.is_leaf:
        if task.category is TaskCategory.COMPLEX:
            return False
        return task.id in plan.current_state.completed_tasks
    return all(is_task_complete(plan, child) for child in task.subtasks)


def cumulative_impact(plan: Plan, task: Task) -> float:
    impact = task.impact
    parent = plan.parent_of(task)
    while parent is not None:
        impact *= parent.impact
        parent = plan.parent_of(parent)
    return impact


def is_task_below_impact_threshold(
    plan: Plan, task: Task, threshold: float = IMPACT_THRESHOLD
) -> bool:
    return cumulative_impact(plan, task) < threshold


def is_task_fully_planned(plan: Plan, task: Task) -> bool:
    """Leaves need a command; branches need every child planned or negligible."""
    if task.is_leaf:
        return task.command is not None
    return all(
        is_task_fully_planned(plan, child) or is_task_below_impact_threshold(plan, child)
        for child in task.subtasks
    )


def find_least_feasible_unplanned_task(plan: Plan) -> Task | None:
    """Follow the least feasible unplanned branch down to a leaf."""
    task = plan.task
    if is_task_fully_planned(plan, task):
        return None
    while not task.is_leaf:
        candidates = [
            child
            for child in task.ordered_subtasks()
            if not is_task_fully_planned(plan, child)
            and not is_task_below_impact_threshold(plan, child)
        ]
        if not candidates:
            break
        task = min(candidates, key=lambda child: child.feasibility)
    return task


def get_tree_structure(plan: Plan) -> str:
    """Numbered outline of the plan, used as context for the planner."""
    lines = [f"Plan: {plan.name}", plan.task.objective]

    def _walk(subtasks: list[Task], prefix: str, depth: int) -> None:
        for index, task in enumerate(subtasks, start=1):
            number = f"{prefix}.{index}" if prefix else str(index)
            detail = command_text(task.command) if task.command is not None else task.category.value
            lines.append(f"{' ' * depth}{number}. {task.objective} ({detail})")
            _walk(task.ordered_subtasks(), number, depth + 1)

    _walk(plan.task.ordered_subtasks(), "", 1)
    return "\n".join(lines)
