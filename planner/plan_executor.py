"""Plan execution engine: pick the next task, expand or run it, repeat.

Every pass through the loop is one attempt. Complex tasks are expanded by
the planner, Sequence tasks get a synthesised command, Manual tasks stop the
run for a human, and Discrete tasks run through the interpreter. A failing
task ends the run; it is not retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from core.errors import PlannerError, TaskPreconditionError
from core.notifications import NotificationCenter
from interpreter.command_types import CommandResult, last_failure_message, results_succeeded
from interpreter.sequence_runner import SequenceInterpreter
from planner.feasibility import aggregate_feasibility
from planner.task_planner import Planner
from planner.task_tree import (
    Plan,
    Task,
    TaskCategory,
    get_tree_structure,
    is_task_complete,
    iter_tasks,
    new_task_id,
)

logger = logging.getLogger("ir.plan_executor")

DEFAULT_MAX_ATTEMPTS = 10
HUMAN_INTERVENTION_TITLE = "Human Intervention Required"


class PlanRunStatus(str, Enum):
    COMPLETED = "completed"
    ESCALATED = "escalated"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


@dataclass
class PlanRunResult:
    """Outcome of one ``execute_plan`` call."""

    plan_name: str
    status: PlanRunStatus
    task_id: str | None = None
    attempt: int = 0
    message: str = ""
    results: list[CommandResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status is PlanRunStatus.COMPLETED


class PlanExecutor:
    """Drives a plan to completion with a bounded number of attempts."""

    def __init__(
        self,
        interpreter: SequenceInterpreter,
        planner: Planner,
        notifications: NotificationCenter | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_update: Callable[[Plan], None] | None = None,
    ) -> None:
        self.interpreter = interpreter
        self.planner = planner
        self.notifications = notifications or NotificationCenter()
        self.max_attempts = max_attempts
        self.on_update = on_update

    # ── Traversal ────────────────────────────────────────────────────

    def get_next_task(self, plan: Plan) -> Task | None:
        """Next leaf-most incomplete task, or None when the whole tree is done.

        Starts one level above the current task, climbs while the candidate is
        complete, then descends through the first incomplete child by
        ``executionOrder``.
        """
        current_id = plan.current_state.current_task_id
        current = plan.get_task(current_id) if current_id else plan.task
        if current is None:
            raise TaskPreconditionError(f"Task with ID {current_id} not found")

        candidate = plan.parent_of(current) or current
        while is_task_complete(plan, candidate):
            parent = plan.parent_of(candidate)
            if parent is None:
                return None
            candidate = parent

        children = self._incomplete_children(plan, candidate)
        while children:
            candidate = children[0]
            children = self._incomplete_children(plan, candidate)
        return candidate

    @staticmethod
    def _incomplete_children(plan: Plan, task: Task) -> list[Task]:
        return [child for child in task.ordered_subtasks() if not is_task_complete(plan, child)]

    # ── Execution ────────────────────────────────────────────────────

    def execute_task(self, task: Task) -> list[CommandResult]:
        """Run a leaf task's command through the interpreter."""
        if task.category is TaskCategory.COMPLEX:
            raise TaskPreconditionError(f"Task {task.id} is complex and cannot be executed")
        if task.command is None:
            raise TaskPreconditionError(f"Task {task.id} has no command to execute")
        return self.interpreter.execute([task.command])

    def execute_plan(self, plan: Plan) -> PlanRunResult:
        plan.rebuild_parent_index()
        collected: list[CommandResult] = []

        for attempt in range(1, self.max_attempts + 1):
            if is_task_complete(plan, plan.task):
                return self._finish(plan, PlanRunStatus.COMPLETED, attempt=attempt - 1, results=collected)
            task = self.get_next_task(plan)
            if task is None:
                return self._finish(plan, PlanRunStatus.COMPLETED, attempt=attempt - 1, results=collected)

            plan.current_state.current_task_id = task.id
            logger.info(
                "Attempt %d/%d on plan %s: %s (%s)",
                attempt,
                self.max_attempts,
                plan.name,
                task.objective,
                task.category.value,
            )

            if task.category is TaskCategory.COMPLEX:
                if task.subtasks:
                    raise TaskPreconditionError(f"Complex task {task.id} was already expanded")
                try:
                    self._expand(plan, task)
                except PlannerError as exc:
                    logger.warning("Expansion of %s failed: %s", task.id, exc)
                    return self._finish(
                        plan, PlanRunStatus.FAILED, task, attempt, str(exc), collected
                    )
                self._notify_update(plan)
                continue

            if task.category is TaskCategory.SEQUENCE and task.command is None:
                try:
                    task.command = self.planner.synthesize_sequence(
                        task.objective, self._relevant_formats(task.objective)
                    )
                except PlannerError as exc:
                    logger.warning(
                        "Sequence synthesis failed for %s, treating it as complex: %s",
                        task.id,
                        exc,
                    )
                    task.category = TaskCategory.COMPLEX
                    self._notify_update(plan)
                    continue
                self._notify_update(plan)

            if task.category is TaskCategory.MANUAL:
                body = f"Please help me complete the following task: {task.objective}"
                if task.feasibility_rationale:
                    body = f"{body} {task.feasibility_rationale}"
                self.notifications.push(HUMAN_INTERVENTION_TITLE, body)
                return self._finish(
                    plan, PlanRunStatus.ESCALATED, task, attempt, body, collected
                )

            results = self.execute_task(task)
            collected.extend(results)
            if not results_succeeded(results):
                message = last_failure_message(results)
                logger.warning("Task %s failed on attempt %d: %s", task.id, attempt, message)
                return self._finish(plan, PlanRunStatus.FAILED, task, attempt, message, collected)

            plan.current_state.completed_tasks.append(task.id)
            self._notify_update(plan)

        if is_task_complete(plan, plan.task):
            return self._finish(plan, PlanRunStatus.COMPLETED, attempt=self.max_attempts, results=collected)
        message = f"Plan {plan.name} not complete after {self.max_attempts} attempts"
        logger.warning("%s", message)
        return self._finish(
            plan, PlanRunStatus.EXHAUSTED, None, self.max_attempts, message, collected
        )

    def complete_manual_task(self, plan: Plan, task_id: str) -> Task:
        """Record a task a human has finished."""
        task = plan.get_task(task_id)
        if task is None:
            raise TaskPreconditionError(f"Task with ID {task_id} not found")
        if not task.is_leaf or task.category is TaskCategory.COMPLEX:
            raise TaskPreconditionError(f"Task {task_id} is not a completable leaf")
        if task_id not in plan.current_state.completed_tasks:
            plan.current_state.completed_tasks.append(task_id)
        self._notify_update(plan)
        return task

    # ── Helpers ──────────────────────────────────────────────────────

    def _relevant_formats(self, objective: str) -> list[str]:
        formats = [
            fmt.template
            for fmt in self.interpreter.registry.formats(searchable_only=True)
        ]
        return self.planner.identify_relevant_commands(objective, formats)

    def _expand(self, plan: Plan, task: Task) -> None:
        subtasks = self.planner.expand(
            task.objective, get_tree_structure(plan), self._relevant_formats(task.objective)
        )
        if not subtasks:
            raise PlannerError(f"Planner returned no subtasks for: {task.objective}")

        known_ids = {t.id for t in iter_tasks(plan.task)}
        for subtask in subtasks:
            if not subtask.id or subtask.id in known_ids:
                subtask.id = new_task_id()
            known_ids.add(subtask.id)

        task.subtasks = sorted(subtasks, key=lambda child: child.execution_order)
        plan.rebuild_parent_index()

        node: Task | None = task
        while node is not None:
            node.feasibility = aggregate_feasibility(node.subtasks)
            node = plan.parent_of(node)
        logger.info("Expanded %s into %d subtasks", task.id, len(subtasks))

    def _notify_update(self, plan: Plan) -> None:
        if self.on_update is not None:
            self.on_update(plan)

    def _finish(
        self,
        plan: Plan,
        status: PlanRunStatus,
        task: Task | None = None,
        attempt: int = 0,
        message: str = "",
        results: list[CommandResult] | None = None,
    ) -> PlanRunResult:
        self._notify_update(plan)
        logger.info("Plan %s finished: %s", plan.name, status.value)
        return PlanRunResult(
            plan_name=plan.name,
            status=status,
            task_id=task.id if task else None,
            attempt=attempt,
            message=message,
            results=results or [],
        )
