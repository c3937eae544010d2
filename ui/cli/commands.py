"""Typer command handlers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from core.errors import PlannerError, TaskPreconditionError
from core.orchestrator import Orchestrator, RuntimeBundle
from planner.plan_executor import PlanRunStatus
from planner.plan_store import save_plan_as_command
from planner.task_tree import Plan, get_tree_structure

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Console logging at WARNING (DEBUG with --debug), plus an optional file handler."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def _runtime(root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build()
    return bundle


def _plan_or_exit(bundle: RuntimeBundle, name: str) -> Plan:
    plan = bundle.plan_store.get(name)
    if plan is None:
        typer.echo(f"Plan not found: {name}", err=True)
        raise typer.Exit(code=1)
    return plan


def list_commands(root: Path | None = None) -> None:
    """Print every registered format with its description."""
    bundle = _runtime(root)
    for entry in bundle.commands.list_commands():
        suffix = f" - {entry.description}" if entry.description else ""
        typer.echo(f"{entry.template} [{entry.kind}, {entry.source}]{suffix}")


def run(inputs: list[str], allow_nl: bool = True, root: Path | None = None) -> None:
    """Execute inputs as one sequence; exit code 1 on failure."""
    bundle = _runtime(root)
    results = bundle.interpreter.execute(list(inputs), allow_nl=allow_nl)
    for result in results:
        if result.message:
            status = "ok" if result.success else "FAILED"
            typer.echo(f"[{status}] {result.message}")
    if results and not results[-1].success:
        raise typer.Exit(code=1)


def plan_create(description: str, root: Path | None = None) -> None:
    bundle = _runtime(root)
    formats = [fmt.template for fmt in bundle.commands.formats(searchable_only=True)]
    try:
        relevant = bundle.planner.identify_relevant_commands(description, formats)
        plan = bundle.planner.create_plan(description, relevant)
    except PlannerError as exc:
        typer.echo(f"Planning failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    bundle.plan_store.save(plan)
    typer.echo(f"Created plan: {plan.name}")
    if plan.additional_info_needed:
        typer.echo(f"Additional information needed: {plan.additional_info_needed}")


def plan_list(root: Path | None = None) -> None:
    bundle = _runtime(root)
    for plan in bundle.plan_store.list_plans():
        done = len(plan.current_state.completed_tasks)
        typer.echo(f"{plan.name}: {plan.task.objective} ({done} tasks completed)")


def plan_show(name: str, root: Path | None = None) -> None:
    bundle = _runtime(root)
    typer.echo(get_tree_structure(_plan_or_exit(bundle, name)))


def plan_run(name: str, root: Path | None = None) -> None:
    """Execute a plan and report how the run ended."""
    bundle = _runtime(root)
    plan = _plan_or_exit(bundle, name)
    result = bundle.plan_executor.execute_plan(plan)
    typer.echo(f"Plan: {result.plan_name}")
    typer.echo(f"Status: {result.status.value}")
    if result.task_id:
        typer.echo(f"Task: {result.task_id} (attempt {result.attempt})")
    if result.message:
        typer.echo(f"Message: {result.message}")
    typer.echo(get_tree_structure(plan))
    if result.status in (PlanRunStatus.FAILED, PlanRunStatus.EXHAUSTED):
        raise typer.Exit(code=1)


def plan_resolve(name: str, task_id: str, root: Path | None = None) -> None:
    bundle = _runtime(root)
    plan = _plan_or_exit(bundle, name)
    try:
        task = bundle.plan_executor.complete_manual_task(plan, task_id)
    except TaskPreconditionError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Marked complete: {task.objective}")


def plan_save_command(name: str, root: Path | None = None) -> None:
    bundle = _runtime(root)
    plan = _plan_or_exit(bundle, name)
    try:
        path = save_plan_as_command(plan, bundle.paths["commands_dir"])
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Saved command '{plan.name}' to {path}")


def config_show(root: Path | None = None) -> None:
    """Show effective runtime config."""
    bundle = _runtime(root)
    typer.echo(json.dumps(bundle.config, indent=2, default=str))


def tools_list(root: Path | None = None) -> None:
    """List tools and enabled flags."""
    bundle = _runtime(root)
    for tool in bundle.tool_registry.list_tools():
        typer.echo(f"{tool.name}: {'enabled' if tool.enabled else 'disabled'}")
        for template in tool.commands:
            typer.echo(f"  {template}")
