"""CLI entrypoint for intent-runner."""

from __future__ import annotations

from pathlib import Path

import typer

from ui.cli import commands

app = typer.Typer(help="Natural-language command runner and task planner")
plan_app = typer.Typer(help="Plan commands")
config_app = typer.Typer(help="Configuration commands")
tools_app = typer.Typer(help="Tool commands")


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    log_file: Path | None = typer.Option(None, "--log-file", "-l", help="Also log to this file"),
    root: Path | None = typer.Option(None, "--root", help="Project root holding config/"),
) -> None:
    """Configure logging and remember the project root."""
    commands.configure_logging(debug=debug, log_file=log_file)
    ctx.obj = {"root": root}


def _root(ctx: typer.Context) -> Path | None:
    return (ctx.obj or {}).get("root")


@app.command("commands")
def commands_cmd(ctx: typer.Context) -> None:
    """List every command format."""
    commands.list_commands(root=_root(ctx))


@app.command("run")
def run_cmd(
    ctx: typer.Context,
    inputs: list[str] = typer.Argument(..., help="Commands to run, in order"),
    no_nl: bool = typer.Option(False, "--no-nl", help="Disable natural-language fallback"),
) -> None:
    """Run one or more commands."""
    commands.run(inputs=inputs, allow_nl=not no_nl, root=_root(ctx))


@plan_app.command("create")
def plan_create_cmd(
    ctx: typer.Context,
    description: str = typer.Argument(..., help="What the plan should achieve"),
) -> None:
    """Create a plan from a description."""
    commands.plan_create(description=description, root=_root(ctx))


@plan_app.command("list")
def plan_list_cmd(ctx: typer.Context) -> None:
    """List saved plans."""
    commands.plan_list(root=_root(ctx))


@plan_app.command("show")
def plan_show_cmd(ctx: typer.Context, name: str) -> None:
    """Show a plan's task tree."""
    commands.plan_show(name=name, root=_root(ctx))


@plan_app.command("run")
def plan_run_cmd(ctx: typer.Context, name: str) -> None:
    """Execute a plan until it completes, fails or needs a human."""
    commands.plan_run(name=name, root=_root(ctx))


@plan_app.command("resolve")
def plan_resolve_cmd(ctx: typer.Context, name: str, task_id: str) -> None:
    """Mark a manual task as done by a human."""
    commands.plan_resolve(name=name, task_id=task_id, root=_root(ctx))


@plan_app.command("save-command")
def plan_save_command_cmd(ctx: typer.Context, name: str) -> None:
    """Save a fully planned plan as a reusable command."""
    commands.plan_save_command(name=name, root=_root(ctx))


@config_app.command("show")
def config_show_cmd(ctx: typer.Context) -> None:
    """Show effective configuration."""
    commands.config_show(root=_root(ctx))


@tools_app.command("list")
def tools_list_cmd(ctx: typer.Context) -> None:
    """List tool status."""
    commands.tools_list(root=_root(ctx))


app.add_typer(plan_app, name="plan")
app.add_typer(config_app, name="config")
app.add_typer(tools_app, name="tools")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
