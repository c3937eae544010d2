"""Configuration, runtime wiring and CLI tests."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from core.orchestrator import Orchestrator
from core.policy_runtime import ensure_runtime_dirs, load_effective_config, merge_dicts
from llm.providers.mock_provider import MockProvider
from planner.plan_executor import PlanRunStatus
from ui.cli.cli import app

GREET_COMMANDS = {
    "commands": [
        {
            "format": "greet ${name}",
            "description": "Say hello",
            "sequence": ["console log hello ${name}"],
        }
    ]
}


def write_root(tmp_path: Path, allow_network: bool = False) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(
        yaml.safe_dump(
            {
                "paths": {"workspace_dir": "ws"},
                "user_variables": {"userName": "tester"},
                "planner": {"max_attempts": 5},
            }
        ),
        encoding="utf-8",
    )
    (config_dir / "models.yaml").write_text(
        yaml.safe_dump({"llm": {"active_provider": "mock"}}), encoding="utf-8"
    )
    (config_dir / "permissions.yaml").write_text(
        yaml.safe_dump({"allow_network": allow_network}), encoding="utf-8"
    )
    commands_dir = tmp_path / "definitions" / "commands"
    commands_dir.mkdir(parents=True)
    (commands_dir / "greet.yaml").write_text(yaml.safe_dump(GREET_COMMANDS), encoding="utf-8")
    return tmp_path


def test_merge_dicts_is_recursive() -> None:
    merged = merge_dicts({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 3}, "e": 4})

    assert merged == {"a": {"b": 3, "c": 2}, "d": 1, "e": 4}


def test_effective_config_nests_models_and_permissions(tmp_path: Path) -> None:
    config = load_effective_config(write_root(tmp_path, allow_network=True))

    assert config["models"]["llm"]["active_provider"] == "mock"
    assert config["permissions"]["allow_network"] is True
    assert config["user_variables"]["userName"] == "tester"


def test_runtime_dirs_are_created(tmp_path: Path) -> None:
    paths = ensure_runtime_dirs(tmp_path, {"paths": {"workspace_dir": "ws"}})

    assert paths["workspace_dir"] == (tmp_path / "ws").resolve()
    assert paths["plans_dir"].is_dir()
    assert paths["audit_log_path"].parent.is_dir()


def test_orchestrator_wires_commands_and_variables(tmp_path: Path) -> None:
    bundle = Orchestrator(root=write_root(tmp_path)).build()
    templates = [entry.template for entry in bundle.commands.list_commands()]

    assert isinstance(bundle.llm, MockProvider)
    assert "greet ${name}" in templates
    assert "console log ${log}" in templates
    assert "while ${condition}" in templates
    assert bundle.session.store.get("userName") == "tester"
    assert bundle.plan_executor.max_attempts == 5

    results = bundle.interpreter.execute(["greet ${userName}"])
    assert results[-1].message == "hello tester"


def test_offline_plan_escalates_and_is_saved(tmp_path: Path) -> None:
    root = write_root(tmp_path)
    bundle = Orchestrator(root=root).build()
    plan = bundle.planner.create_plan("Water the plants", ["console log ${log}"])
    bundle.plan_store.save(plan)

    result = bundle.plan_executor.execute_plan(plan)

    assert result.status is PlanRunStatus.ESCALATED
    reloaded = Orchestrator(root=root).build().plan_store.get(plan.name)
    assert reloaded is not None
    assert len(reloaded.task.subtasks) == 1
    assert reloaded.current_state.current_task_id == reloaded.task.subtasks[0].id


def test_cli_run_prints_results(tmp_path: Path) -> None:
    root = write_root(tmp_path)

    result = CliRunner().invoke(app, ["--root", str(root), "run", "greet Ada", "--no-nl"])

    assert result.exit_code == 0
    assert "[ok] hello Ada" in result.output


def test_cli_run_exits_non_zero_on_failure(tmp_path: Path) -> None:
    root = write_root(tmp_path)

    result = CliRunner().invoke(app, ["--root", str(root), "run", "make coffee", "--no-nl"])

    assert result.exit_code == 1
    assert "Unable to find command: make coffee" in result.output


def test_cli_lists_commands_and_tools(tmp_path: Path) -> None:
    root = write_root(tmp_path)
    runner = CliRunner()

    commands = runner.invoke(app, ["--root", str(root), "commands"])
    tools = runner.invoke(app, ["--root", str(root), "tools", "list"])

    assert commands.exit_code == 0
    assert "greet ${name} [sequence, greet.yaml] - Say hello" in commands.output
    assert tools.exit_code == 0
    assert "web_tool: enabled" in tools.output


def test_cli_plan_show_unknown_plan(tmp_path: Path) -> None:
    root = write_root(tmp_path)

    result = CliRunner().invoke(app, ["--root", str(root), "plan", "show", "nothing"])

    assert result.exit_code == 1
