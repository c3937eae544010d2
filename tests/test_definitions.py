"""Command definition loading and plan persistence tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from interpreter.command_loader import create_command, load_command_files, save_command_file
from interpreter.command_types import CommandKind, FlowCommandInput
from planner.plan_store import PlanStore, plan_command_filename, save_plan_as_command
from planner.task_tree import Plan, PlanState, Task, TaskCategory

COMMANDS_FILE = """\
namespace: office
requires:
  application: writer
commands:
  - format: greet ${name}
    description: Say hello
    sequence:
      - console log hello ${name}
    examples:
      - prompt: say hi to bob
        output: ["office:greet bob"]
  - format: count to ${n}
    sequence:
      - command: repeat ${n} times
        sequence:
          - console log tick
  - description: no format here
    sequence: ["console log x"]
  - format: empty body
    sequence: []
  - just a string
"""


def test_load_command_files_applies_namespace_and_skips_invalid(tmp_path: Path) -> None:
    (tmp_path / "office.yaml").write_text(COMMANDS_FILE, encoding="utf-8")
    (tmp_path / "broken.yaml").write_text("commands: [unclosed", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    commands = load_command_files(tmp_path)

    assert [command.template for command in commands] == [
        "office:greet ${name}",
        "office:count to ${n}",
    ]
    greet = commands[0]
    assert greet.kind is CommandKind.SEQUENCE
    assert greet.format.application == "writer"
    assert greet.format.examples[0].output == ["office:greet bob"]
    assert greet.source == "office.yaml"
    nested = commands[1].sequence[0]
    assert isinstance(nested, FlowCommandInput)
    assert nested.sequence == ["console log tick"]


def test_load_command_files_of_missing_directory(tmp_path: Path) -> None:
    assert load_command_files(tmp_path / "absent") == []


def test_create_command_rejects_empty_sequence() -> None:
    with pytest.raises(ValueError, match="Invalid command"):
        create_command({"format": "x", "sequence": []})


def test_exact_match_requirement() -> None:
    command = create_command(
        {"format": "secret", "sequence": ["console log x"], "requires": {"exactMatch": True}}
    )

    assert command.format.exact_match is True


def test_save_command_file_appends(tmp_path: Path) -> None:
    path = tmp_path / "saved.yaml"
    save_command_file(path, [{"format": "a", "sequence": ["console log a"]}], namespace="ns")
    save_command_file(path, [{"format": "b", "sequence": ["console log b"]}])

    data = yaml.safe_load(path.read_text(encoding="utf-8"))

    assert data["namespace"] == "ns"
    assert [record["format"] for record in data["commands"]] == ["a", "b"]


def build_plan(name: str = "Morning Routine!") -> Plan:
    root = Task(
        id="root",
        objective="Start the day",
        subtasks=[
            Task(
                id="two",
                objective="log done",
                category=TaskCategory.DISCRETE,
                command="console log done",
                execution_order=2,
            ),
            Task(
                id="one",
                objective="loop",
                category=TaskCategory.SEQUENCE,
                command=FlowCommandInput(command="repeat 2 times", sequence=["console log hi"]),
                execution_order=1,
            ),
        ],
    )
    return Plan(name=name, task=root, current_state=PlanState(current_task_id="root"))


def test_plan_store_round_trip(tmp_path: Path) -> None:
    store = PlanStore(tmp_path)
    plan = build_plan()
    plan.current_state.completed_tasks.append("one")
    store.save(plan)

    reloaded = PlanStore(tmp_path)
    plans = reloaded.load_all()

    assert [p.name for p in plans] == ["Morning Routine!"]
    restored = reloaded.get("Morning Routine!")
    assert restored.current_state.completed_tasks == ["one"]
    assert isinstance(restored.get_task("one").command, FlowCommandInput)
    assert restored.parent_of(restored.get_task("two")).id == "root"
    assert (tmp_path / "default.yaml").exists()


def test_plan_store_skips_invalid_records(tmp_path: Path) -> None:
    valid = build_plan("valid").to_record()
    (tmp_path / "plans.yaml").write_text(
        yaml.safe_dump({"plans": [{"name": "no task"}, valid]}), encoding="utf-8"
    )

    plans = PlanStore(tmp_path).load_all()

    assert [plan.name for plan in plans] == ["valid"]


def test_plan_saved_as_command(tmp_path: Path) -> None:
    plan = build_plan()

    path = save_plan_as_command(plan, tmp_path)
    commands = load_command_files(tmp_path)

    assert path.name == plan_command_filename(plan.name) == "morning-routine.yaml"
    assert commands[0].template == "Morning Routine!"
    assert commands[0].format.description == "Start the day"
    assert commands[0].sequence[0] == FlowCommandInput(
        command="repeat 2 times", sequence=["console log hi"]
    )
    assert commands[0].sequence[1] == "console log done"


def test_plan_with_unplanned_leaf_cannot_be_saved(tmp_path: Path) -> None:
    plan = build_plan()
    plan.get_task("two").command = None

    with pytest.raises(ValueError, match="No command found for subtask: log done"):
        save_plan_as_command(plan, tmp_path)
