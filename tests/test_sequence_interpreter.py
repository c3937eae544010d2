"""Sequence interpreter resolution and execution tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from core.errors import ParseError
from core.notifications import NotificationCenter
from core.session import InterpreterSession
from executor.safe_runner import SafeRunner
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionEngine
from interpreter.command_registry import CommandRegistry
from interpreter.command_types import Command, CommandKind, CommandResult, Format
from interpreter.flow_controls import build_flow_commands
from interpreter.nl_resolver import CommandResolver
from interpreter.sequence_runner import SequenceInterpreter
from tools.system_tools.console_tool import ConsoleTool


def function_command(template: str, handler: MagicMock) -> Command:
    return Command(format=Format(template=template), kind=CommandKind.FUNCTION, handler=handler)


def build_interpreter(
    tmp_path: Path,
    variables: dict[str, str] | None = None,
    resolver: CommandResolver | None = None,
) -> SequenceInterpreter:
    session = InterpreterSession(variables=variables)
    registry = CommandRegistry(flow_commands=build_flow_commands(tmp_path))
    return SequenceInterpreter(registry=registry, session=session, resolver=resolver)


def test_empty_sequence_returns_no_results(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)

    assert interpreter.execute([]) == []
    assert interpreter.session.is_running is False


def test_console_log_wait_console_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sleep = MagicMock()
    monkeypatch.setattr("tools.system_tools.console_tool.time.sleep", sleep)
    echo = MagicMock()
    interpreter = build_interpreter(tmp_path)
    runner = SafeRunner(
        permission_engine=PermissionEngine(),
        audit_logger=AuditLogger(tmp_path / "audit.jsonl"),
        workspace_dir=tmp_path,
    )
    console = ConsoleTool(
        name="console_tool",
        safe_runner=runner,
        workspace_dir=tmp_path,
        session=interpreter.session,
        notifications=NotificationCenter(),
        echo=echo,
    )
    interpreter.registry.register_many(console.build_commands())

    results = interpreter.execute(["console log hello", "wait 1 seconds", "console log world"])

    assert [result.success for result in results] == [True, True, True]
    assert [call.args[0] for call in echo.call_args_list] == ["hello", "world"]
    sleep.assert_called_once_with(1.0)


def test_arguments_are_injected_and_merged_into_store(tmp_path: Path) -> None:
    handler = MagicMock(return_value=CommandResult.ok())
    interpreter = build_interpreter(tmp_path, variables={"who": "Ada"})
    interpreter.registry.register(function_command("greet ${name}", handler))

    interpreter.execute(["greet ${who}"])

    handler.assert_called_once_with({"name": "Ada"})
    assert interpreter.session.store.get("name") == "Ada"


def test_sequence_command_runs_its_body(tmp_path: Path) -> None:
    record = MagicMock(return_value=CommandResult.ok())
    interpreter = build_interpreter(tmp_path)
    interpreter.registry.register(function_command("record ${value}", record))
    interpreter.registry.register(
        Command(
            format=Format(template="greet ${name}"),
            kind=CommandKind.SEQUENCE,
            sequence=["record ${name}"],
        )
    )

    results = interpreter.execute(["greet Ada"])

    record.assert_called_once_with({"value": "Ada"})
    assert results[-1].success is True


def test_stops_at_first_failure(tmp_path: Path) -> None:
    fail = MagicMock(return_value=CommandResult.fail("nope"))
    tick = MagicMock(return_value=CommandResult.ok())
    interpreter = build_interpreter(tmp_path)
    interpreter.registry.register(function_command("fail", fail))
    interpreter.registry.register(function_command("tick", tick))

    results = interpreter.execute(["fail", "tick"])

    assert len(results) == 1
    assert results[0].message == "nope"
    tick.assert_not_called()


def test_unknown_command_fails_without_resolver(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)

    results = interpreter.execute(["make coffee"])

    assert results[-1].success is False
    assert results[-1].message == "Unable to find command: make coffee"


def test_missing_variable_fails_before_resolution(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)

    results = interpreter.execute(["console log ${nope}"])

    assert results[-1].success is False
    assert "${nope}" in results[-1].message


def test_ambiguous_match_is_an_error(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)
    interpreter.registry.register(function_command("open ${app}", MagicMock()))
    interpreter.registry.register(function_command("open ${file}", MagicMock()))

    with pytest.raises(ParseError, match="Multiple commands found matching"):
        interpreter.resolve("open notes")

    results = interpreter.execute(["open notes"])
    assert results[-1].success is False
    assert "Multiple commands found matching" in results[-1].message


def test_duplicate_registration_is_rejected(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)
    interpreter.registry.register(function_command("tick", MagicMock()))

    with pytest.raises(ValueError):
        interpreter.registry.register(function_command("tick", MagicMock()))
    assert interpreter.registry.register_many([function_command("tick", MagicMock())]) == 0


def test_natural_language_fallback_resolves_literal_commands(tmp_path: Path) -> None:
    tick = MagicMock(return_value=CommandResult.ok("tick"))
    resolver = MagicMock(spec=CommandResolver)
    resolver.resolve.return_value = ["tick", "tick"]
    interpreter = build_interpreter(tmp_path, resolver=resolver)
    interpreter.registry.register(function_command("tick", tick))

    results = interpreter.execute(["please tick twice"])

    assert tick.call_count == 2
    assert results[-1].success is True
    text, formats, _ = resolver.resolve.call_args.args
    assert text == "please tick twice"
    assert "tick" in [fmt.template for fmt in formats]


def test_natural_language_suggestions_are_not_resolved_again(tmp_path: Path) -> None:
    resolver = MagicMock(spec=CommandResolver)
    resolver.resolve.return_value = ["still unknown"]
    interpreter = build_interpreter(tmp_path, resolver=resolver)

    results = interpreter.execute(["do something"])

    assert resolver.resolve.call_count == 1
    assert results[-1].message == "Unable to find command: still unknown"


def test_natural_language_can_be_disabled(tmp_path: Path) -> None:
    resolver = MagicMock(spec=CommandResolver)
    resolver.resolve.return_value = ["tick"]
    interpreter = build_interpreter(tmp_path, resolver=resolver)

    results = interpreter.execute(["please tick"], allow_nl=False)

    resolver.resolve.assert_not_called()
    assert results[-1].success is False


def test_exact_match_formats_are_hidden_from_resolver(tmp_path: Path) -> None:
    interpreter = build_interpreter(tmp_path)
    interpreter.registry.register(
        Command(
            format=Format(template="secret", exact_match=True),
            kind=CommandKind.FUNCTION,
            handler=MagicMock(),
        )
    )

    searchable = [fmt.template for fmt in interpreter.registry.formats(searchable_only=True)]

    assert "secret" not in searchable
    assert "secret" in [fmt.template for fmt in interpreter.registry.formats()]


def test_interrupt_stops_before_next_command(tmp_path: Path) -> None:
    tick = MagicMock(return_value=CommandResult.ok())
    interpreter = build_interpreter(tmp_path)

    def stop(args: dict[str, str]) -> CommandResult:
        interpreter.session.interrupt()
        return CommandResult.ok("stopping")

    interpreter.registry.register(function_command("stop", MagicMock(side_effect=stop)))
    interpreter.registry.register(function_command("tick", tick))

    results = interpreter.execute(["stop", "tick"])

    tick.assert_not_called()
    assert results[-1].success is False
    assert "interrupted" in results[-1].message.lower()

    interpreter.session.uninterrupt()
    assert interpreter.execute(["tick"])[-1].success is True
