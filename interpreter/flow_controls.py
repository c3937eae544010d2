"""Loop, conditional and try constructs addressed by template string.

Each construct receives its extracted arguments, two continuations that run
the node's ``sequence`` and ``alternativeSequence``, and the session's
variable store. It returns its own informational results followed by the
results of whatever bodies it ran; a failing last entry means the construct
failed.
"""

from __future__ import annotations

import functools
import logging
import math
from pathlib import Path

from core.errors import ExpressionEvaluationError
from core.session import VariableStore
from interpreter.command_types import (
    Command,
    CommandKind,
    CommandResult,
    FlowHandler,
    Format,
    SequenceRunner,
    last_failure_message,
    results_succeeded,
)
from interpreter.expressions import coerce_value, evaluate, referenced_variables

logger = logging.getLogger("ir.flow_controls")

LINE_VARIABLE = "lineOfFile"


def _parse_count(raw: str | None) -> int | None:
    value = coerce_value(raw) if raw is not None else None
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value) or value < 0 or int(value) != value:
        return None
    return int(value)


def _evaluate_condition(template: str, store: VariableStore) -> tuple[str, bool]:
    expanded = store.expand_known(template)
    return expanded, bool(evaluate(expanded, store.snapshot()))


def repeat_times(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    count = _parse_count(args.get("x"))
    if count is None:
        return [CommandResult.fail(f"Invalid number of times to repeat, x={args.get('x')}")]

    results: list[CommandResult] = []
    for _ in range(count):
        results.extend(run_sequence())
        if not results_succeeded(results):
            return results
    results.append(CommandResult.ok(f"Repeated {count} times"))
    return results


def repeat_times_with_index(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    count = _parse_count(args.get("x"))
    if count is None:
        return [CommandResult.fail(f"Invalid number of times to repeat, x={args.get('x')}")]
    index_name = args.get("index")
    if not index_name:
        return [CommandResult.fail("No index variable name provided")]

    results: list[CommandResult] = []
    for index in range(count):
        store.set(index_name, str(index))
        results.extend(run_sequence())
        if not results_succeeded(results):
            return results
    results.append(CommandResult.ok(f"Repeated {count} times"))
    return results


def for_each_item_in_list(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    item_name = args.get("itemVariable")
    list_name = args.get("listVariable")
    if not item_name or not list_name:
        return [CommandResult.fail("No list variable or item variable provided")]
    raw = store.get(list_name)
    if raw is None:
        return [CommandResult.fail(f"Variable {list_name} not found")]

    items = [item.strip() for item in str(raw).split(",")]
    results: list[CommandResult] = []
    for item in items:
        store.set(item_name, item)
        results.extend(run_sequence())
        if not results_succeeded(results):
            return results
    results.append(CommandResult.ok(f"Iterated over {len(items)} items of {list_name}"))
    return results


def _iterate_lines(
    lines: list[str], run_sequence: SequenceRunner, store: VariableStore
) -> list[CommandResult]:
    results: list[CommandResult] = []
    count = 0
    for line in lines:
        if not line.strip():
            continue
        count += 1
        store.set(LINE_VARIABLE, line)
        results.extend(run_sequence())
        if not results_succeeded(results):
            return results
    results.append(CommandResult.ok(f"Iterated over {count} lines"))
    return results


def for_each_line_of_file(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
    *,
    base_dir: Path | None = None,
) -> list[CommandResult]:
    filename = args.get("filename")
    if not filename:
        return [CommandResult.fail("No filename specified")]
    path = Path(filename).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    if not path.is_file():
        return [CommandResult.fail(f"File not found, filename={filename}")]
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return [CommandResult.fail(f"Could not read file, filename={filename}: {exc}")]
    return _iterate_lines(text.splitlines(), run_sequence, store)


def for_each_line_of_string(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    text = args.get("text", "")
    return _iterate_lines(text.replace("\\n", "\n").splitlines(), run_sequence, store)


def if_condition(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    template = args.get("condition")
    if not template:
        return [CommandResult.fail("No condition provided")]
    try:
        expanded, outcome = _evaluate_condition(template, store)
    except ExpressionEvaluationError as exc:
        return [CommandResult.fail(f"Failed to evaluate condition: {template} ({exc})")]

    results = [CommandResult.ok(f"Condition {expanded} evaluated to {outcome}")]
    results.extend(run_sequence() if outcome else run_alternative_sequence())
    return results


def while_condition(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    template = args.get("condition")
    if not template:
        return [CommandResult.fail("No condition provided")]

    results: list[CommandResult] = []
    iterations = 0
    while True:
        try:
            expanded, outcome = _evaluate_condition(template, store)
        except ExpressionEvaluationError as exc:
            results.append(
                CommandResult.fail(f"Failed to evaluate condition: {template} ({exc})")
            )
            return results
        logger.debug("Evaluating condition: %s => %s", expanded, outcome)
        if not outcome:
            break
        if iterations == 0 and not referenced_variables(expanded):
            logger.warning(
                "Condition %r references no variables and cannot change between iterations; "
                "use bare names such as 'while i < 3' instead of ${i}",
                expanded,
            )
        iterations += 1
        results.extend(run_sequence())
        if not results_succeeded(results):
            return results
    results.append(CommandResult.ok(f"Loop ran {iterations} times"))
    return results


def try_catch(
    args: dict[str, str],
    run_sequence: SequenceRunner,
    run_alternative_sequence: SequenceRunner,
    store: VariableStore,
) -> list[CommandResult]:
    results = run_sequence()
    if results_succeeded(results):
        return results
    message = last_failure_message(results)
    logger.info("Caught failed sequence, running alternative sequence: %s", message)
    results = [*results, CommandResult.ok(f"Caught failure: {message}")]
    results.extend(run_alternative_sequence())
    return results


FLOW_CONTROLS: dict[str, tuple[str, FlowHandler]] = {
    "repeat ${x} times": ("Run the sequence x times", repeat_times),
    "repeat ${x} times with index ${index}": (
        "Run the sequence x times, storing the 0-based counter in index",
        repeat_times_with_index,
    ),
    "for each ${itemVariable} in ${listVariable}": (
        "Run the sequence for each comma-separated item of a stored list",
        for_each_item_in_list,
    ),
    "for each line of file ${filename}": (
        "Run the sequence for each non-blank line of a file, bound to lineOfFile",
        for_each_line_of_file,
    ),
    "for each line of string ${text}": (
        "Run the sequence for each non-blank line of a string, bound to lineOfFile",
        for_each_line_of_string,
    ),
    "if ${condition}": (
        "Run the sequence when the condition holds, else the alternative sequence",
        if_condition,
    ),
    "while ${condition}": ("Run the sequence while the condition holds", while_condition),
    "try": ("Run the sequence, falling back to the alternative sequence on failure", try_catch),
}


def build_flow_commands(base_dir: Path | None = None) -> dict[str, Command]:
    """Build the flow-control table once; file paths resolve against base_dir."""
    commands: dict[str, Command] = {}
    for template, (description, handler) in FLOW_CONTROLS.items():
        if handler is for_each_line_of_file:
            handler = functools.partial(for_each_line_of_file, base_dir=base_dir)
        commands[template] = Command(
            format=Format(template=template, description=description),
            kind=CommandKind.FLOW,
            flow=handler,
            source="flow",
        )
    return commands
