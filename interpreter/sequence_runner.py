"""Sequence interpreter: resolve each program node and run it, stopping at the first failure.

Resolution order for one node:

1. registered command formats (one match wins, several is an error);
2. flow-control formats, which take the node's own nested sequences;
3. the natural-language resolver, whose literal outputs are resolved again
   with the resolver switched off.
"""

from __future__ import annotations

import logging

from core.errors import (
    CommandExecutionError,
    ExecutionInterruptedError,
    MissingVariableError,
    ParseError,
)
from core.session import InterpreterSession
from interpreter.command_registry import CommandRegistry
from interpreter.command_types import (
    CommandInput,
    CommandKind,
    CommandResult,
    FlowCommandInput,
    ResolvedCommand,
    command_text,
    results_succeeded,
)
from interpreter.nl_resolver import CommandResolver
from interpreter.pattern_matcher import extract_args

logger = logging.getLogger("ir.interpreter")


class SequenceInterpreter:
    """Executes CommandInput lists against one session."""

    def __init__(
        self,
        registry: CommandRegistry,
        session: InterpreterSession,
        resolver: CommandResolver | None = None,
    ) -> None:
        self.registry = registry
        self.session = session
        self.resolver = resolver

    # ── Entry point ──────────────────────────────────────────────────

    def execute(self, items: list[CommandInput], allow_nl: bool = True) -> list[CommandResult]:
        """Run items in order and return every result, oldest first.

        Processing stops at the first failing result, which is then the last
        entry of the returned list.
        """
        outermost = not self.session.is_running
        self.session.is_running = True
        try:
            return self._run(list(items), allow_nl)
        finally:
            if outermost:
                self.session.is_running = False

    # ── Resolution ───────────────────────────────────────────────────

    def resolve(self, command_input: CommandInput, allow_nl: bool = True) -> list[ResolvedCommand]:
        """Resolve one (already injected) node into commands with their arguments."""
        text = command_text(command_input)

        matches = self.registry.match_commands(text)
        if len(matches) > 1:
            templates = ", ".join(command.template for command in matches)
            raise ParseError(f"Multiple commands found matching {text}: {templates}")
        if matches:
            command = matches[0]
            return [ResolvedCommand(command=command, args=extract_args(text, command.template))]

        flows = self.registry.match_flow_controls(text)
        if len(flows) > 1:
            templates = ", ".join(command.template for command in flows)
            raise ParseError(f"Multiple flow controls found matching {text}: {templates}")
        if flows:
            command = flows[0]
            sequence: list[CommandInput] = []
            alternative: list[CommandInput] | None = None
            if isinstance(command_input, FlowCommandInput):
                sequence = list(command_input.sequence)
                alternative = command_input.alternative_sequence
            return [
                ResolvedCommand(
                    command=command,
                    args=extract_args(text, command.template),
                    sequence=sequence,
                    alternative_sequence=alternative,
                )
            ]

        if allow_nl and self.resolver is not None:
            suggestions = self.resolver.resolve(
                text,
                self.registry.formats(searchable_only=True),
                self.registry.examples(),
            )
            if suggestions:
                logger.info("Resolved %r via language model: %s", text, suggestions)
                resolved: list[ResolvedCommand] = []
                for suggestion in suggestions:
                    resolved.extend(self.resolve(suggestion, allow_nl=False))
                return resolved

        raise ParseError(f"Unable to find command: {text}")

    # ── Execution ────────────────────────────────────────────────────

    def _run(self, items: list[CommandInput], allow_nl: bool) -> list[CommandResult]:
        results: list[CommandResult] = []
        store = self.session.store
        for item in items:
            try:
                injected = store.inject_into_command_input(item)
                resolved = self.resolve(injected, allow_nl)
            except (MissingVariableError, ParseError) as exc:
                logger.warning("Could not resolve %r: %s", command_text(item), exc)
                results.append(CommandResult.fail(str(exc)))
                return results

            for entry in resolved:
                try:
                    if self.session.interrupted:
                        raise ExecutionInterruptedError(
                            f"Execution interrupted before: {entry.command.template}"
                        )
                    # Language-model output may still carry ${name} references.
                    args = {key: store.inject_into_string(value) for key, value in entry.args.items()}
                except (ExecutionInterruptedError, MissingVariableError) as exc:
                    results.append(CommandResult.fail(str(exc)))
                    return results
                store.merge(args)
                results.extend(self._dispatch(entry, args, allow_nl))
                if not results_succeeded(results):
                    return results
        return results

    def _dispatch(
        self, entry: ResolvedCommand, args: dict[str, str], allow_nl: bool
    ) -> list[CommandResult]:
        command = entry.command
        logger.debug("Running %s %s with %s", command.kind.value, command.template, args)

        if command.kind is CommandKind.FUNCTION:
            if command.handler is None:
                return [CommandResult.fail(f"No handler bound to {command.template}")]
            try:
                return [command.handler(args)]
            except CommandExecutionError as exc:
                return [CommandResult.fail(str(exc))]

        if command.kind is CommandKind.SEQUENCE:
            return self._run(list(command.sequence), allow_nl)

        if command.flow is None:
            return [CommandResult.fail(f"No flow control bound to {command.template}")]
        return command.flow(
            args,
            lambda: self._run(list(entry.sequence), allow_nl),
            lambda: self._run(list(entry.alternative_sequence or []), allow_nl),
            self.session.store,
        )
