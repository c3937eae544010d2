"""Language-model text generation and arithmetic commands."""

from __future__ import annotations

from typing import Any

from core.errors import CommandExecutionError, ExpressionEvaluationError
from core.session import InterpreterSession
from interpreter.command_types import CommandResult
from interpreter.expressions import evaluate
from tools.base_tool import BaseTool, NativeCommandSpec

GENERATED_TEXT_VARIABLE = "lastGeneratedText"


class TextTool(BaseTool):
    """``generate text`` stores its output in ``lastGeneratedText``."""

    def __init__(
        self, *args: Any, session: InterpreterSession, llm: Any | None = None, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.session = session
        self.llm = llm

    def command_specs(self) -> list[NativeCommandSpec]:
        return [
            NativeCommandSpec(
                "generate text ${prompt}",
                "Generate text with the language model; result in lastGeneratedText",
                self._generate,
            ),
            NativeCommandSpec(
                "calculate ${expression} into ${variableName}",
                "Evaluate an arithmetic expression and store the result",
                self._calculate,
            ),
        ]

    def _generate(self, args: dict[str, str]) -> CommandResult:
        if self.llm is None:
            raise CommandExecutionError("No language model configured")
        text = self.llm.chat(
            [{"role": "user", "content": args["prompt"]}],
            max_tokens=int(self.settings.get("max_tokens", 1000)),
        ).strip()
        self.session.store.set(GENERATED_TEXT_VARIABLE, text)
        return CommandResult.ok(text)

    def _calculate(self, args: dict[str, str]) -> CommandResult:
        try:
            value = evaluate(args["expression"], self.session.store.snapshot())
        except ExpressionEvaluationError as exc:
            raise CommandExecutionError(str(exc)) from exc
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        self.session.store.set(args["variableName"], str(value))
        return CommandResult.ok(f"{args['variableName']} = {value}")
