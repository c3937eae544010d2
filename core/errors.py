"""Failure taxonomy shared by the interpreter and the plan engine.

Everything except ``TaskPreconditionError`` is recoverable: it is caught where
it originates and turned into a failing ``CommandResult``.
"""

from __future__ import annotations


class IntentRunnerError(Exception):
    """Base class for all runtime errors raised by this package."""


class ParseError(IntentRunnerError):
    """Input text cannot be matched or split into arguments."""


class MissingVariableError(IntentRunnerError):
    """A ``${name}`` reference has no binding in the variable store."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unable to find value for ${{{name}}} in store")
        self.name = name


class CommandExecutionError(IntentRunnerError):
    """A native handler or resolved command could not run."""


class ExpressionEvaluationError(IntentRunnerError):
    """A condition or arithmetic expression could not be evaluated."""


class PlannerError(IntentRunnerError):
    """The planner returned nothing usable."""


class ExecutionInterruptedError(IntentRunnerError):
    """Execution was interrupted between two commands."""


class TaskPreconditionError(IntentRunnerError):
    """A task was dispatched in a state that should never be executed.

    Not converted into a result: it signals a programming error.
    """


class LLMError(IntentRunnerError):
    """A language-model provider is unavailable or its call failed."""
