"""Command, format and result types used by the interpreter."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from core.session import VariableStore


class CommandKind(str, Enum):
    """How a resolved command is executed."""

    FUNCTION = "function"
    SEQUENCE = "sequence"
    FLOW = "flow"


class CommandExample(BaseModel):
    """Worked example shown to the natural-language resolver."""

    prompt: str
    output: list[str] = Field(default_factory=list)


class FlowCommandInput(BaseModel):
    """Structured program node: a command plus its nested sequences."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    command: str
    sequence: list[CommandInput] = Field(default_factory=list)
    alternative_sequence: list[CommandInput] | None = Field(
        default=None, alias="alternativeSequence"
    )


CommandInput = str | FlowCommandInput

FlowCommandInput.model_rebuild()


def command_text(command_input: CommandInput) -> str:
    """Return the command string of a plain or structured node."""
    if isinstance(command_input, FlowCommandInput):
        return command_input.command
    return command_input


def dump_command_input(command_input: CommandInput) -> str | dict:
    """Serialise a node using the camelCase keys of definition files."""
    if isinstance(command_input, FlowCommandInput):
        return command_input.model_dump(by_alias=True, exclude_none=True)
    return command_input


@dataclass
class CommandResult:
    """Outcome of one executed step."""

    success: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> CommandResult:
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, message: str) -> CommandResult:
        return cls(success=False, message=message)


def results_succeeded(results: list[CommandResult]) -> bool:
    """A result list fails when its last entry failed; execution stops there."""
    return not results or results[-1].success


def last_failure_message(results: list[CommandResult]) -> str:
    for result in reversed(results):
        if not result.success:
            return result.message
    return ""


@dataclass(frozen=True)
class Format:
    """Template with ``${name}`` placeholders plus its metadata."""

    template: str
    description: str = ""
    application: str | None = None
    exact_match: bool = False
    examples: tuple[CommandExample, ...] = ()


NativeHandler = Callable[[dict[str, str]], CommandResult]
SequenceRunner = Callable[[], list[CommandResult]]
FlowHandler = Callable[
    [dict[str, str], SequenceRunner, SequenceRunner, "VariableStore"],
    list[CommandResult],
]


@dataclass
class Command:
    """Executable unit bound to a format."""

    format: Format
    kind: CommandKind
    handler: NativeHandler | None = None
    sequence: list[CommandInput] = field(default_factory=list)
    flow: FlowHandler | None = None
    source: str = "builtin"

    @property
    def template(self) -> str:
        return self.format.template


@dataclass
class ResolvedCommand:
    """A command paired with the arguments extracted from the input text."""

    command: Command
    args: dict[str, str]
    sequence: list[CommandInput] = field(default_factory=list)
    alternative_sequence: list[CommandInput] | None = None
