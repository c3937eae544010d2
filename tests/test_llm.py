"""Language-model providers, command resolver and planner tests."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from core.errors import LLMError, PlannerError
from interpreter.command_registry import CommandRegistry
from interpreter.command_types import CommandExample, CommandKind, Format
from interpreter.nl_resolver import LLMCommandResolver, NullCommandResolver, parse_command_list
from llm.llm_factory import ConfiguredLLM, build_llm
from llm.local.ollama_provider import OllamaProvider
from llm.providers.groq_provider import GroqProvider
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OpenAIProvider
from planner.task_planner import LLMTaskPlanner, subtask_from_record
from planner.task_tree import TaskCategory

# ── Providers ────────────────────────────────────────────────────────


def test_factory_defaults_to_mock() -> None:
    assert isinstance(build_llm({}), MockProvider)


def test_factory_picks_configured_provider() -> None:
    config = {
        "models": {
            "llm": {
                "active_provider": "fast",
                "providers": {"fast": {"type": "groq", "model": "small-model"}},
            }
        }
    }

    llm = build_llm(config)

    assert isinstance(llm, GroqProvider)
    assert llm.model == "small-model"


def test_factory_wraps_provider_with_chat_defaults() -> None:
    config = {
        "models": {
            "llm": {
                "active_provider": "local",
                "providers": {
                    "local": {"type": "ollama", "temperature": 0.2, "timeout_seconds": 30}
                },
            }
        }
    }

    llm = build_llm(config)

    assert isinstance(llm, ConfiguredLLM)
    assert isinstance(llm.provider, OllamaProvider)
    assert llm.provider.timeout_seconds == 30.0
    assert llm.defaults == {"temperature": 0.2}


def test_factory_unknown_type_falls_back_to_mock() -> None:
    config = {"models": {"llm": {"active_provider": "x", "providers": {"x": {"type": "nope"}}}}}

    assert isinstance(build_llm(config), MockProvider)


def test_configured_defaults_yield_to_call_arguments() -> None:
    provider = MagicMock()
    provider.chat.return_value = "ok"
    llm = ConfiguredLLM(provider, {"temperature": 0.7, "max_tokens": 50})

    llm.chat([{"role": "user", "content": "hi"}], temperature=0)

    assert provider.chat.call_args.kwargs == {"temperature": 0, "max_tokens": 50}


def test_openai_provider_without_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(LLMError, match="OPENAI_API_KEY"):
        OpenAIProvider().chat([{"role": "user", "content": "hi"}])


def test_groq_provider_uses_its_own_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GROQ_API_KEY", raising=False)

    with pytest.raises(LLMError, match="GROQ_API_KEY"):
        GroqProvider().chat([{"role": "user", "content": "hi"}])


def test_ollama_without_binary_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("llm.local.ollama_provider.shutil.which", lambda _: None)

    with pytest.raises(LLMError):
        OllamaProvider().chat([{"role": "user", "content": "hi"}])


def test_mock_provider_answers_resolver_prompts_with_empty_list() -> None:
    resolver = LLMCommandResolver(MockProvider())

    assert resolver.resolve("make coffee", [Format(template="console log ${log}")], []) == []


# ── Command resolver ─────────────────────────────────────────────────


def test_parse_command_list_variants() -> None:
    assert parse_command_list('["console log hi"]') == ["console log hi"]
    assert parse_command_list('```json\n["a", "b"]\n```') == ["a", "b"]
    assert parse_command_list("Sure: ['console log hi']") == ["console log hi"]
    assert parse_command_list("[1, \"ok\", \"\"]") == ["ok"]
    assert parse_command_list("no list here") == []
    assert parse_command_list("[not valid") == []


def test_resolver_prompt_lists_formats_and_examples() -> None:
    llm = MagicMock()
    llm.chat.return_value = '["console log hello"]'
    resolver = LLMCommandResolver(llm)
    formats = [Format(template="console log ${log}", description="Print a message")]
    examples = [CommandExample(prompt="say hi", output=["console log hi"])]

    commands = resolver.resolve("say hello", formats, examples)

    assert commands == ["console log hello"]
    messages = llm.chat.call_args.args[0]
    assert messages[0]["role"] == "system"
    assert "Available Commands:" in messages[0]["content"]
    assert "console log ${log} - Print a message" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "say hi"}
    assert json.loads(messages[2]["content"]) == ["console log hi"]
    assert messages[-2]["content"] == "[]"
    assert messages[-1] == {"role": "user", "content": "say hello"}
    assert llm.chat.call_args.kwargs["temperature"] == 0


def test_resolver_swallows_provider_errors() -> None:
    llm = MagicMock()
    llm.chat.side_effect = LLMError("offline")

    assert LLMCommandResolver(llm).resolve("x", [], []) == []


def test_null_resolver_never_matches() -> None:
    assert NullCommandResolver().resolve("x", [], []) == []


# ── Planner ──────────────────────────────────────────────────────────


def test_subtask_with_available_command_is_discrete() -> None:
    task = subtask_from_record(
        {"objective": "say hi", "category": "Complex", "availableCommand": "console log hi"}
    )

    assert task.category is TaskCategory.DISCRETE
    assert task.command == "console log hi"


def test_subtask_without_command_keeps_category() -> None:
    task = subtask_from_record({"objective": "sign", "category": "Manual", "availableCommand": ""})

    assert task.category is TaskCategory.MANUAL
    assert task.command is None


def test_mock_planner_creates_and_expands_plan() -> None:
    planner = LLMTaskPlanner(MockProvider())
    formats = ["console log ${log}", "wait ${duration} seconds"]

    assert planner.identify_relevant_commands("say hi", formats) == formats
    plan = planner.create_plan("Say hi to the team", formats)
    subtasks = planner.expand(plan.task.objective, "", formats)

    assert plan.task.objective == "Say hi to the team"
    assert plan.task.category is TaskCategory.COMPLEX
    assert plan.current_state.current_task_id == plan.task.id
    assert len(subtasks) == 1
    assert subtasks[0].category is TaskCategory.MANUAL


def test_mock_planner_cannot_synthesize_sequences() -> None:
    with pytest.raises(PlannerError):
        LLMTaskPlanner(MockProvider()).synthesize_sequence("say hi", ["console log ${log}"])


def test_synthesized_sequence_is_registered_as_a_command() -> None:
    llm = MagicMock()
    llm.chat.return_value = json.dumps(
        {
            "format": "say hi twice",
            "description": "Greets twice",
            "sequence": ["console log hi", "console log hi"],
        }
    )
    registry = CommandRegistry()

    command = LLMTaskPlanner(llm, registry=registry).synthesize_sequence(
        "greet twice", ["console log ${log}"]
    )

    assert command == "say hi twice"
    registered = registry.get("say hi twice")
    assert registered is not None
    assert registered.kind is CommandKind.SEQUENCE
    assert registered.sequence == ["console log hi", "console log hi"]


def test_planner_wraps_provider_errors() -> None:
    llm = MagicMock()
    llm.chat.side_effect = LLMError("offline")

    with pytest.raises(PlannerError, match="offline"):
        LLMTaskPlanner(llm).expand("x", "", [])


def test_planner_rejects_replies_without_json() -> None:
    llm = MagicMock()
    llm.chat.return_value = "I cannot help with that."

    with pytest.raises(PlannerError):
        LLMTaskPlanner(llm).create_plan("x", [])
