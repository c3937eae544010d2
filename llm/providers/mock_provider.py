"""Deterministic local fallback LLM provider for offline usage."""

from __future__ import annotations

import json
import re
from collections import Counter

from llm.base_llm import BaseLLM


class MockProvider(BaseLLM):
    """Rule-based local responder when external LLM backends are unavailable.

    It recognises the resolver and planner prompts and answers them in the
    expected shape without ever inventing commands: resolution finds
    nothing, and every objective is handed to a human.
    """

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        return [token for token in re.split(r"[^a-zA-Z0-9]+", text.lower()) if token]

    @staticmethod
    def _summarize_tokens(tokens: list[str], max_items: int = 8) -> str:
        if not tokens:
            return "no salient terms detected"
        top = Counter(tokens).most_common(max_items)
        return ", ".join(term for term, _ in top)

    @staticmethod
    def _between(text: str, tag: str) -> str:
        match = re.search(rf"<{tag}>(.*?)</{tag}>", text, re.DOTALL)
        return match.group(1).strip() if match else ""

    def _plan(self, prompt: str) -> str:
        description = self._between(prompt, "task_description")
        name = " ".join(self._tokenize(description)[:4]) or "plan"
        return json.dumps({"name": name, "objective": description, "additionalInfoNeeded": ""})

    def _subtasks(self, prompt: str) -> str:
        objective = self._between(prompt, "current_objective")
        return json.dumps({
            "subtasks": [
                {
                    "objective": objective,
                    "category": "manual",
                    "availableCommand": "",
                    "impact": 0.9,
                    "impactRationale": "Covers the whole objective.",
                    "feasibility": 0.1,
                    "feasibilityRationale": "Offline mode cannot plan automatically.",
                    "executionOrder": 1,
                }
            ]
        })

    def chat(self, messages: list[dict[str, str]], **kwargs: object) -> str:
        """Generate deterministic text from conversational messages."""
        _ = kwargs
        if not messages:
            return "No input received."
        system = " ".join(m["content"] for m in messages if m.get("role") == "system")
        user_messages = [m["content"] for m in messages if m.get("role") == "user"]
        prompt = user_messages[-1] if user_messages else messages[-1]["content"]

        if "Available Commands:" in system:
            return "[]"
        if "<relevant_commands>" in prompt:
            commands = self._between(prompt, "commands")
            return f"<analysis>Offline selection.</analysis>\n<relevant_commands>\n{commands}\n</relevant_commands>"
        if "<task_description>" in prompt:
            return self._plan(prompt)
        if "<current_objective>" in prompt:
            return self._subtasks(prompt)
        if '"sequence"' in prompt:
            return "{}"

        salient = self._summarize_tokens(self._tokenize(prompt))
        return f"Local fallback response. Salient terms: {salient}."
