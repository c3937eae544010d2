"""Prompt templates for the language-model planner."""

from __future__ import annotations

RELEVANT_COMMANDS_PROMPT = """\
You are analysing an automation objective and selecting relevant commands
from a provided list.

Available commands:
<commands>
{commands}
</commands>

Objective:
<objective>
{objective}
</objective>

Write a brief analysis of the objective in <analysis> tags, then list every
command that could help achieve it, one per line, inside <relevant_commands>
tags. Only use commands exactly as they appear in the list. When unsure
whether a command is relevant, include it. Leave the list empty if nothing
fits.
"""

CREATE_PLAN_PROMPT = """\
You turn a user's task description into a clear, actionable objective
statement and a short task name.

Task description:
<task_description>
{description}
</task_description>

Commands that may be used to carry the task out:
<available_commands>
{commands}
</available_commands>

The objective must state the goal specifically and be achievable. The name
must be a few words that identify the task. If crucial information is
missing, say what is needed in additionalInfoNeeded, otherwise leave it empty.

Answer with ONLY a JSON object:
{{
  "name": "<short task name>",
  "objective": "<objective statement>",
  "additionalInfoNeeded": "<missing information or empty string>"
}}
"""

CREATE_SUBTASKS_PROMPT = """\
You break a high-level objective into smaller subtasks that can be completed
with the available commands.

Current objective:
<current_objective>
{objective}
</current_objective>

How the main objective has been broken down so far:
<plan_hierarchy>
{tree}
</plan_hierarchy>

Available commands:
<available_commands>
{commands}
</available_commands>

Task categories:
- discrete: achievable by executing a single command.
- sequence: achievable by a series of commands with flow control.
- manual: needs a human or physical intervention.
- complex: needs breaking down further into subtasks.

Guidelines:
- Keep subtasks simple, unique and directly related to the objective.
- Use an available command whenever one fits, written out with concrete
  arguments in availableCommand; otherwise leave availableCommand empty.
- Impact scores (0-1) should sum to roughly 0.8-0.9.
- Be realistic about feasibility (0-1); prefer automation over manual work.

Answer with ONLY a JSON object:
{{
  "subtasks": [
    {{
      "objective": "<subtask objective>",
      "category": "discrete|sequence|manual|complex",
      "availableCommand": "<command or empty string>",
      "impact": 0.5,
      "impactRationale": "<why>",
      "feasibility": 0.8,
      "feasibilityRationale": "<why>",
      "executionOrder": 1
    }}
  ]
}}
"""

SEQUENCE_OF_COMMANDS_PROMPT = """\
You write a new automation command that achieves an objective using only
the available commands and these flow controls: repeat ${{x}} times,
repeat ${{x}} times with index ${{index}}, for each ${{itemVariable}} in
${{listVariable}}, for each line of file ${{filename}}, if ${{condition}},
while ${{condition}}, try.

Available commands:
<available_commands>
{commands}
</available_commands>

Objective:
<objective>
{objective}
</objective>

A sequence entry is either a command string or an object
{{"command": "<flow control>", "sequence": [...], "alternativeSequence": [...]}}.

Answer with ONLY a JSON object:
{{
  "format": "<short name for the new command, no placeholders>",
  "description": "<what it does>",
  "sequence": ["<first command>", "<second command>"]
}}
"""
