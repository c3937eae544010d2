"""Template matching and argument extraction for ``${name}`` formats.

Matching runs in two phases. The strict phase only lets a placeholder take a
double-quoted string or a single token without whitespace; if any template
matches that way, those matches win. Otherwise the loose phase lets a
placeholder take any run of characters.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from core.errors import ParseError

PLACEHOLDER_PATTERN = re.compile(r"\$\{(\w+)\}")

_STRICT_GROUP = r'(".+"|\S+)'
_LOOSE_GROUP = r"(.+)"
_ADJACENT_PLACEHOLDERS = re.compile(r"\$\{\w+\}\s*\$\{\w+\}")


def escape_newlines(text: str) -> str:
    """Replace literal newlines with the two-character escape ``\\n``."""
    return text.replace("\n", "\\n")


def placeholder_names(template: str) -> list[str]:
    return PLACEHOLDER_PATTERN.findall(template)


def _template_regex(template: str, group: str) -> re.Pattern[str]:
    parts: list[str] = []
    cursor = 0
    for match in PLACEHOLDER_PATTERN.finditer(template):
        parts.append(re.escape(template[cursor : match.start()]))
        parts.append(group)
        cursor = match.end()
    parts.append(re.escape(template[cursor:]))
    return re.compile("".join(parts))


def match_formats(text: str, templates: Iterable[str]) -> list[str]:
    """Return every template the input matches, strict phase first."""
    text = escape_newlines(text)
    candidates = list(templates)

    strict = [
        template
        for template in candidates
        if text == template or _template_regex(template, _STRICT_GROUP).fullmatch(text)
    ]
    if strict:
        return strict

    return [
        template
        for template in candidates
        if _template_regex(template, _LOOSE_GROUP).fullmatch(text)
    ]


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def extract_args(text: str, template: str) -> dict[str, str]:
    """Split input text into the named arguments of a template.

    Raises ``ParseError`` when the input does not fit the template, or when
    two unquoted arguments would sit next to each other with nothing but
    whitespace between them.
    """
    text = escape_newlines(text)
    names = placeholder_names(template)
    if not names:
        if text != template:
            raise ParseError(f"Could not parse input: {text} with format: {template}")
        return {}

    strict_group = r'\s*(".+"|\S+)\s*'
    match = _template_regex(template, strict_group).fullmatch(text)
    if match is None:
        if _ADJACENT_PLACEHOLDERS.search(template):
            raise ParseError(
                f"Could not parse input: {text} with format: {template} - arguments "
                "must be double-quoted if they contain whitespace and are next to "
                "another argument"
            )
        match = _template_regex(template, r"\s*(.+)\s*").fullmatch(text)
        if match is None:
            raise ParseError(f"Could not parse input: {text} with format: {template}")

    values = match.groups()
    if len(values) != len(names):
        raise ParseError(f"Could not parse input: {text} with format: {template}")
    return {name: _strip_quotes(value) for name, value in zip(names, values)}
