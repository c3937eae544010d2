"""Template matching and argument extraction tests."""

from __future__ import annotations

import pytest

from core.errors import ParseError
from interpreter.pattern_matcher import escape_newlines, extract_args, match_formats


def test_strict_match_takes_single_tokens() -> None:
    templates = ["console log ${log}", "wait ${duration} seconds"]

    assert match_formats("wait 1 seconds", templates) == ["wait ${duration} seconds"]
    assert match_formats("console log hello", templates) == ["console log ${log}"]


def test_loose_match_allows_whitespace_in_arguments() -> None:
    assert match_formats("console log hello world", ["console log ${log}"]) == [
        "console log ${log}"
    ]


def test_strict_matches_win_over_loose_ones() -> None:
    templates = ["open ${name}", "open ${name} in ${app}"]

    assert match_formats("open notes in editor", templates) == ["open ${name} in ${app}"]


def test_literal_template_matches_only_exact_text() -> None:
    assert match_formats("uninterrupt", ["uninterrupt"]) == ["uninterrupt"]
    assert match_formats("uninterrupt now", ["uninterrupt"]) == []


def test_no_match_returns_empty_list() -> None:
    assert match_formats("make coffee", ["console log ${log}"]) == []


def test_regex_characters_in_templates_are_literal() -> None:
    assert match_formats("sum (1+2)", ["sum (${expr})"]) == ["sum (${expr})"]
    assert match_formats("sum 1+2", ["sum (${expr})"]) == []


def test_extract_args_strips_quotes() -> None:
    args = extract_args('store greeting "hello there"', "store ${key} ${value}")

    assert args == {"key": "greeting", "value": "hello there"}


def test_extract_args_loose_single_argument() -> None:
    assert extract_args("console log hello world", "console log ${log}") == {
        "log": "hello world"
    }


def test_extract_args_rejects_unquoted_adjacent_arguments() -> None:
    with pytest.raises(ParseError, match="double-quoted"):
        extract_args("store greeting hello there", "store ${key} ${value}")


def test_extract_args_without_placeholders() -> None:
    assert extract_args("uninterrupt", "uninterrupt") == {}
    with pytest.raises(ParseError):
        extract_args("uninterrupt please", "uninterrupt")


def test_extract_args_mismatch_raises() -> None:
    with pytest.raises(ParseError):
        extract_args("make coffee", "console log ${log}")


def test_newlines_are_escaped_before_matching() -> None:
    assert escape_newlines("a\nb") == "a\\nb"
    assert extract_args("console log a\nb", "console log ${log}") == {"log": "a\\nb"}


@pytest.mark.parametrize(
    ("text", "template"),
    [
        ("wait 5 seconds", "wait ${duration} seconds"),
        ("console log hello world", "console log ${log}"),
        ('store greeting "hello there"', "store ${key} ${value}"),
        ("open notes in editor", "open ${name} in ${app}"),
        ("sum (1+2)", "sum (${expr})"),
    ],
)
def test_extracted_args_substitute_back_into_input(text: str, template: str) -> None:
    args = extract_args(text, template)

    rebuilt = template
    for name, value in args.items():
        rebuilt = rebuilt.replace("${" + name + "}", value)

    assert rebuilt == text.replace('"', "")
