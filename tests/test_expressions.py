"""Expression evaluator tests."""

from __future__ import annotations

import pytest

from core.errors import ExpressionEvaluationError
from interpreter.expressions import evaluate, referenced_variables


def test_caret_is_exponentiation() -> None:
    assert evaluate("total * 2 ^ 2", {"total": "4"}) == 16
    assert evaluate("2 ^ 10") == 1024


@pytest.mark.parametrize(
    "expression",
    ['9 ^ 9 ^ 9 > 1', "2 ** 100000", '"a" * 10 ** 10', '10 ** 10 * "a"', "2.0 ^ 5000"],
)
def test_oversized_results_are_rejected(expression: str) -> None:
    with pytest.raises(ExpressionEvaluationError):
        evaluate(expression)


def test_small_string_repetition_is_allowed() -> None:
    assert evaluate('"ab" * 3') == "ababab"


def test_referenced_variables_ignores_constants_and_functions() -> None:
    assert referenced_variables("max(i, 3) < pi and done") == {"i", "done"}
    assert referenced_variables("0 < 3") == set()
