"""Restricted arithmetic/relational expression evaluator.

Conditions of ``if`` and ``while`` and the ``calculate`` command go through
here. Only literals, variable names, arithmetic, comparisons, boolean
operators and a handful of math functions are accepted; anything else is an
``ExpressionEvaluationError``.
"""

from __future__ import annotations

import ast
import math
import operator
from collections.abc import Callable, Mapping
from typing import Any

from core.errors import ExpressionEvaluationError

MAX_EXPONENT = 1000
MAX_STRING_LENGTH = 100_000


def _bounded_pow(base: Any, exponent: Any) -> Any:
    if (
        isinstance(base, int)
        and isinstance(exponent, int)
        and abs(base) > 1
        and abs(exponent) > MAX_EXPONENT
    ):
        raise ExpressionEvaluationError(f"Exponent too large: {exponent}")
    return operator.pow(base, exponent)


def _bounded_mul(left: Any, right: Any) -> Any:
    for text, count in ((left, right), (right, left)):
        if isinstance(text, str) and isinstance(count, int):
            if len(text) * count > MAX_STRING_LENGTH:
                raise ExpressionEvaluationError(
                    f"String repetition too long: {len(text)} * {count}"
                )
    return operator.mul(left, right)

_BINARY_OPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: _bounded_mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _bounded_pow,
}

_UNARY_OPS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS: dict[type[ast.cmpop], Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "floor": math.floor,
    "ceil": math.ceil,
}

_CONSTANTS: dict[str, Any] = {
    "true": True,
    "false": False,
    "True": True,
    "False": False,
    "pi": math.pi,
    "e": math.e,
}


def coerce_value(value: Any) -> Any:
    """Turn stored strings into numbers or booleans where they look like one."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text in ("true", "false"):
        return text == "true"
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return value


def evaluate(expression: str, variables: Mapping[str, Any] | None = None) -> Any:
    """Evaluate expression, resolving bare names against variables."""
    # ``^`` is exponentiation here, with the precedence of ``**``.
    text = expression.strip().replace("^", "**")
    if not text:
        raise ExpressionEvaluationError("Empty expression")
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise ExpressionEvaluationError(f"Failed to evaluate expression: {text}") from exc
    try:
        return _eval_node(tree.body, variables or {})
    except ExpressionEvaluationError:
        raise
    except (ArithmeticError, TypeError, ValueError) as exc:
        raise ExpressionEvaluationError(
            f"Failed to evaluate expression: {text} ({exc})"
        ) from exc


def evaluate_condition(expression: str, variables: Mapping[str, Any] | None = None) -> bool:
    return bool(evaluate(expression, variables))


def referenced_variables(expression: str) -> set[str]:
    """Names in expression that are neither constants nor functions."""
    try:
        tree = ast.parse(expression.strip().replace("^", "**"), mode="eval")
    except SyntaxError:
        return set()
    return {
        node.id
        for node in ast.walk(tree)
        if isinstance(node, ast.Name) and node.id not in _CONSTANTS and node.id not in _FUNCTIONS
    }


def _eval_node(node: ast.AST, variables: Mapping[str, Any]) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, int | float | str | bool):
        return node.value
    if isinstance(node, ast.Name):
        if node.id in variables:
            return coerce_value(variables[node.id])
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ExpressionEvaluationError(f"Undefined symbol {node.id}")
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left, variables)
        right = _eval_node(node.right, variables)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand, variables))
    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = _eval_node(value, variables)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = _eval_node(value, variables)
            if result:
                return result
        return result
    if isinstance(node, ast.Compare):
        left = _eval_node(node.left, variables)
        for op, comparator in zip(node.ops, node.comparators):
            if type(op) not in _COMPARE_OPS:
                raise ExpressionEvaluationError(f"Unsupported comparison: {type(op).__name__}")
            right = _eval_node(comparator, variables)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and not node.keywords
    ):
        args = [_eval_node(arg, variables) for arg in node.args]
        return _FUNCTIONS[node.func.id](*args)
    raise ExpressionEvaluationError(f"Unsupported expression element: {type(node).__name__}")
