"""Condition mini-language for step preconditions.

Supported forms:

- a predicate callable taking the context and returning a bool
- a bare identifier (``approved``): truthiness of ``variables["approved"]``
- ``<identifier> <op> <value>`` with ``op`` one of ``=== !== == != >= <= > <``

Values are parsed as ``true``/``false``, ``null``/``undefined`` (both ``None``),
numbers, double-quoted strings, or else taken verbatim as a string. The
strict and loose operators behave the same.

Ordering operators are false when a side is missing or the two sides are not
both numbers or both strings. Anything that does not parse, or raises while
comparing, evaluates to the ``fail_open`` default (``True`` unless configured
otherwise).
"""

from __future__ import annotations

import logging
import math
import operator
import re
from collections.abc import Callable
from typing import Any

from .models import ConditionPredicate, WorkflowContext

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COMPARISON_RE = re.compile(r"^(\w+)\s*(===|!==|==|!=|>=|<=|>|<)\s*(.+)$")

_LITERALS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}


def _equals(left: Any, right: Any) -> bool:
    # Booleans never equal numbers, unlike Python's True == 1.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _ordering(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # Missing values and mixed types are never ordered, so the comparison is false.
    def apply(left: Any, right: Any) -> bool:
        if _is_number(left) and _is_number(right):
            return compare(left, right)
        if isinstance(left, str) and isinstance(right, str):
            return compare(left, right)
        return False

    return apply


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "===": _equals,
    "==": _equals,
    "!==": lambda a, b: not _equals(a, b),
    "!=": lambda a, b: not _equals(a, b),
    ">": _ordering(operator.gt),
    "<": _ordering(operator.lt),
    ">=": _ordering(operator.ge),
    "<=": _ordering(operator.le),
}


def parse_value(raw: str) -> Any:
    """Parse the right-hand side of a comparison."""

    token = raw.strip()
    if token in _LITERALS:
        return _LITERALS[token]

    # Python accepts digit separators ("1_000"); they are not numbers here.
    if "_" not in token:
        try:
            return int(token)
        except ValueError:
            pass
        try:
            number = float(token)
        except ValueError:
            pass
        else:
            if not math.isnan(number):
                return number

    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return token[1:-1]
    return token


def evaluate_condition(
    condition: str | ConditionPredicate,
    context: WorkflowContext,
    *,
    fail_open: bool = True,
) -> bool:
    """Evaluate a step condition against `context`.

    Predicate callables are invoked directly and their exceptions propagate to
    the caller; only string conditions fall back to `fail_open`.
    """

    if callable(condition):
        return bool(condition(context))

    expression = condition.strip()
    try:
        if _IDENTIFIER_RE.match(expression):
            return bool(context.variables.get(expression))

        match = _COMPARISON_RE.match(expression)
        if match:
            name, op, raw_value = match.groups()
            actual = context.variables.get(name)
            return bool(_OPERATORS[op](actual, parse_value(raw_value)))
    except Exception as e:
        logger.debug(
            "Condition evaluation failed",
            extra={"condition": condition, "error": str(e), "fail_open": fail_open},
        )
        return fail_open

    logger.debug("Unrecognised condition", extra={"condition": condition, "fail_open": fail_open})
    return fail_open
