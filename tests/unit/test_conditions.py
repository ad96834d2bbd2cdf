"""Unit tests for the step condition mini-language."""

from __future__ import annotations

from typing import Any

import pytest

from workflow_orchestrator.orchestrator.workflow.conditions import (
    evaluate_condition,
    parse_value,
)
from workflow_orchestrator.orchestrator.workflow.models import WorkflowContext


def _ctx(**variables: Any) -> WorkflowContext:
    return WorkflowContext(workflow_id="wf", instance_id="wf_1", variables=variables)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("true", True),
        ("false", False),
        ("null", None),
        ("undefined", None),
        ("42", 42),
        ("-1.5", -1.5),
        ('"quoted value"', "quoted value"),
        ("bare", "bare"),
    ],
)
def test_parse_value(raw: str, expected: Any) -> None:
    value = parse_value(raw)
    assert value == expected
    assert type(value) is type(expected)


def test_bare_identifier_uses_truthiness() -> None:
    assert evaluate_condition("approved", _ctx(approved=True)) is True
    assert evaluate_condition("approved", _ctx(approved=0)) is False
    assert evaluate_condition("approved", _ctx()) is False


@pytest.mark.parametrize(
    ("condition", "variables", "expected"),
    [
        ("count > 5", {"count": 6}, True),
        ("count > 5", {"count": 5}, False),
        ("count >= 5", {"count": 5}, True),
        ("count <= 5", {"count": 4}, True),
        ("count < 5", {"count": 5}, False),
        ("count === 5", {"count": 5}, True),
        ("count == 5", {"count": 5.0}, True),
        ("count !== 5", {"count": 5}, False),
        ("count != 5", {"count": "5"}, True),
        ('env === "prod"', {"env": "prod"}, True),
        ("env === prod", {"env": "prod"}, True),
        ("flag === true", {"flag": True}, True),
        ("flag === 1", {"flag": True}, False),
        ("missing === null", {}, True),
        ("missing === undefined", {}, True),
        ("count>5", {"count": 10}, True),
    ],
)
def test_comparisons(condition: str, variables: dict[str, Any], expected: bool) -> None:
    assert evaluate_condition(condition, _ctx(**variables)) is expected


def test_unparseable_condition_fails_open() -> None:
    assert evaluate_condition("???", _ctx()) is True
    assert evaluate_condition("a and b", _ctx()) is True


class _Unequal:
    def __eq__(self, other: object) -> bool:
        raise RuntimeError("cannot compare")

    __hash__ = object.__hash__


@pytest.mark.parametrize(
    ("condition", "variables"),
    [
        ("count > 5", {}),
        ("count < 5", {}),
        ("count >= 5", {"count": None}),
        ("count <= 5", {"count": "abc"}),
        ('name > "a"', {"name": 3}),
        ("flag > 0", {"flag": True}),
    ],
)
def test_ordering_on_missing_or_mixed_types_is_false(
    condition: str, variables: dict[str, Any]
) -> None:
    assert evaluate_condition(condition, _ctx(**variables)) is False


def test_string_ordering() -> None:
    assert evaluate_condition('name > "abc"', _ctx(name="abd")) is True
    assert evaluate_condition("name < b", _ctx(name="a")) is True


def test_comparison_error_fails_open() -> None:
    assert evaluate_condition("value === 1", _ctx(value=_Unequal())) is True


def test_fail_closed_when_configured() -> None:
    assert evaluate_condition("???", _ctx(), fail_open=False) is False
    assert evaluate_condition("value === 1", _ctx(value=_Unequal()), fail_open=False) is False


def test_digit_separators_are_not_numbers() -> None:
    assert parse_value("1_000") == "1_000"
    assert evaluate_condition("x === 1_000", _ctx(x=1000)) is False
    assert evaluate_condition("x === 1_000", _ctx(x="1_000")) is True


def test_predicate_is_called_with_context() -> None:
    seen: list[WorkflowContext] = []

    def predicate(context: WorkflowContext) -> bool:
        seen.append(context)
        return context.variables["n"] % 2 == 0

    ctx = _ctx(n=4)
    assert evaluate_condition(predicate, ctx) is True
    assert seen == [ctx]
