"""Unit tests for result and catalog rendering."""

from __future__ import annotations

from workflow_orchestrator.orchestrator.workflow.builtin import BUILTIN_WORKFLOWS
from workflow_orchestrator.orchestrator.workflow.formatting import (
    format_result,
    format_workflows,
)
from workflow_orchestrator.orchestrator.workflow.models import (
    StepResult,
    WorkflowResult,
    WorkflowStatus,
)


def test_format_successful_result() -> None:
    result = WorkflowResult(
        success=True,
        instance_id="wf_abc_123456",
        workflow_id="validation",
        status=WorkflowStatus.COMPLETED,
        step_results={
            "validate-input": StepResult(success=True, duration=12),
            "process": StepResult(success=True, duration=0),
        },
        duration=1234,
        completed_steps=2,
        total_steps=3,
    )

    text = format_result(result)

    assert "✅ Workflow Result: validation" in text
    assert "Instance: wf_abc_123456" in text
    assert "Status: COMPLETED" in text
    assert "Duration: 1.23s" in text
    assert "Steps: 2/3" in text
    assert "  ✓ validate-input: completed (12ms)" in text
    assert "  ✓ process: completed\n" in text
    assert "Error:" not in text


def test_format_failed_result() -> None:
    result = WorkflowResult(
        success=False,
        instance_id="",
        workflow_id="missing",
        status=WorkflowStatus.FAILED,
        error="Workflow not found: missing",
    )

    text = format_result(result)

    assert "❌ Workflow Result: missing" in text
    assert "Error: Workflow not found: missing" in text
    assert "Step Results:" not in text


def test_format_failed_step_line() -> None:
    result = WorkflowResult(
        success=False,
        instance_id="wf_1",
        workflow_id="test",
        status=WorkflowStatus.FAILED,
        step_results={"x": StepResult(success=False, error="boom", duration=5)},
    )

    assert "  ✗ x: failed (5ms)" in format_result(result)


def test_format_workflows() -> None:
    text = format_workflows(BUILTIN_WORKFLOWS)

    assert text.startswith("Available Workflows:")
    assert "📋 Validation Workflow (validation)" in text
    assert "📋 Data Pipeline (data-pipeline)" in text
    assert "Version: 1.0.0 | Steps: 3" in text


def test_format_empty_catalog() -> None:
    assert format_workflows([]) == "No workflows registered.\n"
