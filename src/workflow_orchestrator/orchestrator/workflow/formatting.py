"""Human-readable renderings of workflow results and catalogs for CLI/log output."""

from __future__ import annotations

from collections.abc import Iterable

from .models import WorkflowDefinition, WorkflowResult

RULE = "═" * 50


def format_result(result: WorkflowResult) -> str:
    mark = "✅" if result.success else "❌"
    lines = [
        "",
        f"{mark} Workflow Result: {result.workflow_id}",
        RULE,
        "",
        f"Instance: {result.instance_id}",
        f"Status: {result.status.value.upper()}",
        f"Duration: {result.duration / 1000:.2f}s",
        f"Steps: {result.completed_steps}/{result.total_steps}",
    ]
    if result.error:
        lines.append(f"Error: {result.error}")

    if result.step_results:
        lines.extend(["", "Step Results:"])
        for step_id, step_result in result.step_results.items():
            line = (
                f"  {'✓' if step_result.success else '✗'} {step_id}: "
                f"{'completed' if step_result.success else 'failed'}"
            )
            if step_result.duration:
                line += f" ({step_result.duration}ms)"
            lines.append(line)

    lines.extend(["", RULE, ""])
    return "\n".join(lines)


def format_workflows(workflows: Iterable[WorkflowDefinition]) -> str:
    workflows = list(workflows)
    if not workflows:
        return "No workflows registered.\n"

    lines = ["Available Workflows:", ""]
    for workflow in workflows:
        lines.append(f"  📋 {workflow.name} ({workflow.id})")
        lines.append(f"     {workflow.description}")
        lines.append(f"     Version: {workflow.version} | Steps: {len(workflow.steps)}")
        lines.append("")
    return "\n".join(lines) + "\n"
