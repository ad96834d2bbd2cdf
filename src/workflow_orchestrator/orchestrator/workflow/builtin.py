"""Sample workflow definitions registered by default."""

from __future__ import annotations

from .models import WorkflowDefinition, WorkflowStep

VALIDATION_WORKFLOW = WorkflowDefinition(
    id="validation",
    name="Validation Workflow",
    description="Basic validation workflow template",
    version="1.0.0",
    steps=(
        WorkflowStep(id="validate-input", name="Validate Input", action="noop"),
        WorkflowStep(id="process", name="Process", action="noop"),
        WorkflowStep(id="complete", name="Complete", action="log"),
    ),
)

DATA_PIPELINE_WORKFLOW = WorkflowDefinition(
    id="data-pipeline",
    name="Data Pipeline",
    description="Sample data processing pipeline",
    version="1.0.0",
    steps=(
        WorkflowStep(id="extract", name="Extract Data", action="noop"),
        WorkflowStep(id="transform", name="Transform Data", action="noop"),
        WorkflowStep(id="load", name="Load Data", action="noop"),
    ),
)

BUILTIN_WORKFLOWS: tuple[WorkflowDefinition, ...] = (VALIDATION_WORKFLOW, DATA_PIPELINE_WORKFLOW)
