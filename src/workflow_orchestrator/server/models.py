"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from workflow_orchestrator.orchestrator.workflow.models import WorkflowDefinition


class ApiStep(BaseModel):
    id: str
    name: str
    action: str
    condition: str | None = None
    timeout: int | None = None
    retry_on_failure: bool = False
    max_retries: int = 0
    on_success: str | None = None
    on_failure: str | None = None


class ApiWorkflow(BaseModel):
    id: str
    name: str
    description: str
    version: str
    initial_context: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    steps: list[ApiStep] = Field(default_factory=list)

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition) -> ApiWorkflow:
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            version=definition.version,
            initial_context=dict(definition.initial_context),
            tags=list(definition.tags),
            steps=[
                ApiStep(
                    id=step.id,
                    name=step.name,
                    action=step.action.describe(),
                    # Predicates are code; only string conditions are shown.
                    condition=step.condition if isinstance(step.condition, str) else None,
                    timeout=step.timeout,
                    retry_on_failure=step.retry_on_failure,
                    max_retries=step.max_retries,
                    on_success=step.on_success,
                    on_failure=step.on_failure,
                )
                for step in definition.steps
            ],
        )


class StartRequest(BaseModel):
    variables: dict[str, Any] = Field(default_factory=dict)
    timeout: int | None = Field(default=None, gt=0)
    start_from_step: str | None = None
