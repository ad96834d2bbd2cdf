"""Core package initialization."""

from workflow_orchestrator.core.config import StateConfig, StepConfig, WorkflowConfig

__all__ = [
    "StateConfig",
    "StepConfig",
    "WorkflowConfig",
]
