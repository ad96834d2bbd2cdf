"""Workflow Orchestrator.

A durable, resumable step-execution engine:
- named, versioned workflow definitions run as independent instances
- one JSON snapshot per instance, reloaded at startup
- pause/resume/cancel, conditional steps, retries, branch jumps and timeouts
"""

__version__ = "0.1.0"

from workflow_orchestrator.core.config import WorkflowConfig
from workflow_orchestrator.orchestrator.workflow.engine import WorkflowEngine, create_engine

__all__ = ["__version__", "WorkflowConfig", "WorkflowEngine", "create_engine"]
