"""FastAPI server adapter for workflow-orchestrator.

This module exposes a REST API over one workflow engine.

Design intent:
- Keep workflow semantics in `workflow_orchestrator.orchestrator.workflow.*`
- Keep server-specific concerns (routing, CORS, HTTP error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_orchestrator.server.app import create_app
