"""FastAPI app factory.

Endpoints are intentionally thin wrappers over one :class:`WorkflowEngine`.
Lifecycle endpoints are coroutines so they run on the same event loop as the
workflow runs they control.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from workflow_orchestrator import __version__
from workflow_orchestrator.core.config import WorkflowConfig
from workflow_orchestrator.orchestrator.workflow.engine import WorkflowEngine, create_engine
from workflow_orchestrator.orchestrator.workflow.models import (
    ExecutionOptions,
    WorkflowResult,
    WorkflowState,
    WorkflowStatus,
)
from workflow_orchestrator.server.config import ServerSettings
from workflow_orchestrator.server.models import ApiWorkflow, StartRequest

logger = logging.getLogger(__name__)


def _state_payload(state: WorkflowState) -> dict[str, Any]:
    return state.model_dump(mode="json")


def create_app(
    engine: WorkflowEngine | None = None,
    *,
    config: WorkflowConfig | None = None,
    settings: ServerSettings | None = None,
) -> FastAPI:
    settings = settings or ServerSettings()
    engine = engine or create_engine(config)

    app = FastAPI(
        title="Workflow Orchestrator",
        version=__version__,
        description="REST API over the durable workflow engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose the engine for request handlers and tests that want to reach it.
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _require_state(instance_id: str) -> WorkflowState:
        state = engine.get_workflow_state(instance_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Workflow instance not found")
        return state

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/v1/workflows", response_model=list[ApiWorkflow])
    def list_workflows() -> list[ApiWorkflow]:
        return [ApiWorkflow.from_definition(w) for w in engine.get_workflows()]

    @app.get("/api/v1/workflows/{workflow_id}", response_model=ApiWorkflow)
    def get_workflow(workflow_id: str) -> ApiWorkflow:
        definition = engine.get_workflow(workflow_id)
        if definition is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return ApiWorkflow.from_definition(definition)

    @app.post("/api/v1/workflows/{workflow_id}/start", response_model=WorkflowResult)
    async def start_workflow(workflow_id: str, req: StartRequest | None = None) -> WorkflowResult:
        if engine.get_workflow(workflow_id) is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        req = req or StartRequest()
        options = ExecutionOptions(
            initial_context=req.variables,
            start_from_step=req.start_from_step,
            timeout=req.timeout,
        )
        return await engine.start_workflow(workflow_id, options)

    @app.get("/api/v1/instances")
    def list_instances(
        status: WorkflowStatus | None = None, workflow_id: str | None = None
    ) -> list[dict[str, Any]]:
        states = engine.get_workflow_instances()
        if status is not None:
            states = [s for s in states if s.status == status]
        if workflow_id is not None:
            states = [s for s in states if s.workflow_id == workflow_id]
        return [_state_payload(s) for s in states]

    @app.get("/api/v1/instances/{instance_id}")
    def get_instance(instance_id: str) -> dict[str, Any]:
        return _state_payload(_require_state(instance_id))

    @app.post("/api/v1/instances/{instance_id}/pause")
    async def pause_instance(instance_id: str) -> dict[str, Any]:
        state = _require_state(instance_id)
        if not engine.pause_workflow(instance_id):
            raise HTTPException(
                status_code=409,
                detail=f"Workflow is not running (status: {state.status.value})",
            )
        return _state_payload(state)

    @app.post("/api/v1/instances/{instance_id}/resume", response_model=WorkflowResult)
    async def resume_instance(instance_id: str) -> WorkflowResult:
        state = _require_state(instance_id)
        if state.status != WorkflowStatus.PAUSED:
            raise HTTPException(
                status_code=409,
                detail=f"Workflow is not paused (status: {state.status.value})",
            )
        if instance_id in engine.get_running_workflows():
            raise HTTPException(
                status_code=409, detail="Workflow is still running its current step"
            )
        return await engine.resume_workflow(instance_id)

    @app.post("/api/v1/instances/{instance_id}/cancel")
    async def cancel_instance(instance_id: str) -> dict[str, Any]:
        state = _require_state(instance_id)
        if not engine.cancel_workflow(instance_id):
            raise HTTPException(
                status_code=409,
                detail=f"Workflow already finished (status: {state.status.value})",
            )
        return _state_payload(state)

    @app.delete("/api/v1/instances/{instance_id}")
    def delete_instance(instance_id: str) -> dict[str, bool]:
        _require_state(instance_id)
        return {"deleted": engine.state_manager.delete_state(instance_id)}

    @app.get("/api/v1/stats")
    def stats() -> dict[str, int]:
        return engine.get_stats()

    return app
