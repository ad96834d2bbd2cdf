"""Test configuration and fixtures."""

import json
from pathlib import Path

import pytest

from workflow_orchestrator.core.config import StateConfig, StepConfig, WorkflowConfig
from workflow_orchestrator.orchestrator.workflow.engine import WorkflowEngine, create_engine
from workflow_orchestrator.state.manager import StateManager


@pytest.fixture
def temp_state_dir(tmp_path: Path) -> Path:
    """Provide a temporary state directory."""
    state_dir = tmp_path / "workflows"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def state_config(temp_state_dir: Path) -> StateConfig:
    """Provide a test state configuration."""
    return StateConfig(storage_path=temp_state_dir)


@pytest.fixture
def workflow_config(state_config: StateConfig) -> WorkflowConfig:
    """Provide a test workflow configuration."""
    return WorkflowConfig(
        log_level="DEBUG",
        debug=True,
        state=state_config,
        step=StepConfig(default_timeout_ms=2_000),
    )


@pytest.fixture
def state_manager(state_config: StateConfig) -> StateManager:
    return StateManager(state_config)


@pytest.fixture
def engine(workflow_config: WorkflowConfig) -> WorkflowEngine:
    """A fresh engine per test; nothing is shared between tests."""
    return create_engine(workflow_config)


# A state file as written by earlier releases: camelCase keys and maps
# encoded as [key, value] pair lists.
LEGACY_STATE = {
    "instanceId": "wf_legacy_1",
    "workflowId": "validation",
    "status": "paused",
    "context": {
        "workflowId": "validation",
        "instanceId": "wf_legacy_1",
        "variables": {"message": "hi"},
        "stepResults": [
            ["validate-input", {"success": True, "output": "No operation performed", "duration": 1}]
        ],
        "currentStep": "validate-input",
        "metadata": {},
    },
    "stepExecutions": [
        [
            "validate-input",
            {
                "stepId": "validate-input",
                "stepName": "Validate Input",
                "status": "completed",
                "startedAt": "2024-01-01T00:00:00.000Z",
                "completedAt": "2024-01-01T00:00:00.001Z",
                "retries": 0,
                "result": {"success": True, "output": "No operation performed", "duration": 1},
            },
        ]
    ],
    "currentStepIndex": 1,
    "createdAt": "2024-01-01T00:00:00.000Z",
    "startedAt": "2024-01-01T00:00:00.000Z",
    "pausedAt": "2024-01-01T00:00:00.002Z",
}


@pytest.fixture
def legacy_state_file(temp_state_dir: Path) -> Path:
    path = temp_state_dir / "wf_legacy_1.json"
    path.write_text(json.dumps(LEGACY_STATE), encoding="utf-8")
    return path
