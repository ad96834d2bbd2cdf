"""Unit tests for the command line interface."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from workflow_orchestrator.orchestrator.main import (
    EXIT_FAILED,
    EXIT_NOT_FOUND,
    EXIT_OK,
    main,
)


@pytest.fixture(autouse=True)
def cli_env(temp_state_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.chdir(temp_state_dir.parent)
    monkeypatch.setenv("WORKFLOW_STATE_STORAGE_PATH", str(temp_state_dir))
    monkeypatch.setenv("WORKFLOW_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("WORKFLOW_LOG_JSON", "false")

    # main() reconfigures the root logger.
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield temp_state_dir
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_list(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["list"]) == EXIT_OK

    out = capsys.readouterr().out
    assert "Available Workflows:" in out
    assert "(validation)" in out


def test_run_and_inspect(capsys: pytest.CaptureFixture[str], temp_state_dir: Path) -> None:
    assert main(["run", "validation", "--var", "message=hi", "--var", "count=3"]) == EXIT_OK

    out = capsys.readouterr().out
    assert "✅ Workflow Result: validation" in out
    assert "Steps: 3/3" in out

    [state_file] = temp_state_dir.glob("*.json")
    instance_id = state_file.stem

    assert main(["status", instance_id]) == EXIT_OK
    status_out = capsys.readouterr().out
    assert '"status": "completed"' in status_out
    assert '"count": 3' in status_out

    assert main(["instances", "--status", "completed"]) == EXIT_OK
    assert instance_id in capsys.readouterr().out

    assert main(["stats"]) == EXIT_OK
    assert "completed  1" in capsys.readouterr().out

    assert main(["clear-completed"]) == EXIT_OK
    assert "Cleared 1 finished instances" in capsys.readouterr().out
    assert list(temp_state_dir.glob("*.json")) == []


def test_run_unknown_workflow(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["run", "nonexistent"]) == EXIT_NOT_FOUND
    assert "Workflow not found: nonexistent" in capsys.readouterr().out


def test_run_with_bad_var(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["run", "validation", "--var", "novalue"]) == EXIT_FAILED
    assert "expected NAME=VALUE" in capsys.readouterr().err


def test_unknown_instance_commands(capsys: pytest.CaptureFixture[str]) -> None:
    for command in ("status", "resume", "cancel"):
        assert main([command, "wf_missing"]) == EXIT_NOT_FOUND
    assert "Workflow instance not found: wf_missing" in capsys.readouterr().err


def test_cancel_finished_instance_fails(
    capsys: pytest.CaptureFixture[str], temp_state_dir: Path
) -> None:
    main(["run", "data-pipeline"])
    [state_file] = temp_state_dir.glob("*.json")
    capsys.readouterr()

    assert main(["cancel", state_file.stem]) == EXIT_FAILED
    assert "Cannot cancel workflow (status: completed)" in capsys.readouterr().err


def test_instances_empty(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["instances"]) == EXIT_OK
    assert "No workflow instances found" in capsys.readouterr().out


def test_invalid_configuration(
    capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("WORKFLOW_STEP_DEFAULT_TIMEOUT_MS", "0")

    assert main(["list"]) == EXIT_FAILED
    assert "Invalid configuration" in capsys.readouterr().err
