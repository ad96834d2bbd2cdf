"""Unit tests for the instance status state machine.

Illegal transitions fail loudly; terminal statuses allow nothing.
"""

from __future__ import annotations

import pytest

from workflow_orchestrator.orchestrator.workflow.models import WorkflowStatus
from workflow_orchestrator.orchestrator.workflow.state_machine import (
    IllegalTransitionError,
    can_transition,
    transition,
)


def test_transition_rejects_illegal_transitions() -> None:
    with pytest.raises(IllegalTransitionError):
        transition(current=WorkflowStatus.PENDING, to=WorkflowStatus.PAUSED)


@pytest.mark.parametrize(
    "terminal", [WorkflowStatus.COMPLETED, WorkflowStatus.FAILED, WorkflowStatus.CANCELLED]
)
def test_terminal_statuses_are_final(terminal: WorkflowStatus) -> None:
    assert terminal.is_terminal
    for target in WorkflowStatus:
        assert not can_transition(terminal, target)


def test_pause_resume_cycle() -> None:
    status = transition(current=WorkflowStatus.PENDING, to=WorkflowStatus.RUNNING)
    status = transition(current=status, to=WorkflowStatus.PAUSED)
    status = transition(current=status, to=WorkflowStatus.RUNNING)
    assert transition(current=status, to=WorkflowStatus.COMPLETED) == WorkflowStatus.COMPLETED
