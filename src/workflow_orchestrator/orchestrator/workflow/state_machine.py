from __future__ import annotations

from .models import WorkflowStatus

ALLOWED_TRANSITIONS: dict[WorkflowStatus, set[WorkflowStatus]] = {
    WorkflowStatus.PENDING: {WorkflowStatus.RUNNING, WorkflowStatus.CANCELLED},
    WorkflowStatus.RUNNING: {
        WorkflowStatus.COMPLETED,
        WorkflowStatus.FAILED,
        WorkflowStatus.PAUSED,
        WorkflowStatus.CANCELLED,
    },
    # failed: the step in flight when the pause was requested failed unrecoverably.
    WorkflowStatus.PAUSED: {
        WorkflowStatus.RUNNING,
        WorkflowStatus.FAILED,
        WorkflowStatus.CANCELLED,
    },
    WorkflowStatus.COMPLETED: set(),
    WorkflowStatus.FAILED: set(),
    WorkflowStatus.CANCELLED: set(),
}


class IllegalTransitionError(ValueError):
    def __init__(self, current: WorkflowStatus, to: WorkflowStatus) -> None:
        super().__init__(f"Illegal transition: {current.value} -> {to.value}")
        self.current = current
        self.to = to


def can_transition(current: WorkflowStatus, to: WorkflowStatus) -> bool:
    return to in ALLOWED_TRANSITIONS.get(current, set())


def transition(*, current: WorkflowStatus, to: WorkflowStatus) -> WorkflowStatus:
    if not can_transition(current, to):
        raise IllegalTransitionError(current, to)
    return to
