"""Durable storage for workflow instance state.

Each instance is persisted as one JSON file named after its instance id. The
directory listing is the index: it is read once at startup and the in-memory
map is the source of truth afterwards. Every write is a full snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import string
import tempfile
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from workflow_orchestrator.core.config import StateConfig
from workflow_orchestrator.orchestrator.workflow.models import (
    WorkflowContext,
    WorkflowState,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
_IMMUTABLE_FIELDS = frozenset({"instance_id"})


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def serialize_state(state: WorkflowState) -> dict[str, Any]:
    """Snapshot `state` as JSON-compatible data, preserving map insertion order."""

    return state.model_dump(mode="json")


def deserialize_state(data: Mapping[str, Any]) -> WorkflowState:
    return WorkflowState.model_validate(data)


class StateManager:
    """CRUD, queries and statistics over persisted workflow instances."""

    def __init__(self, config: StateConfig) -> None:
        """Initialize the state manager and load every persisted instance.

        Args:
            config: State configuration.
        """
        self.config = config
        self.storage_path = Path(config.storage_path).expanduser()
        self._states: dict[str, WorkflowState] = {}

        self.storage_path.mkdir(parents=True, exist_ok=True)
        self._load_states()

        logger.info(
            f"State manager initialized at: {self.storage_path}",
            extra={"instances": len(self._states)},
        )

    def _state_file(self, instance_id: str) -> Path:
        return self.storage_path / f"{instance_id}.json"

    def _load_states(self) -> None:
        for path in sorted(self.storage_path.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                state = deserialize_state(data)
            except (OSError, TypeError, ValueError, ValidationError) as e:
                # One unreadable file only costs that instance, never startup.
                logger.warning(f"Skipping unreadable state file {path.name}: {e}")
                continue
            self._states[state.instance_id] = state

    def generate_instance_id(self) -> str:
        timestamp = _to_base36(int(time.time() * 1000))
        suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
        return f"wf_{timestamp}_{suffix}"

    def create_state(
        self, workflow_id: str, initial_variables: Mapping[str, Any] | None = None
    ) -> WorkflowState:
        instance_id = self.generate_instance_id()
        if instance_id in self._states:
            raise RuntimeError(f"Instance id collision: {instance_id}")

        state = WorkflowState(
            instance_id=instance_id,
            workflow_id=workflow_id,
            status=WorkflowStatus.PENDING,
            context=WorkflowContext(
                workflow_id=workflow_id,
                instance_id=instance_id,
                variables=dict(initial_variables or {}),
            ),
            created_at=datetime.now(UTC),
        )

        self._states[instance_id] = state
        self.save_state(state)
        logger.debug(
            "State created", extra={"instance_id": instance_id, "workflow_id": workflow_id}
        )
        return state

    def get_state(self, instance_id: str) -> WorkflowState | None:
        return self._states.get(instance_id)

    def update_state(self, instance_id: str, **updates: Any) -> WorkflowState | None:
        """Merge `updates` into the in-memory record and persist the whole record.

        Returns:
            The updated state, or None if the instance is unknown.

        Raises:
            ValueError: For unknown or immutable field names.
        """
        state = self._states.get(instance_id)
        if state is None:
            return None

        for key in updates:
            if key in _IMMUTABLE_FIELDS:
                raise ValueError(f"Field {key!r} cannot be updated")
            if key not in WorkflowState.model_fields:
                raise ValueError(f"Unknown workflow state field: {key!r}")

        for key, value in updates.items():
            setattr(state, key, value)

        self.save_state(state)
        return state

    def save_state(self, state: WorkflowState) -> None:
        """Write a full snapshot of `state`, atomically replacing any previous file."""

        path = self._state_file(state.instance_id)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.storage_path, prefix=f".{path.name}.", suffix=".tmp", text=True
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(serialize_state(state), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, path)
        except Exception as e:
            logger.error(f"Failed to save state {state.instance_id}: {e}")
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

    def delete_state(self, instance_id: str) -> bool:
        if self._states.pop(instance_id, None) is None:
            return False
        self._state_file(instance_id).unlink(missing_ok=True)
        logger.debug("State deleted", extra={"instance_id": instance_id})
        return True

    def get_all_states(self) -> list[WorkflowState]:
        return list(self._states.values())

    def get_states_by_workflow(self, workflow_id: str) -> list[WorkflowState]:
        return [s for s in self._states.values() if s.workflow_id == workflow_id]

    def get_states_by_status(self, status: WorkflowStatus | str) -> list[WorkflowState]:
        wanted = WorkflowStatus(status)
        return [s for s in self._states.values() if s.status == wanted]

    def clear_completed(self) -> int:
        finished = [s.instance_id for s in self._states.values() if s.status.is_terminal]
        for instance_id in finished:
            self.delete_state(instance_id)
        if finished:
            logger.info(f"Cleared {len(finished)} finished workflow instances")
        return len(finished)

    def get_stats(self) -> dict[str, int]:
        stats = {"total": len(self._states)}
        stats.update({status.value: 0 for status in WorkflowStatus})
        for state in self._states.values():
            stats[state.status.value] += 1
        return stats
