from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkflowEvent:
    """A lifecycle signal emitted by the engine or the step manager.

    Event types use a ``<scope>:<what>`` naming, e.g. ``workflow:start`` or
    ``step:complete``. Listeners observe; they never drive execution.
    """

    type: str
    payload: dict[str, Any] = field(default_factory=dict)


EventListener = Callable[[WorkflowEvent], None]


class EventEmitter:
    """Synchronous fan-out to registered listeners.

    A failing listener is logged and skipped so it cannot break a running workflow.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def emit(self, event_type: str, **payload: Any) -> None:
        event = WorkflowEvent(type=event_type, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.debug(
                    "Event listener failed", extra={"event_type": event_type, "error": str(e)}
                )
