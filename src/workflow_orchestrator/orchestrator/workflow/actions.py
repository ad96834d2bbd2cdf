from __future__ import annotations

import asyncio
import logging

from .models import ActionHandler, StepResult, WorkflowContext

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 1000


async def log_action(context: WorkflowContext) -> StepResult:
    """Emit `variables.message` and return it as output."""

    message = context.variables.get("message") or "No message"
    logger.info(str(message), extra={"instance_id": context.instance_id})
    return StepResult(success=True, output=message)


async def delay_action(context: WorkflowContext) -> StepResult:
    """Suspend for `variables.delay` milliseconds (default 1000)."""

    ms = context.variables.get("delay") or DEFAULT_DELAY_MS
    await asyncio.sleep(float(ms) / 1000)
    return StepResult(success=True, output=f"Delayed {ms}ms")


async def set_variable_action(context: WorkflowContext) -> StepResult:
    """Write `variables.varValue` into the variable named by `variables.varName`."""

    name = context.variables.get("varName")
    value = context.variables.get("varValue")
    if name:
        context.variables[str(name)] = value
    return StepResult(success=True, output={str(name): value})


async def conditional_action(context: WorkflowContext) -> StepResult:
    # Routing only: on_success / on_failure on the step decide where to go next.
    return StepResult(success=True, output=dict(context.variables))


async def noop_action(_context: WorkflowContext) -> StepResult:
    return StepResult(success=True, output="No operation performed")


BUILTIN_ACTIONS: dict[str, ActionHandler] = {
    "log": log_action,
    "delay": delay_action,
    "setVariable": set_variable_action,
    "conditional": conditional_action,
    "noop": noop_action,
}


class ActionRegistry:
    """Named action handlers, open for extension without touching the engine."""

    def __init__(self, *, include_builtins: bool = True) -> None:
        self._handlers: dict[str, ActionHandler] = {}
        if include_builtins:
            for name, handler in BUILTIN_ACTIONS.items():
                self.register(name, handler)

    def register(self, name: str, handler: ActionHandler) -> None:
        if not callable(handler):
            raise TypeError(f"Action handler for {name!r} is not callable")
        if name in self._handlers:
            logger.debug("Overwriting action handler", extra={"action": name})
        self._handlers[name] = handler

    def get(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def names(self) -> list[str]:
        return list(self._handlers)
