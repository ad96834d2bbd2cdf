"""Execution of a single workflow step.

The step manager owns the action registry and the condition interpreter. It
never raises for workflow-level problems: unknown actions, handler exceptions
and timeouts all come back as a failed :class:`StepResult`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any

from .actions import ActionRegistry
from .conditions import evaluate_condition
from .events import EventEmitter
from .models import (
    ActionHandler,
    ConditionPredicate,
    StepResult,
    WorkflowContext,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

DEFAULT_STEP_TIMEOUT_MS = 30_000


class WorkflowError(Exception):
    """Base class for errors raised while running workflow steps."""


class UnknownActionError(WorkflowError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown action: {name}")
        self.name = name


class StepTimeoutError(WorkflowError):
    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Step execution timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _coerce_result(value: Any) -> StepResult:
    if isinstance(value, StepResult):
        return value
    if isinstance(value, Mapping):
        return StepResult.model_validate(value)
    raise WorkflowError(f"Action returned {type(value).__name__}, expected StepResult")


class StepManager:
    def __init__(
        self,
        *,
        default_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS,
        condition_fail_open: bool = True,
        registry: ActionRegistry | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.default_timeout_ms = default_timeout_ms
        self.condition_fail_open = condition_fail_open
        self.registry = registry if registry is not None else ActionRegistry()
        self.events = events if events is not None else EventEmitter()

    def register_action(self, name: str, handler: ActionHandler) -> None:
        self.registry.register(name, handler)

    def has_action(self, name: str) -> bool:
        return name in self.registry

    def get_registered_actions(self) -> list[str]:
        return self.registry.names()

    def evaluate_condition(
        self, condition: str | ConditionPredicate, context: WorkflowContext
    ) -> bool:
        return evaluate_condition(condition, context, fail_open=self.condition_fail_open)

    async def execute_step(
        self,
        step: WorkflowStep,
        context: WorkflowContext,
        *,
        timeout: int | None = None,
    ) -> StepResult:
        """Run `step` once against `context`.

        Args:
            step: Step to execute.
            context: Live instance context; the action may mutate its variables.
            timeout: Override in ms; falls back to the step timeout, then the default.

        Returns:
            The action's result with `duration` set, a skipped result when the
            condition is false, or a failed result describing the error.
        """

        start = time.monotonic()
        self.events.emit("step:start", step_id=step.id, step_name=step.name)

        try:
            if step.condition is not None and not self.evaluate_condition(
                step.condition, context
            ):
                logger.debug("Step skipped", extra={"step_id": step.id})
                self.events.emit("step:skipped", step_id=step.id, reason="Condition not met")
                return StepResult(success=True, output="Step skipped", metadata={"skipped": True})

            handler = step.action.resolve(self.registry)
            if handler is None:
                raise UnknownActionError(step.action.describe())

            timeout_ms = timeout or step.timeout or self.default_timeout_ms
            result = await self._run_with_timeout(handler, context, timeout_ms)
            result = result.model_copy(update={"duration": _elapsed_ms(start)})

            self.events.emit(
                "step:complete",
                step_id=step.id,
                step_name=step.name,
                success=result.success,
                duration=result.duration,
            )
            return result

        except Exception as e:
            duration = _elapsed_ms(start)
            error = str(e) or type(e).__name__
            logger.debug(
                "Step raised",
                extra={"step_id": step.id, "error": error, "duration": duration},
            )
            self.events.emit(
                "step:error",
                step_id=step.id,
                step_name=step.name,
                error=error,
                duration=duration,
            )
            return StepResult(success=False, error=error, duration=duration)

    async def _run_with_timeout(
        self, handler: ActionHandler, context: WorkflowContext, timeout_ms: int
    ) -> StepResult:
        async def invoke() -> StepResult:
            value = handler(context)
            if inspect.isawaitable(value):
                value = await value
            return _coerce_result(value)

        try:
            return await asyncio.wait_for(invoke(), timeout=timeout_ms / 1000)
        except TimeoutError as e:
            raise StepTimeoutError(timeout_ms) from e
