"""Workflow engine: definition catalog, execution loop and lifecycle control.

Instances run independently as coroutines; steps within one instance are
strictly sequential. Pause and cancel are cooperative: they are observed at
step boundaries only, so an in-flight step always finishes (or times out)
and is recorded before the loop exits.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime

from workflow_orchestrator.core.config import WorkflowConfig
from workflow_orchestrator.state.manager import StateManager

from .builtin import BUILTIN_WORKFLOWS
from .events import EventEmitter, EventListener
from .formatting import format_result, format_workflows
from .models import (
    ActionHandler,
    ExecutionOptions,
    StepExecution,
    StepResult,
    StepStatus,
    WorkflowDefinition,
    WorkflowResult,
    WorkflowState,
    WorkflowStatus,
)
from .state_machine import can_transition, transition
from .step_manager import StepManager

logger = logging.getLogger(__name__)


class _StepFailed(Exception):
    """Unrecovered step failure; aborts the instance."""


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class WorkflowEngine:
    def __init__(
        self,
        state_manager: StateManager,
        step_manager: StepManager | None = None,
        *,
        register_builtins: bool = True,
    ) -> None:
        self.state_manager = state_manager
        self.events = EventEmitter()
        self.step_manager = step_manager or StepManager(events=self.events)
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._running: set[str] = set()

        if register_builtins:
            for definition in BUILTIN_WORKFLOWS:
                self.register_workflow(definition)

    # -- catalog ---------------------------------------------------------------

    def register_workflow(self, workflow: WorkflowDefinition) -> None:
        self._workflows[workflow.id] = workflow
        self.events.emit("workflow:registered", workflow_id=workflow.id, name=workflow.name)

    def unregister_workflow(self, workflow_id: str) -> bool:
        if self._workflows.pop(workflow_id, None) is None:
            return False
        self.events.emit("workflow:unregistered", workflow_id=workflow_id)
        return True

    def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        return self._workflows.get(workflow_id)

    def get_workflows(self) -> list[WorkflowDefinition]:
        return list(self._workflows.values())

    def register_action(self, name: str, handler: ActionHandler) -> None:
        self.step_manager.register_action(name, handler)

    def add_listener(self, listener: EventListener) -> None:
        self.events.add_listener(listener)

    def remove_listener(self, listener: EventListener) -> bool:
        return self.events.remove_listener(listener)

    # -- lifecycle -------------------------------------------------------------

    async def start_workflow(
        self, workflow_id: str, options: ExecutionOptions | None = None
    ) -> WorkflowResult:
        options = options or ExecutionOptions()
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return WorkflowResult(
                success=False,
                instance_id="",
                workflow_id=workflow_id,
                status=WorkflowStatus.FAILED,
                error=f"Workflow not found: {workflow_id}",
            )

        state = self.state_manager.create_state(
            workflow_id, {**workflow.initial_context, **options.initial_context}
        )
        return await self._execute(workflow, state, options)

    async def resume_workflow(self, instance_id: str) -> WorkflowResult:
        state = self.state_manager.get_state(instance_id)
        if state is None:
            return WorkflowResult(
                success=False,
                instance_id=instance_id,
                workflow_id="",
                status=WorkflowStatus.FAILED,
                error=f"Workflow instance not found: {instance_id}",
            )

        workflow = self._workflows.get(state.workflow_id)
        if state.status != WorkflowStatus.PAUSED:
            return self._snapshot_result(
                state,
                workflow,
                duration=state.total_duration or 0,
                error=f"Workflow is not paused (status: {state.status.value})",
            )

        if instance_id in self._running:
            # Paused but its in-flight step has not reached the boundary yet.
            return self._snapshot_result(
                state,
                workflow,
                duration=0,
                error="Workflow is still running its current step",
            )

        if workflow is None:
            return self._snapshot_result(
                state,
                None,
                duration=0,
                error=f"Workflow definition not found: {state.workflow_id}",
                status=WorkflowStatus.FAILED,
            )

        self.events.emit("workflow:resumed", instance_id=instance_id)
        logger.info("Resuming workflow", extra={"instance_id": instance_id})
        return await self._execute(workflow, state, ExecutionOptions())

    def pause_workflow(self, instance_id: str) -> bool:
        state = self.state_manager.get_state(instance_id)
        if state is None or state.status != WorkflowStatus.RUNNING:
            return False

        self.state_manager.update_state(
            instance_id,
            status=transition(current=state.status, to=WorkflowStatus.PAUSED),
            paused_at=datetime.now(UTC),
        )
        logger.info("Workflow pause requested", extra={"instance_id": instance_id})
        self.events.emit("workflow:paused", instance_id=instance_id)
        return True

    def cancel_workflow(self, instance_id: str) -> bool:
        state = self.state_manager.get_state(instance_id)
        if state is None or not can_transition(state.status, WorkflowStatus.CANCELLED):
            return False

        self._running.discard(instance_id)
        self.state_manager.update_state(
            instance_id,
            status=WorkflowStatus.CANCELLED,
            completed_at=datetime.now(UTC),
        )
        logger.info("Workflow cancelled", extra={"instance_id": instance_id})
        self.events.emit("workflow:cancelled", instance_id=instance_id)
        return True

    # -- execution loop --------------------------------------------------------

    async def _execute(
        self,
        workflow: WorkflowDefinition,
        state: WorkflowState,
        options: ExecutionOptions,
    ) -> WorkflowResult:
        start = time.monotonic()
        instance_id = state.instance_id

        self._running.add(instance_id)
        self.state_manager.update_state(
            instance_id,
            status=transition(current=state.status, to=WorkflowStatus.RUNNING),
            started_at=state.started_at or datetime.now(UTC),
        )
        logger.info(
            "Workflow started",
            extra={"instance_id": instance_id, "workflow_id": workflow.id},
        )
        self.events.emit("workflow:start", instance_id=instance_id, workflow_id=workflow.id)

        step_index = state.current_step_index
        if options.start_from_step:
            found = workflow.step_index(options.start_from_step)
            if found is not None:
                step_index = found

        try:
            while step_index < len(workflow.steps):
                if self._halted(instance_id):
                    break
                step_index = await self._run_step(workflow, state, step_index, options)
        except _StepFailed as e:
            return self._finish_failed(workflow, state, start, str(e))
        except Exception as e:
            # Callback and write errors end the instance; recording that may raise again.
            logger.exception("Workflow execution error", extra={"instance_id": instance_id})
            return self._finish_failed(workflow, state, start, str(e) or type(e).__name__)
        finally:
            self._running.discard(instance_id)

        if self._halted(instance_id) or not can_transition(
            state.status, WorkflowStatus.COMPLETED
        ):
            logger.info(
                "Workflow halted",
                extra={"instance_id": instance_id, "status": state.status.value},
            )
            return self._snapshot_result(state, workflow, duration=_elapsed_ms(start))

        duration = _elapsed_ms(start)
        self.state_manager.update_state(
            instance_id,
            status=transition(current=state.status, to=WorkflowStatus.COMPLETED),
            completed_at=datetime.now(UTC),
            total_duration=duration,
        )
        logger.info(
            "Workflow completed",
            extra={"instance_id": instance_id, "duration": duration},
        )
        self.events.emit("workflow:complete", instance_id=instance_id, success=True)
        return self._snapshot_result(state, workflow, duration=duration)

    def _halted(self, instance_id: str) -> bool:
        current = self.state_manager.get_state(instance_id)
        return current is None or current.status in (
            WorkflowStatus.PAUSED,
            WorkflowStatus.CANCELLED,
        )

    async def _run_step(
        self,
        workflow: WorkflowDefinition,
        state: WorkflowState,
        step_index: int,
        options: ExecutionOptions,
    ) -> int:
        """Execute the step at `step_index` with its retry policy.

        Returns:
            The index of the next step to run.

        Raises:
            _StepFailed: If the step failed and has no usable `on_failure` route.
        """
        step = workflow.steps[step_index]
        context = state.context
        context.current_step = step.id

        if options.on_step_start is not None:
            options.on_step_start(step.id)

        execution = StepExecution(
            step_id=step.id,
            step_name=step.name,
            status=StepStatus.RUNNING,
            started_at=datetime.now(UTC),
        )
        state.step_executions[step.id] = execution

        attempts_allowed = 1 + (step.max_retries if step.retry_on_failure else 0)
        result: StepResult | None = None
        for attempt in range(attempts_allowed):
            if attempt:
                execution.retries = attempt
                logger.debug(
                    "Retrying step",
                    extra={"instance_id": state.instance_id, "step_id": step.id, "retry": attempt},
                )
            result = await self.step_manager.execute_step(
                step, context, timeout=options.timeout or step.timeout
            )
            if result.success:
                break

        if result is None:
            result = StepResult(success=False, error="No result from step execution")

        execution.status = StepStatus.COMPLETED if result.success else StepStatus.FAILED
        execution.completed_at = datetime.now(UTC)
        execution.result = result
        context.step_results[step.id] = result

        next_index = step_index + 1
        target = step.on_success if result.success else step.on_failure
        if target is not None:
            jump = workflow.step_index(target)
            if jump is not None:
                next_index = jump

        self.state_manager.update_state(
            state.instance_id,
            current_step_index=next_index,
            context=context,
            step_executions=state.step_executions,
        )

        if options.on_step_complete is not None:
            options.on_step_complete(execution)

        if not result.success and not self._routes_failure(workflow, step.on_failure):
            raise _StepFailed(result.error or f"Step {step.id} failed")

        return next_index

    @staticmethod
    def _routes_failure(workflow: WorkflowDefinition, target: str | None) -> bool:
        return target is not None and workflow.step_index(target) is not None

    def _finish_failed(
        self,
        workflow: WorkflowDefinition,
        state: WorkflowState,
        start: float,
        error: str,
    ) -> WorkflowResult:
        instance_id = state.instance_id
        duration = _elapsed_ms(start)
        if not can_transition(state.status, WorkflowStatus.FAILED):
            # Cancelled while the failing step was in flight; cancellation stands.
            return self._snapshot_result(state, workflow, duration=duration)

        self.state_manager.update_state(
            instance_id,
            status=WorkflowStatus.FAILED,
            completed_at=datetime.now(UTC),
            error=error,
            total_duration=duration,
        )
        logger.warning(
            "Workflow failed",
            extra={"instance_id": instance_id, "error": error, "duration": duration},
        )
        self.events.emit("workflow:error", instance_id=instance_id, error=error)
        return self._snapshot_result(state, workflow, duration=duration, error=error)

    def _snapshot_result(
        self,
        state: WorkflowState,
        workflow: WorkflowDefinition | None,
        *,
        duration: int,
        error: str | None = None,
        status: WorkflowStatus | None = None,
    ) -> WorkflowResult:
        final_status = status or state.status
        return WorkflowResult(
            success=final_status == WorkflowStatus.COMPLETED and error is None,
            instance_id=state.instance_id,
            workflow_id=state.workflow_id,
            status=final_status,
            step_results=dict(state.context.step_results),
            final_context=dict(state.context.variables),
            duration=duration,
            error=error or state.error,
            completed_steps=state.current_step_index,
            total_steps=len(workflow.steps) if workflow is not None else 0,
        )

    # -- introspection ---------------------------------------------------------

    def get_workflow_state(self, instance_id: str) -> WorkflowState | None:
        return self.state_manager.get_state(instance_id)

    def get_workflow_instances(self) -> list[WorkflowState]:
        return self.state_manager.get_all_states()

    def get_running_workflows(self) -> list[str]:
        return list(self._running)

    def get_stats(self) -> dict[str, int]:
        return self.state_manager.get_stats()

    def clear_completed(self) -> int:
        return self.state_manager.clear_completed()

    def format_result(self, result: WorkflowResult) -> str:
        return format_result(result)

    def format_workflows(self) -> str:
        return format_workflows(self.get_workflows())

    def dispose(self) -> None:
        for instance_id in list(self._running):
            self.cancel_workflow(instance_id)
        self._running.clear()
        self._workflows.clear()
        self.events.remove_all_listeners()


def create_engine(config: WorkflowConfig | None = None) -> WorkflowEngine:
    """Construct an engine with its state and step managers from settings."""

    config = config or WorkflowConfig()
    step_manager = StepManager(
        default_timeout_ms=config.step.default_timeout_ms,
        condition_fail_open=config.step.condition_fail_open,
    )
    engine = WorkflowEngine(
        StateManager(config.state),
        step_manager,
        register_builtins=config.register_builtin_workflows,
    )
    step_manager.events = engine.events
    return engine
