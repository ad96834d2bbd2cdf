"""Data model for workflow definitions, instances and step results.

Definitions and steps are plain frozen dataclasses: they live only in memory
and may hold callables. Everything that is persisted (instance state, context,
step results) is a pydantic model so a snapshot can be dumped to JSON and
validated back without hand-written codecs.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED, WorkflowStatus.CANCELLED)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class _Record(BaseModel):
    # camelCase aliases let state files written by older tooling load unchanged.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _pairs_to_dict(value: Any) -> Any:
    """Accept the legacy `[[key, value], ...]` map encoding."""

    if isinstance(value, list):
        return {str(k): v for k, v in value}
    return value


class StepResult(_Record):
    success: bool
    output: Any = None
    error: str | None = None
    duration: int | None = Field(default=None, description="Wall-clock duration in ms")
    metadata: dict[str, Any] | None = None

    @property
    def skipped(self) -> bool:
        return bool(self.metadata and self.metadata.get("skipped"))


class StepExecution(_Record):
    step_id: str
    step_name: str
    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    retries: int = 0
    result: StepResult | None = None


class WorkflowContext(_Record):
    """Mutable per-instance context handed to actions by reference."""

    workflow_id: str
    instance_id: str
    variables: dict[str, Any] = Field(default_factory=dict)
    step_results: dict[str, StepResult] = Field(default_factory=dict)
    current_step: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("step_results", mode="before")
    @classmethod
    def _load_step_results(cls, value: Any) -> Any:
        return _pairs_to_dict(value)


class WorkflowState(_Record):
    """The unit of durability: one record (and one file) per instance."""

    instance_id: str
    workflow_id: str
    status: WorkflowStatus = WorkflowStatus.PENDING
    context: WorkflowContext
    step_executions: dict[str, StepExecution] = Field(default_factory=dict)
    current_step_index: int = 0
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    paused_at: datetime | None = None
    total_duration: int | None = None
    error: str | None = None

    @field_validator("step_executions", mode="before")
    @classmethod
    def _load_step_executions(cls, value: Any) -> Any:
        return _pairs_to_dict(value)

    @model_validator(mode="after")
    def _context_matches_instance(self) -> WorkflowState:
        if self.context.instance_id != self.instance_id:
            raise ValueError(
                f"Context belongs to {self.context.instance_id}, not {self.instance_id}"
            )
        return self


ActionHandler: TypeAlias = Callable[[WorkflowContext], Awaitable[StepResult] | StepResult]
ConditionPredicate: TypeAlias = Callable[[WorkflowContext], bool]


class ActionLookup(Protocol):
    def get(self, name: str) -> ActionHandler | None: ...


@dataclass(frozen=True, slots=True)
class NamedAction:
    """A step action referring to a handler in the action registry."""

    name: str

    def resolve(self, registry: ActionLookup) -> ActionHandler | None:
        return registry.get(self.name)

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class InlineAction:
    """A step action carrying its own handler."""

    handler: ActionHandler

    def resolve(self, _registry: ActionLookup) -> ActionHandler | None:
        return self.handler

    def describe(self) -> str:
        return getattr(self.handler, "__name__", "<inline>")


ActionRef: TypeAlias = NamedAction | InlineAction


def as_action_ref(action: ActionRef | str | ActionHandler) -> ActionRef:
    if isinstance(action, NamedAction | InlineAction):
        return action
    if isinstance(action, str):
        return NamedAction(action)
    if callable(action):
        return InlineAction(action)
    raise TypeError(f"Invalid action type: {type(action).__name__}")


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    """One unit of work within a definition.

    `action` may be given as a registered action name or an inline handler; either
    is normalised to a :class:`NamedAction` / :class:`InlineAction`.
    """

    id: str
    name: str
    action: ActionRef | str | ActionHandler
    description: str = ""
    condition: str | ConditionPredicate | None = None
    timeout: int | None = None
    retry_on_failure: bool = False
    max_retries: int = 0
    on_success: str | None = None
    on_failure: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "action", as_action_ref(self.action))
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0 (step {self.id})")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0 ms (step {self.id})")


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    id: str
    name: str
    steps: tuple[WorkflowStep, ...]
    description: str = ""
    version: str = "1.0.0"
    initial_context: Mapping[str, Any] = field(default_factory=dict)
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "tags", tuple(self.tags))
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id {step.id!r} in workflow {self.id!r}")
            seen.add(step.id)

    def step_index(self, step_id: str) -> int | None:
        for idx, step in enumerate(self.steps):
            if step.id == step_id:
                return idx
        return None


@dataclass(slots=True)
class ExecutionOptions:
    initial_context: dict[str, Any] = field(default_factory=dict)
    start_from_step: str | None = None
    timeout: int | None = None
    on_step_start: Callable[[str], None] | None = None
    on_step_complete: Callable[[StepExecution], None] | None = None


class WorkflowResult(BaseModel):
    """Outcome returned by start/resume for every terminal or paused outcome."""

    success: bool
    instance_id: str
    workflow_id: str
    status: WorkflowStatus
    step_results: dict[str, StepResult] = Field(default_factory=dict)
    final_context: dict[str, Any] = Field(default_factory=dict)
    duration: int = 0
    error: str | None = None
    completed_steps: int = 0
    total_steps: int = 0
