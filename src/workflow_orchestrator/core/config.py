"""Core configuration for the workflow orchestrator."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_orchestrator.orchestrator.logging import configure_logging


def _default_storage_path() -> Path:
    return Path.home() / ".workflow-orchestrator" / "workflows"


class StateConfig(BaseSettings):
    """Configuration for instance state persistence."""

    storage_path: Path = Field(
        default_factory=_default_storage_path,
        description="Directory holding one JSON file per workflow instance",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_STATE_",
        env_file=".env",
        extra="ignore",
    )


class StepConfig(BaseSettings):
    """Configuration for step execution."""

    default_timeout_ms: int = Field(
        default=30_000,
        gt=0,
        description="Timeout applied to steps that do not declare one",
    )
    condition_fail_open: bool = Field(
        default=True,
        description="Run steps whose condition cannot be parsed (False skips them)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_STEP_",
        env_file=".env",
        extra="ignore",
    )


class WorkflowConfig(BaseSettings):
    """Main configuration for the workflow orchestrator."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=True,
        description="Emit structured JSON log lines",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    register_builtin_workflows: bool = Field(
        default=True,
        description="Register the sample workflow definitions at startup",
    )

    state: StateConfig = Field(
        default_factory=StateConfig,
        description="State configuration",
    )
    step: StepConfig = Field(
        default_factory=StepConfig,
        description="Step execution configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = "DEBUG" if self.debug else self.log_level
        configure_logging(level, json_output=self.log_json)
