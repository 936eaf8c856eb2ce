"""Flow definitions - StepType, ErrorHandling, RetryPolicy, FlowStep, FlowDefinition."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StepType(str, Enum):
    """Closed set of step types the engine can dispatch."""

    ADAPTER = "adapter"
    TRANSFORMATION = "transformation"
    CONDITION = "condition"
    LOOP = "loop"
    DELAY = "delay"


class ErrorHandling(str, Enum):
    """What the engine does after a step fails."""

    STOP = "stop"
    RETRY = "retry"
    CONTINUE = "continue"


@dataclass
class RetryPolicy:
    """Retry policy for flow steps."""

    max_attempts: int = 1
    backoff_seconds: float = 0.0
    backoff_multiplier: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-indexed)."""
        if self.backoff_seconds <= 0:
            return 0.0
        return self.backoff_seconds * self.backoff_multiplier ** (attempt - 1)


class FlowSettings(BaseModel):
    """Flow-level execution settings.

    ``timeout``, ``max_retries`` and ``retry_backoff_ms`` fall back to the
    engine configuration when left unset.
    """

    model_config = ConfigDict(frozen=True)

    error_handling: ErrorHandling = ErrorHandling.STOP
    timeout: int | None = Field(default=None, gt=0, description="Step timeout in ms")
    max_retries: int | None = Field(default=None, ge=0)
    retry_backoff_ms: int | None = Field(default=None, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0)

    def retry_policy(self, default_max_retries: int, default_backoff_ms: int) -> RetryPolicy:
        """Build the per-step retry policy for these settings."""
        if self.error_handling is not ErrorHandling.RETRY:
            return RetryPolicy(max_attempts=1)

        retries = self.max_retries if self.max_retries is not None else default_max_retries
        backoff_ms = (
            self.retry_backoff_ms if self.retry_backoff_ms is not None else default_backoff_ms
        )
        return RetryPolicy(
            max_attempts=retries + 1,
            backoff_seconds=backoff_ms / 1000,
            backoff_multiplier=self.retry_backoff_multiplier,
        )


class FlowStep(BaseModel):
    """A single step in a flow."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    type: StepType
    configuration: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)


class FlowDefinition(BaseModel):
    """Definition of an integration flow.

    Steps run in declaration order. Dependencies name earlier steps whose
    output a step consumes; they never reorder execution.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    version: int | str = 1
    steps: list[FlowStep] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    settings: FlowSettings = Field(default_factory=FlowSettings)

    @model_validator(mode="after")
    def _check_step_references(self) -> "FlowDefinition":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            for dependency in step.dependencies:
                if dependency not in seen:
                    raise ValueError(
                        f"Step {step.id} depends on {dependency}, "
                        f"which is not declared before it"
                    )
            seen.add(step.id)
        return self
