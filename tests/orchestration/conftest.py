"""Fixtures for flow execution engine tests."""

from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from core.infrastructure.adapters.notifications.logging_notification_service import (
    LoggingNotificationService,
)
from core.settings.modules.flow_engine_settings import FlowEngineSettings
from core.utils.datetime import utc_now
from orchestration.bus import ExecutionUpdateBus
from orchestration.flow import FlowDefinition, FlowStep, StepType
from orchestration.models import ExecutionContext
from orchestration.orchestrator import FlowExecutionEngine
from orchestration.processors import StepProcessor, StepProcessorRegistry

Behaviour = Callable[[FlowStep, ExecutionContext], Awaitable[Any]]

VALID_CONFIGURATION = {
    StepType.ADAPTER: {"adapter_id": "adapter-1"},
    StepType.TRANSFORMATION: {"transformation_type": "mapping"},
    StepType.CONDITION: {"condition": "amount > 10"},
    StepType.LOOP: {"loop": {"source": "items", "body": "sub-flow"}},
    StepType.DELAY: {"delay": 5},
}


class RecordingProcessor(StepProcessor):
    """Fake processor: runs a per-step behaviour and records every call."""

    def __init__(
        self,
        step_type: StepType,
        behaviours: dict[str, Behaviour],
        calls: list[tuple[str, object]],
        invalid_steps: set[str],
    ) -> None:
        self.step_type = step_type
        self._behaviours = behaviours
        self._invalid_steps = invalid_steps
        self.calls = calls
        self.cleanups = 0

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        self.calls.append((step.id, utc_now()))
        behaviour = self._behaviours.get(step.id)
        if behaviour is None:
            return {"step": step.id}
        return await behaviour(step, context)

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        return step.id not in self._invalid_steps

    async def cleanup(self, context: ExecutionContext) -> None:
        self.cleanups += 1


@pytest.fixture
def behaviours() -> dict[str, Behaviour]:
    """Step id -> async behaviour; steps without one return {"step": id}."""
    return {}


@pytest.fixture
def calls() -> list[tuple[str, object]]:
    return []


@pytest.fixture
def invalid_steps() -> set[str]:
    return set()


@pytest.fixture
def processors(behaviours, calls, invalid_steps) -> dict[StepType, RecordingProcessor]:
    return {
        step_type: RecordingProcessor(step_type, behaviours, calls, invalid_steps)
        for step_type in StepType
    }


@pytest.fixture
def notification_service() -> LoggingNotificationService:
    return LoggingNotificationService()


@pytest.fixture
def engine_settings() -> FlowEngineSettings:
    return FlowEngineSettings(default_timeout_ms=2000, max_retries=2, retry_backoff_ms=0)


@pytest.fixture
def engine(processors, notification_service, engine_settings) -> FlowExecutionEngine:
    return FlowExecutionEngine(
        registry=StepProcessorRegistry(processors),
        update_bus=ExecutionUpdateBus(),
        notification_service=notification_service,
        settings=engine_settings,
    )


@pytest.fixture
def make_flow() -> Callable[..., FlowDefinition]:
    """Build a flow whose steps are named s1..sN with valid configurations."""

    def _make_flow(
        *step_types: StepType,
        error_handling: str = "stop",
        timeout: int | None = None,
        dependencies: dict[str, list[str]] | None = None,
        variables: dict[str, object] | None = None,
        **settings: object,
    ) -> FlowDefinition:
        dependencies = dependencies or {}
        steps = [
            FlowStep(
                id=f"s{index}",
                name=f"Step {index}",
                type=step_type,
                configuration=dict(VALID_CONFIGURATION[step_type]),
                dependencies=dependencies.get(f"s{index}", []),
            )
            for index, step_type in enumerate(step_types, start=1)
        ]
        return FlowDefinition(
            id="flow-1",
            name="Order Sync",
            version=3,
            steps=steps,
            variables=variables or {},
            settings={"error_handling": error_handling, "timeout": timeout, **settings},
        )

    return _make_flow
