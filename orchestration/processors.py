"""Step processors - one per StepType, resolved once into a StepProcessorRegistry."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from core.application.interfaces import IFlowServiceClient

from .errors import UNKNOWN_STEP_TYPE, FlowConfigurationError
from .flow import FlowStep, StepType
from .models import ExecutionContext

DEFAULT_DELAY_MS = 1000


class StepProcessor(ABC):
    """Turns a step's configuration plus the execution context into output."""

    step_type: StepType

    def __init__(self, client: IFlowServiceClient) -> None:
        self._client = client

    @abstractmethod
    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        """Run the step.

        Raises:
            ProcessingError: If the backing service fails
        """

    @abstractmethod
    def validate_input(self, step: FlowStep, input_: object) -> bool:
        """Whether the step is well-formed enough to dispatch."""

    async def cleanup(self, context: ExecutionContext) -> None:
        """Release anything held for this run. Called once after the run."""


class AdapterStepProcessor(StepProcessor):
    """Invokes an adapter through the adapter execution service."""

    step_type = StepType.ADAPTER

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        adapter_id = step.configuration["adapter_id"]
        return await self._client.post(
            f"/adapters/{adapter_id}/execute",
            {
                "stepId": step.id,
                "executionId": context.execution_id,
                "configuration": step.configuration,
                "input": context.input_for(step),
            },
        )

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        return bool(step.configuration.get("adapter_id"))


class TransformationStepProcessor(StepProcessor):
    """Runs a data transformation through the transformation service."""

    step_type = StepType.TRANSFORMATION

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        return await self._client.post(
            "/transformations/execute",
            {
                "stepId": step.id,
                "executionId": context.execution_id,
                "transformationType": step.configuration["transformation_type"],
                "configuration": step.configuration,
                "input": context.input_for(step),
            },
        )

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        return bool(step.configuration.get("transformation_type"))


class ConditionStepProcessor(StepProcessor):
    """Evaluates a boolean expression against the current variables."""

    step_type = StepType.CONDITION

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        return await self._client.post(
            "/conditions/evaluate",
            {
                "stepId": step.id,
                "executionId": context.execution_id,
                "condition": step.configuration["condition"],
                "variables": context.variables,
                "input": context.input_for(step),
            },
        )

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        condition = step.configuration.get("condition")
        return isinstance(condition, str) and bool(condition.strip())


class LoopStepProcessor(StepProcessor):
    """Iterates a loop body through the loop execution service."""

    step_type = StepType.LOOP

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        return await self._client.post(
            "/loops/execute",
            {
                "stepId": step.id,
                "executionId": context.execution_id,
                "loopConfiguration": step.configuration["loop"],
                "input": context.input_for(step),
            },
        )

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        loop = step.configuration.get("loop")
        return isinstance(loop, Mapping) and bool(loop.get("source"))


class DelayStepProcessor(StepProcessor):
    """Paces execution through the server-side delay service."""

    step_type = StepType.DELAY

    async def process(self, step: FlowStep, context: ExecutionContext) -> Any:
        return await self._client.post(
            f"/flows/executions/{context.execution_id}/delay",
            {
                "stepId": step.id,
                "delay": step.configuration.get("delay", DEFAULT_DELAY_MS),
            },
        )

    def validate_input(self, step: FlowStep, input_: object) -> bool:
        delay = step.configuration.get("delay", DEFAULT_DELAY_MS)
        return isinstance(delay, int) and not isinstance(delay, bool) and delay >= 0


class StepProcessorRegistry:
    """Fixed mapping from step type to processor, read-only once built."""

    def __init__(
        self,
        processors: Mapping[StepType, StepProcessor],
        require_complete: bool = True,
    ) -> None:
        """Build the registry.

        Args:
            processors: Processor per step type
            require_complete: Reject a registry that leaves a step type uncovered

        Raises:
            FlowConfigurationError: If require_complete and a step type is missing
        """
        self._processors: dict[StepType, StepProcessor] = dict(processors)
        if require_complete:
            missing = [t.value for t in StepType if t not in self]
            if missing:
                raise FlowConfigurationError(
                    UNKNOWN_STEP_TYPE,
                    f"No processor registered for step types: {', '.join(missing)}",
                )

    def get(self, step_type: StepType) -> StepProcessor:
        """Processor for a step type.

        Raises:
            FlowConfigurationError: If no processor handles the step type
        """
        try:
            return self._processors[step_type]
        except KeyError:
            raise FlowConfigurationError(
                UNKNOWN_STEP_TYPE,
                f"No processor found for step type: {getattr(step_type, 'value', step_type)}",
            ) from None

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._processors

    def step_types(self) -> list[StepType]:
        return list(self._processors)


def create_default_registry(client: IFlowServiceClient) -> StepProcessorRegistry:
    """Registry with the five built-in processors sharing one client."""
    processors: list[StepProcessor] = [
        AdapterStepProcessor(client),
        TransformationStepProcessor(client),
        ConditionStepProcessor(client),
        LoopStepProcessor(client),
        DelayStepProcessor(client),
    ]
    return StepProcessorRegistry({p.step_type: p for p in processors})
