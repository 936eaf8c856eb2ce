"""Tests for step processors and the processor registry."""

from typing import Any, Dict, List, Tuple

import pytest

from core.application.interfaces import IFlowServiceClient
from orchestration.errors import FlowConfigurationError, ProcessingError
from orchestration.flow import FlowStep, StepType
from orchestration.models import ExecutionContext
from orchestration.processors import (
    DEFAULT_DELAY_MS,
    AdapterStepProcessor,
    ConditionStepProcessor,
    DelayStepProcessor,
    LoopStepProcessor,
    TransformationStepProcessor,
    create_default_registry,
)


class FakeServiceClient(IFlowServiceClient):
    """Records requests and answers with a canned response."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.response = response if response is not None else {"ok": True}
        self.error = error

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        self.requests.append((path, payload))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def client():
    return FakeServiceClient()


@pytest.fixture
def context():
    ctx = ExecutionContext(
        flow_id="flow-1", execution_id="exec-1", variables={"threshold": 10}
    )
    ctx.record_result("fetch", [{"id": 1}])
    return ctx


def _step(step_type, configuration, dependencies=None, step_id="s1"):
    return FlowStep(
        id=step_id,
        name="Step",
        type=step_type,
        configuration=configuration,
        dependencies=dependencies or [],
    )


@pytest.mark.asyncio
async def test_adapter_posts_to_adapter_endpoint(client, context):
    step = _step(StepType.ADAPTER, {"adapter_id": "shop", "mode": "full"}, ["fetch"])

    result = await AdapterStepProcessor(client).process(step, context)

    assert result == {"ok": True}
    path, payload = client.requests[0]
    assert path == "/adapters/shop/execute"
    assert payload == {
        "stepId": "s1",
        "executionId": "exec-1",
        "configuration": {"adapter_id": "shop", "mode": "full"},
        "input": [{"id": 1}],
    }


@pytest.mark.asyncio
async def test_transformation_sends_type_and_empty_input_without_dependencies(client, context):
    step = _step(StepType.TRANSFORMATION, {"transformation_type": "mapping"})

    await TransformationStepProcessor(client).process(step, context)

    path, payload = client.requests[0]
    assert path == "/transformations/execute"
    assert payload["transformationType"] == "mapping"
    assert payload["input"] == {}


@pytest.mark.asyncio
async def test_condition_sends_expression_and_variables(client, context):
    step = _step(StepType.CONDITION, {"condition": "threshold > 5"})

    await ConditionStepProcessor(client).process(step, context)

    path, payload = client.requests[0]
    assert path == "/conditions/evaluate"
    assert payload["condition"] == "threshold > 5"
    assert payload["variables"] == {"threshold": 10}


@pytest.mark.asyncio
async def test_loop_sends_loop_configuration(client, context):
    loop = {"source": "items", "body": "sub-flow"}
    step = _step(StepType.LOOP, {"loop": loop}, ["fetch"])

    await LoopStepProcessor(client).process(step, context)

    path, payload = client.requests[0]
    assert path == "/loops/execute"
    assert payload["loopConfiguration"] == loop
    assert payload["input"] == [{"id": 1}]


@pytest.mark.asyncio
async def test_delay_uses_server_side_endpoint_and_default(client, context):
    await DelayStepProcessor(client).process(_step(StepType.DELAY, {}), context)
    await DelayStepProcessor(client).process(_step(StepType.DELAY, {"delay": 250}, step_id="s2"), context)

    assert client.requests[0] == (
        "/flows/executions/exec-1/delay",
        {"stepId": "s1", "delay": DEFAULT_DELAY_MS},
    )
    assert client.requests[1][1] == {"stepId": "s2", "delay": 250}


@pytest.mark.asyncio
async def test_service_errors_propagate_as_processing_errors(context):
    client = FakeServiceClient(error=ProcessingError("Bad Gateway", code="SERVICE_ERROR", status_code=502))
    step = _step(StepType.ADAPTER, {"adapter_id": "shop"})

    with pytest.raises(ProcessingError) as exc_info:
        await AdapterStepProcessor(client).process(step, context)

    assert exc_info.value.status_code == 502


@pytest.mark.parametrize(
    "processor_cls, step_type, configuration, valid",
    [
        (AdapterStepProcessor, StepType.ADAPTER, {"adapter_id": "shop"}, True),
        (AdapterStepProcessor, StepType.ADAPTER, {}, False),
        (TransformationStepProcessor, StepType.TRANSFORMATION, {"transformation_type": ""}, False),
        (ConditionStepProcessor, StepType.CONDITION, {"condition": "   "}, False),
        (ConditionStepProcessor, StepType.CONDITION, {"condition": 5}, False),
        (LoopStepProcessor, StepType.LOOP, {"loop": {"source": "items"}}, True),
        (LoopStepProcessor, StepType.LOOP, {"loop": "items"}, False),
        (DelayStepProcessor, StepType.DELAY, {}, True),
        (DelayStepProcessor, StepType.DELAY, {"delay": -1}, False),
        (DelayStepProcessor, StepType.DELAY, {"delay": True}, False),
        (DelayStepProcessor, StepType.DELAY, {"delay": "5s"}, False),
    ],
)
def test_validate_input(client, processor_cls, step_type, configuration, valid):
    step = _step(step_type, configuration)

    assert processor_cls(client).validate_input(step, {}) is valid


def test_default_registry_covers_every_step_type(client):
    registry = create_default_registry(client)

    assert set(registry.step_types()) == set(StepType)
    assert isinstance(registry.get(StepType.DELAY), DelayStepProcessor)
    assert StepType.LOOP in registry


def test_registry_lookup_of_missing_type_fails(client):
    registry = create_default_registry(client)

    with pytest.raises(FlowConfigurationError) as exc_info:
        registry.get("webhook")

    assert exc_info.value.code == "UNKNOWN_STEP_TYPE"
    assert "webhook" in exc_info.value.message


def test_context_results_are_write_once(context):
    with pytest.raises(ValueError):
        context.record_result("fetch", [])
