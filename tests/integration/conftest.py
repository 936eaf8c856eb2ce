"""Pytest configuration and fixtures for API integration tests."""

import asyncio
from typing import Any, Dict, Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient

import api.dependencies as dependencies
from api.main import app
from core.application.interfaces import IFlowServiceClient
from core.infrastructure.adapters.notifications.logging_notification_service import (
    LoggingNotificationService,
)
from core.settings.modules.flow_engine_settings import FlowEngineSettings
from orchestration import FlowExecutionEngine, create_default_registry


class StubServiceClient(IFlowServiceClient):
    """Answers every service call; paths listed in ``slow_paths`` hang."""

    def __init__(self):
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.slow_paths: set = set()

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        self.requests.append((path, payload))
        if path in self.slow_paths:
            await asyncio.sleep(30)
        return {"records": [payload["stepId"]]}


@pytest.fixture
def service_client() -> StubServiceClient:
    return StubServiceClient()


@pytest.fixture
def notification_service() -> LoggingNotificationService:
    return LoggingNotificationService()


@pytest.fixture
def flow_engine(service_client, notification_service) -> FlowExecutionEngine:
    return FlowExecutionEngine(
        registry=create_default_registry(service_client),
        notification_service=notification_service,
        settings=FlowEngineSettings(default_timeout_ms=60000),
    )


@pytest.fixture
def test_client(monkeypatch, flow_engine, notification_service) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the test engine.

    The context manager keeps one event loop alive across requests, so
    executions keep running in the background between calls.
    """
    monkeypatch.setattr(dependencies, "_flow_engine", flow_engine)
    monkeypatch.setattr(dependencies, "_notification_service", notification_service)

    with TestClient(app) as client:
        yield client


@pytest.fixture
def flow_payload() -> Dict[str, Any]:
    return {
        "id": "orders-to-erp",
        "name": "Orders to ERP",
        "version": 2,
        "steps": [
            {
                "id": "fetch",
                "name": "Fetch orders",
                "type": "adapter",
                "configuration": {"adapter_id": "shop"},
            },
            {
                "id": "map",
                "name": "Map fields",
                "type": "transformation",
                "configuration": {"transformation_type": "mapping"},
                "dependencies": ["fetch"],
            },
        ],
        "settings": {"error_handling": "stop"},
    }
