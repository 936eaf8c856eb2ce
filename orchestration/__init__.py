"""Orchestration layer - flow execution engine with live execution updates."""

from typing import TYPE_CHECKING

from .bus import ExecutionCallback, ExecutionUpdateBus
from .errors import (
    ExecutionNotFoundError,
    FlowConfigurationError,
    FlowEngineError,
    ProcessingError,
)
from .flow import (
    ErrorHandling,
    FlowDefinition,
    FlowSettings,
    FlowStep,
    RetryPolicy,
    StepType,
)
from .models import (
    ExecutionContext,
    ExecutionError,
    ExecutionMetrics,
    FlowExecution,
    StepExecution,
    StepLog,
)
from .orchestrator import FlowExecutionEngine
from .processors import StepProcessor, StepProcessorRegistry, create_default_registry

if TYPE_CHECKING:
    from core.application.interfaces import INotificationService
    from core.settings.modules.flow_engine_settings import FlowEngineSettings

__all__ = [
    "ErrorHandling",
    "ExecutionCallback",
    "ExecutionContext",
    "ExecutionError",
    "ExecutionMetrics",
    "ExecutionNotFoundError",
    "ExecutionUpdateBus",
    "FlowConfigurationError",
    "FlowDefinition",
    "FlowEngineError",
    "FlowExecution",
    "FlowExecutionEngine",
    "FlowSettings",
    "FlowStep",
    "ProcessingError",
    "RetryPolicy",
    "StepExecution",
    "StepLog",
    "StepProcessor",
    "StepProcessorRegistry",
    "StepType",
    "create_default_engine",
    "create_default_registry",
]


def create_default_engine(
    settings: "FlowEngineSettings",
    notification_service: "INotificationService | None" = None,
) -> FlowExecutionEngine:
    """Create an engine wired to the HTTP flow services.

    Args:
        settings: Engine settings (services base URL, timeouts, retries)
        notification_service: Optional user-facing notifier

    Returns:
        FlowExecutionEngine instance
    """
    from core.infrastructure.adapters.flow_services import FlowServiceClient

    client = FlowServiceClient.from_settings(settings)
    return FlowExecutionEngine(
        registry=create_default_registry(client),
        update_bus=ExecutionUpdateBus(),
        notification_service=notification_service,
        settings=settings,
    )
