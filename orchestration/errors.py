"""Orchestration errors - processing, configuration and lookup failures."""

from datetime import datetime

from core.utils.datetime import utc_now

# Processing error codes
STEP_EXECUTION_FAILED = "STEP_EXECUTION_FAILED"
STEP_TIMEOUT = "STEP_TIMEOUT"
SERVICE_ERROR = "SERVICE_ERROR"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
INVALID_RESPONSE = "INVALID_RESPONSE"

# Configuration error codes
UNKNOWN_STEP_TYPE = "UNKNOWN_STEP_TYPE"
INVALID_STEP = "INVALID_STEP"

# Execution-level error codes
EXECUTION_FAILED = "EXECUTION_FAILED"
STEPS_FAILED = "STEPS_FAILED"
EXECUTION_CANCELLED = "EXECUTION_CANCELLED"


class FlowEngineError(Exception):
    """Base class for flow engine errors."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.timestamp: datetime = utc_now()


class ProcessingError(FlowEngineError):
    """A step processor could not produce output.

    Recovered into the step's error record; only aborts the run when the
    flow's error handling says so.
    """

    def __init__(
        self,
        message: str,
        code: str = STEP_EXECUTION_FAILED,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message)
        self.status_code = status_code


class FlowConfigurationError(FlowEngineError):
    """A flow or step is malformed. Always fatal to the run."""


class ExecutionNotFoundError(KeyError):
    """No active execution with the given id."""

    def __init__(self, execution_id: str) -> None:
        super().__init__(execution_id)
        self.execution_id = execution_id

    def __str__(self) -> str:
        return f"Execution {self.execution_id} is not active"
