"""Domain enums."""

from .execution_status import ExecutionStatus, StepStatus

__all__ = ["ExecutionStatus", "StepStatus"]
