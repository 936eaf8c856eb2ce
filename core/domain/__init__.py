"""Domain layer - pure domain models."""

from .enums import ExecutionStatus, StepStatus
from .value_objects import ExecutionID

__all__ = [
    "ExecutionID",
    "ExecutionStatus",
    "StepStatus",
]
