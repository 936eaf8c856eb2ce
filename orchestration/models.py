"""Orchestration models - execution records and the per-run ExecutionContext."""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from core.domain.enums.execution_status import ExecutionStatus, StepStatus
from core.utils.datetime import utc_now

from .flow import FlowStep


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def count_records(output: object) -> int:
    """Number of records a step output carries, for the data volume metric."""
    if output is None:
        return 0
    if isinstance(output, list):
        return len(output)
    if isinstance(output, Mapping) and isinstance(output.get("records"), list):
        return len(output["records"])
    return 1


@dataclass
class ExecutionError:
    """Error attached to a step or an execution."""

    code: str
    message: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class StepLog:
    """Timestamped, leveled message in a step's log."""

    level: str
    message: str
    timestamp: datetime = field(default_factory=utc_now)
    data: object = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "level": self.level,
            "message": self.message,
            "data": self.data,
        }


@dataclass
class StepExecution:
    """Runtime record of one step within one execution."""

    step_id: str
    step_name: str
    status: StepStatus = StepStatus.PENDING
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: int | None = None
    retry_count: int = 0
    output: object = None
    error: ExecutionError | None = None
    logs: list[StepLog] = field(default_factory=list)

    def add_log(self, level: str, message: str, data: object = None) -> None:
        """Append an entry to the step log."""
        self.logs.append(StepLog(level=level, message=message, data=data))

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "step_name": self.step_name,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "duration_ms": self.duration_ms,
            "retry_count": self.retry_count,
            "output": self.output,
            "error": self.error.to_dict() if self.error else None,
            "logs": [entry.to_dict() for entry in self.logs],
        }


@dataclass
class ExecutionMetrics:
    """Aggregate counters for an execution."""

    total_steps: int
    completed_steps: int = 0
    failed_steps: int = 0
    skipped_steps: int = 0
    data_processed: int = 0

    @property
    def progress(self) -> float:
        """Completed steps as a percentage of all steps."""
        if self.total_steps == 0:
            return 0.0
        return self.completed_steps / self.total_steps * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "failed_steps": self.failed_steps,
            "skipped_steps": self.skipped_steps,
            "data_processed": self.data_processed,
            "progress": round(self.progress, 2),
        }


@dataclass
class FlowExecution:
    """One run of a flow definition."""

    id: str
    flow_id: str
    flow_version: int | str
    started_at: datetime
    triggered_by: str
    trigger_type: str
    steps: list[StepExecution]
    metrics: ExecutionMetrics
    status: ExecutionStatus = ExecutionStatus.PENDING
    context: dict[str, object] = field(default_factory=dict)
    finished_at: datetime | None = None
    duration_ms: int | None = None
    error: ExecutionError | None = None

    def snapshot(self) -> "FlowExecution":
        """Detached copy handed to observers."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "flow_id": self.flow_id,
            "flow_version": self.flow_version,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "duration_ms": self.duration_ms,
            "triggered_by": self.triggered_by,
            "trigger_type": self.trigger_type,
            "context": self.context,
            "steps": [step.to_dict() for step in self.steps],
            "metrics": self.metrics.to_dict(),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class ExecutionContext:
    """Mutable state threaded through one run."""

    flow_id: str
    execution_id: str
    variables: dict[str, object] = field(default_factory=dict)
    step_results: dict[str, object] = field(default_factory=dict)
    current_step: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)

    def record_result(self, step_id: str, output: object) -> None:
        """Store a step's output. Each step writes its result once."""
        if step_id in self.step_results:
            raise ValueError(f"Result for step {step_id} already recorded")
        self.step_results[step_id] = output

    def input_for(self, step: FlowStep) -> object:
        """Output of the step's first dependency, or an empty mapping."""
        if step.dependencies:
            result = self.step_results.get(step.dependencies[0])
            if result is not None:
                return result
        return {}
