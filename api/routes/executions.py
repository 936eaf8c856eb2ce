"""
Flow execution endpoints.

Start flows and control or inspect the executions currently in flight.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from api.dependencies import get_flow_engine
from core.domain.enums import ExecutionStatus
from core.domain.value_objects import ExecutionID
from orchestration import ExecutionNotFoundError, FlowDefinition, FlowExecutionEngine


router = APIRouter(prefix="/flows/executions", tags=["executions"])

# status a successful control operation leaves the execution in
_TRANSITION_STATUS = {
    "pause": ExecutionStatus.PAUSED,
    "resume": ExecutionStatus.RUNNING,
    "cancel": ExecutionStatus.CANCELLED,
}


class StartExecutionRequest(BaseModel):
    """Request body for starting a flow execution."""

    flow: FlowDefinition
    trigger_type: str = "manual"
    context: Dict[str, Any] = Field(default_factory=dict)
    triggered_by: str = "system"


def _validate_execution_id(execution_id: str) -> None:
    try:
        ExecutionID.parse(execution_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid execution_id format: {execution_id}"
        )


def _not_active(execution_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Execution {execution_id} is not active"
    )


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a flow execution",
    description="""
    Register a new execution for the given flow definition and run it
    in the background. Progress is visible through the active executions
    endpoints until the run reaches a terminal state.
    """
)
async def start_execution(
    request: StartExecutionRequest,
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> Dict[str, Any]:
    execution = engine.start(
        request.flow,
        trigger_type=request.trigger_type,
        context=request.context,
        triggered_by=request.triggered_by,
    )
    return execution.to_dict()


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    summary="List active executions",
)
async def list_active_executions(
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> List[Dict[str, Any]]:
    return [execution.to_dict() for execution in engine.list_active()]


@router.get(
    "/{execution_id}",
    status_code=status.HTTP_200_OK,
    summary="Get an active execution",
)
async def get_execution(
    execution_id: str,
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> Dict[str, Any]:
    """
    Get the current snapshot of an active execution.
    
    Args:
        execution_id: Execution ID to query
        engine: Flow execution engine
        
    Returns:
        Execution snapshot with per-step records and metrics
    """
    _validate_execution_id(execution_id)
    try:
        return engine.get_active(execution_id).to_dict()
    except ExecutionNotFoundError:
        raise _not_active(execution_id)


async def _transition(engine: FlowExecutionEngine, execution_id: str, action: str) -> Dict[str, Any]:
    _validate_execution_id(execution_id)
    operation = getattr(engine, action)
    try:
        changed = await operation(execution_id)
    except ExecutionNotFoundError:
        raise _not_active(execution_id)

    if not changed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot {action} execution {execution_id} in its current state"
        )

    return {"execution_id": execution_id, "status": _TRANSITION_STATUS[action].value}


@router.post("/{execution_id}/pause", summary="Pause an execution before its next step")
async def pause_execution(
    execution_id: str,
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> Dict[str, Any]:
    return await _transition(engine, execution_id, "pause")


@router.post("/{execution_id}/resume", summary="Resume a paused execution")
async def resume_execution(
    execution_id: str,
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> Dict[str, Any]:
    return await _transition(engine, execution_id, "resume")


@router.post("/{execution_id}/cancel", summary="Cancel a running or paused execution")
async def cancel_execution(
    execution_id: str,
    engine: FlowExecutionEngine = Depends(get_flow_engine),
) -> Dict[str, Any]:
    return await _transition(engine, execution_id, "cancel")
