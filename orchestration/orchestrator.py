"""Flow execution engine - runs flow definitions step by step with live updates."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from core.application.interfaces import INotificationService
from core.domain.enums.execution_status import ExecutionStatus, StepStatus
from core.domain.value_objects import ExecutionID
from core.infrastructure.logging import get_logger
from core.settings.modules.flow_engine_settings import FlowEngineSettings
from core.utils.datetime import elapsed_ms, utc_now

from .bus import ExecutionCallback, ExecutionUpdateBus
from .errors import (
    EXECUTION_CANCELLED,
    EXECUTION_FAILED,
    INVALID_STEP,
    STEP_EXECUTION_FAILED,
    STEP_TIMEOUT,
    STEPS_FAILED,
    ExecutionNotFoundError,
    FlowConfigurationError,
    FlowEngineError,
    ProcessingError,
)
from .flow import ErrorHandling, FlowDefinition, FlowStep, RetryPolicy, StepType
from .models import (
    ExecutionContext,
    ExecutionError,
    ExecutionMetrics,
    FlowExecution,
    StepExecution,
    count_records,
)
from .processors import StepProcessor, StepProcessorRegistry


@dataclass
class _Run:
    """Engine-side handle of one in-flight execution."""

    execution: FlowExecution
    resume_gate: asyncio.Event
    task: asyncio.Task | None = field(default=None)


class FlowExecutionEngine:
    """Runs flow definitions and reports progress to subscribers.

    Steps run strictly in declaration order. Each step is dispatched to the
    processor registered for its type and raced against the flow's step
    timeout. Pausing holds the run before its next step; cancelling aborts
    the in-flight step.
    """

    def __init__(
        self,
        registry: StepProcessorRegistry,
        update_bus: ExecutionUpdateBus | None = None,
        notification_service: INotificationService | None = None,
        settings: FlowEngineSettings | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            registry: Step processors by step type
            update_bus: Bus used to fan out execution updates
            notification_service: Optional user-facing notifier for run outcomes
            settings: Engine defaults (timeout, retries)
        """
        self._registry = registry
        self._bus = update_bus or ExecutionUpdateBus()
        self._notification_service = notification_service
        self._settings = settings or FlowEngineSettings()
        self._active: dict[str, FlowExecution] = {}
        self._runs: dict[str, _Run] = {}
        self._logger = get_logger("orchestration.engine")

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def submit(
        self,
        flow: FlowDefinition,
        trigger_type: str = "manual",
        context: dict[str, object] | None = None,
        triggered_by: str = "system",
    ) -> FlowExecution:
        """Run a flow to a terminal state.

        Args:
            flow: Flow definition to run
            trigger_type: How the run was triggered (manual, scheduled, ...)
            context: Variable overrides merged over the flow's variables
            triggered_by: Actor that started the run

        Returns:
            The completed, failed or cancelled FlowExecution
        """
        execution = self.start(flow, trigger_type, context, triggered_by)
        return await self.wait(execution.id)

    def start(
        self,
        flow: FlowDefinition,
        trigger_type: str = "manual",
        context: dict[str, object] | None = None,
        triggered_by: str = "system",
    ) -> FlowExecution:
        """Register an execution and schedule its run on the current loop.

        Returns immediately with the pending execution, so callers can
        subscribe before the first update is published.
        """
        execution = self._create_execution(flow, trigger_type, context, triggered_by)
        resume_gate = asyncio.Event()
        resume_gate.set()
        run = _Run(execution=execution, resume_gate=resume_gate)

        self._active[execution.id] = execution
        self._runs[execution.id] = run
        run.task = asyncio.create_task(
            self._run(flow, run), name=f"flow-execution-{execution.id}"
        )
        run.task.add_done_callback(lambda _: self._runs.pop(execution.id, None))

        self._logger.info(
            f"Execution {execution.id} scheduled for flow {flow.id} "
            f"v{flow.version} ({len(flow.steps)} steps, trigger={trigger_type})"
        )
        return execution

    async def wait(self, execution_id: str) -> FlowExecution:
        """Wait for a started execution to reach a terminal state.

        Raises:
            ExecutionNotFoundError: If the run is unknown or already collected
        """
        run = self._runs.get(execution_id)
        if run is None or run.task is None:
            raise ExecutionNotFoundError(execution_id)
        try:
            return await asyncio.shield(run.task)
        except asyncio.CancelledError:
            if run.task.cancelled() and run.execution.status is ExecutionStatus.CANCELLED:
                return run.execution
            raise

    async def pause(self, execution_id: str) -> bool:
        """Hold a running execution before its next step.

        Returns:
            True if the execution moved to paused

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        run = self._get_run(execution_id)
        execution = run.execution
        if execution.status is not ExecutionStatus.RUNNING:
            return False

        execution.status = ExecutionStatus.PAUSED
        run.resume_gate.clear()
        self._logger.info(f"Execution {execution_id} paused")
        await self._bus.publish(execution)
        return True

    async def resume(self, execution_id: str) -> bool:
        """Let a paused execution continue with its next step.

        Returns:
            True if the execution moved back to running

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        run = self._get_run(execution_id)
        execution = run.execution
        if execution.status is not ExecutionStatus.PAUSED:
            return False

        execution.status = ExecutionStatus.RUNNING
        run.resume_gate.set()
        self._logger.info(f"Execution {execution_id} resumed")
        await self._bus.publish(execution)
        return True

    async def cancel(self, execution_id: str) -> bool:
        """Cancel a running or paused execution and abort its in-flight step.

        Returns:
            True if the execution was cancelled

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        run = self._get_run(execution_id)
        execution = run.execution
        if execution.status not in (ExecutionStatus.RUNNING, ExecutionStatus.PAUSED):
            return False

        execution.status = ExecutionStatus.CANCELLED
        execution.finished_at = utc_now()
        execution.duration_ms = elapsed_ms(execution.started_at, execution.finished_at)
        execution.error = ExecutionError(
            code=EXECUTION_CANCELLED, message="Execution cancelled"
        )
        self._active.pop(execution_id, None)
        if run.task is not None:
            run.task.cancel()

        self._logger.info(f"Execution {execution_id} cancelled")
        await self._bus.publish(execution)
        return True

    def list_active(self) -> list[FlowExecution]:
        """Snapshots of every execution currently registered as active."""
        return [execution.snapshot() for execution in self._active.values()]

    def get_active(self, execution_id: str) -> FlowExecution:
        """Snapshot of one active execution.

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        try:
            return self._active[execution_id].snapshot()
        except KeyError:
            raise ExecutionNotFoundError(execution_id) from None

    def subscribe(self, execution_id: str, callback: ExecutionCallback) -> None:
        """Call back with a snapshot every time the execution changes.

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        if execution_id not in self._active:
            raise ExecutionNotFoundError(execution_id)
        self._bus.subscribe(execution_id, callback)

    def unsubscribe(self, execution_id: str, callback: ExecutionCallback) -> bool:
        """Remove one registration of a callback."""
        return self._bus.unsubscribe(execution_id, callback)

    def stream(self, execution_id: str) -> AsyncIterator[FlowExecution]:
        """Async iterator of snapshots until the execution is terminal.

        Raises:
            ExecutionNotFoundError: If the execution is not active
        """
        if execution_id not in self._active:
            raise ExecutionNotFoundError(execution_id)
        return self._bus.stream(execution_id)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _create_execution(
        self,
        flow: FlowDefinition,
        trigger_type: str,
        context: dict[str, object] | None,
        triggered_by: str,
    ) -> FlowExecution:
        return FlowExecution(
            id=str(ExecutionID.generate()),
            flow_id=flow.id,
            flow_version=flow.version,
            started_at=utc_now(),
            triggered_by=triggered_by,
            trigger_type=trigger_type,
            context=dict(context or {}),
            steps=[StepExecution(step_id=step.id, step_name=step.name) for step in flow.steps],
            metrics=ExecutionMetrics(total_steps=len(flow.steps)),
        )

    async def _run(self, flow: FlowDefinition, run: _Run) -> FlowExecution:
        execution = run.execution
        context = ExecutionContext(
            flow_id=flow.id,
            execution_id=execution.id,
            variables={**flow.variables, **execution.context},
        )
        used: dict[StepType, StepProcessor] = {}

        try:
            await self._bus.publish(execution)
            execution.status = ExecutionStatus.RUNNING
            self._logger.info(f"Execution {execution.id} of flow {flow.id} running")
            await self._bus.publish(execution)

            await self._run_steps(flow, run, context, used)
        except asyncio.CancelledError:
            if execution.status is not ExecutionStatus.CANCELLED:
                raise
            asyncio.current_task().uncancel()
        except FlowConfigurationError as exc:
            self._abort(execution, exc.code, exc.message)
        except ProcessingError as exc:
            self._abort(execution, EXECUTION_FAILED, exc.message)
        except Exception as exc:
            self._logger.error(
                f"Execution {execution.id} failed outside step handling: {exc}",
                exc_info=True,
            )
            self._abort(execution, EXECUTION_FAILED, str(exc) or type(exc).__name__)
        finally:
            self._finalize(execution)
            await self._cleanup(used, context)
            await self._bus.publish(execution)
            await self._notify_outcome(flow, execution)
            self._bus.close(execution.id)

        return execution

    async def _run_steps(
        self,
        flow: FlowDefinition,
        run: _Run,
        context: ExecutionContext,
        used: dict[StepType, StepProcessor],
    ) -> None:
        execution = run.execution
        policy = flow.settings.retry_policy(
            self._settings.max_retries, self._settings.retry_backoff_ms
        )
        timeout_ms = flow.settings.timeout or self._settings.default_timeout_ms

        for step, step_execution in zip(flow.steps, execution.steps):
            await run.resume_gate.wait()
            context.current_step = step.id

            try:
                await self._execute_step(
                    step, step_execution, execution, context, policy, timeout_ms, used
                )
            except FlowConfigurationError:
                execution.metrics.failed_steps += 1
                raise
            except ProcessingError as exc:
                execution.metrics.failed_steps += 1
                if flow.settings.error_handling is not ErrorHandling.CONTINUE:
                    raise
                self._logger.warning(
                    f"Execution {execution.id}: step {step.id} failed ({exc.code}), continuing"
                )
            else:
                execution.metrics.completed_steps += 1
                execution.metrics.data_processed += count_records(step_execution.output)

            await self._bus.publish(execution)

    async def _execute_step(
        self,
        step: FlowStep,
        step_execution: StepExecution,
        execution: FlowExecution,
        context: ExecutionContext,
        policy: RetryPolicy,
        timeout_ms: int,
        used: dict[StepType, StepProcessor],
    ) -> None:
        step_execution.status = StepStatus.RUNNING
        step_execution.started_at = utc_now()
        step_execution.add_log("info", f"Starting step: {step.name}")

        try:
            processor = self._registry.get(step.type)
            if not processor.validate_input(step, context.input_for(step)):
                raise FlowConfigurationError(
                    INVALID_STEP,
                    f"Step {step.id} has an invalid {step.type.value} configuration",
                )
            used[step.type] = processor
            await self._bus.publish(execution)

            output = await self._attempt(processor, step, step_execution, context, policy, timeout_ms)
        except FlowEngineError as exc:
            step_execution.status = StepStatus.FAILED
            step_execution.error = ExecutionError(
                code=exc.code, message=exc.message, timestamp=exc.timestamp
            )
            step_execution.add_log("error", f"Step failed: {exc.message}", {"code": exc.code})
            raise
        except asyncio.CancelledError:
            step_execution.status = StepStatus.CANCELLED
            step_execution.add_log("warn", "Step cancelled")
            raise
        else:
            context.record_result(step.id, output)
            step_execution.output = output
            step_execution.status = StepStatus.COMPLETED
            step_execution.add_log("info", "Step completed successfully")
        finally:
            step_execution.finished_at = utc_now()
            step_execution.duration_ms = elapsed_ms(
                step_execution.started_at, step_execution.finished_at
            )

    async def _attempt(
        self,
        processor: StepProcessor,
        step: FlowStep,
        step_execution: StepExecution,
        context: ExecutionContext,
        policy: RetryPolicy,
        timeout_ms: int,
    ) -> object:
        """Invoke the processor under the step timeout, retrying per policy."""
        error: ProcessingError | None = None

        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    processor.process(step, context), timeout=timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                error = ProcessingError(
                    f"Step execution timeout after {timeout_ms}ms", code=STEP_TIMEOUT
                )
            except ProcessingError as exc:
                error = exc
            except Exception as exc:
                error = ProcessingError(str(exc) or type(exc).__name__, code=STEP_EXECUTION_FAILED)

            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                step_execution.retry_count += 1
                step_execution.add_log(
                    "warn",
                    f"Attempt {attempt} failed: {error.message}; retrying in {delay:.3f}s",
                    {"code": error.code, "attempt": attempt},
                )
                self._logger.warning(
                    f"Execution {context.execution_id}: step {step.id} attempt "
                    f"{attempt}/{policy.max_attempts} failed: {error.message}"
                )
                if delay > 0:
                    await asyncio.sleep(delay)

        raise error

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_run(self, execution_id: str) -> _Run:
        run = self._runs.get(execution_id)
        if run is None or execution_id not in self._active:
            raise ExecutionNotFoundError(execution_id)
        return run

    def _abort(self, execution: FlowExecution, code: str, message: str) -> None:
        execution.status = ExecutionStatus.FAILED
        execution.error = ExecutionError(code=code, message=message)
        self._logger.error(f"Execution {execution.id} aborted: [{code}] {message}")

    def _finalize(self, execution: FlowExecution) -> None:
        """Settle the terminal status and counters. Never awaits."""
        metrics = execution.metrics
        metrics.skipped_steps = sum(
            1 for step in execution.steps if step.status is StepStatus.PENDING
        )

        if execution.status is not ExecutionStatus.CANCELLED:
            if execution.status is not ExecutionStatus.FAILED:
                execution.status = (
                    ExecutionStatus.FAILED if metrics.failed_steps > 0 else ExecutionStatus.COMPLETED
                )
            if execution.status is ExecutionStatus.FAILED and execution.error is None:
                execution.error = ExecutionError(
                    code=STEPS_FAILED,
                    message=f"{metrics.failed_steps} of {metrics.total_steps} steps failed",
                )
            execution.finished_at = utc_now()
            execution.duration_ms = elapsed_ms(execution.started_at, execution.finished_at)

        self._active.pop(execution.id, None)
        self._logger.info(
            f"Execution {execution.id} finished: status={execution.status.value} "
            f"completed={metrics.completed_steps} failed={metrics.failed_steps} "
            f"skipped={metrics.skipped_steps} duration_ms={execution.duration_ms}"
        )

    async def _cleanup(
        self, used: dict[StepType, StepProcessor], context: ExecutionContext
    ) -> None:
        for processor in used.values():
            try:
                await processor.cleanup(context)
            except Exception as exc:
                self._logger.error(
                    f"Cleanup of {type(processor).__name__} failed for execution "
                    f"{context.execution_id}: {exc}",
                    exc_info=True,
                )

    async def _notify_outcome(self, flow: FlowDefinition, execution: FlowExecution) -> None:
        if self._notification_service is None:
            return

        if execution.status is ExecutionStatus.COMPLETED:
            message, severity = f'Flow "{flow.name}" executed successfully', 20
        elif execution.status is ExecutionStatus.CANCELLED:
            message, severity = f'Flow "{flow.name}" was cancelled', 50
        else:
            reason = execution.error.message if execution.error else "Unknown error"
            message, severity = f'Flow "{flow.name}" failed: {reason}', 80

        try:
            await self._notification_service.notify(
                f"{message} (exec={execution.id})", severity=severity
            )
        except Exception as exc:
            self._logger.error(
                f"Failed to send notification for execution {execution.id}: {exc}",
                exc_info=True,
            )
