"""Execution update bus - per-execution subscribers and streaming receivers."""

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable

from core.infrastructure.logging import get_logger

from .models import FlowExecution

ExecutionCallback = Callable[[FlowExecution], Awaitable[None] | None]

_CLOSED = object()


class ExecutionUpdateBus:
    """In-memory fan-out of execution snapshots, keyed by execution id.

    Callbacks run in subscription order and are awaited before ``publish``
    returns, so a run never advances past an update its observers have not
    seen. Every publish hands out a detached snapshot.
    """

    def __init__(self) -> None:
        """Initialize in-memory update bus."""
        self._handlers: dict[str, list[ExecutionCallback]] = {}
        self._receivers: dict[str, list[asyncio.Queue]] = {}
        self._logger = get_logger("orchestration.update_bus")

    def subscribe(self, execution_id: str, handler: ExecutionCallback) -> None:
        """Subscribe a handler to one execution's updates.

        Args:
            execution_id: Execution to observe
            handler: Plain or async callable receiving a FlowExecution snapshot
        """
        if execution_id not in self._handlers:
            self._handlers[execution_id] = []
        self._handlers[execution_id].append(handler)

    def unsubscribe(self, execution_id: str, handler: ExecutionCallback) -> bool:
        """Remove one registration of a handler.

        Returns:
            True if a registration was removed
        """
        handlers = self._handlers.get(execution_id)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[execution_id]
        return True

    def subscriber_count(self, execution_id: str) -> int:
        return len(self._handlers.get(execution_id, [])) + len(
            self._receivers.get(execution_id, [])
        )

    async def publish(self, execution: FlowExecution) -> None:
        """Deliver a snapshot of the execution to every subscriber.

        Args:
            execution: Execution that just changed
        """
        handlers = list(self._handlers.get(execution.id, []))
        receivers = list(self._receivers.get(execution.id, []))
        if not handlers and not receivers:
            return

        snapshot = execution.snapshot()
        for handler in handlers:
            try:
                result = handler(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._logger.error(
                    f"Update handler {handler!r} failed for execution "
                    f"{execution.id}: {exc}",
                    exc_info=True,
                )

        for queue in receivers:
            queue.put_nowait(snapshot)

    def stream(self, execution_id: str) -> AsyncIterator[FlowExecution]:
        """Open a receiver yielding snapshots until the execution is terminal.

        The receiver is registered before this returns, so every update
        published after the call reaches it, however late iteration starts.

        Args:
            execution_id: Execution to observe
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._receivers.setdefault(execution_id, []).append(queue)
        return self._drain(execution_id, queue)

    async def _drain(
        self, execution_id: str, queue: asyncio.Queue
    ) -> AsyncIterator[FlowExecution]:
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
                if item.status.is_terminal:
                    return
        finally:
            self._remove_receiver(execution_id, queue)

    def _remove_receiver(self, execution_id: str, queue: asyncio.Queue) -> None:
        receivers = self._receivers.get(execution_id)
        if receivers is None:
            return
        if queue in receivers:
            receivers.remove(queue)
        if not receivers:
            del self._receivers[execution_id]

    def close(self, execution_id: str) -> None:
        """Drop every subscriber of an execution and end its open receivers."""
        self._handlers.pop(execution_id, None)
        for queue in self._receivers.pop(execution_id, []):
            queue.put_nowait(_CLOSED)
