"""Cooperative scheduling helpers for BudgetFlow workflows.

Workflows run on a single asyncio event loop. A ``WorkflowScope`` represents
the UI context that owns a workflow: timers and background tasks started
through it become no-ops once the scope is closed, so late results are never
applied to state that nobody is looking at anymore.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional, Set

import structlog

logger = structlog.get_logger()


class WorkflowScope:
    """Lifetime of the context that owns a workflow."""

    def __init__(self, name: str = "workflow"):
        self.name = name
        self._closed = False
        self._handles: Set[asyncio.TimerHandle] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return not self._closed

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any
    ) -> Optional[asyncio.TimerHandle]:
        """Schedule ``callback`` after ``delay`` seconds on the running loop.

        Coroutine callbacks are run as tasks owned by this scope. Returns
        None when the scope is already closed or no event loop is running,
        in which case nothing is scheduled.
        """
        if self._closed:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("workflow_call_later_skipped", scope=self.name, reason="no_running_loop")
            return None
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._handles.discard(handle)
            if self._closed:
                return
            result = callback(*args)
            if inspect.isawaitable(result):
                self.spawn(result)

        handle = loop.call_later(delay, _fire)
        self._handles.add(handle)
        return handle

    def spawn(self, awaitable) -> Optional[asyncio.Task]:
        """Run an awaitable as a task cancelled when the scope closes."""
        if self._closed:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return None
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self, handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    def close(self) -> None:
        """Close the scope, cancelling pending timers and tasks."""
        if self._closed:
            return
        self._closed = True
        pending = len(self._handles) + len(self._tasks)
        for handle in list(self._handles):
            handle.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._handles.clear()
        logger.info("workflow_scope_closed", scope=self.name, cancelled=pending)


class Debouncer:
    """Restartable fixed-delay timer.

    Every ``trigger`` cancels the pending call and schedules a new one, so only
    the last trigger inside the delay window fires.
    """

    def __init__(self, scope: WorkflowScope, delay: float, callback: Callable[..., Any]):
        self._scope = scope
        self._delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def trigger(self, *args: Any) -> None:
        self.cancel()
        self._handle = self._scope.call_later(self._delay, self._fire, *args)

    def _fire(self, *args: Any) -> Any:
        self._handle = None
        return self._callback(*args)

    def cancel(self) -> None:
        self._scope.cancel(self._handle)
        self._handle = None
