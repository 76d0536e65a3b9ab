"""
Delayed Call
============

Cancellable single-shot delayed task bound to the running event loop.

A session re-arms one DelayedCall per tick and keeps one for its time
limit. Cancellation is synchronous: once ``cancel()`` returns, the
callback will not start, and a coroutine it already started is
cancelled unless it is the caller itself.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union


logger = logging.getLogger(__name__)


Callback = Callable[[], Union[None, Awaitable[Any]]]


class DelayedCall:
    """
    One-shot callback scheduled ``delay`` seconds from now.

    The callback may be a plain function or a coroutine function; a
    returned coroutine is wrapped in a task that the DelayedCall owns.

    Example:
        call = DelayedCall(0.1, session.end, name="time_limit")
        ...
        call.cancel()
    """

    def __init__(self, delay: float, callback: Callback, name: Optional[str] = None) -> None:
        """
        Arm the call.

        Args:
            delay: Seconds to wait (negative values fire immediately)
            callback: Function or coroutine function to invoke
            name: Optional name used for the task and in logs
        """
        self.name = name or getattr(callback, "__name__", "delayed_call")
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._fired = False

        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(max(0.0, delay), self._fire)

    @property
    def fired(self) -> bool:
        """Whether the callback has been invoked."""
        return self._fired

    def cancel(self) -> bool:
        """
        Cancel the pending callback (and its task, if running).

        Returns:
            True if this call cancelled it, False if already cancelled.
        """
        if self._cancelled:
            return False
        self._cancelled = True
        self._handle.cancel()

        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        return True

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._fired = True
        result = self._callback()
        if asyncio.iscoroutine(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Delayed call '{self.name}' failed: {exc!r}")


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
