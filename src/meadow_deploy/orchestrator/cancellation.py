"""Cancellation signals shared by tasks, prompts and the workflow.

A :class:`CancellationSignal` is owned by whoever wants to stop work (the CLI
wires Ctrl+C to one). Bounded waits derive a child with :meth:`linked`, which
also fires when its timer runs out. The reason recorded on the child tells the
two apart, so callers can report "timed out" and "cancelled" differently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from types import TracebackType
from typing import TypeVar

T = TypeVar("T")


class CancelReason(str, Enum):
    CALLER = "caller"
    TIMEOUT = "timeout"


class OperationCancelledError(Exception):
    """A suspension point gave up because its cancellation signal fired."""

    def __init__(self, reason: CancelReason) -> None:
        super().__init__(f"Operation cancelled ({reason.value})")
        self.reason = reason


class CancellationSignal:
    """One-shot cancellation source. The first fire wins; later fires are ignored."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: CancelReason | None = None
        self._callbacks: list[Callable[[CancelReason], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    def cancel(self) -> None:
        self._fire(CancelReason.CALLER)

    async def wait(self) -> CancelReason:
        await self._event.wait()
        assert self._reason is not None
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise OperationCancelledError(self._reason)

    def subscribe(self, callback: Callable[[CancelReason], None]) -> Callable[[], None]:
        """Register ``callback`` for the fire; returns an unsubscribe function.

        Subscribing to an already fired signal invokes the callback immediately.
        """

        if self._reason is not None:
            callback(self._reason)
            return lambda: None
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def linked(self, timeout_seconds: float | None) -> LinkedCancellation:
        """Derive a child signal fired by this signal or by a timer, whichever is first."""

        return LinkedCancellation(self, timeout_seconds)

    def _fire(self, reason: CancelReason) -> None:
        if self._reason is not None:
            return
        self._reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(reason)


class LinkedCancellation(CancellationSignal):
    """Child signal bounded by a timeout. Use as a context manager.

    The timer starts when the context is entered; leaving the context cancels
    the timer and detaches from the parent. A parent fire is reported as
    ``CALLER`` and a timer expiry as ``TIMEOUT``.
    """

    def __init__(self, parent: CancellationSignal, timeout_seconds: float | None) -> None:
        super().__init__()
        self.parent = parent
        self.timeout_seconds = timeout_seconds
        self._timer: asyncio.TimerHandle | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def __enter__(self) -> LinkedCancellation:
        self._unsubscribe = self.parent.subscribe(lambda _reason: self._fire(CancelReason.CALLER))
        if self.timeout_seconds is not None and not self.is_cancelled:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.timeout_seconds, self._fire, CancelReason.TIMEOUT)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


async def cancel_and_wait(*tasks: asyncio.Future[object]) -> None:
    """Cancel every unfinished task and wait until each has acknowledged it."""

    for task in tasks:
        if not task.done():
            task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


async def wait_or_cancel(work: Awaitable[T], signal: CancellationSignal | None) -> T:
    """Await ``work`` unless ``signal`` fires first.

    On a fire the inner work is cancelled and awaited before
    :class:`OperationCancelledError` is raised. If both complete in the same
    loop iteration the work result wins.
    """

    if signal is None:
        return await work
    if signal.is_cancelled:
        if asyncio.iscoroutine(work):
            work.close()
        elif asyncio.isfuture(work):
            work.cancel()
        signal.raise_if_cancelled()

    work_task: asyncio.Future[T] = asyncio.ensure_future(work)
    fired_task = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({work_task, fired_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if work_task.done():
            await cancel_and_wait(fired_task)
        else:
            await cancel_and_wait(work_task, fired_task)

    if not work_task.cancelled() or signal.reason is None:
        return work_task.result()
    raise OperationCancelledError(signal.reason)
