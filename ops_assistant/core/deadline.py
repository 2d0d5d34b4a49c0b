"""
Deadline and cancellation helpers for outbound calls.

``with_deadline`` races an awaitable against a timer and an optional
``CancelToken``. Whichever finishes first wins; the losing awaitable is
cancelled. Cancelling only stops the local wait, it cannot undo work the
remote side has already done.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeadlineExceeded(Exception):
    """Raised when an awaitable does not finish before its deadline"""

    def __init__(self, seconds: float):
        super().__init__(f"Deadline of {seconds:.2f}s exceeded")
        self.seconds = seconds


class OperationCancelled(Exception):
    """Raised when a CancelToken fires before the awaitable finishes"""
    pass


class CancelToken:
    """Cooperative cancellation signal shared between a caller and a call"""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def _discard(task: "asyncio.Future") -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug(f"Cancelled task finished with error: {e}")


async def with_deadline(awaitable: Awaitable[T], seconds: Optional[float],
                        cancel_token: Optional[CancelToken] = None) -> T:
    """
    Await ``awaitable`` under a deadline and an optional cancel token.

    Args:
        awaitable: coroutine or future to run
        seconds: deadline in seconds, ``None`` for no deadline
        cancel_token: optional token that aborts the wait when cancelled

    Returns:
        The awaitable's result

    Raises:
        DeadlineExceeded: the deadline elapsed first
        OperationCancelled: the token fired first
    """
    task = asyncio.ensure_future(awaitable)

    if cancel_token is not None and cancel_token.cancelled:
        await _discard(task)
        raise OperationCancelled(cancel_token.reason or "cancelled")

    waiters = {task}
    cancel_waiter = None
    if cancel_token is not None:
        cancel_waiter = asyncio.ensure_future(cancel_token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(waiters, timeout=seconds,
                                     return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        await _discard(task)
        raise
    finally:
        if cancel_waiter is not None and not cancel_waiter.done():
            await _discard(cancel_waiter)

    if task in done:
        return task.result()

    await _discard(task)
    if cancel_waiter is not None and cancel_waiter in done:
        raise OperationCancelled(cancel_token.reason or "cancelled")
    raise DeadlineExceeded(seconds)
