"""Server-side round timer."""

import asyncio
import contextlib
from typing import Awaitable, Callable, Optional


class RoundTimer:
    """Fires a callback once a voting round's duration has elapsed.

    Clients render the countdown themselves from the broadcast timestamps;
    this only enforces expiry when no client is around to do it.
    """

    def __init__(self, duration_seconds: float):
        self.duration_seconds = duration_seconds
        self._task: Optional[asyncio.Task] = None

    def start(self, on_timeout: Callable[[], Awaitable[None]]) -> None:
        """
        Schedule ``on_timeout`` on the running loop.

        Args:
            on_timeout: Awaited once, after ``duration_seconds``
        """
        self._task = asyncio.create_task(self._fire_after_delay(on_timeout))

    async def cancel(self) -> None:
        """Stop the timer before it fires. Safe to call when idle."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _fire_after_delay(self, on_timeout: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.duration_seconds)
        await on_timeout()
