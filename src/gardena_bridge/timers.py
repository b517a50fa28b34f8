"""Periodic asyncio timer with idempotent start/cancel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Timer:
    """Run *callback* every *interval* seconds in a single asyncio task.

    ``start()`` is a no-op while the timer is active and ``cancel()`` is a
    no-op while it is not, so repeated calls never leave more than one task
    running. Both may be called from inside the callback itself: the running
    loop notices it has been replaced or cancelled and exits after the
    callback returns.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        *,
        immediate: bool = False,
    ) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._immediate = immediate
        self._task: asyncio.Task[None] | None = None
        self._closing: set[asyncio.Task[None]] = set()

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the timer; returns False if it was already running."""
        if self.active:
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("Timer %s armed (every %ss)", self.name, self.interval)
        return True

    def cancel(self) -> bool:
        """Stop the timer; returns False if it was not running."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        if task is not asyncio.current_task():
            task.cancel()
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        logger.debug("Timer %s cancelled", self.name)
        return True

    async def wait_closed(self) -> None:
        """Wait for every cancelled task to finish unwinding."""
        closing, self._closing = self._closing, set()
        if closing:
            await asyncio.gather(*closing, return_exceptions=True)

    async def _run(self) -> None:
        me = asyncio.current_task()
        if self._immediate:
            await self._fire()
        while self._task is me:
            await asyncio.sleep(self.interval)
            if self._task is not me:
                break
            await self._fire()

    async def _fire(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Timer %s callback failed", self.name)
