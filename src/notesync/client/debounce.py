"""Trailing-edge debounce on top of asyncio."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``callback`` once ``delay`` seconds after the last ``trigger()``."""

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]):
        self.delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """Restart the countdown. Requires a running event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._fire())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Run the callback now if a call is pending."""
        if self.pending:
            self.cancel()
            await self._callback()

    async def drain(self) -> None:
        """Wait for a callback that has already started to finish."""
        running = self._running
        if running is not None and running is not asyncio.current_task():
            await asyncio.shield(running)

    async def _fire(self) -> None:
        await asyncio.sleep(self.delay)
        # a trigger() from inside the callback starts a new countdown
        self._task = None
        self._running = asyncio.current_task()
        try:
            await self._callback()
        except Exception:
            logger.exception("Debounced callback failed")
        finally:
            if self._running is asyncio.current_task():
                self._running = None
