"""
Timer-based coalescing queue.

Each ``push`` records the latest value and restarts a fixed-delay timer; only
the timer firing performs the write, so a burst of pushes inside the quiet
window produces exactly one write carrying the last value.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

_NOTHING = object()


class Debouncer:

    def __init__(self, action: Callable[[Any], Awaitable[None]], delay: float = 0.5):
        self._action = action
        self.delay = delay
        self._pending: Any = _NOTHING
        self._timer: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._pending is not _NOTHING

    def push(self, value: Any):
        self._pending = value
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later())

    async def _fire_later(self):
        await asyncio.sleep(self.delay)
        # Detach before writing so a push during the write starts a new timer
        # instead of cancelling this one.
        self._timer = None
        await self._run()

    async def _run(self):
        if self._pending is _NOTHING:
            return
        value, self._pending = self._pending, _NOTHING
        try:
            await self._action(value)
        except Exception as e:
            logger.error(f"Debounced write failed: {e}")

    async def flush(self):
        """Write the pending value now."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._run()

    def cancel(self):
        """Drop the pending value without writing it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = _NOTHING
