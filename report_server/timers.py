"""Periodic asyncio timer used by the session notifier."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """
    Runs `callback` every `interval` seconds on the running event loop.

    A failing tick is logged and the timer keeps going. `cancel()` is safe to
    call any number of times; a tick already running is allowed to finish
    but no further tick is scheduled.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], Awaitable[None]]):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._in_tick = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"timer:{self.name}")

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            if self._cancelled:
                break
            self._in_tick = True
            try:
                await self._callback()
            except Exception:
                logger.exception("Timer %s tick failed", self.name)
            finally:
                self._in_tick = False

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        # an in-flight tick completes; the loop then exits on the flag
        if self._task is not None and not self._in_tick:
            self._task.cancel()
