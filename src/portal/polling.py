"""
Timer-based polling.

Each component owns its Poller; there is no shared scheduler and no backoff.
Stopping a poller is the equivalent of the component unmounting.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Poller:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        tick: Callable[[], Awaitable[None]],
        condition: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            name: label used in log lines
            interval_seconds: delay between ticks
            tick: coroutine function called on every tick
            condition: when given, a tick only runs while it returns True
        """
        self.name = name
        self.interval_seconds = interval_seconds
        self._tick = tick
        self._condition = condition
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("[Poller:%s] started every %ss", self.name, self.interval_seconds)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("[Poller:%s] stopped after %s ticks", self.name, self.ticks)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            if self._condition is not None and not self._condition():
                continue
            self.ticks += 1
            try:
                await self._tick()
            except Exception as e:
                logger.error("[Poller:%s] tick failed: %s", self.name, e)
