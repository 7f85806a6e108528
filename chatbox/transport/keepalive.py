"""Periodic timers that run while a provider request is outstanding."""

import asyncio
from typing import Callable, Optional

from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


class Ticker:
    """Calls ``tick`` every ``interval`` seconds between ``start`` and ``stop``."""

    def __init__(self, interval: float, tick: Callable[[], None]):
        self.interval = interval
        self.tick = tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or self.interval <= 0:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()


class KeepAlive(Ticker):
    """Low-frequency tick that keeps the host from suspending a busy worker.

    It carries no conversation data.
    """

    def __init__(self, interval: float = 20.0, tick: Optional[Callable[[], None]] = None):
        super().__init__(interval, tick or self._ping)
        self.ticks = 0

    def _ping(self) -> None:
        self.ticks += 1
        logger.debug(f"keep-alive tick {self.ticks}")
