"""Periodic rotation of the header between current station and next stop."""

import asyncio
import logging
from typing import Callable, Optional

from .config import HEADER_INTERVAL_SEC
from .models import HeaderContent

logger = logging.getLogger(__name__)


class HeaderRotator:
    """
    Alternates the header content on a fixed interval.

    The header only moves to NEXT_STOP when the window has more than one
    station, and always comes back to CURRENT_STATION on the next tick.
    """

    def __init__(self, window_size: Callable[[], int], interval_sec: float = HEADER_INTERVAL_SEC):
        """
        Args:
            window_size: Returns the size of the current window when called.
            interval_sec: Seconds between ticks.
        """
        self._window_size = window_size
        self.interval_sec = interval_sec
        self.content = HeaderContent.CURRENT_STATION
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> HeaderContent:
        if self.content is HeaderContent.CURRENT_STATION:
            if self._window_size() > 1:
                self.content = HeaderContent.NEXT_STOP
        else:
            self.content = HeaderContent.CURRENT_STATION
        return self.content

    def start(self) -> None:
        """Start ticking. A running timer is cancelled first, so only one ever exists."""
        if self.running:
            logger.debug("Restarting header rotation")
            self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            self.tick()
