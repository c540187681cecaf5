"""
Periodic poll task running on the host's asyncio event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PollTask:
    """Calls ``tick`` every ``interval`` seconds until stopped.

    ``tick`` returns True to keep going; returning False ends the task. The
    task never blocks the loop between ticks, it re-arms itself with
    ``loop.call_later`` after each run.
    """

    def __init__(self, interval: float, tick: Callable[[], bool],
                 loop: Optional[asyncio.AbstractEventLoop] = None, name: str = "poll"):
        self.interval = interval
        self.tick = tick
        self.name = name
        self._loop = loop
        self._handle = None
        self._active = False
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._active

    def start(self) -> bool:
        """Schedule the first tick. Returns False if already running."""
        if self._active:
            logger.debug(f"{self.name}: already running")
            return False

        loop = self.ensure_loop()
        self._active = True
        self._handle = loop.call_later(self.interval, self._run)
        logger.info(f"{self.name}: started with interval {self.interval}s")
        return True

    def ensure_loop(self) -> asyncio.AbstractEventLoop:
        """Loop the ticks run on: the one given, else the running loop.

        Raises:
            RuntimeError: no loop was given and none is running
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def stop(self):
        """Cancel the pending tick. No-op when not running."""
        if not self._active:
            return

        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.debug(f"{self.name}: stopped")

    def _run(self):
        self._handle = None
        if not self._active:
            return

        self.tick_count += 1
        if self.tick_count % 100 == 0:
            logger.debug(f"{self.name}: tick {self.tick_count}")

        try:
            keep_going = self.tick()
        except Exception:
            logger.exception(f"{self.name}: tick failed")
            keep_going = True

        # tick() may have stopped or restarted us itself
        if not self._active or self._handle is not None:
            return

        if keep_going:
            self._handle = self._loop.call_later(self.interval, self._run)
        else:
            self._active = False
            logger.info(f"{self.name}: finished")
