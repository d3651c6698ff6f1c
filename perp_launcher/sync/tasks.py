"""
PeriodicTask — explicit, cancellable polling loop.

Guarantees:
- a stopped task never invokes its callback again, even if a tick was
  already scheduled when stop() was called
- a callback exception is logged and the loop keeps going
- stop() may be called from inside the callback; the current invocation
  finishes and no further tick runs
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an async callback every *interval_sec* seconds.

    Args:
        name: Name used in logs
        interval_sec: Delay between the end of one invocation and the next
        callback: Async callable without arguments
        run_immediately: Invoke once right after start() instead of after
            the first interval
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        callback: Callable[[], Awaitable[None]],
        run_immediately: bool = False,
    ):
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")
        self.name = name
        self.interval_sec = interval_sec
        self.callback = callback
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self._task is not None and not self._task.done():
            return
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("%s started (every %.1fs)", self.name, self.interval_sec)

    async def _run(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_sec)
        while not self._stopped:
            try:
                await self.callback()
            except Exception:
                logger.exception("%s: tick failed", self.name)
            if self._stopped:
                break
            await asyncio.sleep(self.interval_sec)

    def stop(self) -> None:
        """
        Stop the loop.

        Cancels a pending sleep; when called from the callback itself the
        running invocation is left to finish.
        """
        if self._stopped:
            return
        self._stopped = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.debug("%s stopped", self.name)

    async def stop_and_wait(self) -> None:
        self.stop()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
