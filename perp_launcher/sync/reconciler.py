"""
SyncedMirror — keep a local copy of remote data in sync.

Two independent producers feed one idempotent full reload:
- pull: a PeriodicTask, always installed
- push: an optional PushSource (websocket change feed)

reconcile() is serialized by a lock, so a push notification arriving during a
pull simply runs another full reload afterwards. When the push source cannot be
established the mirror logs one warning and carries on with pull alone.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Generic, List, Optional, Protocol, TypeVar

from .tasks import PeriodicTask

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeCallback = Callable[[], Awaitable[None]]


class PushSource(Protocol):
    """Change feed that calls on_change whenever the remote data changed."""

    async def start(self, on_change: ChangeCallback) -> None:
        """Establish the feed; raise if it cannot be established."""
        ...

    async def stop(self) -> None:
        ...


class SyncedMirror(Generic[T]):
    """
    Local mirror of a remote value.

    Args:
        name: Name used in logs
        loader: Async full reload of the remote value
        interval_sec: Pull interval
        push_source: Optional change feed
        initial: Value before the first successful reload
    """

    def __init__(
        self,
        name: str,
        loader: Callable[[], Awaitable[T]],
        interval_sec: float,
        push_source: Optional[PushSource] = None,
        initial: Optional[T] = None,
    ):
        self.name = name
        self.loader = loader
        self.push_source = push_source
        self.value: Optional[T] = initial
        self.last_error: Optional[str] = None
        self.last_synced_at: Optional[float] = None
        self.reload_count = 0
        self.push_active = False

        self._lock = asyncio.Lock()
        self._pull = PeriodicTask(f"{name}-pull", interval_sec, self.reconcile)
        self._push_warned = False
        self._listeners: List[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register a listener for new values. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def reconcile(self) -> None:
        """Full reload; on failure the last good value is kept."""
        async with self._lock:
            try:
                value = await self.loader()
            except Exception as e:
                self.last_error = str(e)
                logger.warning("%s: reload failed: %s", self.name, e)
                return
            self.value = value
            self.last_error = None
            self.last_synced_at = time.time()
            self.reload_count += 1

        for listener in list(self._listeners):
            listener(value)

    async def start(self) -> None:
        """Initial reload, then pull and (if available) push."""
        await self.reconcile()
        self._pull.start()

        if self.push_source is None:
            return
        try:
            await self.push_source.start(self.reconcile)
            self.push_active = True
        except Exception as e:
            self.push_active = False
            if not self._push_warned:
                self._push_warned = True
                logger.warning("%s: push unavailable, polling only: %s", self.name, e)

    async def stop(self) -> None:
        await self._pull.stop_and_wait()
        if self.push_source is not None and self.push_active:
            await self.push_source.stop()
            self.push_active = False
