"""
PriceHistoryBuffer — bounded, ordered price samples.

Ring semantics: once capacity is reached, appending drops the oldest sample
silently. At the 3 s status interval 120 samples cover about six minutes.
"""

from collections import deque
from typing import Deque, Final, Iterator, List, Optional

from .simulation import PricePoint

PRICE_HISTORY_CAPACITY: Final[int] = 120


class PriceHistoryBuffer:
    """Capacity-bounded sequence of PricePoint, oldest first."""

    def __init__(self, capacity: int = PRICE_HISTORY_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._points: Deque[PricePoint] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, time_ms: int, price: float) -> None:
        self._points.append(PricePoint(time_ms=time_ms, price=price))

    def reset(self, seed: Optional[PricePoint] = None) -> None:
        """Clear the buffer, optionally leaving a single seed sample."""
        self._points.clear()
        if seed is not None:
            self._points.append(seed)

    def snapshot(self) -> List[PricePoint]:
        return list(self._points)

    @property
    def latest(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(list(self._points))
