"""Time-windowed sample buffer."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class TimestampedValue(Generic[T]):
    """A value with an associated timestamp."""

    ts: int  # milliseconds
    value: T


@dataclass
class RingBuffer(Generic[T]):
    """
    Buffer that keeps only samples younger than window_ms.

    Attributes:
        window_ms: Window duration in milliseconds.
        max_size: Hard cap on stored samples.
    """

    window_ms: int
    max_size: int = 1024
    _data: deque[TimestampedValue[T]] = field(default_factory=deque)

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be > 0, got {self.window_ms}")
        self._data = deque(maxlen=self.max_size)

    def push(self, ts: int, value: T) -> None:
        """Append a sample and evict samples older than the window."""
        self._data.append(TimestampedValue(ts=ts, value=value))
        self._evict(ts)

    def _evict(self, current_ts: int) -> None:
        cutoff = current_ts - self.window_ms
        while self._data and self._data[0].ts < cutoff:
            self._data.popleft()

    def get_window(self, current_ts: int) -> list[TimestampedValue[T]]:
        """Samples inside the window ending at current_ts, oldest first."""
        self._evict(current_ts)
        return list(self._data)

    def last(self) -> TimestampedValue[T] | None:
        """Newest retained sample."""
        return self._data[-1] if self._data else None

    def clear(self) -> None:
        """Drop all samples."""
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
