"""
Day-one start offset.

A competition starting mid-day must not count the volume traded between UTC
midnight and its start time. That offset comes from an expensive historical
query, so it is computed once per asset and cached for the rest of day one.

Until the offset is known, day-one volume is reported unsubtracted. This is a
known transient overcount that disappears on the first successful refresh.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


def compute_start_offset(
    samples: Iterable[tuple[int, float]],
    day_start_ms: int,
    start_ms: int,
) -> float:
    """
    Volume traded in [day_start, start).

    Args:
        samples: (interval_start_ts_ms, volume) pairs at hourly or finer
            granularity.
        day_start_ms: UTC midnight of the competition's first day.
        start_ms: Competition start instant.

    Returns:
        Summed volume of samples whose interval starts inside the range.
    """
    return sum(float(v) for ts, v in samples if day_start_ms <= ts < start_ms)


@dataclass(frozen=True)
class StartOffset:
    """Cached start offset for one asset."""

    asset_id: str
    date: str  # Day one (YYYY-MM-DD)
    volume: float
    computed_ts: int


class StartOffsetCache:
    """
    Per-asset start offsets, valid for their day one only.

    Entries are replaced as whole records; readers see either the old entry
    or the new one.
    """

    def __init__(self) -> None:
        self._entries: dict[str, StartOffset] = {}

    def get(self, asset_id: str, date: str) -> StartOffset | None:
        """Offset for an asset if it was computed for the given day."""
        entry = self._entries.get(asset_id)
        if entry is None or entry.date != date:
            return None
        return entry

    def needs_refresh(self, asset_id: str, date: str) -> bool:
        """True if no offset is cached for this asset and day."""
        return self.get(asset_id, date) is None

    def put(self, offset: StartOffset) -> None:
        """Store an offset."""
        self._entries[offset.asset_id] = offset

    def prune(self, date: str) -> int:
        """
        Drop entries from days other than `date`.

        Returns:
            Number of entries removed.
        """
        stale = [k for k, v in self._entries.items() if v.date != date]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
