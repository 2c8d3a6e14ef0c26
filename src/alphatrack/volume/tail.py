"""
Minute-bucket tail tables.

A tail table holds, for each UTC minute-of-day m, the total volume that
occurred at minute >= m during the previous calendar day. This is exactly
the part of yesterday still inside the exchange's rolling 24h counter when
the clock reads minute m today.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from alphatrack.timeutil import MINUTES_PER_DAY, MS_PER_DAY, minute_of_day


@dataclass(frozen=True)
class MinuteTailTable:
    """
    Suffix-sum table over the 1440 minutes of one UTC day.

    Attributes:
        values: tail[m] = sum of per-minute values at minute-of-day >= m.
            Non-increasing in m.
        date: UTC date (YYYY-MM-DD) the samples were taken from, "" if unknown.
    """

    values: tuple[float, ...] = field(default=(0.0,) * MINUTES_PER_DAY)
    date: str = ""

    def __post_init__(self) -> None:
        if len(self.values) != MINUTES_PER_DAY:
            raise ValueError(
                f"tail table must have {MINUTES_PER_DAY} slots, got {len(self.values)}"
            )

    def at(self, minute: int) -> float:
        """Tail value at a minute-of-day."""
        return self.values[minute]

    @property
    def total(self) -> float:
        """Total of all samples (tail at minute 0)."""
        return self.values[0]

    @property
    def is_empty(self) -> bool:
        """True if the table subtracts nothing."""
        return self.values[0] == 0.0


EMPTY_TAIL = MinuteTailTable()


def build_tail_table(
    samples: Iterable[tuple[int, float]],
    *,
    day_start_ms: int | None = None,
    date: str = "",
) -> MinuteTailTable:
    """
    Build a tail table from per-minute samples.

    Samples may be sparse or out of order. Each is assigned to its UTC
    minute-of-day slot; a later sample for the same slot replaces an earlier
    one. An empty input yields an all-zero table.

    Args:
        samples: (minute_start_ts_ms, value) pairs.
        day_start_ms: If given, samples outside [day_start, day_start + 1 day)
            are ignored.
        date: Label of the sampled day.

    Returns:
        MinuteTailTable for the sampled day.
    """
    buckets = [0.0] * MINUTES_PER_DAY
    for ts, value in samples:
        if day_start_ms is not None and not day_start_ms <= ts < day_start_ms + MS_PER_DAY:
            continue
        buckets[minute_of_day(ts)] = float(value)

    running = 0.0
    for minute in range(MINUTES_PER_DAY - 1, -1, -1):
        running += buckets[minute]
        buckets[minute] = running

    return MinuteTailTable(values=tuple(buckets), date=date)


@dataclass(frozen=True)
class AssetTails:
    """Volume and trade-count tail tables of one asset for one day."""

    volume: MinuteTailTable = EMPTY_TAIL
    tx_count: MinuteTailTable = EMPTY_TAIL
    date: str = ""
