"""
Accumulation ledger.

Merges archived base volume of prior days with today's normalized volume.
The merge is a pure function of its inputs and is recomputed from scratch on
every poll cycle.
"""

from __future__ import annotations

from dataclasses import dataclass

from alphatrack.contracts.events import (
    AccumulatedVolumeView,
    BaseVolumeRecord,
    VolumeHistoryEntry,
)
from alphatrack.volume.normalizer import DailyVolume, reconcile_total_limit
from alphatrack.volume.offset import StartOffset


@dataclass(frozen=True)
class AccumulatedVolume:
    """
    Base plus today volume for one competition.

    Invariant: total >= limit >= 0.

    Attributes:
        base_volume: Volume carried over from prior days.
        base_limit_volume: Limit-only volume carried over from prior days.
        base_tx_count: Transactions carried over from prior days.
        today_volume: Today's normalized volume, offset-subtracted on day one.
        today_limit_volume: Today's limit-only volume.
        today_tx_count: Today's transaction count.
        total: base_volume + today_volume, raised to limit if lower.
        limit: base_limit_volume + today_limit_volume.
        tx_count: base_tx_count + today_tx_count.
        offset_applied: True if a day-one start offset was subtracted.
        history: Per-day volume series, today's entry last-updated.
    """

    base_volume: float
    base_limit_volume: float
    base_tx_count: int
    today_volume: float
    today_limit_volume: float
    today_tx_count: int
    total: float
    limit: float
    tx_count: int
    offset_applied: bool
    history: tuple[VolumeHistoryEntry, ...]

    def to_view(self) -> AccumulatedVolumeView:
        """Serializable view for outbound payloads."""
        return AccumulatedVolumeView(
            total=self.total,
            limit=self.limit,
            tx_count=self.tx_count,
            today_volume=self.today_volume,
            today_limit_volume=self.today_limit_volume,
            today_tx_count=self.today_tx_count,
            offset_applied=self.offset_applied,
        )


def _apply_offset(today: DailyVolume, offset: StartOffset) -> tuple[float, float]:
    """Subtract the start offset from today's total and, pro rata, from the limit."""
    ratio = today.limit / today.total if today.total > 0 else 0.0
    total = max(0.0, today.total - offset.volume)
    limit = max(0.0, today.limit - offset.volume * ratio)
    return total, limit


def _merge_history(
    history: tuple[VolumeHistoryEntry, ...],
    date: str,
    volume: float,
    since: str | None,
) -> tuple[VolumeHistoryEntry, ...]:
    """Update today's entry if present, else append it."""
    entries = [h for h in history if since is None or h.date >= since]
    today_entry = VolumeHistoryEntry(date=date, volume=volume)
    for i, entry in enumerate(entries):
        if entry.date == date:
            entries[i] = today_entry
            break
    else:
        entries.append(today_entry)
    return tuple(entries)


def accumulate(
    *,
    today: DailyVolume,
    today_date: str,
    base: BaseVolumeRecord | None = None,
    offset: StartOffset | None = None,
    is_day_one: bool = False,
    start_date: str | None = None,
) -> AccumulatedVolume:
    """
    Merge base volume with today's normalized volume.

    On day one the base is ignored (there are no prior competition days) and
    the start offset, when known, is subtracted from today's volume.

    Args:
        today: Today's normalized volume.
        today_date: Current UTC date.
        base: Archived base volume of prior days.
        offset: Day-one start offset, None if not (yet) computed.
        is_day_one: True if the competition starts today.
        start_date: Competition start date; history before it is dropped.

    Returns:
        AccumulatedVolume with total >= limit >= 0.
    """
    today_total, today_limit = today.total, today.limit
    offset_applied = False
    if is_day_one and offset is not None:
        today_total, today_limit = _apply_offset(today, offset)
        offset_applied = True
    today_total, today_limit = reconcile_total_limit(today_total, today_limit)

    if base is None or is_day_one:
        base = BaseVolumeRecord()

    total, limit = reconcile_total_limit(
        base.base_volume + today_total,
        base.base_limit_volume + today_limit,
    )

    return AccumulatedVolume(
        base_volume=base.base_volume,
        base_limit_volume=base.base_limit_volume,
        base_tx_count=base.base_tx_count,
        today_volume=today_total,
        today_limit_volume=today_limit,
        today_tx_count=today.tx_count,
        total=total,
        limit=limit,
        tx_count=base.base_tx_count + today.tx_count,
        offset_applied=offset_applied,
        history=_merge_history(base.history, today_date, today_total, start_date),
    )
