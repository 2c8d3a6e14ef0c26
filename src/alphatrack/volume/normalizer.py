"""Rolling 24h counter to calendar-day normalization."""

from __future__ import annotations

from dataclasses import dataclass

from alphatrack.volume.tail import MinuteTailTable


def normalize_daily(rolling_24h: float, tail: MinuteTailTable, minute: int) -> float:
    """
    Portion of a rolling 24h counter that belongs to the current UTC day.

    The counter at minute m equals today's volume so far plus yesterday's
    volume at-or-after minute m, which is tail[m].

    Args:
        rolling_24h: Exchange rolling counter.
        tail: Yesterday's tail table.
        minute: Current UTC minute-of-day.

    Returns:
        Today's value, clamped to >= 0.
    """
    return max(0.0, rolling_24h - tail.at(minute))


@dataclass(frozen=True)
class DailyVolume:
    """Today's normalized volume for one asset."""

    total: float = 0.0
    limit: float = 0.0
    tx_count: int = 0


def reconcile_total_limit(total: float, limit: float) -> tuple[float, float]:
    """
    Enforce total >= limit >= 0 between the two independently sampled counters.

    The limit-only stream is a subset of all trades, so a total below the
    limit is noise; the total is raised to match.
    """
    limit = max(0.0, limit)
    total = max(0.0, total)
    if total < limit:
        total = limit
    return total, limit


def normalize_asset(
    *,
    rolling_total: float,
    rolling_limit: float,
    rolling_tx_count: int,
    volume_tail: MinuteTailTable,
    tx_tail: MinuteTailTable,
    limit_tail: MinuteTailTable | None = None,
    minute: int,
) -> DailyVolume:
    """
    Normalize all rolling counters of one asset.

    Args:
        rolling_total: All-trades rolling 24h volume.
        rolling_limit: Limit-order-only rolling 24h volume (0 if unavailable).
        rolling_tx_count: All-trades rolling 24h transaction count.
        volume_tail: Yesterday's all-trades volume tail.
        tx_tail: Yesterday's trade-count tail.
        limit_tail: Yesterday's limit-only volume tail. When absent the
            all-trades tail is scaled by the current limit/total ratio.
        minute: Current UTC minute-of-day.

    Returns:
        DailyVolume with total >= limit >= 0.
    """
    daily_total = normalize_daily(rolling_total, volume_tail, minute)

    if limit_tail is not None:
        daily_limit = normalize_daily(rolling_limit, limit_tail, minute)
    elif rolling_total > 0:
        ratio = min(1.0, rolling_limit / rolling_total)
        daily_limit = max(0.0, rolling_limit - volume_tail.at(minute) * ratio)
    else:
        daily_limit = 0.0

    daily_total, daily_limit = reconcile_total_limit(daily_total, daily_limit)
    daily_tx = int(normalize_daily(float(rolling_tx_count), tx_tail, minute))

    return DailyVolume(total=daily_total, limit=daily_limit, tx_count=daily_tx)
