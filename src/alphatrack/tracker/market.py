"""Per-asset market processing for one realtime poll."""

from __future__ import annotations

from collections.abc import Mapping

from alphatrack.connectors.alpha.types import TokenTicker
from alphatrack.contracts.events import AssetRollingSnapshot, MarketView
from alphatrack.contracts.types import PriceStatus
from alphatrack.volume.normalizer import DailyVolume, normalize_asset
from alphatrack.volume.tail import AssetTails

DUMP_THRESHOLD = -0.015
SLIPPAGE_THRESHOLD = -0.005
PUMP_THRESHOLD = 0.005


def classify_price_move(previous: float, current: float) -> tuple[float, PriceStatus]:
    """
    Relative price change and its classification.

    Returns:
        (change, status). A missing or zero previous price is NORMAL.
    """
    if previous <= 0:
        return 0.0, PriceStatus.NORMAL
    change = (current - previous) / previous
    if change < DUMP_THRESHOLD:
        return change, PriceStatus.DUMPING
    if change < SLIPPAGE_THRESHOLD:
        return change, PriceStatus.SLIPPAGE
    if change > PUMP_THRESHOLD:
        return change, PriceStatus.PUMPING
    return change, PriceStatus.NORMAL


def build_snapshots(
    tickers: Mapping[str, TokenTicker],
    ts: int,
) -> dict[str, AssetRollingSnapshot]:
    """Convert a token list into rolling snapshots keyed by asset id."""
    return {
        asset_id: AssetRollingSnapshot(
            asset_id=asset_id,
            symbol=t.symbol,
            price=t.price,
            rolling_volume_24h=t.volume_24h,
            rolling_tx_count_24h=t.count_24h,
            timestamp_ms=ts,
        )
        for asset_id, t in tickers.items()
    }


def normalize_snapshot(
    snapshot: AssetRollingSnapshot,
    limit_snapshot: AssetRollingSnapshot | None,
    tails: AssetTails,
    minute: int,
) -> DailyVolume:
    """Today's volume for one asset from its all-trades and limit-only snapshots."""
    return normalize_asset(
        rolling_total=snapshot.rolling_volume_24h,
        rolling_limit=limit_snapshot.rolling_volume_24h if limit_snapshot else 0.0,
        rolling_tx_count=snapshot.rolling_tx_count_24h,
        volume_tail=tails.volume,
        tx_tail=tails.tx_count,
        minute=minute,
    )


def build_market_view(
    snapshot: AssetRollingSnapshot,
    daily: DailyVolume,
    previous: MarketView | None,
    velocity: float = 0.0,
) -> MarketView:
    """Outbound market record for one asset."""
    change, status = classify_price_move(previous.price if previous else 0.0, snapshot.price)
    return MarketView(
        asset_id=snapshot.asset_id,
        symbol=snapshot.symbol,
        price=snapshot.price,
        price_change=change,
        price_status=status,
        rolling_volume_24h=snapshot.rolling_volume_24h,
        daily_volume=daily.total,
        daily_limit_volume=daily.limit,
        daily_tx_count=daily.tx_count,
        velocity=velocity,
        updated_ts=snapshot.timestamp_ms,
    )
