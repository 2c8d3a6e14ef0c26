"""Daily-volume extraction: tail tables, normalization, offsets, accumulation."""

from alphatrack.volume.ledger import AccumulatedVolume, accumulate
from alphatrack.volume.normalizer import (
    DailyVolume,
    normalize_asset,
    normalize_daily,
    reconcile_total_limit,
)
from alphatrack.volume.offset import StartOffset, StartOffsetCache, compute_start_offset
from alphatrack.volume.tail import EMPTY_TAIL, AssetTails, MinuteTailTable, build_tail_table
from alphatrack.volume.velocity import VelocityEstimate, VelocityTracker

__all__ = [
    "EMPTY_TAIL",
    "AccumulatedVolume",
    "AssetTails",
    "DailyVolume",
    "MinuteTailTable",
    "StartOffset",
    "StartOffsetCache",
    "VelocityEstimate",
    "VelocityTracker",
    "accumulate",
    "build_tail_table",
    "compute_start_offset",
    "normalize_asset",
    "normalize_daily",
    "reconcile_total_limit",
]
