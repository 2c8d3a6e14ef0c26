"""Data contracts for the Alpha competition tracker."""

from alphatrack.contracts.events import (
    AccumulatedVolumeView,
    AssetRollingSnapshot,
    BaseVolumeRecord,
    CompetitionConfig,
    CompetitionView,
    FinalizedRecord,
    MarketView,
    PredictionResult,
    TargetHistoryEntry,
    VolumeHistoryEntry,
)
from alphatrack.contracts.types import CompetitionStatus, PriceStatus, RuleType

__all__ = [
    "AccumulatedVolumeView",
    "AssetRollingSnapshot",
    "BaseVolumeRecord",
    "CompetitionConfig",
    "CompetitionStatus",
    "CompetitionView",
    "FinalizedRecord",
    "MarketView",
    "PredictionResult",
    "PriceStatus",
    "RuleType",
    "TargetHistoryEntry",
    "VolumeHistoryEntry",
]
