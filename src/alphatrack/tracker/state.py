"""
Shared application state.

Owned by the TrackerService and read or written by every loop. All loops run
on one event loop; per-asset entries are only ever replaced as whole
immutable records and each map is swapped in one assignment, so a reader
never observes a half-written record.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from alphatrack.contracts.events import (
    AssetRollingSnapshot,
    BaseVolumeRecord,
    CompetitionConfig,
    CompetitionView,
    MarketView,
)
from alphatrack.volume.normalizer import DailyVolume
from alphatrack.volume.offset import StartOffsetCache
from alphatrack.volume.tail import AssetTails


@dataclass
class LoopHealth:
    """Last-run bookkeeping for one scheduled loop."""

    runs: int = 0
    failures: int = 0
    last_success_ts: int = 0
    last_error: str = ""


@dataclass
class AppState:
    """
    In-memory state of the tracker.

    Attributes:
        snapshots: Latest all-trades snapshot per asset.
        limit_snapshots: Latest limit-only snapshot per asset.
        daily: Latest normalized daily volume per asset.
        markets: Outbound market view per asset.
        tails: Yesterday's tail tables per asset.
        tails_date: UTC date the tail tables were last rebuilt for.
        active: Active (LIVE) competitions by asset id.
        base_volumes: Archived base volumes by asset id.
        offsets: Day-one start offset cache.
        competitions: Outbound competition view per active asset.
        loops: Health per scheduled loop.
    """

    snapshots: dict[str, AssetRollingSnapshot] = field(default_factory=dict)
    limit_snapshots: dict[str, AssetRollingSnapshot] = field(default_factory=dict)
    daily: dict[str, DailyVolume] = field(default_factory=dict)
    markets: dict[str, MarketView] = field(default_factory=dict)
    tails: dict[str, AssetTails] = field(default_factory=dict)
    tails_date: str = ""
    active: dict[str, CompetitionConfig] = field(default_factory=dict)
    base_volumes: dict[str, BaseVolumeRecord] = field(default_factory=dict)
    offsets: StartOffsetCache = field(default_factory=StartOffsetCache)
    competitions: dict[str, CompetitionView] = field(default_factory=dict)
    loops: dict[str, LoopHealth] = field(default_factory=dict)

    def deactivate(self, asset_id: str) -> None:
        """Remove an asset from the active set and its live view."""
        if asset_id in self.active:
            active = dict(self.active)
            del active[asset_id]
            self.active = active
        if asset_id in self.competitions:
            competitions = dict(self.competitions)
            del competitions[asset_id]
            self.competitions = competitions

    def loop_health(self, name: str) -> LoopHealth:
        health = self.loops.get(name)
        if health is None:
            health = LoopHealth()
            self.loops[name] = health
        return health
