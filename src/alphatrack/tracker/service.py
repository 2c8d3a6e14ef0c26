"""
Tracker service.

Owns the application state and runs the independent polling loops:

    realtime      token list (all + limit-only) -> normalizer -> ledger
                  -> projection -> finalizer, every few seconds
    config        competition configs from the config store
    offsets       day-one start offsets from historical klines
    base_volumes  archived base volume of prior competition days
    rollover      UTC day-change detection and tail table rebuild

A failing loop keeps the state its last good run produced. The realtime loop
uses whatever tail tables and offsets are present; missing ones degrade to
zero subtraction.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from alphatrack.config import TrackerConfig
from alphatrack.connectors.alpha.rest_client import AlphaResponseError, AlphaRestClient
from alphatrack.connectors.backoff import RateLimitError
from alphatrack.contracts.events import (
    CompetitionConfig,
    CompetitionView,
    FinalizedRecord,
    MarketView,
)
from alphatrack.contracts.types import CompetitionStatus
from alphatrack.finalization.machine import Finalizer
from alphatrack.projection.engine import ProjectionConfig, ProjectionEngine
from alphatrack.storage.archive import ArchiveStore, StorageError
from alphatrack.storage.config_store import ConfigStore
from alphatrack.timeutil import (
    MS_PER_DAY,
    day_start_ms,
    minute_of_day,
    now_ms,
    previous_date,
    utc_date,
)
from alphatrack.tracker.exporter import TrackerExporter
from alphatrack.tracker.market import build_market_view, build_snapshots, normalize_snapshot
from alphatrack.tracker.scheduler import LoopScheduler, LoopSpec
from alphatrack.tracker.state import AppState
from alphatrack.volume.ledger import accumulate
from alphatrack.volume.normalizer import DailyVolume
from alphatrack.volume.offset import StartOffset, compute_start_offset
from alphatrack.volume.tail import AssetTails, build_tail_table
from alphatrack.volume.velocity import VelocityTracker

logger = logging.getLogger(__name__)

# Upstream failures that skip one item of a batch
FETCH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, RateLimitError, AlphaResponseError)

EMPTY_TAILS = AssetTails()


class TrackerService:
    """
    Competition volume tracker.

    Args:
        config: Tracker configuration.
        client: Alpha REST client.
        archive: Durable archive store.
        config_store: Competition config store.
        exporter: Optional Prometheus exporter.
        time_fn: Wall-clock provider in ms.
        sleep_fn: Coroutine used for batch delays.
    """

    def __init__(
        self,
        config: TrackerConfig,
        client: AlphaRestClient,
        archive: ArchiveStore,
        config_store: ConfigStore,
        exporter: TrackerExporter | None = None,
        time_fn: Callable[[], int] | None = None,
        sleep_fn: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._archive = archive
        self._config_store = config_store
        self._exporter = exporter
        self._now = time_fn or now_ms
        self._sleep = sleep_fn or asyncio.sleep

        self._state = AppState()
        self._engine = ProjectionEngine(
            ProjectionConfig(base_constant=config.base_constant, freeze_s=config.freeze_s)
        )
        self._velocity = VelocityTracker(window_s=config.velocity_window_s)
        self._finalizer = Finalizer(
            archive=archive,
            config_store=config_store,
            deactivate=self._state.deactivate,
        )
        self._scheduler = LoopScheduler(
            health=self._state.loop_health,
            on_result=self._on_loop_result,
            time_fn=self._now,
        )
        self._running = False
        self._start_monotonic = 0.0

        timeout = config.loop_timeout_s
        for spec in (
            LoopSpec("realtime", config.realtime_interval_s, self.poll_realtime, timeout),
            LoopSpec("config", config.config_refresh_s, self.refresh_competitions, timeout),
            LoopSpec("offsets", config.offset_refresh_s, self.refresh_offsets, timeout),
            LoopSpec("base_volumes", config.base_refresh_s, self.refresh_base_volumes, timeout),
            LoopSpec("rollover", config.rollover_check_s, self.check_rollover, timeout),
        ):
            self._scheduler.add(spec)

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def finalizer(self) -> Finalizer:
        return self._finalizer

    @property
    def scheduler(self) -> LoopScheduler:
        return self._scheduler

    # === Startup / shutdown ===

    async def load_archive(self) -> None:
        """
        Load finalized records and base volumes.

        A failed read leaves them empty. The finalizer re-reads its archive
        before its first write.
        """
        try:
            self._finalizer.load(await self._archive.load_finalized())
        except StorageError as e:
            logger.error("Failed to load finalized archive", extra={"error": str(e)})
        try:
            self._state.base_volumes = await self._archive.load_base_volumes()
        except StorageError as e:
            logger.error("Failed to load base volumes", extra={"error": str(e)})
        logger.info(
            "Archive loaded",
            extra={
                "finalized": len(self._finalizer.records),
                "base_volumes": len(self._state.base_volumes),
            },
        )

    async def run(self) -> None:
        """Load the archive and run all loops until request_shutdown()."""
        if self._running:
            return
        logger.info("Starting tracker", extra={"config": self._config.redacted()})
        self._running = True
        self._start_monotonic = time.monotonic()
        await self.load_archive()
        try:
            await self._scheduler.run()
        finally:
            self._running = False

    def request_shutdown(self) -> None:
        """Ask every loop to stop after its current run."""
        logger.info("Shutdown requested")
        self._scheduler.stop()

    async def close(self) -> None:
        """Flush pending finalization writes and release resources."""
        if self._finalizer.has_pending_write:
            await self._finalizer.flush()
        await self._client.close()
        await self._archive.close()
        await self._config_store.close()
        logger.info("Tracker stopped")

    def _on_loop_result(self, name: str, ok: bool) -> None:
        if self._exporter is None:
            return
        self._exporter.record_loop(name, ok)
        self._exporter.update(
            finalizer_metrics=self._finalizer.metrics,
            circuit_breaker=self._client.circuit_breaker,
            active=len(self._state.active),
            tracked=len(self._state.snapshots),
            tails=len(self._state.tails),
        )

    # === Loops ===

    async def poll_realtime(self) -> None:
        """
        One realtime cycle.

        A failed all-trades fetch skips the cycle. A failed limit-only fetch
        keeps the previous limit snapshots. An active asset missing from the
        token list keeps its last snapshot and volume until the UTC date
        changes, so it can still reach its freeze and finalize.
        """
        state = self._state
        tickers = await self._client.get_token_tickers()
        ts = self._now()
        try:
            limit_tickers = await self._client.get_token_tickers(limit_only=True)
        except FETCH_ERRORS as e:
            logger.warning("Limit token list fetch failed", extra={"error": repr(e)})
            limit_snapshots = state.limit_snapshots
        else:
            limit_snapshots = build_snapshots(limit_tickers, ts)

        today = utc_date(ts)
        yesterday = previous_date(today)
        minute = minute_of_day(ts)

        snapshots = build_snapshots(tickers, ts)
        daily: dict[str, DailyVolume] = {}
        markets: dict[str, MarketView] = {}
        for asset_id, snapshot in snapshots.items():
            tails = state.tails.get(asset_id, EMPTY_TAILS)
            if tails.date != yesterday:
                tails = EMPTY_TAILS
            volume = normalize_snapshot(snapshot, limit_snapshots.get(asset_id), tails, minute)
            daily[asset_id] = volume
            self._velocity.record(asset_id, ts, volume.total, volume.tx_count)
            markets[asset_id] = build_market_view(
                snapshot,
                volume,
                state.markets.get(asset_id),
                self._velocity.estimate(asset_id, ts).volume_per_s,
            )

        # Active assets missing from this poll keep today's last known volume
        for asset_id in state.active:
            last = state.snapshots.get(asset_id)
            if (
                asset_id not in snapshots
                and last is not None
                and asset_id in state.daily
                and utc_date(last.timestamp_ms) == today
            ):
                snapshots[asset_id] = last
                daily[asset_id] = state.daily[asset_id]

        state.snapshots = snapshots
        state.limit_snapshots = limit_snapshots
        state.daily = daily
        state.markets = markets

        views: dict[str, CompetitionView] = {}
        for competition in list(state.active.values()):
            view = await self._update_competition(competition, ts, today)
            if view is not None:
                views[competition.asset_id] = view

        await self._finalizer.flush()

        # Keep the last view of active assets missing from this poll
        for asset_id in state.active:
            if asset_id not in views and asset_id in state.competitions:
                views[asset_id] = state.competitions[asset_id]
        state.competitions = {k: v for k, v in views.items() if k in state.active}

    async def _update_competition(
        self,
        competition: CompetitionConfig,
        ts: int,
        today: str,
    ) -> CompetitionView | None:
        asset_id = competition.asset_id
        daily = self._state.daily.get(asset_id)
        if daily is None or ts < competition.start_ms():
            return None

        is_day_one = competition.start_date == today
        volume = accumulate(
            today=daily,
            today_date=today,
            base=self._state.base_volumes.get(asset_id),
            offset=self._state.offsets.get(asset_id, today) if is_day_one else None,
            is_day_one=is_day_one,
            start_date=competition.start_date,
        )
        prediction = self._engine.predict(
            competition, volume, ts, self._velocity.estimate(asset_id, ts)
        )
        if await self._finalizer.observe(competition, volume, prediction, ts):
            return None

        return CompetitionView(
            config=competition,
            volume=volume.to_view(),
            history=volume.history,
            prediction=prediction,
            updated_ts=ts,
        )

    async def refresh_competitions(self) -> None:
        """
        Reload the active competition set.

        Finalized competitions are never re-activated. Competitions whose end
        date has passed without finalizing are dropped with a warning. A
        failed read raises and leaves the current set in place.
        """
        competitions = await self._config_store.list_competitions()
        today = utc_date(self._now())

        active: dict[str, CompetitionConfig] = {}
        for competition in competitions:
            asset_id = competition.asset_id
            if competition.status == CompetitionStatus.FINALIZED:
                continue
            if self._finalizer.is_finalized(asset_id):
                continue
            if competition.end_date < today:
                logger.warning(
                    "Dropping competition past its end date",
                    extra={"asset_id": asset_id, "end_date": competition.end_date},
                )
                continue
            if competition.start_date > today:
                continue
            active[asset_id] = competition

        added = active.keys() - self._state.active.keys()
        removed = self._state.active.keys() - active.keys()
        self._state.active = active
        if added or removed:
            logger.info(
                "Active competitions changed",
                extra={"added": sorted(added), "removed": sorted(removed), "active": len(active)},
            )

    async def refresh_base_volumes(self) -> None:
        """Reload archived base volumes; a failed read keeps the cached map."""
        self._state.base_volumes = await self._archive.load_base_volumes()

    async def refresh_offsets(self) -> None:
        """
        Compute missing day-one start offsets.

        Only competitions that start today and have already started are
        considered. A failed fetch leaves the offset uncomputed until the
        next run.
        """
        ts = self._now()
        today = utc_date(ts)
        midnight = day_start_ms(ts)
        offsets = self._state.offsets
        offsets.prune(today)

        pending = [
            c
            for c in self._state.active.values()
            if c.start_date == today
            and ts >= c.start_ms()
            and offsets.needs_refresh(c.asset_id, today)
        ]
        for i, competition in enumerate(pending):
            if i > 0:
                await self._batch_delay()
            start = competition.start_ms()
            if start <= midnight:
                offsets.put(StartOffset(competition.asset_id, today, 0.0, ts))
                continue
            try:
                klines = await self._client.get_klines(
                    competition.asset_id,
                    midnight,
                    start,
                    interval=self._config.offset_interval,
                )
            except FETCH_ERRORS as e:
                logger.warning(
                    "Start offset fetch failed",
                    extra={"asset_id": competition.asset_id, "error": repr(e)},
                )
                continue
            volume = compute_start_offset(
                ((k.open_time, k.quote_volume) for k in klines), midnight, start
            )
            offsets.put(StartOffset(competition.asset_id, today, volume, self._now()))
            logger.info(
                "Start offset computed",
                extra={"asset_id": competition.asset_id, "offset": volume},
            )

    async def check_rollover(self) -> None:
        """
        Rebuild tail tables when the UTC date changes.

        On a date change every active asset is rebuilt. Otherwise only active
        assets without a table for yesterday are built, which also retries
        earlier per-asset failures.
        """
        ts = self._now()
        today = utc_date(ts)
        yesterday = previous_date(today)
        state = self._state

        if state.tails_date != today:
            if state.tails_date:
                logger.info("UTC date changed", extra={"from": state.tails_date, "to": today})
            state.tails = {}
            state.tails_date = today
            state.offsets.prune(today)

        missing = [
            asset_id
            for asset_id in sorted(state.active)
            if state.tails.get(asset_id, EMPTY_TAILS).date != yesterday
        ]
        if not missing:
            return

        start = day_start_ms(ts) - MS_PER_DAY
        built = 0
        for i, asset_id in enumerate(missing):
            if i > 0:
                await self._batch_delay()
            try:
                klines = await self._client.get_klines(asset_id, start, start + MS_PER_DAY)
            except FETCH_ERRORS as e:
                logger.warning(
                    "Tail table fetch failed",
                    extra={"asset_id": asset_id, "error": repr(e)},
                )
                continue
            tails = AssetTails(
                volume=build_tail_table(
                    ((k.open_time, k.quote_volume) for k in klines),
                    day_start_ms=start,
                    date=yesterday,
                ),
                tx_count=build_tail_table(
                    ((k.open_time, float(k.trades)) for k in klines),
                    day_start_ms=start,
                    date=yesterday,
                ),
                date=yesterday,
            )
            state.tails = {**state.tails, asset_id: tails}
            built += 1

        logger.info(
            "Tail tables built",
            extra={"built": built, "failed": len(missing) - built, "date": yesterday},
        )

    async def _batch_delay(self) -> None:
        if self._config.batch_delay_s > 0:
            await self._sleep(self._config.batch_delay_s)

    # === Outbound views ===

    def market_snapshot(self) -> list[MarketView]:
        """Per-asset market data, highest daily volume first."""
        return sorted(self._state.markets.values(), key=lambda m: (-m.daily_volume, m.asset_id))

    def competition_views(self) -> list[CompetitionView]:
        """Live competition views ordered by asset id."""
        competitions = self._state.competitions
        return [competitions[k] for k in sorted(competitions)]

    def competition_view(self, asset_id: str) -> CompetitionView | FinalizedRecord | None:
        """Live view of a competition, else its finalized record."""
        view = self._state.competitions.get(asset_id)
        if view is not None:
            return view
        return self._finalizer.records.get(asset_id)

    def get_health_info(self) -> dict[str, Any]:
        """Service health for /healthz."""
        uptime_s = 0.0
        if self._start_monotonic:
            uptime_s = round(time.monotonic() - self._start_monotonic, 1)
        loops = self._state.loops
        realtime = loops.get("realtime")
        return {
            "status": "ok" if self._running else "stopped",
            "uptime_s": uptime_s,
            "last_realtime_success_ts": realtime.last_success_ts if realtime else 0,
            "loop_failures": {name: h.failures for name, h in sorted(loops.items())},
            "active_competitions": len(self._state.active),
            "finalized_competitions": len(self._finalizer.records),
            "pending_archive_write": self._finalizer.has_pending_write,
            "circuit_breaker": self._client.circuit_breaker.get_status(),
        }
