"""
Competition finalization: LIVE -> FINALIZED, exactly once per asset.

The transition is decided and applied in memory before any I/O: the record
is created, the in-memory marker set and the competition removed from the
active set in one synchronous step. The durable write follows and, if it
fails, is retried on later cycles as a plain storage write. Delivery to the
archive is therefore at-least-once; the finalization decision is made once.
The archive map is rewritten whole, so nothing is written until the
existing map has been read and merged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from alphatrack.contracts.events import (
    CompetitionConfig,
    FinalizedRecord,
    PredictionResult,
)
from alphatrack.contracts.types import CompetitionStatus
from alphatrack.storage.archive import ArchiveStore, StorageError
from alphatrack.storage.config_store import ConfigStore
from alphatrack.volume.ledger import AccumulatedVolume

logger = logging.getLogger(__name__)


@dataclass
class FinalizerMetrics:
    """Counters for finalization side effects."""

    transitions: int = 0
    archive_writes: int = 0
    archive_write_failures: int = 0
    config_update_failures: int = 0


class Finalizer:
    """
    Owns the set of FinalizedRecords and their durable persistence.

    Args:
        archive: Durable archive for the finalized-competitions map.
        config_store: Config store to mark finalized (best effort).
        deactivate: Callback removing an asset from the active set.
    """

    def __init__(
        self,
        archive: ArchiveStore,
        config_store: ConfigStore | None = None,
        deactivate: Callable[[str], None] | None = None,
    ) -> None:
        self._archive = archive
        self._config_store = config_store
        self._deactivate = deactivate
        self._records: dict[str, FinalizedRecord] = {}
        self._archive_loaded = False
        self._dirty = False
        self._pending_config_marks: set[str] = set()
        self._metrics = FinalizerMetrics()

    @property
    def metrics(self) -> FinalizerMetrics:
        return self._metrics

    @property
    def records(self) -> dict[str, FinalizedRecord]:
        """Snapshot of finalized records by asset id."""
        return dict(self._records)

    @property
    def has_pending_write(self) -> bool:
        return self._dirty

    def state_of(self, asset_id: str) -> CompetitionStatus:
        if asset_id in self._records:
            return CompetitionStatus.FINALIZED
        return CompetitionStatus.LIVE

    def is_finalized(self, asset_id: str) -> bool:
        return asset_id in self._records

    def load(self, records: dict[str, FinalizedRecord]) -> None:
        """
        Merge records read from the archive at startup.

        Records already held in memory win; they may not be persisted yet.
        """
        for asset_id, record in records.items():
            self._records.setdefault(asset_id, record)
        self._archive_loaded = True

    async def _ensure_archive_loaded(self) -> bool:
        """Read the archive if it has not been read yet; True once it has."""
        if self._archive_loaded:
            return True
        try:
            self.load(await self._archive.load_finalized())
        except StorageError as e:
            logger.error(
                "Finalized archive unreadable; write deferred",
                extra={"error": str(e), "records": len(self._records)},
            )
            return False
        return True

    async def observe(
        self,
        competition: CompetitionConfig,
        volume: AccumulatedVolume,
        prediction: PredictionResult,
        now_ms: int,
    ) -> bool:
        """
        Finalize a competition if its prediction is final and it is still LIVE.

        Args:
            competition: Competition definition.
            volume: Final accumulated volume.
            prediction: This cycle's prediction.
            now_ms: Current timestamp.

        Returns:
            True if this call performed the LIVE -> FINALIZED transition.
        """
        asset_id = competition.asset_id
        if not prediction.is_finalized or asset_id in self._records:
            return False

        record = FinalizedRecord(
            config=competition.model_copy(update={"status": CompetitionStatus.FINALIZED}),
            volume=volume.to_view(),
            history=volume.history,
            prediction=prediction.model_copy(update={"status": CompetitionStatus.FINALIZED}),
            finalized_ts=now_ms,
        )
        self._records[asset_id] = record
        self._dirty = True
        self._pending_config_marks.add(asset_id)
        if self._deactivate is not None:
            self._deactivate(asset_id)
        self._metrics.transitions += 1
        logger.info(
            "Competition finalized",
            extra={
                "asset_id": asset_id,
                "target": prediction.target,
                "total_volume": volume.total,
            },
        )

        await self.flush()
        return True

    async def flush(self) -> bool:
        """
        Persist finalized records and pending config marks.

        Returns:
            True if nothing is left pending for the archive.
        """
        if self._dirty and await self._ensure_archive_loaded():
            try:
                await self._archive.save_finalized(dict(self._records))
            except StorageError as e:
                self._metrics.archive_write_failures += 1
                logger.error(
                    "Finalized archive write failed; will retry",
                    extra={"error": str(e), "records": len(self._records)},
                )
            else:
                self._dirty = False
                self._metrics.archive_writes += 1

        if self._config_store is not None:
            for asset_id in sorted(self._pending_config_marks):
                try:
                    await self._config_store.mark_finalized(asset_id)
                except StorageError as e:
                    self._metrics.config_update_failures += 1
                    logger.warning(
                        "Config store finalize mark failed",
                        extra={"asset_id": asset_id, "error": str(e)},
                    )
                    continue
                self._pending_config_marks.discard(asset_id)
        else:
            self._pending_config_marks.clear()

        return not self._dirty
