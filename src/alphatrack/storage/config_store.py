"""
Competition configuration store.

The store is owned by operators; the tracker reads it periodically and only
ever writes one thing back: the finalized status of a competition.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from alphatrack.contracts.events import CompetitionConfig
from alphatrack.contracts.types import CompetitionStatus
from alphatrack.storage.archive import StorageError

logger = logging.getLogger(__name__)


def parse_competitions(raw: list[Any]) -> list[CompetitionConfig]:
    """
    Validate raw competition records.

    A record that fails validation is dropped with a warning; the rest of
    the set is kept.
    """
    configs: list[CompetitionConfig] = []
    for item in raw:
        try:
            configs.append(CompetitionConfig.model_validate(item))
        except ValidationError as e:
            asset_id = item.get("asset_id") if isinstance(item, dict) else None
            logger.warning(
                "Dropping invalid competition config",
                extra={"asset_id": asset_id, "error": str(e)},
            )
    return configs


class ConfigStore(ABC):
    """Source of competition configs."""

    @abstractmethod
    async def list_competitions(self) -> list[CompetitionConfig]:
        """
        Fetch all competition configs.

        Raises:
            StorageError: If the store cannot be read.
        """
        ...

    @abstractmethod
    async def mark_finalized(self, asset_id: str) -> None:
        """
        Record that the competition for asset_id is finalized.

        Raises:
            StorageError: If the update fails.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""


class MemoryConfigStore(ConfigStore):
    """In-process config store."""

    def __init__(self, competitions: list[CompetitionConfig] | None = None) -> None:
        self._competitions: dict[str, CompetitionConfig] = {
            c.asset_id: c for c in competitions or []
        }
        self.finalized_calls: list[str] = []

    def upsert(self, competition: CompetitionConfig) -> None:
        self._competitions[competition.asset_id] = competition

    async def list_competitions(self) -> list[CompetitionConfig]:
        return list(self._competitions.values())

    async def mark_finalized(self, asset_id: str) -> None:
        self.finalized_calls.append(asset_id)
        current = self._competitions.get(asset_id)
        if current is not None:
            self._competitions[asset_id] = current.model_copy(
                update={"status": CompetitionStatus.FINALIZED}
            )


class FileConfigStore(ConfigStore):
    """
    Competition configs kept in a JSON file.

    The file holds either a list of competition objects or an object with a
    "competitions" list. A missing file or an object without that key is a
    read failure, not an empty set.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> list[Any]:
        try:
            data = orjson.loads(self._path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise StorageError(f"Failed to read config file: {e}", key=self._path.name) from e
        if isinstance(data, dict):
            if "competitions" not in data:
                raise StorageError(
                    'Config file object has no "competitions" list', key=self._path.name
                )
            data = data["competitions"]
        if not isinstance(data, list):
            raise StorageError("Config file must hold a list of competitions", key=self._path.name)
        return data

    def _mark_finalized_sync(self, asset_id: str) -> None:
        raw = self._read_raw()
        changed = False
        for item in raw:
            if isinstance(item, dict) and item.get("asset_id") == asset_id:
                item["status"] = CompetitionStatus.FINALIZED.value
                changed = True
        if not changed:
            return
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_bytes(orjson.dumps({"competitions": raw}, option=orjson.OPT_INDENT_2))
            os.replace(tmp, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write config file: {e}", key=self._path.name) from e

    async def list_competitions(self) -> list[CompetitionConfig]:
        async with self._lock:
            raw = await asyncio.to_thread(self._read_raw)
        return parse_competitions(raw)

    async def mark_finalized(self, asset_id: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._mark_finalized_sync, asset_id)
