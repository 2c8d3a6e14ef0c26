"""
Durable archive store.

Holds two JSON blobs: the finalized-competitions map and the base-volume
map, both keyed by asset id. Backends only need get/put of whole objects by
key; writes overwrite the whole object.
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

from alphatrack.contracts.events import BaseVolumeRecord, FinalizedRecord

logger = logging.getLogger(__name__)

FINALIZED_KEY = "finalized_competitions.json"
BASE_VOLUME_KEY = "base_volumes.json"


class StorageError(Exception):
    """Raised when a storage backend cannot read or write an object."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class ArchiveStore(ABC):
    """Object store holding JSON documents by key."""

    @abstractmethod
    async def get_object(self, key: str) -> dict[str, Any] | None:
        """
        Read a JSON object.

        Returns:
            Parsed object, or None if the key does not exist.

        Raises:
            StorageError: If the backend fails or the object is not a JSON object.
        """
        ...

    @abstractmethod
    async def put_object(self, key: str, data: dict[str, Any]) -> None:
        """
        Overwrite a JSON object.

        Raises:
            StorageError: If the write fails.
        """
        ...

    async def load_finalized(self) -> dict[str, FinalizedRecord]:
        """Load the finalized-competitions map; malformed entries are skipped."""
        raw = await self.get_object(FINALIZED_KEY) or {}
        records: dict[str, FinalizedRecord] = {}
        for asset_id, value in raw.items():
            try:
                records[asset_id] = FinalizedRecord.model_validate(value)
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed finalized record",
                    extra={"asset_id": asset_id, "error": str(e)},
                )
        return records

    async def save_finalized(self, records: dict[str, FinalizedRecord]) -> None:
        """Overwrite the finalized-competitions map."""
        payload = {k: v.model_dump(mode="json") for k, v in records.items()}
        await self.put_object(FINALIZED_KEY, payload)

    async def load_base_volumes(self) -> dict[str, BaseVolumeRecord]:
        """Load the base-volume map; malformed entries are skipped."""
        raw = await self.get_object(BASE_VOLUME_KEY) or {}
        records: dict[str, BaseVolumeRecord] = {}
        for asset_id, value in raw.items():
            try:
                records[asset_id] = BaseVolumeRecord.model_validate(value)
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed base volume record",
                    extra={"asset_id": asset_id, "error": str(e)},
                )
        return records

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MemoryArchiveStore(ArchiveStore):
    """In-process store, used in tests and dry runs."""

    def __init__(self, objects: dict[str, dict[str, Any]] | None = None) -> None:
        self._objects: dict[str, bytes] = {}
        for key, value in (objects or {}).items():
            self._objects[key] = orjson.dumps(value)
        self.put_count = 0

    async def get_object(self, key: str) -> dict[str, Any] | None:
        data = self._objects.get(key)
        if data is None:
            return None
        result: dict[str, Any] = orjson.loads(data)
        return result

    async def put_object(self, key: str, data: dict[str, Any]) -> None:
        self._objects[key] = orjson.dumps(data)
        self.put_count += 1


class FileArchiveStore(ArchiveStore):
    """
    Archive stored as one JSON file per key under a directory.

    Writes go to a temporary file that is then atomically renamed, so a
    reader never sees a half-written object.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if "/" in key or key.startswith("."):
            raise StorageError(f"Invalid object key: {key!r}", key=key)
        return self._dir / key

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        if not isinstance(data, dict):
            raise StorageError(f"Object {key} is not a JSON object", key=key)
        return data

    def _write(self, key: str, data: dict[str, Any]) -> None:
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
            os.replace(tmp, path)
        except (OSError, TypeError) as e:
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e

    async def get_object(self, key: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read, key)

    async def put_object(self, key: str, data: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, key, data)

    def __repr__(self) -> str:
        return f"FileArchiveStore(directory={str(self._dir)!r})"
