"""Archive and configuration storage backends."""

from alphatrack.storage.archive import (
    BASE_VOLUME_KEY,
    FINALIZED_KEY,
    ArchiveStore,
    FileArchiveStore,
    MemoryArchiveStore,
    StorageError,
)
from alphatrack.storage.config_store import (
    ConfigStore,
    FileConfigStore,
    MemoryConfigStore,
    parse_competitions,
)

__all__ = [
    "BASE_VOLUME_KEY",
    "FINALIZED_KEY",
    "ArchiveStore",
    "ConfigStore",
    "FileArchiveStore",
    "FileConfigStore",
    "MemoryArchiveStore",
    "MemoryConfigStore",
    "StorageError",
    "parse_competitions",
]
