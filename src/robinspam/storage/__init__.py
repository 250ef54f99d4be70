# =============================================================================
# Storage Module
# =============================================================================
# Persistent token stores for the classifier.
#
# Provides:
#   - StorageBase: the shared contract (lookups with degenerate fallback,
#     transactional training, schema checks)
#   - MemoryStorage: process-local dict
#   - SQLiteStorage: single table in an SQLite file
#   - DbmStorage: key/value file via the dbm module
#
# open_storage() picks the implementation named in the configuration.
# =============================================================================

import logging
from typing import TYPE_CHECKING

from robinspam.config import StorageBackend, StorageConfig
from robinspam.storage.base import SchemaVersionError, StorageBase, StorageError
from robinspam.storage.dbm_store import DbmStorage
from robinspam.storage.memory import MemoryStorage
from robinspam.storage.sqlite import SQLiteStorage

if TYPE_CHECKING:
    from robinspam.spam.degenerator import Degenerator

logger = logging.getLogger(__name__)

BACKENDS: dict[StorageBackend, type[StorageBase]] = {
    StorageBackend.MEMORY: MemoryStorage,
    StorageBackend.SQLITE: SQLiteStorage,
    StorageBackend.DBM: DbmStorage,
}


def open_storage(config: StorageConfig, degenerator: "Degenerator") -> StorageBase:
    """
    Open the token store named in the configuration.

    Args:
        config: Storage configuration.
        degenerator: Degenerator shared with the classifier.

    Returns:
        An attached, up-to-date token store.

    Raises:
        ConfigError: If a mandatory backend parameter is missing.
        StorageError: If the store can't be opened or has the wrong schema.
    """
    storage_cls = BACKENDS[config.backend]
    logger.debug(f"Opening {config.backend.value} token store")
    return storage_cls(config, degenerator)


__all__ = [
    "BACKENDS",
    "DbmStorage",
    "MemoryStorage",
    "SQLiteStorage",
    "SchemaVersionError",
    "StorageBase",
    "StorageError",
    "open_storage",
]
