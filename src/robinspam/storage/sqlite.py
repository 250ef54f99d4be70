# =============================================================================
# SQLite Token Store
# =============================================================================
# Keeps the key space in a single table:
#
#   CREATE TABLE wordlist (
#       token      TEXT PRIMARY KEY,
#       count_ham  INTEGER NOT NULL DEFAULT 0,
#       count_spam INTEGER NOT NULL DEFAULT 0
#   )
#
# The connection runs in autocommit mode and transactions are bracketed
# explicitly with BEGIN / COMMIT / ROLLBACK, so a learn() either lands
# completely or not at all.
#
# Lookups use "WHERE token IN (...)" in chunks, staying well below SQLite's
# limit on bound parameters.
# =============================================================================

import logging
import re
import sqlite3
from collections.abc import Iterator

from robinspam.config import ConfigError, StorageConfig
from robinspam.core import TokenCounts
from robinspam.storage.base import StorageBase, StorageError

logger = logging.getLogger(__name__)

# Table names are interpolated into SQL, so only plain identifiers are allowed
TABLE_NAME_PATTERN = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

# Maximum number of tokens per IN (...) lookup
LOOKUP_CHUNK_SIZE = 500


class SQLiteStorage(StorageBase):
    """
    Token store backed by an SQLite database file.

    Usage:
        >>> config = StorageConfig(backend=StorageBackend.SQLITE, path=Path("wordlist.db"))
        >>> with SQLiteStorage(config, Degenerator()) as storage:
        ...     storage.get_internals()
        Internals(texts_ham=0, texts_spam=0, schema_version=1)
    """

    def _setup_backend(self, config: StorageConfig) -> None:
        """
        Validate the parameters and open the database.

        Raises:
            ConfigError: If no path is configured or the table name is unusable.
            StorageError: If the database can't be opened.
        """
        if config.path is None:
            raise ConfigError("The sqlite token store needs storage.path")

        if not TABLE_NAME_PATTERN.fullmatch(config.table):
            raise ConfigError(f"Invalid table name for the sqlite token store: {config.table!r}")

        self.table = config.table
        self._connection: sqlite3.Connection | None = None

        database = str(config.path)
        if database != ":memory:":
            try:
                config.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Can't create directory for {database}: {e}") from e

        try:
            self._connection = sqlite3.connect(database, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"Can't open token store {database}: {e}") from e

        logger.debug(f"Opened SQLite token store {database} (table {self.table})")

    @property
    def conn(self) -> sqlite3.Connection:
        """
        Get the active database connection.

        Raises:
            StorageError: If the store was closed.
        """
        if self._connection is None:
            raise StorageError("Token store is closed")
        return self._connection

    def _execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        """Run a statement, turning driver errors into StorageError."""
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Token store query failed: {e}") from e

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def is_initialized(self) -> bool:
        """A store counts as initialized as soon as the table exists."""
        row = self._execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (self.table,),
        ).fetchone()
        return row is not None

    def initialize(self) -> None:
        """Create the table, then write the internal rows."""
        self._execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                token TEXT PRIMARY KEY,
                count_ham INTEGER NOT NULL DEFAULT 0,
                count_spam INTEGER NOT NULL DEFAULT 0
            )
        """)
        super().initialize()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    # =========================================================================
    # Rows
    # =========================================================================

    def fetch_token_data(self, tokens: list[str]) -> dict[str, TokenCounts]:
        found = {}

        for chunk in _chunks(list(dict.fromkeys(tokens)), LOOKUP_CHUNK_SIZE):
            placeholders = ", ".join("?" for _ in chunk)
            cursor = self._execute(
                f"SELECT token, count_ham, count_spam FROM {self.table} "
                f"WHERE token IN ({placeholders})",
                chunk,
            )
            for token, ham, spam in cursor:
                found[token] = TokenCounts(ham=ham, spam=spam)

        return found

    def add_token(self, token: str, counts: TokenCounts) -> None:
        self._execute(
            f"INSERT INTO {self.table} (token, count_ham, count_spam) VALUES (?, ?, ?)",
            (token, counts.ham, counts.spam),
        )

    def update_token(self, token: str, counts: TokenCounts) -> None:
        self._execute(
            f"UPDATE {self.table} SET count_ham = ?, count_spam = ? WHERE token = ?",
            (counts.ham, counts.spam, token),
        )

    def delete_token(self, token: str) -> None:
        self._execute(f"DELETE FROM {self.table} WHERE token = ?", (token,))

    def delete_prefix(self, prefix: str) -> int:
        cursor = self._execute(
            f"DELETE FROM {self.table} WHERE substr(token, 1, ?) = ?",
            (len(prefix), prefix),
        )
        return cursor.rowcount

    def count_rows(self) -> int:
        """Number of rows in the table, internal rows included."""
        return self._execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]

    # =========================================================================
    # Transactions
    # =========================================================================

    def start_transaction(self) -> None:
        self._execute("BEGIN")

    def finish_transaction(self) -> None:
        self._execute("COMMIT")

    def abort_transaction(self) -> None:
        if self._connection is not None and self._connection.in_transaction:
            self._execute("ROLLBACK")


def _chunks(items: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]
