# =============================================================================
# DBM Token Store
# =============================================================================
# Keeps the key space in a key/value file through the dbm module (whatever
# implementation the interpreter provides). Each value is the two counters
# as text: b"<ham> <spam>".
#
# dbm has no transactions of its own, so writes made inside a transaction are
# buffered and only written to the file on commit. An aborted transaction just
# drops the buffer.
# =============================================================================

import dbm
import logging

from robinspam.config import ConfigError, StorageConfig
from robinspam.core import TokenCounts
from robinspam.storage.base import StorageBase, StorageError

logger = logging.getLogger(__name__)


class DbmStorage(StorageBase):
    """Token store backed by a dbm file."""

    def _setup_backend(self, config: StorageConfig) -> None:
        if config.path is None:
            raise ConfigError("The dbm token store needs storage.path")

        # Pending writes of the open transaction; None marks a deletion
        self._pending: dict[str, TokenCounts | None] | None = None
        self._db = None

        try:
            config.path.parent.mkdir(parents=True, exist_ok=True)
            self._db = dbm.open(str(config.path), "c")
        except (OSError, *dbm.error) as e:
            raise StorageError(f"Can't open token store {config.path}: {e}") from e

        logger.debug(f"Opened dbm token store {config.path}")

    @property
    def db(self):
        if self._db is None:
            raise StorageError("Token store is closed")
        return self._db

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
        self._pending = None

    # =========================================================================
    # Rows
    # =========================================================================

    def fetch_token_data(self, tokens: list[str]) -> dict[str, TokenCounts]:
        found = {}

        for token in tokens:
            if self._pending is not None and token in self._pending:
                counts = self._pending[token]
                if counts is not None:
                    found[token] = TokenCounts(ham=counts.ham, spam=counts.spam)
                continue

            value = self._read(token)
            if value is not None:
                found[token] = _decode(value)

        return found

    def add_token(self, token: str, counts: TokenCounts) -> None:
        self._write(token, counts)

    def update_token(self, token: str, counts: TokenCounts) -> None:
        self._write(token, counts)

    def delete_token(self, token: str) -> None:
        self._write(token, None)

    def delete_prefix(self, prefix: str) -> int:
        keys = {key.decode("utf-8") for key in self._keys()}
        if self._pending is not None:
            keys.update(key for key, counts in self._pending.items() if counts is not None)
            keys.difference_update(key for key, counts in self._pending.items() if counts is None)

        doomed = [key for key in keys if key.startswith(prefix)]
        for key in doomed:
            self._write(key, None)

        return len(doomed)

    # =========================================================================
    # Transactions
    # =========================================================================

    def start_transaction(self) -> None:
        self._pending = {}

    def finish_transaction(self) -> None:
        pending, self._pending = self._pending or {}, None

        # Rows as they were before the flush touched them
        previous: dict[str, TokenCounts | None] = {}
        try:
            for token, counts in pending.items():
                value = self._read(token)
                previous[token] = None if value is None else _decode(value)
                self._write(token, counts)
        except StorageError:
            logger.warning(f"Flush failed, restoring {len(previous)} rows")
            for token, counts in previous.items():
                self._write(token, counts)
            raise

    def abort_transaction(self) -> None:
        self._pending = None

    # =========================================================================
    # File Access
    # =========================================================================

    def _write(self, token: str, counts: TokenCounts | None) -> None:
        """Write or delete one row, buffering while a transaction is open."""
        if self._pending is not None:
            self._pending[token] = counts
            return

        key = token.encode("utf-8")
        try:
            if counts is None:
                if key in self.db:
                    del self.db[key]
            else:
                self.db[key] = f"{counts.ham} {counts.spam}".encode("ascii")
        except dbm.error as e:
            raise StorageError(f"Token store write failed: {e}") from e

    def _read(self, token: str) -> bytes | None:
        try:
            return self.db.get(token.encode("utf-8"))
        except dbm.error as e:
            raise StorageError(f"Token store read failed: {e}") from e

    def _keys(self) -> list[bytes]:
        try:
            return list(self.db.keys())
        except dbm.error as e:
            raise StorageError(f"Token store read failed: {e}") from e


def _decode(value: bytes) -> TokenCounts:
    """Parse a stored b"<ham> <spam>" value."""
    ham, spam = value.decode("ascii").split()
    return TokenCounts(ham=int(ham), spam=int(spam))
