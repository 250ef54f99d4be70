# =============================================================================
# In-Memory Token Store
# =============================================================================
# Keeps the whole key space in a dict. Nothing survives the process, which is
# exactly what tests and one-off experiments want.
#
# Transactions snapshot the dict on start and put the snapshot back on abort.
# =============================================================================

from robinspam.config import StorageConfig
from robinspam.core import TokenCounts
from robinspam.storage.base import StorageBase, StorageError


class MemoryStorage(StorageBase):
    """Token store backed by a plain dict."""

    def _setup_backend(self, config: StorageConfig) -> None:
        self._rows: dict[str, TokenCounts] = {}
        self._snapshot: dict[str, TokenCounts] | None = None

    def fetch_token_data(self, tokens: list[str]) -> dict[str, TokenCounts]:
        # Hand out copies so callers can't change stored rows by accident
        return {
            token: TokenCounts(ham=self._rows[token].ham, spam=self._rows[token].spam)
            for token in tokens
            if token in self._rows
        }

    def add_token(self, token: str, counts: TokenCounts) -> None:
        if token in self._rows:
            raise StorageError(f"Token already stored: {token!r}")
        self._rows[token] = TokenCounts(ham=counts.ham, spam=counts.spam)

    def update_token(self, token: str, counts: TokenCounts) -> None:
        if token not in self._rows:
            raise StorageError(f"Token not stored: {token!r}")
        self._rows[token] = TokenCounts(ham=counts.ham, spam=counts.spam)

    def delete_token(self, token: str) -> None:
        self._rows.pop(token, None)

    def delete_prefix(self, prefix: str) -> int:
        doomed = [key for key in self._rows if key.startswith(prefix)]
        for key in doomed:
            del self._rows[key]
        return len(doomed)

    def start_transaction(self) -> None:
        self._snapshot = {
            key: TokenCounts(ham=counts.ham, spam=counts.spam)
            for key, counts in self._rows.items()
        }

    def finish_transaction(self) -> None:
        self._snapshot = None

    def abort_transaction(self) -> None:
        if self._snapshot is not None:
            self._rows = self._snapshot
            self._snapshot = None

    def close(self) -> None:
        self._snapshot = None

    def __len__(self) -> int:
        return len(self._rows)
