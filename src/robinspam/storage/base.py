# =============================================================================
# Token Store Base Class
# =============================================================================
# Defines the contract every token store implements, and the logic that is
# the same for all of them:
#
#   - Attaching: verify the store is at SCHEMA_VERSION, or initialize an empty
#     one. Anything else is fatal; there is no migration.
#   - Lookups: batch-fetch tokens, and for every miss ask the degenerator for
#     variants and fetch those too.
#   - Training: apply one text's token counts inside a single transaction.
#
# A backend only has to provide single-row operations (fetch/add/update/
# delete) and a transaction bracket. Each backend owns its connection and
# releases it in close().
# =============================================================================

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING

from robinspam.config import StorageConfig
from robinspam.core import (
    INTERNALS_DBVERSION,
    INTERNALS_TEXTS,
    SCHEMA_VERSION,
    Action,
    Category,
    Internals,
    TokenCounts,
    TokenData,
)

if TYPE_CHECKING:
    from robinspam.spam.degenerator import Degenerator

logger = logging.getLogger(__name__)


class StorageBase(ABC):
    """
    Abstract token store.

    Usage:
        >>> with SQLiteStorage(StorageConfig(path=path), degenerator) as storage:
        ...     storage.process_text({"cheap": 2}, Category.SPAM, Action.LEARN)
        ...     storage.get(["cheap", "Cheap!"])
        TokenData(tokens={'cheap': TokenCounts(ham=0, spam=2)},
                  degenerates={'Cheap!': {'cheap': TokenCounts(ham=0, spam=2)}})

    Attributes:
        config: Storage configuration.
        degenerator: Shared degenerator used for fallback lookups.
    """

    def __init__(self, config: StorageConfig, degenerator: "Degenerator") -> None:
        """
        Open the backend and attach to the token store.

        Args:
            config: Storage configuration.
            degenerator: Degenerator shared with the classifier.

        Raises:
            ConfigError: If a mandatory backend parameter is missing.
            SchemaVersionError: If the store has the wrong layout version.
            StorageError: If the store can't be opened or initialized.
        """
        self.config = config
        self.degenerator = degenerator

        self._setup_backend(config)

        # No half-attached stores: release the resource on any failure
        try:
            self._attach()
        except Exception:
            self.close()
            raise

    def __enter__(self) -> "StorageBase":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # =========================================================================
    # Backend Contract
    # =========================================================================

    @abstractmethod
    def _setup_backend(self, config: StorageConfig) -> None:
        """Open the underlying resource. Raise ConfigError on bad parameters."""

    @abstractmethod
    def fetch_token_data(self, tokens: list[str]) -> dict[str, TokenCounts]:
        """
        Fetch the rows for the given keys.

        Returns:
            Mapping of key to counts, containing only the keys that exist.
        """

    @abstractmethod
    def add_token(self, token: str, counts: TokenCounts) -> None:
        """Insert a new row."""

    @abstractmethod
    def update_token(self, token: str, counts: TokenCounts) -> None:
        """Overwrite an existing row."""

    @abstractmethod
    def delete_token(self, token: str) -> None:
        """Remove a row."""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """
        Remove every row whose key starts with prefix.

        Returns:
            Number of rows removed.
        """

    @abstractmethod
    def start_transaction(self) -> None:
        """Begin a transaction."""

    @abstractmethod
    def finish_transaction(self) -> None:
        """Commit the current transaction."""

    @abstractmethod
    def abort_transaction(self) -> None:
        """Roll back the current transaction."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def is_initialized(self) -> bool:
        """Returns True if the store carries a schema version marker."""
        return INTERNALS_DBVERSION in self.fetch_token_data([INTERNALS_DBVERSION])

    def is_up_to_date(self) -> bool:
        """Returns True if the store is at the expected schema version."""
        return self.get_internals().schema_version == SCHEMA_VERSION

    def initialize(self) -> None:
        """Write the internal rows of an empty store."""
        with self.transaction():
            self.add_token(INTERNALS_DBVERSION, TokenCounts(ham=SCHEMA_VERSION))
            self.add_token(INTERNALS_TEXTS, TokenCounts())

    def _attach(self) -> None:
        """Check the store's layout, initializing it if it is empty."""
        if not self.is_initialized():
            logger.info(f"Initializing empty token store ({type(self).__name__})")
            self.initialize()

        if not self.is_up_to_date():
            found = self.get_internals().schema_version
            raise SchemaVersionError(
                f"Token store has schema version {found}, expected {SCHEMA_VERSION}"
            )

        logger.debug(f"Attached to token store ({type(self).__name__})")

    @contextmanager
    def transaction(self) -> Iterator["StorageBase"]:
        """
        Run a block inside one transaction.

        The transaction is rolled back if the block or the commit raises, and
        the error is passed on. Nothing is retried.
        """
        self.start_transaction()
        try:
            yield self
            self.finish_transaction()
        except BaseException as e:
            logger.error(f"Rolling back token store transaction: {e!r}")
            self.abort_transaction()
            raise

    # =========================================================================
    # Reading
    # =========================================================================

    def get_internals(self) -> Internals:
        """Get the learned-text counters and the schema version."""
        data = self.fetch_token_data([INTERNALS_TEXTS, INTERNALS_DBVERSION])

        texts = data.get(INTERNALS_TEXTS)
        version = data.get(INTERNALS_DBVERSION)

        return Internals(
            texts_ham=texts.ham if texts else 0,
            texts_spam=texts.spam if texts else 0,
            schema_version=version.ham if version else None,
        )

    def get(self, tokens: list[str]) -> TokenData:
        """
        Get all data about a list of tokens.

        Tokens found directly are returned as-is. For the others, all
        variants from the degenerator that have data are returned, in the
        order the degenerator listed them; choosing between them is up to
        the caller.

        Args:
            tokens: Tokens to look up.

        Returns:
            TokenData with direct hits and degenerate hits.
        """
        tokens = list(tokens)
        found = self.fetch_token_data(tokens)
        result = TokenData()

        missing = [token for token in tokens if token not in found]
        variants: dict[str, list[str]] = {}
        variant_data: dict[str, TokenCounts] = {}

        if missing:
            variants = self.degenerator.degenerate(missing)
            lookup = list(dict.fromkeys(
                variant for token_variants in variants.values() for variant in token_variants
            ))
            variant_data = self.fetch_token_data(lookup)

        for token in tokens:
            if token in found:
                result.tokens[token] = found[token]
                continue

            hits = {
                variant: variant_data[variant]
                for variant in variants.get(token, [])
                if variant in variant_data
            }
            if hits:
                result.degenerates[token] = hits

        logger.debug(
            f"Looked up {len(tokens)} tokens: {len(result.tokens)} found, "
            f"{len(result.degenerates)} via degenerates"
        )
        return result

    def fetch_one(self, key: str) -> TokenCounts | None:
        """Fetch a single row, or None if it doesn't exist."""
        return self.fetch_token_data([key]).get(key)

    # =========================================================================
    # Writing
    # =========================================================================

    def set_value(self, key: str, ham: int, spam: int = 0) -> None:
        """Insert or overwrite a single row."""
        counts = TokenCounts(ham=ham, spam=spam)
        if self.fetch_one(key) is None:
            self.add_token(key, counts)
        else:
            self.update_token(key, counts)

    def process_text(
        self,
        tokens: Mapping[str, int],
        category: Category,
        action: Action,
    ) -> None:
        """
        Learn or unlearn one text's tokens as a single transaction.

        Known tokens get the category counter moved by their occurrence count
        (never below zero); rows that end up with both counters at zero are
        deleted. Unknown tokens are added when learning and ignored when
        unlearning. Finally the category's text counter is moved by one.

        Args:
            tokens: Token -> occurrence count, as produced by the tokenizer.
            category: Category of the text.
            action: Learn or unlearn.

        Raises:
            StorageError: If the backend fails; the transaction is rolled back.
        """
        category = Category(category)
        action = Action(action)
        delta = 1 if action == Action.LEARN else -1

        with self.transaction():
            internals = self.get_internals()
            existing = self.fetch_token_data(list(tokens))

            for token, count in tokens.items():
                if token in existing:
                    counts = existing[token]
                    if category == Category.HAM:
                        updated = TokenCounts(ham=max(0, counts.ham + delta * count), spam=counts.spam)
                    else:
                        updated = TokenCounts(ham=counts.ham, spam=max(0, counts.spam + delta * count))

                    if updated.is_empty:
                        self.delete_token(token)
                    else:
                        self.update_token(token, updated)

                elif action == Action.LEARN:
                    if category == Category.HAM:
                        self.add_token(token, TokenCounts(ham=count))
                    else:
                        self.add_token(token, TokenCounts(spam=count))

            texts = TokenCounts(ham=internals.texts_ham, spam=internals.texts_spam)
            if category == Category.HAM:
                texts.ham = max(0, texts.ham + delta)
            else:
                texts.spam = max(0, texts.spam + delta)

            self.update_token(INTERNALS_TEXTS, texts)

        logger.debug(f"{action.value.capitalize()}ed {len(tokens)} tokens as {category.value}")


# =============================================================================
# Exceptions
# =============================================================================

class StorageError(Exception):
    """Raised when the token store can't be opened, read or written."""
    pass


class SchemaVersionError(StorageError):
    """Raised when the token store has an unexpected schema version."""
    pass
