# =============================================================================
# Inverse Document Frequency
# =============================================================================
# Tracks in how many learned texts each token appeared, so that words found
# in nearly every text ("the", "and", the site's own name) can be weighted
# down when ranking evidence.
#
#   idf(token) = ln((total_documents + 1) / (max(df, 1) + 1))
#
# The statistics live in the token store next to the ordinary rows, under the
# reserved "idf*" prefix:
#
#   idf*total_docs    -> number of learned texts
#   idf*doc_<token>   -> number of learned texts containing <token>
#
# Texts are only ever added. Unlearning a text does not touch these numbers;
# reset() throws all of them away.
# =============================================================================

import logging
import math
from collections.abc import Iterable

from robinspam.core import IDF_DOC_PREFIX, IDF_PREFIX, IDF_TOTAL_DOCS, TokenCounts, is_reserved
from robinspam.storage.base import StorageBase

logger = logging.getLogger(__name__)


class IdfCalculator:
    """
    Document frequency bookkeeping on top of a token store.

    Document frequencies are cached per token for the lifetime of the
    calculator; update_document() keeps the cache in step with the store.

    Usage:
        >>> idf = IdfCalculator(storage)
        >>> idf.update_document({"common": 1, "word": 1})
        >>> idf.update_document({"common": 1, "rare": 1})
        >>> idf.get_idf("common")
        0.0
    """

    def __init__(self, storage: StorageBase) -> None:
        self.storage = storage
        self._df_cache: dict[str, int] = {}
        self._total_documents = self._load_total()

    @property
    def total_documents(self) -> int:
        """Number of texts learned since the last reset."""
        return self._total_documents

    def update_document(self, tokens: Iterable[str]) -> None:
        """
        Record one learned text.

        Increments the document count, and the document frequency of every
        distinct ordinary token, in a single transaction. How often a token
        occurs within the text doesn't matter.

        Args:
            tokens: The text's tokens (a tokenize() result works as-is).
        """
        distinct = [token for token in dict.fromkeys(tokens) if not is_reserved(token)]
        keys = [IDF_DOC_PREFIX + token for token in distinct]
        frequencies: dict[str, int] = {}

        with self.storage.transaction():
            total = self._load_total() + 1
            self.storage.set_value(IDF_TOTAL_DOCS, total)

            existing = self.storage.fetch_token_data(keys)
            for token, key in zip(distinct, keys):
                if key in existing:
                    frequencies[token] = existing[key].ham + 1
                    self.storage.update_token(key, TokenCounts(ham=frequencies[token]))
                else:
                    frequencies[token] = 1
                    self.storage.add_token(key, TokenCounts(ham=1))

        # Only touch the cache once the transaction went through
        self._total_documents = total
        self._df_cache.update(frequencies)

        logger.debug(f"Recorded document {total} with {len(distinct)} distinct tokens")

    def get_idf(self, token: str) -> float:
        """
        Inverse document frequency of one token.

        Returns 1.0 as long as no documents have been recorded. A token that
        was never seen counts as if it had been seen once.
        """
        return self.get_idf_batch([token])[token]

    def get_idf_batch(self, tokens: Iterable[str]) -> dict[str, float]:
        """
        Inverse document frequencies of several tokens at once.

        Frequencies not yet cached are fetched with one store lookup.

        Args:
            tokens: Tokens to rate.

        Returns:
            Mapping of token to IDF.
        """
        tokens = list(dict.fromkeys(tokens))

        if self._total_documents == 0:
            return {token: 1.0 for token in tokens}

        missing = [token for token in tokens if token not in self._df_cache]
        if missing:
            found = self.storage.fetch_token_data([IDF_DOC_PREFIX + token for token in missing])
            for token in missing:
                counts = found.get(IDF_DOC_PREFIX + token)
                self._df_cache[token] = counts.ham if counts else 0

        total = self._total_documents
        return {
            token: math.log((total + 1) / (max(self._df_cache[token], 1) + 1))
            for token in tokens
        }

    def reset(self) -> None:
        """Forget all document statistics, in memory and in the store."""
        with self.storage.transaction():
            removed = self.storage.delete_prefix(IDF_PREFIX)

        self._df_cache.clear()
        self._total_documents = 0

        logger.info(f"Reset document frequencies ({removed} rows removed)")

    def _load_total(self) -> int:
        counts = self.storage.fetch_one(IDF_TOTAL_DOCS)
        return counts.ham if counts else 0
