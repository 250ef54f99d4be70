# =============================================================================
# Token Store Data Types
# =============================================================================
# Everything the classifier knows lives in one flat key space:
#
#   <token>            -> TokenCounts(ham, spam)      ordinary tokens
#   rs*texts           -> (texts_ham, texts_spam)     learned text counters
#   rs*dbversion       -> (schema_version, -)         layout marker
#   idf*total_docs     -> (total_documents, -)        TF-IDF extension
#   idf*doc_<token>    -> (document_frequency, -)     TF-IDF extension
#
# The "*" character is a split character for the tokenizer, so no word token
# can ever collide with the reserved keys. The tokenizer also refuses any
# candidate that starts with one of the reserved prefixes.
# =============================================================================

from dataclasses import dataclass, field


# Current layout of the token store - compared for exact equality on attach
SCHEMA_VERSION = 1

# Internal counters share the token table under this prefix
INTERNAL_PREFIX = "rs*"
INTERNALS_TEXTS = "rs*texts"
INTERNALS_DBVERSION = "rs*dbversion"

# Emitted by the tokenizer when nothing else survives
NO_TOKENS = "rs*no_tokens"

# TF-IDF bookkeeping
IDF_PREFIX = "idf*"
IDF_TOTAL_DOCS = "idf*total_docs"
IDF_DOC_PREFIX = "idf*doc_"

RESERVED_PREFIXES = (INTERNAL_PREFIX, IDF_PREFIX)


def is_reserved(token: str) -> bool:
    """Returns True if the key belongs to the internal part of the key space."""
    return token.startswith(RESERVED_PREFIXES)


@dataclass
class TokenCounts:
    """
    How often a token was seen in learned ham and spam texts.

    Occurrences are counted, not texts: a word that appears three times in
    one learned text adds three to its counter.

    Attributes:
        ham: Occurrences in learned ham texts.
        spam: Occurrences in learned spam texts.
    """
    ham: int = 0
    spam: int = 0

    @property
    def total(self) -> int:
        """Total number of occurrences in both categories."""
        return self.ham + self.spam

    @property
    def is_empty(self) -> bool:
        """Rows with both counters at zero are deleted from the store."""
        return self.ham == 0 and self.spam == 0


@dataclass
class Internals:
    """
    Global counters of the token store.

    Attributes:
        texts_ham: Number of ham texts learned.
        texts_spam: Number of spam texts learned.
        schema_version: Layout version found in the store, or None if the
                        store has no version marker at all.
    """
    texts_ham: int = 0
    texts_spam: int = 0
    schema_version: int | None = None


@dataclass
class TokenData:
    """
    Result of a batch lookup against the token store.

    Attributes:
        tokens: Counts for tokens found directly.
        degenerates: For tokens found only through variants, the variants
                     that have data, in the order the degenerator listed them.
    """
    tokens: dict[str, TokenCounts] = field(default_factory=dict)
    degenerates: dict[str, dict[str, TokenCounts]] = field(default_factory=dict)
