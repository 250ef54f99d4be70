# =============================================================================
# Token Degenerator
# =============================================================================
# Builds alternate forms ("degenerates") of tokens the store doesn't know, so
# a never-seen "Viagra!!!" can still be rated using the data for "viagra".
#
# For a single word we try:
#   - lower case, UPPER CASE and Title case versions
#   - trailing "!!!" / "???" collapsed to one character, and stripped
#   - trailing "..." shortened one dot at a time
#
# Multi-word tokens (n-grams) are handled by NgramDegenerator, which combines
# the variants of each word.
#
# Results are memoized per token. The cache is only a speed-up: it can be
# cleared at any time and will simply be rebuilt.
# =============================================================================

import itertools
import logging
import re

from robinspam.config import DegeneratorConfig
from robinspam.spam.tokenizer import NGRAM_SEPARATOR

logger = logging.getLogger(__name__)


class Degenerator:
    """
    Generates fallback lookup keys for single-word tokens.

    The classifier and the storage adapter share one instance, so variants
    computed during a lookup are cached for the whole process.

    Usage:
        >>> degenerator = Degenerator()
        >>> degenerator.degenerate(["Hello!!!"])
        {'Hello!!!': ['hello!!!', 'HELLO!!!', 'hello!', 'hello', 'HELLO!', 'HELLO', 'Hello!', 'Hello']}
    """

    # A run of "!" and "?" at the end of a word
    TRAILING_MARKS = re.compile(r'([!?])+$')

    def __init__(self, config: DegeneratorConfig | None = None) -> None:
        """
        Initialize the degenerator.

        Args:
            config: Degenerator configuration.
        """
        self.config = config or DegeneratorConfig()
        self._cache: dict[str, list[str]] = {}

    def degenerate(self, tokens: list[str]) -> dict[str, list[str]]:
        """
        Build the variants for a list of tokens.

        Args:
            tokens: Tokens to degenerate.

        Returns:
            Mapping of each token to its ordered list of variants. The token
            itself is never part of its own list.
        """
        return {token: self.degenerate_token(token) for token in tokens}

    def degenerate_token(self, token: str) -> list[str]:
        """Variants for one token."""
        return self.degenerate_word(token)

    def degenerate_word(self, word: str) -> list[str]:
        """
        Variants for a single word, memoized.

        Order matters: the case variants come first, then the punctuation
        variants of each case variant and of the original word.
        """
        if word in self._cache:
            return self._cache[word]

        lower = self._lower(word)
        upper = self._upper(word)
        title = self._upper(word[:1]) + self._lower(word[1:])

        candidates = _without(word, [lower, upper, title])
        candidates.append(word)

        # Iterate over a snapshot; the loop appends to candidates
        for candidate in list(candidates):
            # "!!!" and "???"
            if candidate.endswith(("!", "?")):
                marks = self.TRAILING_MARKS.search(candidate)
                if marks.end() - marks.start() >= 2:
                    candidates.append(self.TRAILING_MARKS.sub(r'\1', candidate))
                candidates.append(self.TRAILING_MARKS.sub('', candidate))

            # "..."
            shortened = candidate
            while shortened.endswith("."):
                shortened = shortened[:-1]
                candidates.append(shortened)

        variants = _without(word, candidates)
        self._cache[word] = variants

        return variants

    def cache_stats(self) -> dict[str, int]:
        """
        Get statistics about the variant cache.

        Returns:
            Dictionary with the total number of cached tokens and how many of
            them are single words and n-grams.
        """
        ngrams = sum(1 for token in self._cache if NGRAM_SEPARATOR in token)
        return {
            "total_cached": len(self._cache),
            "unigrams": len(self._cache) - ngrams,
            "ngrams": ngrams,
        }

    def clear_cache(self) -> None:
        """Forget all memoized variants."""
        logger.debug(f"Clearing {len(self._cache)} cached degenerates")
        self._cache.clear()

    def _lower(self, text: str) -> str:
        if self.config.multibyte:
            return text.lower()
        return "".join(c.lower() if c.isascii() else c for c in text)

    def _upper(self, text: str) -> str:
        if self.config.multibyte:
            return text.upper()
        return "".join(c.upper() if c.isascii() else c for c in text)


class NgramDegenerator(Degenerator):
    """
    Degenerator that also understands multi-word tokens.

    An n-gram's variants are the combinations of its words' variants, e.g.
    "buy cheap!" -> "buy CHEAP!", "buy Cheap!", "BUY cheap!", ...

    Each word contributes at most MAX_PER_POSITION candidates (itself first)
    and at most MAX_COMBINATIONS n-grams are produced, so long n-grams don't
    explode into thousands of lookups.
    """

    MAX_PER_POSITION = 3
    MAX_COMBINATIONS = 50

    def degenerate_token(self, token: str) -> list[str]:
        """Variants for one token, dispatching on single word vs. n-gram."""
        if NGRAM_SEPARATOR in token:
            return self.degenerate_ngram(token)
        return self.degenerate_word(token)

    def degenerate_ngram(self, ngram: str) -> list[str]:
        """
        Variants for a multi-word token, memoized.

        Returns an empty list when n-gram degeneration is switched off.
        """
        if ngram in self._cache:
            return self._cache[ngram]

        if not self.config.degenerate_ngrams:
            self._cache[ngram] = []
            return []

        positions = [
            ([word] + self.degenerate_word(word))[:self.MAX_PER_POSITION]
            for word in ngram.split(NGRAM_SEPARATOR)
        ]

        combinations = itertools.islice(itertools.product(*positions), self.MAX_COMBINATIONS)
        variants = _without(ngram, [NGRAM_SEPARATOR.join(combo) for combo in combinations])

        self._cache[ngram] = variants
        return variants


def _without(word: str, candidates: list[str]) -> list[str]:
    """Drop the original word and duplicates, keeping first-seen order."""
    return [c for c in dict.fromkeys(candidates) if c != word]
