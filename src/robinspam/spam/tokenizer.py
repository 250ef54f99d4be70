# =============================================================================
# Text Tokenizer for Spam Classification
# =============================================================================
# Converts short user-submitted texts (comments, guestbook entries, forum
# posts) into a multiset of tokens for the spam classifier.
#
# Pipeline:
#   1. Decode HTML entities (&amp; -> &, &#8364; -> EUR sign, ...)
#   2. Pull out URI-like strings as whole tokens, and split them into parts
#   3. Pull out HTML tags / BBCode as single tokens ("<a...>" for tags
#      with attributes)
#   4. Split what's left on whitespace and punctuation
#   5. Optionally glue neighbouring words into n-grams ("buy cheap")
#
# Tokens are case-folded before counting. The counts are always raw
# occurrence counts; TF-IDF weights are computed separately and never fed
# back into training.
# =============================================================================

import html
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from robinspam.config import TokenizerConfig
from robinspam.core import NO_TOKENS, ErrorCode, is_reserved

if TYPE_CHECKING:
    from robinspam.spam.idf import IdfCalculator

logger = logging.getLogger(__name__)

# Joins the words of an n-gram. Never produced by the word splitter, which
# treats all whitespace as a delimiter.
NGRAM_SEPARATOR = " "


@dataclass
class _TokenizeState:
    """Working state for a single tokenize() call."""
    text: str
    tokens: dict[str, int] = field(default_factory=dict)
    sequence: list[str] = field(default_factory=list)   # Word order for n-grams


class Tokenizer:
    """
    Splits texts into token -> occurrence count mappings.

    The tokenizer is stateless between calls, so one instance can be shared
    by everything that needs to tokenize.

    Usage:
        >>> tokenizer = Tokenizer()
        >>> tokenizer.tokenize("Buy cheap watches at example.com!")
        {'example.com': 1, 'example': 1, 'com': 1, 'buy': 1, 'cheap': 1, 'watches': 1}
        >>> tokenizer.tokenize("")
        <ErrorCode.LEXER_TEXT_EMPTY: 'LEXER_TEXT_EMPTY'>
    """

    # Everything that separates two words
    RAW_SPLIT_PATTERN = re.compile(r'[\s,./":;|<>\-_\[\]{}+=)(*&^%]+')

    # Anything with a dot in it: domains, file names, version strings
    URI_PATTERN = re.compile(r'([A-Za-z0-9_\-]*\.[A-Za-z0-9_\-.]+)')

    # Markup spans
    HTML_PATTERN = re.compile(r'(<.+?>)')
    BBCODE_PATTERN = re.compile(r'(\[.+?\])')

    # Tag name of a tag with attributes ("<a href=..." -> "<a")
    TAGNAME_PATTERN = re.compile(r'(.+?)\s')

    NUMBERS_PATTERN = re.compile(r'[0-9]+')

    def __init__(self, config: TokenizerConfig | None = None) -> None:
        """
        Initialize the tokenizer.

        Args:
            config: Tokenizer configuration.
        """
        self.config = config or TokenizerConfig()

    def tokenize(self, text: str | None) -> dict[str, int] | ErrorCode:
        """
        Split a text into tokens.

        Args:
            text: The raw text.

        Returns:
            Mapping of token to number of occurrences, in order of first
            appearance. If nothing usable is left, the mapping holds just the
            NO_TOKENS sentinel. Empty input returns ErrorCode.LEXER_TEXT_EMPTY.
        """
        if not text:
            return ErrorCode.LEXER_TEXT_EMPTY

        state = _TokenizeState(text=html.unescape(text))

        if self.config.get_uris:
            self._extract_uris(state)

        if self.config.get_html:
            self._extract_markup(state, self.HTML_PATTERN)

        if self.config.get_bbcode:
            self._extract_markup(state, self.BBCODE_PATTERN)

        self._raw_split(state, state.text)

        if self.config.use_ngrams and len(state.sequence) > 1:
            self._add_ngrams(state)

        # Downstream code always gets at least one token to look at
        if not state.tokens:
            state.tokens[NO_TOKENS] = 1

        logger.debug(f"Tokenized {len(text)} chars into {len(state.tokens)} distinct tokens")
        return state.tokens

    def tfidf_weights(
        self,
        tokens: dict[str, int],
        idf: "IdfCalculator | None" = None,
    ) -> dict[str, float]:
        """
        Compute TF-IDF weights for a tokenize() result.

        weight = (count / total count) * idf(token). Without an IDF source
        every idf is taken as 1.0, so the weight is the plain term frequency.
        Reserved tokens (the NO_TOKENS sentinel) always weigh 1.0.

        The counts passed in are not modified.

        Args:
            tokens: Token counts as returned by tokenize().
            idf: Source of inverse document frequencies.

        Returns:
            Mapping of token to weight.
        """
        total = sum(tokens.values())
        if total == 0:
            return {}

        ordinary = [token for token in tokens if not is_reserved(token)]
        idf_values = idf.get_idf_batch(ordinary) if idf is not None else {}

        weights = {}
        for token, count in tokens.items():
            if is_reserved(token):
                weights[token] = 1.0
                continue
            weights[token] = (count / total) * idf_values.get(token, 1.0)

        return weights

    def is_valid(self, token: str) -> bool:
        """
        Check whether a candidate may become a token.

        A token must be within the configured size limits, must not be a bare
        number (unless numbers are allowed) and must not collide with the
        internal keys of the token store.
        """
        if is_reserved(token):
            return False

        if not self.config.min_size <= len(token) <= self.config.max_size:
            return False

        if not self.config.allow_numbers and self.NUMBERS_PATTERN.fullmatch(token):
            return False

        return True

    # -------------------------------------------------------------------------
    # Pipeline Steps
    # -------------------------------------------------------------------------

    def _add_token(
        self,
        state: _TokenizeState,
        token: str,
        remove: str | None = None,
        track: bool = True,
    ) -> None:
        """
        Count a candidate token if it is valid.

        Args:
            state: Working state of the current call.
            token: The candidate.
            remove: Text to cut out of the remaining text once the token was
                    accepted, so the word splitter doesn't see it again.
            track: Remember the token's position for n-gram generation.
        """
        if not self.is_valid(token):
            return

        normalized = token.lower()
        state.tokens[normalized] = state.tokens.get(normalized, 0) + 1

        if track and self.config.use_ngrams:
            state.sequence.append(normalized)

        if remove is not None:
            state.text = state.text.replace(remove, "")

    def _raw_split(self, state: _TokenizeState, text: str) -> None:
        """Split on whitespace and punctuation and count every word."""
        for word in self.RAW_SPLIT_PATTERN.split(text):
            self._add_token(state, word)

    def _extract_uris(self, state: _TokenizeState) -> None:
        """
        Extract URI-like strings.

        The whole URI is a token of its own ("example.com"), and its parts
        ("example", "com") are counted as ordinary words as well.
        """
        for uri in self.URI_PATTERN.findall(state.text):
            uri = uri.rstrip(".")
            self._add_token(state, uri, remove=uri, track=False)
            self._raw_split(state, uri)

    def _extract_markup(self, state: _TokenizeState, pattern: re.Pattern) -> None:
        """
        Extract HTML or BBCode tags as single tokens.

        Tags with attributes are reduced to their name, so '<a href="...">'
        becomes '<a...>' and '[url=...]' becomes '[url...]'. Only the tag name
        is cut out of the remaining text; the attributes are still split into
        ordinary words.
        """
        for tag in pattern.findall(state.text):
            remove = tag

            if " " in tag:
                match = self.TAGNAME_PATTERN.search(tag)
                remove = match.group(1)
                tag = f"{remove}...{tag[-1]}"

            self._add_token(state, tag, remove=remove, track=False)

    def _add_ngrams(self, state: _TokenizeState) -> None:
        """
        Count n-grams over the tracked word sequence.

        For every window size from 2 up to max_ngram_size, neighbouring words
        are joined with NGRAM_SEPARATOR. An n-gram longer than max_size per
        word is dropped.
        """
        sequence = state.sequence
        max_n = min(self.config.max_ngram_size, len(sequence))

        for n in range(2, max_n + 1):
            for i in range(len(sequence) - n + 1):
                ngram = NGRAM_SEPARATOR.join(sequence[i:i + n])
                if len(ngram) <= self.config.max_size * n:
                    state.tokens[ngram] = state.tokens.get(ngram, 0) + 1
