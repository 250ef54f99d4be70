# =============================================================================
# Robinson Spam Classifier
# =============================================================================
# Rates short texts with Gary Robinson's improvements to the "statistical
# spam filter" idea.
#
# How it works:
#   1. During training, we count how often each token appears in learned spam
#      and ham texts (occurrences, not texts).
#   2. For classification, every token gets a spam probability from its
#      counts, pulled towards rob_x when there is little data:
#
#         p = (rob_s * rob_x + n * raw) / (rob_s + n)
#
#      Tokens we don't know are looked up in degenerated form ("Viagra!!!"
#      -> "viagra"); tokens we can't find at all get rob_x.
#   3. The use_relevant most decisive tokens (furthest from 0.5) are combined
#      into one rating between 0 (ham) and 1 (spam).
#
# With TF-IDF enabled, the ranking in step 3 also takes the token's weight in
# the text into account. The probabilities themselves never change.
#
# Bad input doesn't raise; the public methods return an ErrorCode instead.
# =============================================================================

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from robinspam.config import Config, DegeneratorKind
from robinspam.core import (
    Action,
    Category,
    ErrorCode,
    Internals,
    TokenCounts,
    TokenData,
)
from robinspam.spam.degenerator import Degenerator, NgramDegenerator
from robinspam.spam.idf import IdfCalculator
from robinspam.spam.tokenizer import Tokenizer
from robinspam.storage import StorageBase, StorageError, open_storage

logger = logging.getLogger(__name__)


@dataclass
class ClassifierStats:
    """
    Statistics about the classifier.

    Attributes:
        texts_ham: Number of ham texts learned.
        texts_spam: Number of spam texts learned.
        schema_version: Layout version of the token store.
        idf_documents: Number of texts in the TF-IDF statistics (0 when
                       TF-IDF is off).
    """
    texts_ham: int = 0
    texts_spam: int = 0
    schema_version: int | None = None
    idf_documents: int = 0


def robinson_combine(
    counts: TokenCounts,
    internals: Internals,
    rob_s: float = 0.3,
    rob_x: float = 0.5,
) -> float:
    """
    Spam probability of a single token.

    The counts are made relative to the number of learned texts per category
    (where there are any), so a lopsided training set doesn't bias every
    token. The raw ratio is then combined with the background belief rob_x,
    weighted by rob_s against the number of occurrences.

    Args:
        counts: The token's occurrence counts.
        internals: Learned-text counters.
        rob_s: Strength of the background belief.
        rob_x: Background belief (rating of an unknown token).

    Returns:
        Probability between 0 and 1.
    """
    n = counts.ham + counts.spam
    if n == 0:
        return rob_x

    rel_ham = counts.ham / internals.texts_ham if internals.texts_ham > 0 else counts.ham
    rel_spam = counts.spam / internals.texts_spam if internals.texts_spam > 0 else counts.spam

    raw = rel_spam / (rel_ham + rel_spam)

    return (rob_s * rob_x + n * raw) / (rob_s + n)


def create_degenerator(config: Config) -> Degenerator:
    """
    Build the degenerator the configuration asks for.

    N-gram tokenization always gets the n-gram degenerator, since the plain
    one would treat "buy cheap" as a single odd word.
    """
    if config.tokenizer.use_ngrams or config.degenerator.kind == DegeneratorKind.NGRAM:
        if config.degenerator.kind != DegeneratorKind.NGRAM:
            logger.info("N-gram tokenization is on, using the n-gram degenerator")
        return NgramDegenerator(config.degenerator)

    return Degenerator(config.degenerator)


class SpamClassifier:
    """
    Statistical spam classifier for short texts.

    Learns from texts marked as ham or spam and rates new texts.

    Usage:
        >>> with SpamClassifier(config) as classifier:
        ...     classifier.learn("Buy cheap watches online", Category.SPAM)
        ...     classifier.learn("See you at the meeting tomorrow", Category.HAM)
        ...     score = classifier.classify("cheap watches")
        ...     if score > 0.7:
        ...         print("Probably spam!")

    Attributes:
        config: Complete configuration.
        tokenizer: Splits texts into tokens.
        storage: Token store holding the learned counts.
    """

    def __init__(
        self,
        config: Config | None = None,
        storage: StorageBase | None = None,
        degenerator: Degenerator | None = None,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            config: Configuration. Loaded from the user config file if None.
            storage: Token store to use. Opened from config.storage if None,
                     and then owned (closed) by the classifier.
            degenerator: Degenerator to use. Built from the configuration if
                         None (or taken from the given storage).

        Raises:
            ConfigError: If the storage configuration is unusable.
            StorageError: If the token store can't be attached.
        """
        self.config = config or Config.load()
        self.tokenizer = Tokenizer(self.config.tokenizer)

        if storage is not None:
            self._degenerator = degenerator or storage.degenerator
            self._owns_storage = False
        else:
            self._degenerator = degenerator or create_degenerator(self.config)
            storage = open_storage(self.config.storage, self._degenerator)
            self._owns_storage = True

        # Lookups and classification must agree on how variants are built
        storage.degenerator = self._degenerator
        self.storage = storage

        self._idf: IdfCalculator | None = None
        if self.config.classifier.use_tfidf:
            self._idf = IdfCalculator(self.storage)

        logger.debug(
            f"Classifier ready ({type(self.storage).__name__}, "
            f"{type(self._degenerator).__name__}, tfidf={self._idf is not None})"
        )

    def __enter__(self) -> "SpamClassifier":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Close the token store if the classifier opened it."""
        if self._owns_storage:
            self.storage.close()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def degenerator(self) -> Degenerator:
        """The degenerator shared with the token store."""
        return self._degenerator

    @property
    def idf_calculator(self) -> IdfCalculator | None:
        """Document frequency statistics, or None when TF-IDF is off."""
        return self._idf

    @property
    def stats(self) -> ClassifierStats:
        """Get classifier statistics."""
        internals = self.storage.get_internals()
        return ClassifierStats(
            texts_ham=internals.texts_ham,
            texts_spam=internals.texts_spam,
            schema_version=internals.schema_version,
            idf_documents=self._idf.total_documents if self._idf else 0,
        )

    @property
    def is_trained(self) -> bool:
        """Returns True if at least one text of each category was learned."""
        internals = self.storage.get_internals()
        return internals.texts_ham > 0 and internals.texts_spam > 0

    @property
    def features(self) -> dict[str, bool | str]:
        """Which optional features are switched on."""
        return {
            "tfidf": self._idf is not None,
            "ngrams": self.config.tokenizer.use_ngrams,
            "degenerator": type(self._degenerator).__name__,
        }

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def classify(self, text: str | None) -> float | ErrorCode:
        """
        Rate a text.

        Args:
            text: The text to rate.

        Returns:
            Spam probability (0.0 = definitely ham, 1.0 = definitely spam).
            Returns 0.5 if none of the text's tokens says anything. Returns
            an ErrorCode for missing or empty text.
        """
        if text is None:
            return ErrorCode.CLASSIFIER_TEXT_MISSING

        internals = self._read_internals()

        tokens = self.tokenizer.tokenize(text)
        if isinstance(tokens, ErrorCode):
            return tokens

        token_data = self._read_token_data(list(tokens))
        weights = self._read_weights(tokens)

        settings = self.config.classifier
        rating: dict[str, float] = {}
        deviation: dict[str, float] = {}
        importance: dict[str, float] = {}

        for token in tokens:
            rating[token] = self._rate(token, token_data, internals)
            deviation[token] = abs(0.5 - rating[token])
            importance[token] = deviation[token] * weights.get(token, 1.0)

        # sorted() is stable, so ties keep their order of appearance
        ranked = sorted(tokens, key=lambda token: importance[token], reverse=True)

        relevant: list[float] = []
        for token in ranked[:settings.use_relevant]:
            score = importance[token] if settings.min_dev_weighted else deviation[token]
            if score > settings.min_dev:
                # Tokens that appear more than once also count more than once
                relevant.extend([rating[token]] * tokens[token])

        probability = _combine(relevant)

        logger.debug(
            f"Classified text: {len(tokens)} tokens, {len(relevant)} relevant, "
            f"score {probability:.4f}"
        )
        return probability

    def _rate(self, token: str, token_data: TokenData, internals: Internals) -> float:
        """
        Spam probability of one token of the text being classified.

        A token found in the store is rated directly. Otherwise the most
        decisive of its degenerated forms is used (the first one wins a tie).
        A token we know nothing about gets rob_x.
        """
        settings = self.config.classifier

        if token in token_data.tokens:
            return robinson_combine(
                token_data.tokens[token], internals, settings.rob_s, settings.rob_x
            )

        if token in token_data.degenerates:
            best = 0.5
            for counts in token_data.degenerates[token].values():
                candidate = robinson_combine(counts, internals, settings.rob_s, settings.rob_x)
                if abs(0.5 - candidate) > abs(0.5 - best):
                    best = candidate
            return best

        return settings.rob_x

    def _read_internals(self) -> Internals:
        try:
            return self.storage.get_internals()
        except StorageError as e:
            logger.warning(f"Can't read text counters, rating without them: {e}")
            return Internals()

    def _read_token_data(self, tokens: list[str]) -> TokenData:
        try:
            return self.storage.get(tokens)
        except StorageError as e:
            logger.warning(f"Can't read token data, rating tokens as unknown: {e}")
            return TokenData()

    def _read_weights(self, tokens: Mapping[str, int]) -> dict[str, float]:
        if self._idf is None:
            return {}

        try:
            return self.tokenizer.tfidf_weights(dict(tokens), self._idf)
        except StorageError as e:
            logger.warning(f"Can't read document frequencies, using term frequencies: {e}")
            return self.tokenizer.tfidf_weights(dict(tokens))

    # -------------------------------------------------------------------------
    # Training
    # -------------------------------------------------------------------------

    def learn(self, text: str | None, category: Category | str | None) -> ErrorCode | None:
        """
        Learn a text as ham or spam.

        Args:
            text: The text.
            category: Category.HAM or Category.SPAM (or "ham" / "spam").

        Returns:
            None on success, or an ErrorCode for bad input.

        Raises:
            StorageError: If the token store can't be written. Nothing is
                          retried; the failed text leaves no trace.
        """
        return self._process(text, category, Action.LEARN)

    def unlearn(self, text: str | None, category: Category | str | None) -> ErrorCode | None:
        """
        Take back a text that was learned before.

        Args:
            text: The text, exactly as it was learned.
            category: The category it was learned as.

        Returns:
            None on success, or an ErrorCode for bad input.

        Raises:
            StorageError: If the token store can't be written.
        """
        return self._process(text, category, Action.UNLEARN)

    def _process(
        self,
        text: str | None,
        category: Category | str | None,
        action: Action,
    ) -> ErrorCode | None:
        if text is None:
            return ErrorCode.TRAINER_TEXT_MISSING

        if category is None:
            return ErrorCode.TRAINER_CATEGORY_MISSING

        try:
            category = Category(category)
        except ValueError:
            return ErrorCode.TRAINER_CATEGORY_FAIL

        tokens = self.tokenizer.tokenize(text)
        if isinstance(tokens, ErrorCode):
            return tokens

        # Document frequencies only ever grow; unlearning leaves them alone
        if action == Action.LEARN and self._idf is not None:
            self._idf.update_document(tokens)

        self.storage.process_text(tokens, category, action)

        logger.debug(f"{action.value.capitalize()}ed text as {category.value} ({len(tokens)} tokens)")
        return None


def _combine(relevant: list[float]) -> float:
    """
    Combine token probabilities into one rating.

    Returns 0.5 when there is nothing to combine.
    """
    if not relevant:
        return 0.5

    haminess = 1.0
    spaminess = 1.0
    for value in relevant:
        haminess *= 1.0 - value
        spaminess *= value

    n = len(relevant)
    haminess = 1 - haminess ** (1 / n)
    spaminess = 1 - spaminess ** (1 / n)

    if haminess + spaminess == 0:
        return 0.5

    indicator = (haminess - spaminess) / (haminess + spaminess)
    return (1 + indicator) / 2
