# =============================================================================
# Spam Classifier Tests
# =============================================================================

import logging
import math

import pytest

from robinspam.config import (
    ClassifierConfig,
    Config,
    ConfigError,
    DegeneratorConfig,
    DegeneratorKind,
    StorageBackend,
    StorageConfig,
    TokenizerConfig,
)
from robinspam.core import Action, Category, ErrorCode, Internals, TokenCounts
from robinspam.spam import (
    Degenerator,
    NgramDegenerator,
    SpamClassifier,
    create_degenerator,
    robinson_combine,
)
from robinspam.storage import MemoryStorage, SQLiteStorage, StorageError

from conftest import HAM_TEXTS, SPAM_TEXTS


SPAMMY = "buy cheap viagra watches casino online"
CLEAN = "are you available for the meeting tomorrow?"


def train(classifier: SpamClassifier) -> None:
    for text in SPAM_TEXTS:
        assert classifier.learn(text, Category.SPAM) is None
    for text in HAM_TEXTS:
        assert classifier.learn(text, Category.HAM) is None


# ============================================================================
# Token Probabilities
# ============================================================================


class TestRobinsonCombine:
    def test_unseen_token_gets_background_belief(self):
        assert robinson_combine(TokenCounts(), Internals(texts_ham=3, texts_spam=3)) == 0.5
        assert robinson_combine(TokenCounts(), Internals(), rob_x=0.7) == 0.7

    def test_single_occurrence(self):
        internals = Internals(texts_ham=1, texts_spam=1)

        assert robinson_combine(TokenCounts(spam=1), internals) == pytest.approx(1.15 / 1.3)
        assert robinson_combine(TokenCounts(ham=1), internals) == pytest.approx(0.15 / 1.3)

    def test_relative_to_learned_texts(self):
        # Seen once in 1 ham text and once in 10 spam texts: rather hammy
        internals = Internals(texts_ham=1, texts_spam=10)
        assert robinson_combine(TokenCounts(ham=1, spam=1), internals) < 0.5

    def test_raw_counts_without_learned_texts(self):
        # 3 of 4 occurrences in spam: raw = 0.75
        rating = robinson_combine(TokenCounts(ham=1, spam=3), Internals())
        assert rating == pytest.approx((0.3 * 0.5 + 4 * 0.75) / 4.3)

    def test_monotone_in_spam_count(self):
        internals = Internals(texts_ham=3, texts_spam=3)
        ratings = [robinson_combine(TokenCounts(ham=2, spam=spam), internals) for spam in range(6)]

        assert ratings == sorted(ratings)
        assert len(set(ratings)) == len(ratings)


# ============================================================================
# Classification
# ============================================================================


class TestClassify:
    def test_empty_store_is_undecided(self, classifier):
        assert classifier.classify("Buy cheap watches now") == 0.5

    def test_missing_text(self, classifier):
        assert classifier.classify(None) == ErrorCode.CLASSIFIER_TEXT_MISSING

    def test_empty_text(self, classifier):
        assert classifier.classify("") == ErrorCode.LEXER_TEXT_EMPTY

    def test_spammy_and_clean_texts(self, trained_classifier):
        assert trained_classifier.classify(SPAMMY) > 0.85
        assert trained_classifier.classify(CLEAN) < 0.15

    def test_unseen_variant_is_rated_by_degenerate(self, trained_classifier):
        # "viagra!!!" was never learned; "viagra" was, once in 2 spam texts
        rating = trained_classifier.classify("viagra!!!")
        assert rating == pytest.approx(1.15 / 1.3)

    def test_most_decisive_variant_wins(self, classifier):
        classifier.storage.process_text({"hello": 1}, Category.HAM, Action.LEARN)
        classifier.storage.process_text({"HELLO": 3}, Category.SPAM, Action.LEARN)

        assert classifier.classify("hello!!!") == pytest.approx(3.15 / 3.3)

    def test_unknown_tokens_get_rob_x(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(rob_x=0.9))

        assert classifier.classify("something completely unknown") == pytest.approx(0.9)

    def test_opposite_evidence_cancels_out(self, trained_classifier):
        assert trained_classifier.classify("cheap meeting") == pytest.approx(0.5)

    def test_repeated_tokens_count_more(self, trained_classifier):
        assert trained_classifier.classify("cheap cheap meeting") > 0.5
        assert trained_classifier.classify("cheap meeting meeting") < 0.5

    def test_use_relevant_keeps_most_decisive(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(use_relevant=1))
        train(classifier)

        # "meeting" (2 of 2 ham texts) beats "viagra" (1 of 2 spam texts)
        assert classifier.classify("viagra meeting") == pytest.approx(0.15 / 2.3)
        assert classifier.classify("meeting viagra") == pytest.approx(0.15 / 2.3)

    def test_min_dev_filters_weak_evidence(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(min_dev=0.45))
        train(classifier)

        assert classifier.classify(SPAMMY) == 0.5


# ============================================================================
# Training
# ============================================================================


class TestTraining:
    def test_input_errors(self, classifier):
        assert classifier.learn(None, Category.HAM) == ErrorCode.TRAINER_TEXT_MISSING
        assert classifier.learn("hello there", None) == ErrorCode.TRAINER_CATEGORY_MISSING
        assert classifier.learn("hello there", "eggs") == ErrorCode.TRAINER_CATEGORY_FAIL
        assert classifier.learn("", Category.HAM) == ErrorCode.LEXER_TEXT_EMPTY
        assert classifier.unlearn(None, Category.HAM) == ErrorCode.TRAINER_TEXT_MISSING
        assert classifier.unlearn("hello there", "eggs") == ErrorCode.TRAINER_CATEGORY_FAIL

        assert classifier.stats.texts_ham == 0

    def test_text_is_checked_before_category(self, classifier):
        assert classifier.learn(None, None) == ErrorCode.TRAINER_TEXT_MISSING

    def test_category_as_string(self, classifier):
        assert classifier.learn("hello there", "spam") is None
        assert classifier.stats.texts_spam == 1

    def test_learn_then_unlearn_restores_everything(self, trained_classifier):
        text = "Cheap replica watches, limited offer!"
        tokens = list(trained_classifier.tokenizer.tokenize(text))
        storage = trained_classifier.storage

        rows_before = storage.fetch_token_data(tokens)
        internals_before = storage.get_internals()

        trained_classifier.learn(text, Category.SPAM)
        assert storage.get_internals() != internals_before

        trained_classifier.unlearn(text, Category.SPAM)
        assert storage.fetch_token_data(tokens) == rows_before
        assert storage.get_internals() == internals_before

    def test_stats_and_is_trained(self, classifier):
        assert not classifier.is_trained

        train(classifier)

        stats = classifier.stats
        assert stats.texts_ham == 2
        assert stats.texts_spam == 2
        assert stats.schema_version == 1
        assert stats.idf_documents == 0
        assert classifier.is_trained


# ============================================================================
# TF-IDF
# ============================================================================


class TestTfidf:
    def test_document_frequencies_follow_learning(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(use_tfidf=True))
        train(classifier)

        assert classifier.idf_calculator.total_documents == 4
        assert classifier.stats.idf_documents == 4

        classifier.unlearn(SPAM_TEXTS[0], Category.SPAM)
        assert classifier.idf_calculator.total_documents == 4

    def test_idf_from_learned_texts(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(use_tfidf=True))
        classifier.learn("common word one", Category.HAM)
        classifier.learn("common word two", Category.HAM)
        classifier.learn("common rare three", Category.SPAM)

        idf = classifier.idf_calculator
        assert idf.total_documents == 3
        assert idf.get_idf("common") == 0.0
        assert idf.get_idf("rare") == pytest.approx(math.log(2))
        assert idf.get_idf("word") == pytest.approx(math.log(4 / 3))

    def test_classification_with_tfidf(self, make_classifier):
        classifier = make_classifier(classifier=ClassifierConfig(use_tfidf=True))
        train(classifier)

        assert classifier.classify(SPAMMY) > 0.85
        assert classifier.classify(CLEAN) < 0.15

    def test_min_dev_on_plain_deviation(self, make_classifier):
        # Weights only rank; the threshold still sees |0.5 - p|
        classifier = make_classifier(
            classifier=ClassifierConfig(use_tfidf=True, min_dev_weighted=False)
        )
        train(classifier)

        assert classifier.classify(SPAMMY) > 0.85

    def test_min_dev_on_weighted_importance(self, make_classifier):
        # Weighted importance is far below 0.2 for a six-token text
        classifier = make_classifier(
            classifier=ClassifierConfig(use_tfidf=True, min_dev_weighted=True)
        )
        train(classifier)

        assert classifier.classify(SPAMMY) == 0.5

    def test_weighted_threshold_can_be_lowered(self, make_classifier):
        classifier = make_classifier(
            classifier=ClassifierConfig(use_tfidf=True, min_dev_weighted=True, min_dev=0.0)
        )
        train(classifier)

        assert classifier.classify(SPAMMY) > 0.85

    def test_idf_is_off_by_default(self, classifier):
        assert classifier.idf_calculator is None
        assert classifier.features["tfidf"] is False


# ============================================================================
# N-grams
# ============================================================================


class TestNgrams:
    def test_ngram_tokenization_gets_ngram_degenerator(self, make_classifier):
        classifier = make_classifier(tokenizer=TokenizerConfig(use_ngrams=True))

        assert isinstance(classifier.degenerator, NgramDegenerator)
        assert classifier.features == {
            "tfidf": False,
            "ngrams": True,
            "degenerator": "NgramDegenerator",
        }

    def test_classification_with_ngrams(self, make_classifier):
        classifier = make_classifier(tokenizer=TokenizerConfig(use_ngrams=True))
        train(classifier)

        assert classifier.storage.fetch_one("buy cheap") == TokenCounts(ham=0, spam=1)
        assert classifier.classify(SPAMMY) > 0.85
        assert classifier.classify(CLEAN) < 0.15

    def test_ngram_degenerator_by_kind(self, make_classifier):
        classifier = make_classifier(degenerator=DegeneratorConfig(kind=DegeneratorKind.NGRAM))
        assert isinstance(classifier.degenerator, NgramDegenerator)

    def test_create_degenerator(self):
        assert type(create_degenerator(Config())) is Degenerator
        ngram_config = Config(tokenizer=TokenizerConfig(use_ngrams=True))
        assert type(create_degenerator(ngram_config)) is NgramDegenerator


# ============================================================================
# Storage Integration
# ============================================================================


class BrokenReads(MemoryStorage):
    """Memory store whose reads can be switched off."""

    broken = False

    def fetch_token_data(self, tokens):
        if self.broken:
            raise StorageError("connection lost")
        return super().fetch_token_data(tokens)


class FailingWrites(MemoryStorage):
    """Memory store that refuses to insert rows."""

    def add_token(self, token, counts):
        if not token.startswith("rs*"):
            raise StorageError("disk full")
        super().add_token(token, counts)


class TestStorageIntegration:
    def test_shares_degenerator_with_storage(self, classifier):
        assert classifier.degenerator is classifier.storage.degenerator

    def test_given_storage_keeps_its_degenerator(self, memory_config):
        degenerator = Degenerator()
        storage = MemoryStorage(memory_config.storage, degenerator)

        classifier = SpamClassifier(memory_config, storage=storage)
        assert classifier.degenerator is degenerator

    def test_read_failures_degrade_to_undecided(self, memory_config, caplog):
        storage = BrokenReads(memory_config.storage, Degenerator())
        classifier = SpamClassifier(memory_config, storage=storage)
        train(classifier)

        storage.broken = True
        with caplog.at_level(logging.WARNING):
            assert classifier.classify(SPAMMY) == 0.5

        assert any(record.levelno == logging.WARNING for record in caplog.records)

    def test_write_failures_propagate(self, memory_config):
        storage = FailingWrites(memory_config.storage, Degenerator())
        classifier = SpamClassifier(memory_config, storage=storage)

        with pytest.raises(StorageError):
            classifier.learn("cheap watches", Category.SPAM)

        assert classifier.stats.texts_spam == 0

    def test_sqlite_persistence(self, sqlite_config):
        with SpamClassifier(sqlite_config) as classifier:
            train(classifier)
            rating = classifier.classify(SPAMMY)

        with SpamClassifier(sqlite_config) as classifier:
            assert classifier.stats.texts_spam == 2
            assert classifier.classify(SPAMMY) == pytest.approx(rating)

    def test_owned_storage_is_closed(self, sqlite_config):
        classifier = SpamClassifier(sqlite_config)
        classifier.close()

        with pytest.raises(StorageError):
            classifier.storage.get_internals()

    def test_given_storage_stays_open(self, sqlite_config):
        storage = SQLiteStorage(sqlite_config.storage, Degenerator())

        with SpamClassifier(sqlite_config, storage=storage):
            pass

        assert storage.get_internals().texts_ham == 0
        storage.close()

    def test_sqlite_without_path_is_a_config_error(self):
        config = Config(storage=StorageConfig(backend=StorageBackend.SQLITE, path=None))

        with pytest.raises(ConfigError):
            SpamClassifier(config)
