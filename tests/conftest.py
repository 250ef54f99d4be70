# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the robinspam test suite.
# =============================================================================

import pytest
import tempfile
from pathlib import Path

from robinspam.config import (
    ClassifierConfig,
    Config,
    StorageBackend,
    StorageConfig,
    TokenizerConfig,
)
from robinspam.core import Category
from robinspam.spam import Degenerator, SpamClassifier
from robinspam.storage import MemoryStorage


SPAM_TEXTS = [
    "Buy cheap viagra now replica watches online casino",
    "Cheap casino bonus, win money now online",
]

HAM_TEXTS = [
    "Hello John, are you available for our meeting tomorrow?",
    "The project meeting notes are attached for review",
]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def memory_config():
    """Default configuration with an in-memory token store."""
    return Config(storage=StorageConfig(backend=StorageBackend.MEMORY))


@pytest.fixture
def sqlite_config(temp_dir):
    """Default configuration with an SQLite token store in a temp directory."""
    return Config(
        storage=StorageConfig(backend=StorageBackend.SQLITE, path=temp_dir / "wordlist.db")
    )


@pytest.fixture
def memory_storage():
    """An empty, attached in-memory token store."""
    storage = MemoryStorage(StorageConfig(backend=StorageBackend.MEMORY), Degenerator())
    yield storage
    storage.close()


@pytest.fixture
def classifier(memory_config):
    """An untrained classifier on an in-memory store."""
    with SpamClassifier(memory_config) as classifier:
        yield classifier


@pytest.fixture
def trained_classifier(classifier):
    """A classifier that has learned two spam and two ham texts."""
    for text in SPAM_TEXTS:
        assert classifier.learn(text, Category.SPAM) is None
    for text in HAM_TEXTS:
        assert classifier.learn(text, Category.HAM) is None
    return classifier


@pytest.fixture
def make_classifier():
    """
    Factory for in-memory classifiers with custom settings.

    Usage:
        classifier = make_classifier(classifier=ClassifierConfig(use_tfidf=True))
    """
    created = []

    def _make(
        classifier: ClassifierConfig | None = None,
        tokenizer: TokenizerConfig | None = None,
        **sections,
    ) -> SpamClassifier:
        config = Config(
            classifier=classifier or ClassifierConfig(),
            tokenizer=tokenizer or TokenizerConfig(),
            storage=StorageConfig(backend=StorageBackend.MEMORY),
            **sections,
        )
        instance = SpamClassifier(config)
        created.append(instance)
        return instance

    yield _make

    for instance in created:
        instance.close()
