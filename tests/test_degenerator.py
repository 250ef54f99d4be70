# =============================================================================
# Degenerator Tests
# =============================================================================

from robinspam.config import DegeneratorConfig
from robinspam.spam import Degenerator, NgramDegenerator


# ============================================================================
# Single Words
# ============================================================================


class TestDegenerator:
    def test_exclamation_marks(self):
        variants = Degenerator().degenerate(["Hello!!!"])["Hello!!!"]

        assert variants == [
            "hello!!!", "HELLO!!!", "hello!", "hello", "HELLO!", "HELLO", "Hello!", "Hello",
        ]
        assert "Hello!!!" not in variants

    def test_case_variants_only(self):
        assert Degenerator().degenerate_word("hello") == ["HELLO", "Hello"]

    def test_single_mark_is_only_stripped(self):
        variants = Degenerator().degenerate_word("wow!")

        assert variants == ["WOW!", "Wow!", "WOW", "Wow", "wow"]
        assert len(variants) == len(set(variants))

    def test_question_marks(self):
        variants = Degenerator().degenerate_word("really??")

        assert "really?" in variants
        assert "really" in variants

    def test_trailing_dots_one_at_a_time(self):
        variants = Degenerator().degenerate_word("test...")

        assert "test.." in variants
        assert "test." in variants
        assert "test" in variants
        assert "TEST" in variants
        assert "test..." not in variants

    def test_multibyte_case_mapping(self):
        assert "ärger" in Degenerator().degenerate_word("ÄRGER")

    def test_ascii_only_case_mapping(self):
        degenerator = Degenerator(DegeneratorConfig(multibyte=False))
        variants = degenerator.degenerate_word("ÄRGER")

        assert "Ärger" in variants
        assert "ärger" not in variants

    def test_results_are_memoized(self):
        degenerator = Degenerator()

        first = degenerator.degenerate_word("Hello!!!")
        assert degenerator.degenerate_word("Hello!!!") is first

    def test_cache_stats_and_clear(self):
        degenerator = Degenerator()
        degenerator.degenerate(["Hello", "World"])

        assert degenerator.cache_stats() == {"total_cached": 2, "unigrams": 2, "ngrams": 0}

        degenerator.clear_cache()
        assert degenerator.cache_stats()["total_cached"] == 0


# ============================================================================
# N-grams
# ============================================================================


class TestNgramDegenerator:
    def test_combines_word_variants(self):
        variants = NgramDegenerator().degenerate_token("buy cheap!")

        assert variants[:3] == ["buy CHEAP!", "buy Cheap!", "BUY cheap!"]
        assert "buy cheap!" not in variants
        assert len(variants) == 8

    def test_single_words_still_work(self):
        assert NgramDegenerator().degenerate_token("hello") == ["HELLO", "Hello"]

    def test_combinations_are_capped(self):
        ngram = "one two three four five six"
        variants = NgramDegenerator().degenerate_token(ngram)

        assert 0 < len(variants) <= NgramDegenerator.MAX_COMBINATIONS
        assert ngram not in variants
        assert all(len(variant.split(" ")) == 6 for variant in variants)

    def test_ngram_degeneration_can_be_disabled(self):
        degenerator = NgramDegenerator(DegeneratorConfig(degenerate_ngrams=False))

        assert degenerator.degenerate(["buy cheap"]) == {"buy cheap": []}
        assert degenerator.degenerate_token("Cheap") == ["cheap", "CHEAP"]

    def test_cache_stats_count_ngrams(self):
        degenerator = NgramDegenerator()
        degenerator.degenerate(["buy cheap!"])

        # The words of the n-gram are cached on the way
        assert degenerator.cache_stats() == {"total_cached": 3, "unigrams": 2, "ngrams": 1}
