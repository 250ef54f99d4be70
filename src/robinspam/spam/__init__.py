# =============================================================================
# Spam Module
# =============================================================================
# Statistical spam filtering for short texts (comments, guestbook entries,
# forum posts) after Gary Robinson's method.
#
# Unlike a fixed word list, this filter:
#   - Learns from YOUR texts, marked as ham or spam
#   - Can be corrected later by unlearning a text
#   - Still rates words it has only seen in another form ("FREE!!!" / "free")
#
# Components:
#   - Tokenizer: text -> token counts (optionally with n-grams)
#   - Degenerator / NgramDegenerator: fallback forms of unknown tokens
#   - IdfCalculator: document frequencies for optional TF-IDF ranking
#   - SpamClassifier: ties them together with a token store
# =============================================================================

from robinspam.spam.classifier import (
    ClassifierStats,
    SpamClassifier,
    create_degenerator,
    robinson_combine,
)
from robinspam.spam.degenerator import Degenerator, NgramDegenerator
from robinspam.spam.idf import IdfCalculator
from robinspam.spam.tokenizer import NGRAM_SEPARATOR, Tokenizer

__all__ = [
    "ClassifierStats",
    "Degenerator",
    "IdfCalculator",
    "NGRAM_SEPARATOR",
    "NgramDegenerator",
    "SpamClassifier",
    "Tokenizer",
    "create_degenerator",
    "robinson_combine",
]
