# =============================================================================
# Categories, Actions and Result Codes
# =============================================================================
# A text is either ham (wanted) or spam (unwanted). Learning adds a text's
# tokens to the counters of its category, unlearning takes them back out.
#
# Bad input never raises out of the classifier. Instead the public methods
# return one of the ErrorCode members below, so callers (web forms, CLI) can
# branch on them without a try/except around every call.
# =============================================================================

from enum import Enum


class Category(str, Enum):
    """The two categories a text can be learned as."""
    HAM = "ham"
    SPAM = "spam"


class Action(str, Enum):
    """Direction of a training operation."""
    LEARN = "learn"
    UNLEARN = "unlearn"


class ErrorCode(str, Enum):
    """
    Result codes returned for invalid input.

    These are str subclasses, so they compare equal to their plain string
    values and print nicely in logs and on the command line.
    """
    CLASSIFIER_TEXT_MISSING = "CLASSIFIER_TEXT_MISSING"
    TRAINER_TEXT_MISSING = "TRAINER_TEXT_MISSING"
    TRAINER_CATEGORY_MISSING = "TRAINER_CATEGORY_MISSING"
    TRAINER_CATEGORY_FAIL = "TRAINER_CATEGORY_FAIL"
    LEXER_TEXT_EMPTY = "LEXER_TEXT_EMPTY"

    def __str__(self) -> str:
        return self.value
