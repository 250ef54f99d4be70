# =============================================================================
# robinspam Core Module
# =============================================================================
# Plain data types shared by every other part of robinspam. Nothing in here
# imports from the rest of the package, so these can be used anywhere without
# circular import trouble.
#
#   - TokenCounts / Internals / TokenData: what the token store hands back
#   - Category / Action: what a text is learned as, and in which direction
#   - ErrorCode: result codes returned (never raised) for bad input
#   - Reserved keys: the parts of the key space ordinary tokens never touch
# =============================================================================

from robinspam.core.category import Action, Category, ErrorCode
from robinspam.core.token import (
    IDF_DOC_PREFIX,
    IDF_PREFIX,
    IDF_TOTAL_DOCS,
    INTERNAL_PREFIX,
    INTERNALS_DBVERSION,
    INTERNALS_TEXTS,
    NO_TOKENS,
    RESERVED_PREFIXES,
    SCHEMA_VERSION,
    Internals,
    TokenCounts,
    TokenData,
    is_reserved,
)

__all__ = [
    "Action",
    "Category",
    "ErrorCode",
    "Internals",
    "TokenCounts",
    "TokenData",
    "is_reserved",
    "IDF_DOC_PREFIX",
    "IDF_PREFIX",
    "IDF_TOTAL_DOCS",
    "INTERNAL_PREFIX",
    "INTERNALS_DBVERSION",
    "INTERNALS_TEXTS",
    "NO_TOKENS",
    "RESERVED_PREFIXES",
    "SCHEMA_VERSION",
]
