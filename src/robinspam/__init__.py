# =============================================================================
# robinspam: Statistical Spam Filtering for Short Texts
# =============================================================================
#
# robinspam rates texts such as blog comments, guestbook entries and forum
# posts with a spam probability between 0 and 1, after learning from texts
# you have marked as ham or spam.
#
# Features:
#   - Robinson's probability combination with configurable sensitivity
#   - Degenerated lookups for unknown tokens ("Viagra!!!" -> "viagra")
#   - Optional n-gram tokens and TF-IDF evidence ranking
#   - SQLite, dbm or in-memory token stores
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "robinspam"

# Main entry point - this is what gets called by the 'robinspam' command
from robinspam.app import main

__all__ = ["main", "__version__", "__app_name__"]
