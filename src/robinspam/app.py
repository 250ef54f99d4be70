# =============================================================================
# robinspam Command Line Interface
# =============================================================================
# A thin shell around SpamClassifier for scripts and quick experiments:
#
#   robinspam classify "Buy cheap watches"       -> prints the spam probability
#   robinspam learn spam "Buy cheap watches"     -> learns the text as spam
#   robinspam unlearn spam "Buy cheap watches"   -> takes it back
#   robinspam stats                              -> what the store knows
#
# Without a text argument, the text is read from stdin, so whole files can be
# piped in. Result codes for bad input go to stderr with exit status 1.
#
# The configuration comes from the XDG config location (or --config), the
# token store from the path configured there.
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path

from robinspam import __version__, __app_name__
from robinspam.config import Config, ConfigError, print_paths
from robinspam.core import Category, ErrorCode
from robinspam.spam import SpamClassifier
from robinspam.storage import StorageError


# =============================================================================
# CLI Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    """
    Build the command-line parser.

    Returns:
        Parser with one sub-command per classifier operation.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="robinspam: statistical spam filtering for short texts",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    classify = commands.add_parser("classify", help="Print the spam probability of a text")
    classify.add_argument("text", nargs="?", help="Text to rate (default: read stdin)")

    for name, verb in (("learn", "Learn"), ("unlearn", "Unlearn")):
        command = commands.add_parser(name, help=f"{verb} a text as ham or spam")
        command.add_argument("category", choices=[c.value for c in Category])
        command.add_argument("text", nargs="?", help="The text (default: read stdin)")

    commands.add_parser("stats", help="Show what the token store knows")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for robinspam.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --version)
        3. Loads configuration and opens the token store
        4. Runs the requested operation

    Args:
        argv: Arguments to parse (default: sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Handle --paths flag
    if args.paths:
        print_paths()
        return 0

    if args.command is None:
        parser.print_help()
        return 1

    # Load configuration
    if args.config and not args.config.exists():
        print(f"Config file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        with SpamClassifier(config) as classifier:
            return run_command(classifier, args)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1
    except StorageError as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return 1


def run_command(classifier: SpamClassifier, args: argparse.Namespace) -> int:
    """
    Run one sub-command against an open classifier.

    Returns:
        Exit code (0 for success, 1 if the classifier returned a result code).
    """
    if args.command == "stats":
        stats = classifier.stats
        features = classifier.features
        print(f"Texts (ham):     {stats.texts_ham}")
        print(f"Texts (spam):    {stats.texts_spam}")
        print(f"Schema version:  {stats.schema_version}")
        print(f"Degenerator:     {features['degenerator']}")
        print(f"N-grams:         {'on' if features['ngrams'] else 'off'}")
        print(f"TF-IDF:          {'on' if features['tfidf'] else 'off'}")
        if features["tfidf"]:
            print(f"IDF documents:   {stats.idf_documents}")
        return 0

    text = args.text if args.text is not None else sys.stdin.read()

    if args.command == "classify":
        result = classifier.classify(text)
    elif args.command == "learn":
        result = classifier.learn(text, args.category)
    else:
        result = classifier.unlearn(text, args.category)

    if isinstance(result, ErrorCode):
        print(result, file=sys.stderr)
        return 1

    if result is not None:
        print(f"{result:.6f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
