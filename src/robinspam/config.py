# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating robinspam configuration.
#
# Configuration is an immutable value: it is built once (from defaults or a
# TOML file) and handed explicitly to every component. Nothing reads global
# settings behind your back.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/robinspam/  (default: ~/.config/robinspam/)
#   - Data:    $XDG_DATA_HOME/robinspam/    (default: ~/.local/share/robinspam/)
#
# Files:
#   - config.toml: User configuration
#   - wordlist.db: SQLite token store (in data directory)
#
# config.toml layout:
#
#   [classifier]
#   use_relevant = 15
#   min_dev = 0.2
#
#   [tokenizer]
#   use_ngrams = true
#
#   [degenerator]
#   multibyte = true
#
#   [storage]
#   backend = "sqlite"
#   path = "/var/lib/robinspam/wordlist.db"
# =============================================================================

import dataclasses
import os
import tomllib  # Built into Python 3.11+
import types
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "robinspam"


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for robinspam.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/robinspam/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_xdg_data_home() -> Path:
    """
    Returns the XDG data directory for robinspam.

    Respects $XDG_DATA_HOME if set, otherwise uses ~/.local/share/robinspam/
    This is where the token store lives.
    """
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        base = Path(xdg_data)
    else:
        base = Path.home() / ".local" / "share"
    return base / APP_NAME


# =============================================================================
# Backend Selection
# =============================================================================

class StorageBackend(Enum):
    """Which token store implementation to attach to."""
    MEMORY = "memory"       # Process-local dict, lost on exit
    SQLITE = "sqlite"       # Single-table SQLite database file
    DBM = "dbm"             # Key/value file via the dbm module


class DegeneratorKind(Enum):
    """Which variant generator to use for fallback lookups."""
    STANDARD = "standard"   # Single words only
    NGRAM = "ngram"         # Single words and multi-word tokens


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass(frozen=True)
class ClassifierConfig:
    """
    Configuration for the probability combination.

    Attributes:
        use_relevant: How many of the most decisive tokens to consider.
        min_dev: A token is used as evidence only if its rating deviates
                 from 0.5 by more than this.
        rob_s: Robinson's "strength" of the background belief.
        rob_x: Rating assumed for tokens that were never seen.
        use_tfidf: Re-rank tokens by TF-IDF weight and keep document
                   frequencies while learning.
        min_dev_weighted: Compare min_dev against the TF-IDF weighted
                          importance instead of the plain deviation.
    """
    use_relevant: int = 15
    min_dev: float = 0.2
    rob_s: float = 0.3
    rob_x: float = 0.5
    use_tfidf: bool = False
    min_dev_weighted: bool = False

    def __post_init__(self) -> None:
        if self.use_relevant < 1:
            raise ConfigError("classifier.use_relevant must be at least 1")
        if not 0.0 <= self.min_dev <= 0.5:
            raise ConfigError("classifier.min_dev must be between 0.0 and 0.5")
        if self.rob_s < 0.0:
            raise ConfigError("classifier.rob_s must not be negative")
        if not 0.0 <= self.rob_x <= 1.0:
            raise ConfigError("classifier.rob_x must be between 0.0 and 1.0")


@dataclass(frozen=True)
class TokenizerConfig:
    """
    Configuration for splitting texts into tokens.

    Attributes:
        min_size: Shortest token kept (in characters).
        max_size: Longest token kept (in characters).
        get_uris: Keep URI-like strings as whole tokens (plus their parts).
        get_html: Keep HTML tags as tokens.
        get_bbcode: Keep BBCode tags as tokens.
        allow_numbers: Keep tokens consisting only of digits.
        use_ngrams: Also emit multi-word tokens from neighbouring words.
        max_ngram_size: Largest n-gram generated (2 = bigrams only).
    """
    min_size: int = 3
    max_size: int = 30
    get_uris: bool = True
    get_html: bool = True
    get_bbcode: bool = False
    allow_numbers: bool = False
    use_ngrams: bool = False
    max_ngram_size: int = 3

    def __post_init__(self) -> None:
        if self.min_size < 1:
            raise ConfigError("tokenizer.min_size must be at least 1")
        if self.max_size < self.min_size:
            raise ConfigError("tokenizer.max_size must not be smaller than min_size")
        if self.max_ngram_size < 2:
            raise ConfigError("tokenizer.max_ngram_size must be at least 2")


@dataclass(frozen=True)
class DegeneratorConfig:
    """
    Configuration for the variant generator.

    Attributes:
        kind: Which degenerator to build. N-gram tokenization always gets
              the n-gram degenerator, whatever this says.
        multibyte: Use full Unicode case mapping. When off, only ASCII
                   letters change case.
        degenerate_ngrams: Build variants for multi-word tokens at all.
    """
    kind: DegeneratorKind = DegeneratorKind.STANDARD
    multibyte: bool = True
    degenerate_ngrams: bool = True


@dataclass(frozen=True)
class StorageConfig:
    """
    Configuration for the token store.

    Attributes:
        backend: Which store implementation to use.
        path: Database file. Mandatory for the sqlite and dbm backends
              (use ":memory:" for a throwaway SQLite database).
        table: Table name for the sqlite backend.
    """
    backend: StorageBackend = StorageBackend.SQLITE
    path: Path | None = None
    table: str = "wordlist"


@dataclass(frozen=True)
class Config:
    """
    Main configuration container for robinspam.

    Attributes:
        classifier: Probability combination settings.
        tokenizer: Tokenization settings.
        degenerator: Variant generation settings.
        storage: Token store settings.

    Usage:
        >>> config = Config.load()
        >>> config.classifier.use_relevant
        15
        >>> config = dataclasses.replace(
        ...     config, storage=StorageConfig(backend=StorageBackend.MEMORY)
        ... )
    """
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    degenerator: DegeneratorConfig = field(default_factory=DegeneratorConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    @staticmethod
    def database_path() -> Path:
        """Returns the default path of the token store."""
        return get_xdg_data_home() / "wordlist.db"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from a TOML file.

        If the file doesn't exist, returns the default configuration. File
        backed stores without an explicit path get the XDG data location.

        Args:
            path: Config file to read. Defaults to the XDG config location.

        Returns:
            Loaded Config object.

        Raises:
            ConfigError: If the file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            return cls._with_default_paths(cls())

        # Load and parse the TOML file
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        return cls._with_default_paths(cls.from_dict(data))

    def save(self, path: Path | None = None) -> None:
        """
        Save configuration to a TOML file.

        Creates the parent directory if it doesn't exist.
        """
        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self.to_dict(), f)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).

        Every section and key is checked; anything unknown is an error
        rather than being silently ignored.

        Raises:
            ConfigError: On unknown sections/keys or badly typed values.
        """
        sections = {f.name: f.type for f in dataclasses.fields(cls)}

        for name in data:
            if name not in sections:
                raise ConfigError(f"Unknown configuration section: [{name}]")

        values = {}
        for name, section_cls in sections.items():
            section = data.get(name, {})
            if not isinstance(section, dict):
                raise ConfigError(f"[{name}] must be a table")
            values[name] = _build_section(section_cls, name, section)

        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.

        Enums become their values, paths become strings and unset paths are
        left out (TOML has no null).
        """
        data: dict[str, Any] = {}

        for section in dataclasses.fields(self):
            values = {}
            for f in dataclasses.fields(getattr(self, section.name)):
                value = getattr(getattr(self, section.name), f.name)
                if value is None:
                    continue
                if isinstance(value, Enum):
                    value = value.value
                elif isinstance(value, Path):
                    value = str(value)
                values[f.name] = value
            data[section.name] = values

        return data

    @classmethod
    def _with_default_paths(cls, config: "Config") -> "Config":
        """Fill in the XDG database location for file backed stores."""
        if config.storage.path is not None:
            return config
        if config.storage.backend == StorageBackend.MEMORY:
            return config

        return dataclasses.replace(
            config,
            storage=dataclasses.replace(config.storage, path=cls.database_path()),
        )


# =============================================================================
# Section Parsing
# =============================================================================

def _build_section(section_cls: type, section_name: str, data: dict[str, Any]) -> Any:
    """
    Build one frozen config section from its TOML table.

    Values are checked against the dataclass field types. Ints are accepted
    where floats are expected, strings are accepted for enums and paths.
    """
    fields = {f.name: f.type for f in dataclasses.fields(section_cls)}
    values = {}

    for key, value in data.items():
        if key not in fields:
            raise ConfigError(f"Unknown configuration key: [{section_name}] {key}")
        values[key] = _coerce(fields[key], f"{section_name}.{key}", value)

    return section_cls(**values)


def _coerce(expected: Any, name: str, value: Any) -> Any:
    """Convert a TOML value to the type a config field expects."""
    # Optional paths are the only union we use
    if isinstance(expected, types.UnionType):
        if not isinstance(value, str):
            raise ConfigError(f"{name} must be a string")
        return Path(value).expanduser()

    if isinstance(expected, type) and issubclass(expected, Enum):
        try:
            return expected(value)
        except ValueError:
            allowed = ", ".join(repr(member.value) for member in expected)
            raise ConfigError(f"{name} must be one of {allowed}, got {value!r}") from None

    # bool is a subclass of int, so check it before the numeric types
    if expected is bool:
        if not isinstance(value, bool):
            raise ConfigError(f"{name} must be true or false")
        return value

    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{name} must be an integer")
        return value

    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{name} must be a number")
        return float(value)

    if expected is str:
        if not isinstance(value, str):
            raise ConfigError(f"{name} must be a string")
        return value

    raise ConfigError(f"{name} has an unsupported type")


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading, parsing or applying configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print all XDG paths for debugging.
    Useful for users wondering where their config/data is stored.
    """
    print(f"Config:  {get_xdg_config_home()}")
    print(f"Data:    {get_xdg_data_home()}")
    print()
    print(f"Config file:  {Config.config_file_path()}")
    print(f"Token store:  {Config.database_path()}")
