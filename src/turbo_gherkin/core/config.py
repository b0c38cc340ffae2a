"""
Engine configuration loaded from ``turbo-gherkin.toml``.

Example::

    [engine]
    tab_size = 4
    syntax_message = "Syntax error"
    sound_hint = "Sound"
    suppressed_sections = ["feature"]
    log_level = "INFO"

    [vocabulary]
    path = "vocabulary.json"
"""

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError
from .vocabulary import DEFAULT_SOUND_HINT, DEFAULT_SUPPRESSED_SECTIONS, DEFAULT_SYNTAX_MSG

CONFIG_FILENAME = "turbo-gherkin.toml"

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Editor-facing engine settings."""

    tab_size: int = 4
    syntax_message: str = DEFAULT_SYNTAX_MSG
    sound_hint: str = DEFAULT_SOUND_HINT
    suppressed_sections: list[str] = field(default_factory=lambda: sorted(DEFAULT_SUPPRESSED_SECTIONS))
    log_level: str = "INFO"


@dataclass
class VocabularyConfig:
    """Where the vocabulary JSON lives (relative to the config file)."""

    path: str | None = None


@dataclass
class TurboGherkinConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    vocabulary: VocabularyConfig = field(default_factory=VocabularyConfig)
    root: Path | None = None

    def vocabulary_path(self) -> Path | None:
        """Absolute path of the vocabulary file, if one is configured."""
        if not self.vocabulary.path:
            return None
        path = Path(self.vocabulary.path)
        if not path.is_absolute() and self.root is not None:
            path = self.root / path
        return path


def _require(value: object, type_: type, name: str) -> None:
    if not isinstance(value, type_) or (type_ is int and isinstance(value, bool)):
        raise ConfigurationError("config", f"'{name}' must be of type {type_.__name__}")


def load_config(path: Path) -> TurboGherkinConfig:
    """
    Load configuration from a TOML file.

    Args:
        path: Path to ``turbo-gherkin.toml``

    Returns:
        Parsed configuration; defaults when the file does not exist

    Raises:
        ConfigurationError: If the file cannot be read or is not valid TOML,
            or a setting has the wrong type
    """
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return TurboGherkinConfig(root=path.parent)

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError("config", f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError("config", f"Cannot read {path}: {e}") from e

    engine_data = data.get("engine", {})
    vocabulary_data = data.get("vocabulary", {})

    engine = EngineConfig(
        tab_size=engine_data.get("tab_size", 4),
        syntax_message=engine_data.get("syntax_message", DEFAULT_SYNTAX_MSG),
        sound_hint=engine_data.get("sound_hint", DEFAULT_SOUND_HINT),
        suppressed_sections=engine_data.get(
            "suppressed_sections", sorted(DEFAULT_SUPPRESSED_SECTIONS)
        ),
        log_level=engine_data.get("log_level", "INFO"),
    )
    _require(engine.tab_size, int, "engine.tab_size")
    _require(engine.syntax_message, str, "engine.syntax_message")
    _require(engine.sound_hint, str, "engine.sound_hint")
    _require(engine.suppressed_sections, list, "engine.suppressed_sections")
    _require(engine.log_level, str, "engine.log_level")
    if engine.tab_size < 1:
        raise ConfigurationError("config", "'engine.tab_size' must be positive")
    if engine.log_level.upper() not in logging.getLevelNamesMapping():
        raise ConfigurationError("config", f"Unknown log level '{engine.log_level}'")

    vocabulary = VocabularyConfig(path=vocabulary_data.get("path"))
    if vocabulary.path is not None:
        _require(vocabulary.path, str, "vocabulary.path")

    return TurboGherkinConfig(engine=engine, vocabulary=vocabulary, root=path.parent)


def find_config(start: Path) -> Path:
    """``turbo-gherkin.toml`` in ``start`` (a directory or a file inside it)."""
    directory = start if start.is_dir() else start.parent
    return directory / CONFIG_FILENAME
