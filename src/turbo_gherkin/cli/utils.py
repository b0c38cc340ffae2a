"""
Shared CLI helpers: version output and service construction.
"""

import platform
from pathlib import Path

import typer

from turbo_gherkin._version import get_version
from turbo_gherkin.core.config import TurboGherkinConfig, find_config, load_config
from turbo_gherkin.core.document import TextDocument
from turbo_gherkin.core.errors import ConfigurationError
from turbo_gherkin.core.service import LanguageService


def version_callback(value: bool) -> None:
    """Display version and environment information."""
    if value:
        typer.echo(f"turbo-gherkin {get_version()}")
        typer.echo(f"Python {platform.python_version()} ({platform.python_implementation()})")
        raise typer.Exit()


def build_service(vocab: Path | None, config_path: Path | None) -> LanguageService:
    """
    Create a LanguageService configured from files.

    Args:
        vocab: Vocabulary JSON file; falls back to the config's ``[vocabulary] path``
        config_path: ``turbo-gherkin.toml``; defaults to the one in the current directory

    Raises:
        ConfigurationError: If the config or vocabulary cannot be loaded
    """
    config: TurboGherkinConfig = load_config(config_path or find_config(Path.cwd()))
    service = LanguageService(tab_size=config.engine.tab_size)
    service.apply_config(config.engine)

    vocabulary_path = vocab or config.vocabulary_path()
    if vocabulary_path is not None:
        try:
            payload = vocabulary_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError("vocabulary", f"Cannot read {vocabulary_path}: {e}") from e
        service.load_vocabulary(payload)
    return service


def read_document(path: Path) -> TextDocument:
    """Load a feature file as an engine document."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(code=1)
    return TextDocument(text, uri=path.resolve().as_uri())
