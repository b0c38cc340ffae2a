"""Package version for turbo-gherkin."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "turbo-gherkin"
PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _checkout_version(pyproject: Path) -> str | None:
    """``[project] version`` of a source checkout, if this is one."""
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return None
    project = data.get("project", {})
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version(pyproject: Path = PYPROJECT) -> str:
    """
    Version of the running code.

    A source checkout reports the version in its pyproject.toml, so an
    editable install never shows stale metadata. Otherwise the installed
    distribution's metadata is used.
    """
    found = _checkout_version(pyproject)
    if found:
        return found
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0.0.0"
