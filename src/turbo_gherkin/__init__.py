"""
Turbo-Gherkin language engine.

Tokenization, folding, syntax diagnostics, quick fixes, completion, hover and
link resolution for the Turbo-Gherkin behavior-specification dialect, driven by
a vocabulary loaded at runtime.
"""

from __future__ import annotations

from ._version import get_version
from .core.errors import ConfigurationError, OperationCancelled, TurboGherkinError
from .core.service import LanguageService

__version__ = get_version()

__all__ = [
    "__version__",
    "LanguageService",
    "TurboGherkinError",
    "ConfigurationError",
    "OperationCancelled",
]
