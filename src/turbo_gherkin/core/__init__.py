"""Core engine: vocabulary store, line analysis and the language service."""

from .cancellation import Deadline
from .config import EngineConfig, TurboGherkinConfig, load_config
from .document import AccessorDocument, Position, TextDocument, TextRange
from .errors import ConfigurationError, OperationCancelled, TurboGherkinError
from .service import CodeActions, LanguageService
from .vocabulary import Vocabulary, VocabularyStore

__all__ = [
    "AccessorDocument",
    "CodeActions",
    "ConfigurationError",
    "Deadline",
    "EngineConfig",
    "LanguageService",
    "OperationCancelled",
    "Position",
    "TextDocument",
    "TextRange",
    "TurboGherkinConfig",
    "TurboGherkinError",
    "Vocabulary",
    "VocabularyStore",
    "load_config",
]
