"""
LanguageService: the host-facing facade of the engine.

Owns one VocabularyStore and one instance of every component. Each request
takes a single vocabulary snapshot at its start and reads only that snapshot,
so configuration changes made concurrently never tear a request in half.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .cancellation import CancelCheck
from .completion import CompletionEngine, CompletionItem
from .config import EngineConfig
from .document import LineSource, Position
from .errors import ConfigurationError
from .folding import FoldingEngine, FoldRange
from .grammar import LineTokens, Tokenizer, TokenizerState
from .hover import Hover, HoverEngine
from .links import DocumentLink, LinkData, LinkResolver
from .quickfix import ErrorLinkAction, QuickFix, QuickFixEngine, error_link_actions
from .validator import Severity, SyntaxDiagnostic, SyntaxValidator
from .vocabulary import Vocabulary, VocabularyStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeActions:
    """Quick fixes (best first) plus the host's error-link actions."""

    fixes: list[QuickFix] = field(default_factory=list)
    commands: list[ErrorLinkAction] = field(default_factory=list)


class LanguageService:
    """
    Language intelligence for Turbo-Gherkin documents.

    Configuration setters accept JSON text or already-decoded values and raise
    ConfigurationError on malformed input, leaving that category untouched.
    Request methods use 1-indexed lines and columns.
    """

    def __init__(self, store: VocabularyStore | None = None, tab_size: int = 4):
        self.store = store or VocabularyStore()
        self.tab_size = tab_size
        self.tokenizer = Tokenizer()
        self.validator = SyntaxValidator()
        self.quick_fixes = QuickFixEngine()
        self.completion = CompletionEngine()
        self.hovers = HoverEngine()
        self.links = LinkResolver()
        self._diagnostics: dict[str, list[SyntaxDiagnostic]] = {}
        self._diagnostics_lock = threading.Lock()

    @property
    def vocabulary(self) -> Vocabulary:
        return self.store.snapshot()

    def _configure(self, category: str, setter: Callable[..., Any], *args: Any) -> Any:
        try:
            return setter(*args)
        except ConfigurationError as e:
            logger.warning("Failed to set %s: %s", category, e)
            raise

    def apply_config(self, config: EngineConfig) -> None:
        """Apply engine settings from ``turbo-gherkin.toml``."""
        self.tab_size = config.tab_size
        self.set_syntax_msg(config.syntax_message)
        self.set_sound_hint(config.sound_hint)
        self.set_suppressed_sections(config.suppressed_sections)

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_keywords(self, payload: Any) -> None:
        self._configure("keywords", self.store.set_keywords, payload)

    def set_keypairs(self, payload: Any) -> None:
        self._configure("keypairs", self.store.set_keypairs, payload)

    def set_metatags(self, payload: Any) -> None:
        self._configure("metatags", self.store.set_metatags, payload)

    def set_step_list(self, payload: Any, clear: bool = False) -> None:
        self._configure("steps", self.store.set_step_list, payload, clear)

    def set_elements(self, payload: Any, clear: bool = False) -> None:
        self._configure("elements", self.store.set_elements, payload, clear)

    def set_variables(self, payload: Any, clear: bool = False) -> None:
        self._configure("variables", self.store.set_variables, payload, clear)

    def set_matchers(self, payload: Any) -> None:
        self._configure("matchers", self.store.set_matchers, payload)

    def set_imports(self, payload: Any, clear: bool = True) -> None:
        self._configure("imports", self.store.set_imports, payload, clear)

    def set_error_links(self, payload: Any) -> None:
        self._configure("errorLinks", self.store.set_error_links, payload)

    def set_syntax_msg(self, message: str) -> None:
        self._configure("syntaxMsg", self.store.set_syntax_msg, message)

    def get_syntax_msg(self) -> str:
        return self.vocabulary.syntax_msg

    def set_sound_hint(self, hint: str) -> None:
        self._configure("soundHint", self.store.set_sound_hint, hint)

    def set_suppressed_sections(self, payload: Any) -> None:
        self._configure("suppressedSections", self.store.set_suppressed_sections, payload)

    def load_vocabulary(self, payload: Any) -> list[str]:
        """Apply every category present in a vocabulary object; returns their names."""
        applied = self._configure("vocabulary", self.store.load, payload)
        logger.info("Loaded vocabulary categories: %s", ", ".join(applied) or "none")
        return applied

    # =========================================================================
    # Tokenization & folding
    # =========================================================================

    def get_initial_state(self) -> TokenizerState:
        return self.tokenizer.get_initial_state()

    def tokenize(self, line: str, state: TokenizerState | None = None) -> LineTokens:
        return self.tokenizer.tokenize(self.vocabulary, line, state)

    def provide_folding_ranges(
        self, document: LineSource, tab_size: int | None = None, cancel: CancelCheck | None = None
    ) -> list[FoldRange]:
        engine = FoldingEngine(self.vocabulary.patterns)
        return engine.fold(tab_size or self.tab_size, document.line_count, document.line, cancel)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def check_syntax(self, document: LineSource, cancel: CancelCheck | None = None) -> list[SyntaxDiagnostic]:
        """
        Validate a document and replace its stored diagnostic set.

        Returns:
            The document's new diagnostics
        """
        problems = self.validator.validate(self.vocabulary, document, cancel)
        with self._diagnostics_lock:
            self._diagnostics[document.uri] = problems
        return problems

    def get_diagnostics(self, uri: str) -> list[SyntaxDiagnostic]:
        with self._diagnostics_lock:
            return list(self._diagnostics.get(uri, []))

    def clear_document(self, uri: str) -> None:
        with self._diagnostics_lock:
            self._diagnostics.pop(uri, None)

    def provide_code_actions(
        self, document: LineSource, diagnostics: list[SyntaxDiagnostic]
    ) -> CodeActions | None:
        """
        Quick fixes for the error-severity diagnostics among ``diagnostics``.

        Returns:
            None when none of the diagnostics is an error
        """
        errors = [d for d in diagnostics if d.severity == Severity.ERROR]
        if not errors:
            return None
        vocabulary = self.vocabulary
        return CodeActions(
            fixes=self.quick_fixes.provide(vocabulary, document, errors),
            commands=error_link_actions(vocabulary, errors),
        )

    # =========================================================================
    # Completion, hover, links
    # =========================================================================

    def provide_completion_items(self, document: LineSource, position: Position) -> list[CompletionItem]:
        return self.completion.complete(self.vocabulary, document, position)

    def provide_hover(self, document: LineSource, position: Position) -> Hover | None:
        return self.hovers.hover(self.vocabulary, document, position)

    def provide_links(self, document: LineSource, cancel: CancelCheck | None = None) -> list[DocumentLink]:
        return self.links.provide_links(self.vocabulary, document, cancel)

    def get_link_data(
        self, document: LineSource, key: str, cancel: CancelCheck | None = None
    ) -> LinkData | None:
        return self.links.get_link_data(self.vocabulary, document, key, cancel)
