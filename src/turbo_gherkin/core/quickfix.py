"""
Quick fixes for syntax errors.

The phrase of each flagged line is compared with every known step key using
Jaro-Winkler similarity; the closest steps become replacement actions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz.distance import JaroWinkler

from . import words as w
from .document import LineSource, TextRange
from .validator import SyntaxDiagnostic
from .vocabulary import Step, Vocabulary

MIN_SCORE = 0.7
MAX_ACTIONS = 7


@dataclass(frozen=True)
class QuickFix:
    """A replacement of ``range`` with ``text`` that fixes ``diagnostic``."""

    title: str
    text: str
    range: TextRange
    diagnostic: SyntaxDiagnostic
    score: float
    step_key: str
    kind: str = "quickfix"
    is_preferred: bool = True


@dataclass(frozen=True)
class _Candidate:
    key: str
    score: float
    diagnostic: SyntaxDiagnostic
    range: TextRange
    words: tuple[str, ...]


def replace_params(vocabulary: Vocabulary, step: Step, line_words: tuple[str, ...]) -> str:
    """Step phrase without keyword, its placeholders filled from the line's, in order."""
    phrase = w.filter_words(step.head, vocabulary.find_keyword(step.head))
    params = iter([word for word in line_words if w.is_placeholder(word)])
    return " ".join(next(params, word) if w.is_placeholder(word) else word for word in phrase)


class QuickFixEngine:
    def _candidates(
        self, vocabulary: Vocabulary, document: LineSource, diagnostic: SyntaxDiagnostic
    ) -> list[_Candidate]:
        if not 1 <= diagnostic.line <= document.line_count:
            return []
        value = document.line(diagnostic.line)[: max(0, diagnostic.end_column - 1)]
        tokens = w.split_words(value)
        keyword = vocabulary.find_keyword(tokens)
        if keyword is None:
            return []
        prefix = r"^\s*" + "".join(re.escape(word) + r"\s+" for word in keyword)
        match = re.match(prefix, value.lower())
        start_column = len(match.group(0)) + 1 if match else 1
        fix_range = TextRange(diagnostic.line, start_column, diagnostic.line, diagnostic.end_column)
        phrase = w.phrase_key(w.filter_words(tokens, keyword))
        candidates = []
        for key in vocabulary.steps:
            score = JaroWinkler.similarity(phrase, key)
            if score > MIN_SCORE:
                candidates.append(_Candidate(key, score, diagnostic, fix_range, tuple(tokens)))
        return candidates

    def provide(
        self, vocabulary: Vocabulary, document: LineSource, diagnostics: list[SyntaxDiagnostic]
    ) -> list[QuickFix]:
        """
        Propose replacements for the given diagnostics.

        Returns:
            At most seven fixes, pooled across diagnostics, best score first
        """
        pool: list[_Candidate] = []
        for diagnostic in diagnostics:
            pool.extend(self._candidates(vocabulary, document, diagnostic))
        pool.sort(key=lambda c: c.score, reverse=True)
        fixes = []
        for candidate in pool[:MAX_ACTIONS]:
            text = replace_params(vocabulary, vocabulary.steps[candidate.key], candidate.words)
            fixes.append(
                QuickFix(
                    title=text,
                    text=text,
                    range=candidate.range,
                    diagnostic=candidate.diagnostic,
                    score=candidate.score,
                    step_key=candidate.key,
                )
            )
        return fixes


@dataclass(frozen=True)
class ErrorLinkAction:
    """A host-defined action offered next to the fixes of a syntax error."""

    title: str
    link_id: str
    diagnostic: SyntaxDiagnostic


def error_link_actions(vocabulary: Vocabulary, diagnostics: list[SyntaxDiagnostic]) -> list[ErrorLinkAction]:
    """One action per configured error link, attached to the first diagnostic."""
    if not diagnostics:
        return []
    return [
        ErrorLinkAction(title=link.title, link_id=link.id, diagnostic=diagnostics[0])
        for link in vocabulary.error_links
    ]
