"""
Syntax validator.

Flags step lines whose phrase does not resolve against the known steps,
allowing keypair continuation words after a known step.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntEnum

from . import words as w
from .cancellation import CancelCheck, check_cancelled
from .classifier import is_multiline_delimiter
from .document import LineSource
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

_SKIP_RE = re.compile(r"^\s*(?:#|@|//)")


class Severity(IntEnum):
    """Diagnostic severity, numbered as in the Language Server Protocol."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass(frozen=True)
class SyntaxDiagnostic:
    """
    A diagnostic on one line.

    Attributes:
        line: Line number (1-indexed)
        start_column: First non-blank column (1-indexed)
        end_column: Column just past the last non-blank character
    """

    line: int
    start_column: int
    end_column: int
    message: str
    severity: Severity = Severity.ERROR
    source: str = "syntax"


def is_syntax_error(vocabulary: Vocabulary, line: str) -> bool:
    """True when ``line`` is a step line whose phrase is not a known step."""
    if not vocabulary.patterns.is_step(line):
        return False
    tokens = w.split_words(line)
    keyword = vocabulary.find_keyword(tokens)
    if keyword is None:
        return False
    phrase = w.filter_words(tokens, keyword)
    key = w.phrase_key(phrase)
    if not key:
        return False
    if key in vocabulary.steps:
        return False
    keypair = vocabulary.keypair_for(keyword)
    if not keypair:
        return True
    last = phrase[-1].lower()
    return not (w.phrase_key(phrase[:-1]) in vocabulary.steps and last in keypair)


class SyntaxValidator:
    def validate(
        self, vocabulary: Vocabulary, document: LineSource, cancel: CancelCheck | None = None
    ) -> list[SyntaxDiagnostic]:
        """
        Validate every line of a document.

        Args:
            vocabulary: Vocabulary snapshot
            document: Document to validate
            cancel: Optional per-line cancellation check

        Returns:
            Diagnostics in line order
        """
        problems: list[SyntaxDiagnostic] = []
        multiline = False
        section: str | None = None
        patterns = vocabulary.patterns
        for number in range(1, document.line_count + 1):
            check_cancelled(cancel, "checkSyntax", number)
            line = document.line(number)
            if is_multiline_delimiter(line):
                multiline = not multiline
                continue
            if multiline or _SKIP_RE.match(line):
                continue
            if patterns.is_section(line):
                section = patterns.get_section(line)
                continue
            if section is not None and section.lower() in vocabulary.suppressed_sections:
                continue
            if is_syntax_error(vocabulary, line):
                problems.append(
                    SyntaxDiagnostic(
                        line=number,
                        start_column=w.first_non_whitespace_column(line),
                        end_column=w.last_non_whitespace_column(line),
                        message=vocabulary.syntax_msg,
                    )
                )
        logger.debug("checkSyntax %s: %d problems", document.uri, len(problems))
        return problems
