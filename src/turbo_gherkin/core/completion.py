"""
Context completion.

Inside a placeholder token the engine offers variables; at the end of a line
it offers steps (and metatags when no keyword has been typed yet).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

from . import words as w
from .document import LineSource, Position, TextRange
from .vocabulary import Vocabulary

_TOKEN_RE = re.compile(r""""[^"]*"|'[^']*'|<[^\s"']*>""")


class CompletionKind(IntEnum):
    """Completion item kinds, numbered as in the Language Server Protocol."""

    FUNCTION = 3
    VARIABLE = 6
    KEYWORD = 14


@dataclass(frozen=True)
class CompletionItem:
    label: str
    insert_text: str
    range: TextRange
    kind: int = CompletionKind.FUNCTION
    filter_text: str | None = None
    detail: str | None = None
    documentation: str | None = None
    sort_text: str | None = None


def _placeholder_at(line: str, column: int) -> tuple[int, int] | None:
    """1-based (start, end) columns of the placeholder token under ``column``."""
    found = None
    for match in _TOKEN_RE.finditer(line):
        start, end = match.start() + 1, match.end() + 1
        if start <= column <= end:
            found = (start, end)
    return found


class CompletionEngine:
    def _variables(
        self, vocabulary: Vocabulary, line: str, position: Position, span: tuple[int, int]
    ) -> list[CompletionItem]:
        token = line[span[0] - 1 : span[1] - 1]
        open_quote, close_quote = token[0], token[-1]
        sigil = "$" if w.has_sigil(token) else ""
        word_range = TextRange(position.line, span[0], position.line, span[1])
        items = []
        for variable in vocabulary.variables.values():
            name = f"{sigil}{variable.name}{sigil}"
            items.append(
                CompletionItem(
                    label=f'"{name}" = {variable.value}',
                    filter_text=token + name,
                    insert_text=f"{open_quote}{name}{close_quote}",
                    kind=CompletionKind.VARIABLE,
                    range=word_range,
                )
            )
        return items

    def _steps(
        self, vocabulary: Vocabulary, line: str, position: Position
    ) -> list[CompletionItem]:
        max_column = w.last_non_whitespace_column(line)
        if max_column and position.column < max_column:
            return []
        min_column = w.first_non_whitespace_column(line)
        line_range = TextRange(
            position.line,
            min_column or position.column,
            position.line,
            max_column or position.column,
        )
        keyword = vocabulary.find_keyword(line.split())
        items: list[CompletionItem] = []
        if keyword:
            keytext = " ".join(keyword)
            keytext = keytext[:1].upper() + keytext[1:]
        else:
            for tag in vocabulary.metatags:
                items.append(
                    CompletionItem(
                        label=tag,
                        kind=CompletionKind.KEYWORD,
                        insert_text=tag + "\n",
                        range=line_range,
                    )
                )
        for key, step in vocabulary.steps.items():
            if not step.documentation:
                continue
            if keyword:
                insert_text = f"{keytext} {step.insert_text}\n"
                filter_text = f"{keytext} {key}"
            else:
                insert_text = " ".join(p for p in (step.keyword, step.insert_text) if p) + "\n"
                filter_text = key
            items.append(
                CompletionItem(
                    label=step.label,
                    kind=step.kind or CompletionKind.FUNCTION,
                    detail=step.section,
                    documentation=step.documentation,
                    sort_text=step.sort_text,
                    insert_text=insert_text,
                    filter_text=filter_text,
                    range=line_range,
                )
            )
        return items

    def complete(
        self, vocabulary: Vocabulary, document: LineSource, position: Position
    ) -> list[CompletionItem]:
        """
        Suggestions for the cursor position.

        Args:
            vocabulary: Vocabulary snapshot
            document: Document being edited
            position: Cursor position (1-indexed)

        Returns:
            Variable suggestions inside a placeholder, otherwise step/metatag
            suggestions; empty when the cursor is before the end of the line's text
        """
        if not 1 <= position.line <= document.line_count:
            return []
        line = document.line(position.line)
        span = _placeholder_at(line, position.column)
        if span:
            return self._variables(vocabulary, line, position, span)
        return self._steps(vocabulary, line, position)
