"""
Folding ranges derived from classified lines and indentation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .cancellation import CancelCheck, check_cancelled
from .classifier import ClassifiedLine, LineClassifier, LineToken
from .matcher import PatternSet


class FoldKind(Enum):
    COMMENT = "comment"
    REGION = "region"


@dataclass(frozen=True)
class FoldRange:
    """Collapsible line span; lines are 1-indexed and ``start < end``."""

    start: int
    end: int
    kind: FoldKind | None = None


_TRANSPARENT = (LineToken.COMMENT, LineToken.MULTILINE, LineToken.PARAMETER)


def _block_end(lines: list[ClassifiedLine], start: int, token: LineToken) -> int:
    end = start
    for j in range(start + 1, len(lines)):
        if lines[j].token != token:
            break
        end = j
    return end


def _section_end(lines: list[ClassifiedLine], start: int) -> int:
    end = start
    for j in range(start + 1, len(lines)):
        if lines[j].token == LineToken.SECTION:
            break
        end = j
    return end


def _operator_end(lines: list[ClassifiedLine], start: int) -> int:
    depth = lines[start].indent
    end = start
    for j in range(start + 1, len(lines)):
        line = lines[j]
        if line.token == LineToken.SECTION:
            break
        if line.token == LineToken.EMPTY:
            continue
        if line.token in _TRANSPARENT:
            end = j
            continue
        if line.indent <= depth:
            break
        end = j
    return end


class FoldingEngine:
    def __init__(self, patterns: PatternSet):
        self.patterns = patterns

    def classify_lines(
        self,
        tab_size: int,
        line_count: int,
        get_line: Callable[[int], str],
        cancel: CancelCheck | None = None,
    ) -> list[ClassifiedLine]:
        """Classify every line; index 0 is a placeholder so indices equal line numbers."""
        classifier = LineClassifier(self.patterns, tab_size)
        lines = [ClassifiedLine(LineToken.EMPTY)]
        for number in range(1, line_count + 1):
            check_cancelled(cancel, "folding", number)
            lines.append(classifier.classify(get_line(number)))
        return lines

    def fold(
        self,
        tab_size: int,
        line_count: int,
        get_line: Callable[[int], str],
        cancel: CancelCheck | None = None,
    ) -> list[FoldRange]:
        """
        Compute folding ranges.

        Args:
            tab_size: Tab width for indentation
            line_count: Number of lines in the document
            get_line: Accessor returning the text of a 1-indexed line
            cancel: Optional cancellation check

        Returns:
            Ranges ordered by start line
        """
        lines = self.classify_lines(tab_size, line_count, get_line, cancel)
        result: list[FoldRange] = []
        i = 1
        while i <= line_count:
            token = lines[i].token
            kind = None
            end = i
            if token == LineToken.INSTRUCTION:
                end = _block_end(lines, i, token)
            elif token == LineToken.COMMENT:
                kind = FoldKind.COMMENT
                end = _block_end(lines, i, token)
            elif token == LineToken.SECTION:
                kind = FoldKind.REGION
                end = _section_end(lines, i)
            elif token == LineToken.OPERATOR:
                end = _operator_end(lines, i)
            if end > i:
                result.append(FoldRange(start=i, end=end, kind=kind))
            if token in (LineToken.INSTRUCTION, LineToken.COMMENT):
                i = end
            i += 1
        return result
