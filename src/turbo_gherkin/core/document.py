"""
Random-access line documents.

The engine never sees an editor model; it reads documents through this small
1-based line accessor, the same shape a host editor model exposes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Protocol


class LineSource(Protocol):
    uri: str

    @property
    def line_count(self) -> int: ...

    def line(self, number: int) -> str: ...


@dataclass(frozen=True)
class Position:
    """Cursor position (line and column are 1-indexed)."""

    line: int
    column: int


@dataclass(frozen=True)
class TextRange:
    """Single-line or multi-line range; ``end_column`` is exclusive (1-indexed)."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int


class TextDocument:
    """
    In-memory document split into lines.

    Args:
        text: Full document text
        uri: Document identifier used to key diagnostics
    """

    def __init__(self, text: str, uri: str = "untitled:document"):
        self.uri = uri
        self._lines = text.splitlines() or [""]
        if text.endswith(("\n", "\r")):
            self._lines.append("")

    @classmethod
    def from_lines(cls, lines: list[str], uri: str = "untitled:document") -> TextDocument:
        document = cls("", uri)
        document._lines = [line.rstrip("\r\n") for line in lines] or [""]
        return document

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, number: int) -> str:
        """Text of line ``number`` (1-indexed) without its line terminator."""
        return self._lines[number - 1]

    def lines(self) -> Iterator[tuple[int, str]]:
        for index, text in enumerate(self._lines, start=1):
            yield index, text


class AccessorDocument:
    """Adapts a ``(line_count, get_line)`` pair supplied by a host to LineSource."""

    def __init__(self, line_count: int, get_line: Callable[[int], str], uri: str = "untitled:document"):
        self.uri = uri
        self._line_count = line_count
        self._get_line = get_line

    @property
    def line_count(self) -> int:
        return self._line_count

    def line(self, number: int) -> str:
        return self._get_line(number)
