"""
Line classifier.

Maps one line of text to a small token-category alphabet. The classifier
carries the multiline-string toggle across a scan, so one instance is used
per forward pass and reset between passes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .matcher import PatternSet

_EMPTY_RE = re.compile(r"^\s*$")
_INSTRUCTION_RE = re.compile(r"^\s*@")
_PARAMETER_RE = re.compile(r"^\s*\|")
_COMMENT_RE = re.compile(r"^\s*(?:#|//)")
_MULTILINE_RE = re.compile(r'^\s*"""')
_LEADING_WS_RE = re.compile(r"^\s*")


class LineToken(Enum):
    """Line categories."""

    EMPTY = "empty"
    SECTION = "section"
    OPERATOR = "operator"
    COMMENT = "comment"
    MULTILINE = "multiline"
    INSTRUCTION = "instruction"
    PARAMETER = "parameter"


@dataclass(frozen=True)
class ClassifiedLine:
    token: LineToken
    indent: int = 0


def raw_token(text: str) -> LineToken:
    """Category of a line on its own, ignoring multiline state and sections."""
    if _EMPTY_RE.match(text):
        return LineToken.EMPTY
    if _INSTRUCTION_RE.match(text):
        return LineToken.INSTRUCTION
    if _PARAMETER_RE.match(text):
        return LineToken.PARAMETER
    if _COMMENT_RE.match(text):
        return LineToken.COMMENT
    if _MULTILINE_RE.match(text):
        return LineToken.MULTILINE
    return LineToken.OPERATOR


def is_multiline_delimiter(text: str) -> bool:
    return bool(_MULTILINE_RE.match(text))


def indent_width(text: str, tab_size: int) -> int:
    """Visual width of leading whitespace plus one; tabs advance to the next tab stop."""
    indent = 0
    for char in _LEADING_WS_RE.match(text).group(0):
        if char == "\t":
            indent += tab_size - (indent % tab_size)
        else:
            indent += 1
    return indent + 1


class LineClassifier:
    """
    Stateful line classifier.

    Args:
        patterns: Structural patterns used to recognize section headers
        tab_size: Tab width used for indentation
    """

    def __init__(self, patterns: PatternSet, tab_size: int = 4):
        self.patterns = patterns
        self.tab_size = max(1, tab_size)
        self.multiline = False

    def reset(self) -> None:
        self.multiline = False

    def classify(self, text: str) -> ClassifiedLine:
        token = raw_token(text)
        if self.multiline:
            if token == LineToken.MULTILINE:
                self.multiline = False
            return ClassifiedLine(LineToken.MULTILINE)
        if token == LineToken.MULTILINE:
            self.multiline = True
        if token != LineToken.OPERATOR:
            return ClassifiedLine(token)
        if self.patterns.is_section(text):
            return ClassifiedLine(LineToken.SECTION)
        return ClassifiedLine(LineToken.OPERATOR, indent_width(text, self.tab_size))
