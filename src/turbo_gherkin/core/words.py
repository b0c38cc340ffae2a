"""
Word-level helpers shared by the validator, completion, hover and quick-fix engines.

A step line is split into word tokens: quoted strings and angle-bracket
placeholders stay whole, runs of letters form words, and runs of other
non-blank characters form punctuation tokens. Only letter words take part in
the normalized phrase key used to look steps up.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

LETTERS = "A-Za-zА-яЁё"

_WORD_RE = re.compile(
    r""""[^"\\]*(?:\\.[^"\\]*)*"|'[^'\\]*(?:\\.[^'\\]*)*'|<[^>]*>"""
    rf"|[{LETTERS}]+|[^{LETTERS}\s]+"
)
_KEY_WORD_RE = re.compile(rf"^[{LETTERS}]+$")
_COMMENT_WORD_RE = re.compile(r"^\s*(?:#|//)")
_PLACEHOLDER_RE = re.compile(r"""^"[^"]*"$|^'[^']*'$|^<[^<]*>$""")
_SIGIL_RE = re.compile(r"^.\$.+\$.$")
_MARKDOWN_RE = re.compile(r"([\\`*_{}\[\]()#+\-.!])")
_QUOTES_RE = re.compile(r"""^["'](.*)["']$""", re.DOTALL)

Keyword = tuple[str, ...]


def split_words(line: str) -> list[str]:
    """Split a line into word tokens (quoted strings and placeholders stay whole)."""
    return _WORD_RE.findall(line)


def find_keyword(keywords: Sequence[Keyword], words: Sequence[str]) -> Keyword | None:
    """
    Find the registered keyword that prefixes ``words``.

    Args:
        keywords: Lower-cased keywords, sorted longest first
        words: Word tokens of a line

    Returns:
        The first (therefore longest) keyword whose words case-insensitively
        equal the leading tokens, or None
    """
    if not words:
        return None
    for keyword in keywords:
        if len(keyword) > len(words):
            continue
        if all(words[i].lower() == w for i, w in enumerate(keyword)):
            return keyword
    return None


def is_comment_word(word: str) -> bool:
    return bool(_COMMENT_WORD_RE.match(word))


def filter_words(words: Sequence[str], keyword: Keyword | None) -> list[str]:
    """Drop the keyword prefix and everything from the first comment token on."""
    start = len(keyword) if keyword else 0
    result = []
    for word in words[start:]:
        if is_comment_word(word):
            break
        result.append(word)
    return result


def phrase_key(words: Sequence[str]) -> str:
    """Normalized step key: lower-cased letter words joined by single spaces."""
    return " ".join(w.lower() for w in words if _KEY_WORD_RE.match(w))


def line_key(keywords: Sequence[Keyword], line: str) -> str:
    words = split_words(line)
    return phrase_key(filter_words(words, find_keyword(keywords, words)))


def is_placeholder(word: str) -> bool:
    return bool(_PLACEHOLDER_RE.match(word))


def has_sigil(token: str) -> bool:
    """True for tokens shaped like ``"$name$"`` (doubled sigil inside delimiters)."""
    return bool(_SIGIL_RE.match(token))


def placeholder_name(token: str) -> str:
    """Inner text of a placeholder token with delimiters and sigils stripped."""
    depth = 2 if has_sigil(token) else 1
    return token[depth : len(token) - depth]


def trim_quotes(text: str) -> str:
    return _QUOTES_RE.sub(r"\1", text)


def escape_markdown(text: str) -> str:
    return _MARKDOWN_RE.sub(r"\\\1", text or "")


def first_non_whitespace_column(line: str) -> int:
    """1-based column of the first non-blank character, 0 for a blank line."""
    stripped = line.lstrip()
    if not stripped:
        return 0
    return len(line) - len(stripped) + 1


def last_non_whitespace_column(line: str) -> int:
    """1-based column just past the last non-blank character, 0 for a blank line."""
    stripped = line.rstrip()
    if not stripped.strip():
        return 0
    return len(stripped) + 1
