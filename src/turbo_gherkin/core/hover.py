"""
Hover documentation for steps, variables and sound annotations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from . import words as w
from .document import LineSource, Position, TextRange
from .vocabulary import Vocabulary, iter_known_variables

INFO_GLYPH = chr(60020)
SOUND_GLYPH = chr(60277)

_SOUND_RE = re.compile(r"^\s*\*")
_VALUE_TOKEN_RE = re.compile(r""""[^"]+"|'[^']+'|<[^<>]+>""")


@dataclass(frozen=True)
class Hover:
    """Markdown content blocks shown for a line."""

    contents: list[str]
    range: TextRange


class HoverEngine:
    def hover(self, vocabulary: Vocabulary, document: LineSource, position: Position) -> Hover | None:
        if not 1 <= position.line <= document.line_count:
            return None
        line = document.line(position.line)
        contents: list[str] = []
        sound = _SOUND_RE.match(line)
        if sound:
            head = vocabulary.sound_hint
            contents.append(f"**{head}** [{SOUND_GLYPH}](#sound:{position.line})")
            contents.append(w.escape_markdown(line[sound.end() :]))
        else:
            key = vocabulary.line_key(line)
            step = vocabulary.steps.get(key)
            if step:
                section = w.escape_markdown(step.section)
                info = "#info:" + key.replace(" ", "-")
                contents.append(
                    f"**{section}** [{INFO_GLYPH}]({info}) [{SOUND_GLYPH}](#sound:{position.line})"
                )
                contents.append(w.escape_markdown(step.documentation))
                tokens = _VALUE_TOKEN_RE.findall(line)
                for variable in iter_known_variables(vocabulary, tokens):
                    contents.append(f"**{variable.name}** = {variable.value}")
        if not contents:
            return None
        return Hover(
            contents=contents,
            range=TextRange(
                position.line,
                1,
                position.line,
                len(line) + 1,
            ),
        )
