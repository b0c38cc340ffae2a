"""
Structural pattern compiler.

Turns a matcher payload (Gherkin i18n layout: language code -> word lists)
into the regular expressions the engine uses to recognize section headers,
step lines and import directives.

Example payload::

    {
        "en": {
            "feature": ["Feature"],
            "scenario": ["Scenario"],
            "variables": ["Variables"],
            "given": ["Given "], "when": ["When "], "then": ["Then "],
            "and": ["And "], "but": ["But "],
            "import": ["Import"]
        },
        "patterns": {"step": "^\\\\s*(?:Given|When)\\\\b"}
    }
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

STEP_KEYS = frozenset({"given", "when", "then", "and", "but"})
IMPORT_KEY = "import"
IGNORED_KEYS = frozenset({"name", "native"})
PATTERNS_KEY = "patterns"
ANY_SECTION = ""
VARIABLES_SECTION = "variables"

DEFAULT_MATCHERS: dict[str, Any] = {
    "en": {
        "feature": ["Feature", "Business Need", "Ability"],
        "background": ["Background"],
        "scenario": ["Scenario", "Example"],
        "scenarioOutline": ["Scenario Outline", "Scenario Template"],
        "examples": ["Examples", "Scenarios"],
        "rule": ["Rule"],
        "variables": ["Variables"],
        "given": ["* ", "Given "],
        "when": ["* ", "When "],
        "then": ["* ", "Then "],
        "and": ["* ", "And "],
        "but": ["* ", "But "],
        "import": ["Import"],
    },
    "ru": {
        "feature": ["Функция", "Функциональность", "Функционал", "Свойство"],
        "background": ["Предыстория", "Контекст"],
        "scenario": ["Сценарий", "Пример"],
        "scenarioOutline": ["Структура сценария", "Шаблон сценария"],
        "examples": ["Примеры"],
        "rule": ["Правило"],
        "variables": ["Переменные"],
        "given": ["* ", "Допустим ", "Пусть ", "Дано "],
        "when": ["* ", "Когда ", "Если "],
        "then": ["* ", "То ", "Затем ", "Тогда "],
        "and": ["* ", "И ", "К тому же ", "Также "],
        "but": ["* ", "Но ", "А ", "Иначе "],
        "import": ["Импорт"],
    },
}


@dataclass(frozen=True)
class PatternSet:
    """
    Compiled structural patterns.

    Attributes:
        sections: Section name -> header pattern; the ``""`` entry matches any section
        step: Pattern for lines that start with a step word
        imports: Pattern for import directives, with a ``file`` group
    """

    sections: dict[str, re.Pattern[str]] = field(default_factory=dict)
    step: re.Pattern[str] | None = None
    imports: re.Pattern[str] | None = None

    def is_section(self, text: str, name: str = ANY_SECTION) -> bool:
        pattern = self.sections.get(name)
        return bool(pattern and pattern.search(text))

    def get_section(self, text: str) -> str | None:
        """Name of the first named section whose header pattern matches ``text``."""
        for name, pattern in self.sections.items():
            if name and pattern.search(text):
                return name
        return None

    def is_step(self, text: str) -> bool:
        return bool(self.step and self.step.search(text))

    def match_import(self, text: str) -> str | None:
        """File reference of an import directive, or None if ``text`` is not one."""
        if not self.imports:
            return None
        match = self.imports.search(text)
        if not match:
            return None
        return match.group("file").strip()


def _alternation(words: list[str]) -> str:
    unique = sorted({w.strip() for w in words if w.strip()}, key=lambda w: (-len(w), w))
    return "|".join(re.escape(w) for w in unique)


def _compile(name: str, source: str) -> re.Pattern[str]:
    try:
        return re.compile(source, re.IGNORECASE)
    except re.error as e:
        raise ConfigurationError("matchers", str(e), pattern=name) from e


def _collect_words(payload: dict[str, Any]) -> tuple[dict[str, list[str]], list[str], list[str]]:
    sections: dict[str, list[str]] = {}
    steps: list[str] = []
    imports: list[str] = []
    for language, dictionary in payload.items():
        if language == PATTERNS_KEY:
            continue
        if not isinstance(dictionary, dict):
            raise ConfigurationError(
                "matchers", f"language '{language}' must map to an object of word lists"
            )
        for key, words in dictionary.items():
            if key in IGNORED_KEYS:
                continue
            if isinstance(words, str):
                words = [words]
            if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
                raise ConfigurationError(
                    "matchers", f"'{language}.{key}' must be a list of strings"
                )
            if key in STEP_KEYS:
                steps.extend(words)
            elif key == IMPORT_KEY:
                imports.extend(words)
            else:
                sections.setdefault(key, []).extend(words)
    return sections, steps, imports


def compile_matchers(payload: Any) -> PatternSet:
    """
    Compile a matcher payload into a PatternSet.

    Args:
        payload: Decoded matcher payload

    Returns:
        PatternSet with one pattern per section plus the any-section pattern

    Raises:
        ConfigurationError: If the payload is malformed or a pattern does not compile
    """
    if not isinstance(payload, dict):
        raise ConfigurationError("matchers", "payload must be an object")

    section_words, step_words, import_words = _collect_words(payload)
    overrides = payload.get(PATTERNS_KEY) or {}
    if not isinstance(overrides, dict) or not all(
        isinstance(v, str) for v in overrides.values()
    ):
        raise ConfigurationError("matchers", "'patterns' must map names to regex strings")

    sections: dict[str, re.Pattern[str]] = {}
    all_section_words: list[str] = []
    for name, words in section_words.items():
        all_section_words.extend(words)
        alternation = _alternation(words)
        if alternation:
            sections[name] = _compile(name, rf"^\s*(?:{alternation})\s*:")
    for name, source in overrides.items():
        if name not in ("step", IMPORT_KEY, ANY_SECTION):
            sections[name] = _compile(name, source)

    if ANY_SECTION in overrides:
        sections[ANY_SECTION] = _compile("section", overrides[ANY_SECTION])
    else:
        alternation = _alternation(all_section_words)
        # a pattern that never matches keeps lookups uniform when no section is declared
        source = rf"^\s*(?:{alternation})\s*:" if alternation else r"(?!)"
        sections[ANY_SECTION] = _compile("section", source)

    step = None
    if "step" in overrides:
        step = _compile("step", overrides["step"])
    elif alternation := _alternation(step_words):
        step = _compile("step", rf"^\s*(?:{alternation})(?=\s|$)")

    imports = None
    if IMPORT_KEY in overrides:
        imports = _compile(IMPORT_KEY, overrides[IMPORT_KEY])
        if "file" not in imports.groupindex:
            raise ConfigurationError(
                "matchers", "import pattern must define a 'file' group", pattern=IMPORT_KEY
            )
    elif alternation := _alternation(import_words):
        imports = _compile(IMPORT_KEY, rf"^\s*(?:{alternation})\s+(?P<file>.+?)\s*$")

    logger.debug(
        "Compiled matchers: %d sections, %d step words, %d import words",
        len(sections) - 1,
        len(step_words),
        len(import_words),
    )
    return PatternSet(
        sections=sections,
        step=step,
        imports=imports,
    )
