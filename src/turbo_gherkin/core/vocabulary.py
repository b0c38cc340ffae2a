"""
Vocabulary store for the Turbo-Gherkin engine.

Holds the runtime-loaded dictionaries (keywords, keypairs, metatags, steps,
elements, variables, imported files, error links and structural patterns).

The store publishes immutable ``Vocabulary`` snapshots. Each setter validates
its payload, builds a complete replacement for its category and swaps in a
new snapshot under a lock; requests take one snapshot and read only that.
A setter that fails leaves the current snapshot untouched.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from . import words as w
from .errors import ConfigurationError
from .matcher import DEFAULT_MATCHERS, PatternSet, compile_matchers
from .schema import (
    ErrorLinkPayload,
    ImportedFilePayload,
    StepPayload,
    decode_payload,
    parse_payload,
    stringify_value,
)

logger = logging.getLogger(__name__)

DEFAULT_METATAGS = ("try", "except", "попытка", "исключение")
DEFAULT_SYNTAX_MSG = "Syntax error"
DEFAULT_SOUND_HINT = "Sound"
DEFAULT_SUPPRESSED_SECTIONS = frozenset({"feature"})

DEFAULT_TABLE = ""


@dataclass(frozen=True)
class Step:
    """
    A known step phrase.

    ``label``, ``keyword`` and ``insert_text`` are derived from ``head`` and
    the current elements/keywords, and are rebuilt whenever those change.
    """

    key: str
    head: tuple[str, ...]
    body: tuple[str, ...]
    documentation: str = ""
    sort_text: str | None = None
    section: str = ""
    kind: int | None = None
    label: str = ""
    keyword: str = ""
    insert_text: str = ""


@dataclass(frozen=True)
class Variable:
    name: str
    value: str


@dataclass(frozen=True)
class LinkRecord:
    """
    A resolvable data record (an assignment or a data-table row).

    Attributes:
        key: Row key as written (first cell, or the assignment name)
        name: Display value (second cell, or the assigned value)
        file: Path of the imported file the record came from, if any
        data: Column header -> cell text
    """

    key: str
    name: str
    file: str | None = None
    data: dict[str, str] = field(default_factory=dict)


# table name -> lower-cased row key -> record
LinkTables = dict[str, dict[str, LinkRecord]]


@dataclass(frozen=True)
class Vocabulary:
    """Immutable snapshot of every vocabulary category."""

    keywords: tuple[w.Keyword, ...] = ()
    keypairs: dict[str, frozenset[str]] = field(default_factory=dict)
    metatags: tuple[str, ...] = DEFAULT_METATAGS
    steps: dict[str, Step] = field(default_factory=dict)
    elements: dict[str, str] = field(default_factory=dict)
    variables: dict[str, Variable] = field(default_factory=dict)
    imports: dict[str, LinkTables] = field(default_factory=dict)
    error_links: tuple[ErrorLinkPayload, ...] = ()
    patterns: PatternSet = field(default_factory=lambda: compile_matchers(DEFAULT_MATCHERS))
    syntax_msg: str = DEFAULT_SYNTAX_MSG
    sound_hint: str = DEFAULT_SOUND_HINT
    suppressed_sections: frozenset[str] = DEFAULT_SUPPRESSED_SECTIONS
    revision: int = 0
    grammar_revision: int = 0

    def find_keyword(self, tokens: list[str] | tuple[str, ...]) -> w.Keyword | None:
        return w.find_keyword(self.keywords, tokens)

    def keypair_for(self, keyword: w.Keyword) -> frozenset[str]:
        return self.keypairs.get(" ".join(keyword), frozenset())

    def line_key(self, line: str) -> str:
        return w.line_key(self.keywords, line)


def _derive_step(step: Step, keywords: tuple[w.Keyword, ...], elements: dict[str, str]) -> Step:
    head = []
    for word in step.head:
        if w.is_placeholder(word):
            element = elements.get(word[1:-1].lower())
            if element:
                word = f"{word[0]}{element}{word[-1]}"
        head.append(word)
    keyword = w.find_keyword(keywords, head)
    size = len(keyword) if keyword else 0
    label = " ".join(head[size:])
    insert_text = label + ("\n" + "\n".join(step.body) if step.body else "")
    return replace(step, label=label, keyword=" ".join(head[:size]), insert_text=insert_text)


def _derive_steps(
    steps: dict[str, Step], keywords: tuple[w.Keyword, ...], elements: dict[str, str]
) -> dict[str, Step]:
    derived = {}
    for step in steps.values():
        key = w.phrase_key(w.filter_words(step.head, w.find_keyword(keywords, step.head)))
        derived[key] = replace(_derive_step(step, keywords, elements), key=key)
    return derived


def build_import_tables(file: ImportedFilePayload) -> LinkTables:
    """Build the link tables one imported file contributes."""
    tables: LinkTables = {DEFAULT_TABLE: {}}
    for item in file.items:
        key = (item.name or "").lower()
        if item.value is not None:
            tables[DEFAULT_TABLE][key] = LinkRecord(
                key=item.name or "", name=item.value.text, file=file.path
            )
        elif item.lines is not None:
            text = "\n".join(line.text for line in item.lines.lines)
            tables[DEFAULT_TABLE][key] = LinkRecord(key=item.name or "", name=text, file=file.path)
        elif item.table is not None:
            table = tables.setdefault(key, {})
            columns = [cell.text for cell in item.table.head.tokens]
            for row in item.table.body:
                cells = [cell.text for cell in row.tokens]
                if not cells:
                    continue
                cells += [""] * (len(columns) - len(cells))
                table[cells[0].lower()] = LinkRecord(
                    key=cells[0],
                    name=cells[1] if len(cells) > 1 else "",
                    file=file.path,
                    data={column: cells[i] for i, column in enumerate(columns)},
                )
    return tables


class VocabularyStore:
    """
    Process-local, copy-on-write vocabulary store.

    Every setter accepts JSON text or an already-decoded value and raises
    ConfigurationError (leaving its category unchanged) when the payload is
    malformed.
    """

    def __init__(self, vocabulary: Vocabulary | None = None):
        self._lock = threading.Lock()
        self._current = vocabulary or Vocabulary()
        self._listeners: list[Callable[[Vocabulary, str], None]] = []

    def snapshot(self) -> Vocabulary:
        """The latest published vocabulary."""
        return self._current

    def subscribe(self, listener: Callable[[Vocabulary, str], None]) -> None:
        """Register a callback invoked with (snapshot, category) after each write."""
        self._listeners.append(listener)

    def _publish(
        self, category: str, build: Callable[[Vocabulary], dict[str, Any]], grammar: bool = False
    ) -> Vocabulary:
        with self._lock:
            current = self._current
            changes = build(current)
            revision = current.revision + 1
            updated = replace(
                current,
                revision=revision,
                grammar_revision=revision if grammar else current.grammar_revision,
                **changes,
            )
            self._current = updated
        logger.debug("Vocabulary category '%s' updated (revision %d)", category, revision)
        for listener in self._listeners:
            listener(updated, category)
        return updated

    # =========================================================================
    # Replace-whole-category setters
    # =========================================================================

    def set_keywords(self, payload: Any) -> None:
        phrases = parse_payload("keywords", payload, list[str])
        keywords = [tuple(p.lower().split()) for p in phrases]
        keywords = [k for k in keywords if k]
        keywords.sort(key=len, reverse=True)
        ordered = tuple(keywords)

        def build(v: Vocabulary) -> dict[str, Any]:
            return {"keywords": ordered, "steps": _derive_steps(v.steps, ordered, v.elements)}

        self._publish("keywords", build, grammar=True)

    def set_keypairs(self, payload: Any) -> None:
        pairs = parse_payload("keypairs", payload, dict[str, list[str]])
        keypairs = {
            " ".join(key.lower().split()): frozenset(word.lower() for word in words)
            for key, words in pairs.items()
        }
        self._publish("keypairs", lambda v: {"keypairs": keypairs})

    def set_metatags(self, payload: Any) -> None:
        metatags = tuple(parse_payload("metatags", payload, list[str]))
        self._publish("metatags", lambda v: {"metatags": metatags}, grammar=True)

    def set_matchers(self, payload: Any) -> None:
        patterns = compile_matchers(decode_payload("matchers", payload))
        self._publish("matchers", lambda v: {"patterns": patterns}, grammar=True)

    def set_error_links(self, payload: Any) -> None:
        links = tuple(parse_payload("errorLinks", payload, list[ErrorLinkPayload]))
        self._publish("errorLinks", lambda v: {"error_links": links})

    def set_syntax_msg(self, message: str) -> None:
        if not isinstance(message, str):
            raise ConfigurationError("syntaxMsg", "message must be a string")
        self._publish("syntaxMsg", lambda v: {"syntax_msg": message})

    def set_sound_hint(self, hint: str) -> None:
        if not isinstance(hint, str):
            raise ConfigurationError("soundHint", "hint must be a string")
        self._publish("soundHint", lambda v: {"sound_hint": hint})

    def set_suppressed_sections(self, payload: Any) -> None:
        names = frozenset(n.lower() for n in parse_payload("suppressedSections", payload, list[str]))
        self._publish("suppressedSections", lambda v: {"suppressed_sections": names})

    def set_imports(self, payload: Any, clear: bool = True) -> None:
        files = parse_payload("imports", payload, list[ImportedFilePayload])
        built = {file.name.lower(): build_import_tables(file) for file in files}

        def build(v: Vocabulary) -> dict[str, Any]:
            imports = {} if clear else dict(v.imports)
            imports.update(built)
            return {"imports": imports}

        self._publish("imports", build)

    # =========================================================================
    # Merge-or-replace setters
    # =========================================================================

    def set_elements(self, payload: Any, clear: bool = False) -> None:
        values = parse_payload("elements", payload, dict[str, Any])
        incoming = {key.lower(): stringify_value(value) for key, value in values.items()}

        def build(v: Vocabulary) -> dict[str, Any]:
            elements = {} if clear else dict(v.elements)
            elements.update(incoming)
            return {"elements": elements, "steps": _derive_steps(v.steps, v.keywords, elements)}

        self._publish("elements", build)

    def set_variables(self, payload: Any, clear: bool = False) -> None:
        values = parse_payload("variables", payload, dict[str, Any])
        incoming = {
            key.lower(): Variable(name=key, value=stringify_value(value))
            for key, value in values.items()
        }

        def build(v: Vocabulary) -> dict[str, Any]:
            variables = {} if clear else dict(v.variables)
            variables.update(incoming)
            return {"variables": variables}

        self._publish("variables", build)

    def set_step_list(self, payload: Any, clear: bool = False) -> None:
        entries = parse_payload("steps", payload, list[StepPayload])

        def build(v: Vocabulary) -> dict[str, Any]:
            steps = {} if clear else dict(v.steps)
            for entry in entries:
                lines = entry.insert_text.split("\n")
                head = w.split_words(lines[0])
                key = w.phrase_key(w.filter_words(head, w.find_keyword(v.keywords, head)))
                # a later entry with the same key replaces the earlier one
                steps[key] = Step(
                    key=key,
                    head=tuple(head),
                    body=tuple(lines[1:]),
                    documentation=entry.documentation,
                    sort_text=entry.sort_text,
                    section=entry.section,
                    kind=entry.kind,
                    insert_text=entry.insert_text,
                )
            return {"steps": _derive_steps(steps, v.keywords, v.elements)}

        self._publish("steps", build)

    # =========================================================================
    # Bulk loading
    # =========================================================================

    def load(self, payload: Any) -> list[str]:
        """
        Apply every category present in one vocabulary object.

        Keys use the host API names (``keywords``, ``keypairs``, ``metatags``,
        ``steps``, ``elements``, ``variables``, ``matchers``, ``imports``,
        ``errorLinks``, ``syntaxMsg``, ``soundHint``, ``suppressedSections``).
        Categories are applied independently; the first failure stops the
        load and earlier categories stay applied.

        Returns:
            Names of the categories that were applied
        """
        data = decode_payload("vocabulary", payload)
        if not isinstance(data, dict):
            raise ConfigurationError("vocabulary", "vocabulary must be an object")
        setters: list[tuple[str, Callable[[Any], None]]] = [
            ("matchers", self.set_matchers),
            ("keywords", self.set_keywords),
            ("keypairs", self.set_keypairs),
            ("metatags", self.set_metatags),
            ("elements", self.set_elements),
            ("variables", self.set_variables),
            ("steps", self.set_step_list),
            ("imports", self.set_imports),
            ("errorLinks", self.set_error_links),
            ("syntaxMsg", self.set_syntax_msg),
            ("soundHint", self.set_sound_hint),
            ("suppressedSections", self.set_suppressed_sections),
        ]
        applied = []
        for name, setter in setters:
            if name in data:
                setter(data[name])
                applied.append(name)
        unknown = sorted(set(data) - {name for name, _ in setters})
        if unknown:
            logger.warning("Ignoring unknown vocabulary categories: %s", ", ".join(unknown))
        return applied


def iter_known_variables(vocabulary: Vocabulary, tokens: Iterable[str]) -> Iterable[Variable]:
    """Variables referenced by placeholder tokens, in token order."""
    for token in tokens:
        variable = vocabulary.variables.get(w.placeholder_name(token).lower())
        if variable:
            yield variable
