"""
Grammar compiler and line tokenizer.

The lexical grammar is a small state machine of ordered regex rules, compiled
from the current keyword/metatag vocabulary and structural patterns. The host
highlighter tokenizes one line at a time and carries the returned state to the
next line (only the multiline-string state spans lines).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from . import words as w
from .vocabulary import Vocabulary

logger = logging.getLogger(__name__)

FILLER = "҂"

ROOT = "root"
MULTILINE = "multiline"

PUSH = "push"
POP = "pop"

# Scope names reported to the host highlighter
SCOPE_KEYWORD = "keyword"
SCOPE_SECTION = "type"
SCOPE_TAG = "tag"
SCOPE_COMMENT = "comment"
SCOPE_STRING = "string"
SCOPE_STRING_INVALID = "string.invalid"
SCOPE_VARIABLE = "variable"
SCOPE_NUMBER = "number"
SCOPE_STRONG = "strong"
SCOPE_DELIMITER = "delimiter"
SCOPE_IDENTIFIER = "identifier"
SCOPE_WHITE = "white"

SCOPES = (
    SCOPE_KEYWORD,
    SCOPE_SECTION,
    SCOPE_TAG,
    SCOPE_COMMENT,
    SCOPE_STRING,
    SCOPE_STRING_INVALID,
    SCOPE_VARIABLE,
    SCOPE_NUMBER,
    SCOPE_STRONG,
    SCOPE_DELIMITER,
    SCOPE_IDENTIFIER,
    SCOPE_WHITE,
)


@dataclass(frozen=True)
class Rule:
    regex: re.Pattern[str]
    scope: str
    action: str | None = None
    target: str | None = None


@dataclass(frozen=True)
class TokenizerState:
    """Immutable state stack carried between lines."""

    stack: tuple[str, ...] = (ROOT,)

    @property
    def current(self) -> str:
        return self.stack[-1]

    def push(self, name: str) -> TokenizerState:
        return TokenizerState(self.stack + (name,))

    def pop(self) -> TokenizerState:
        if len(self.stack) == 1:
            return self
        return TokenizerState(self.stack[:-1])


@dataclass(frozen=True)
class ScopeToken:
    start_index: int
    scopes: str


@dataclass(frozen=True)
class LineTokens:
    tokens: list[ScopeToken]
    end_state: TokenizerState


@dataclass(frozen=True)
class CompiledGrammar:
    states: dict[str, tuple[Rule, ...]]
    revision: int


def _rule(source: str, scope: str, action: str | None = None, target: str | None = None, flags: int = 0) -> Rule:
    return Rule(re.compile(source, flags), scope, action, target)


def _alternation(phrases: list[str]) -> str:
    ordered = sorted(set(phrases), key=lambda p: (-len(p), p))
    return "|".join(r"\s+".join(re.escape(part) for part in p.split()) for p in ordered)


_COMMON_RULES = (
    _rule(r"\s+", SCOPE_WHITE),
    _rule(r"(?:#|//).*$", SCOPE_COMMENT),
    _rule(r'"[^"]*"', SCOPE_STRING),
    _rule(r"'[^']*'", SCOPE_STRING),
    _rule(r'"[^"]*$', SCOPE_STRING_INVALID),
    _rule(r"'[^']*$", SCOPE_STRING_INVALID),
    _rule(r"<[^<>\s]*>", SCOPE_VARIABLE),
    _rule(r"\d+(?:\.\d+)?", SCOPE_NUMBER),
    _rule(rf"{FILLER}+", SCOPE_KEYWORD),
    _rule(r"\|", SCOPE_DELIMITER),
    _rule(rf"[{w.LETTERS}_][\w]*", SCOPE_IDENTIFIER),
    _rule(r".", SCOPE_DELIMITER),
)


def compile_grammar(vocabulary: Vocabulary) -> CompiledGrammar:
    """Build the tokenizer state machine for the given vocabulary snapshot."""
    patterns = vocabulary.patterns
    root: list[Rule] = [
        _rule(r'^\s*""".*$', SCOPE_STRING, PUSH, MULTILINE),
        _rule(r"^\s*@.*$", SCOPE_TAG),
        _rule(r"^\s*(?:#|//).*$", SCOPE_COMMENT),
        _rule(r"^\s*\*.*$", SCOPE_STRONG),
    ]
    any_section = patterns.sections.get("")
    if any_section is not None:
        root.append(Rule(any_section, SCOPE_SECTION))
    if patterns.imports is not None:
        root.append(Rule(patterns.imports, SCOPE_KEYWORD))
    if vocabulary.metatags:
        root.append(
            _rule(rf"^\s*(?:{_alternation(list(vocabulary.metatags))})\s*$", SCOPE_KEYWORD, flags=re.IGNORECASE)
        )
    if vocabulary.keywords:
        phrases = [" ".join(k) for k in vocabulary.keywords]
        root.append(
            _rule(rf"^\s*(?:{_alternation(phrases)})(?![{w.LETTERS}])", SCOPE_KEYWORD, flags=re.IGNORECASE)
        )
    root.extend(_COMMON_RULES)

    multiline = (
        _rule(r'^\s*""".*$', SCOPE_STRING, POP),
        _rule(r".+$", SCOPE_STRING),
    )
    logger.debug(
        "Compiled grammar: %d keywords, %d metatags", len(vocabulary.keywords), len(vocabulary.metatags)
    )
    return CompiledGrammar(
        states={ROOT: tuple(root), MULTILINE: multiline},
        revision=vocabulary.grammar_revision,
    )


def mask_keypair(vocabulary: Vocabulary, line: str) -> str:
    """
    Mask a trailing keypair continuation word with filler characters.

    The masked line has the same length as ``line``, so token offsets computed
    on it apply to the unmasked line unchanged.
    """
    tokens = w.split_words(line)
    keyword = vocabulary.find_keyword(tokens)
    if not keyword or len(tokens) <= len(keyword):
        return line
    word = tokens[-1]
    if word.lower() not in vocabulary.keypair_for(keyword):
        return line
    match = re.search(re.escape(word) + r"\s*$", line)
    if not match:
        return line
    return line[: match.start()] + FILLER * (len(line) - match.start())


class Tokenizer:
    """
    Per-line tokenizer with a cached compiled grammar.

    The grammar is recompiled on first use after the vocabulary's grammar
    revision changes (keywords, metatags or matchers were replaced).
    """

    def __init__(self):
        self._grammar: CompiledGrammar | None = None

    def grammar(self, vocabulary: Vocabulary) -> CompiledGrammar:
        grammar = self._grammar
        if grammar is None or grammar.revision != vocabulary.grammar_revision:
            grammar = self._grammar = compile_grammar(vocabulary)
        return grammar

    def get_initial_state(self) -> TokenizerState:
        return TokenizerState()

    def tokenize(self, vocabulary: Vocabulary, line: str, state: TokenizerState | None = None) -> LineTokens:
        """
        Tokenize one line.

        Args:
            vocabulary: Vocabulary snapshot to tokenize against
            line: Line text without terminator
            state: State returned for the previous line (initial state if None or
                not a state of the grammar)

        Returns:
            Scope tokens (merged when adjacent scopes are equal) and the state
            for the next line
        """
        grammar = self.grammar(vocabulary)
        if state is None or state.current not in grammar.states:
            state = self.get_initial_state()
        text = mask_keypair(vocabulary, line)
        tokens: list[ScopeToken] = []
        pos = 0
        while pos < len(text):
            for rule in grammar.states[state.current]:
                match = rule.regex.match(text, pos)
                if match is None or match.end() == pos:
                    continue
                if not tokens or tokens[-1].scopes != rule.scope:
                    tokens.append(ScopeToken(pos, rule.scope))
                pos = match.end()
                if rule.action == PUSH:
                    state = state.push(rule.target)
                elif rule.action == POP:
                    state = state.pop()
                break
            else:
                # no rule consumed input: emit the rest of the line as one token
                tokens.append(ScopeToken(pos, ""))
                break
        return LineTokens(tokens=tokens, end_state=state)
