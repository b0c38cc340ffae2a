"""
Turbo-Gherkin Language Server implementation using pygls.

Adapts the LanguageService to LSP: positions are converted between the
engine's 1-indexed lines/columns and LSP's 0-indexed ones, and the
vocabulary setters are exposed as ``turboGherkin.*`` workspace commands.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional

from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_CODE_ACTION,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_DOCUMENT_LINK,
    TEXT_DOCUMENT_FOLDING_RANGE,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    CodeAction,
    CodeActionKind,
    CodeActionParams,
    Command,
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionParams,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentLink,
    DocumentLinkParams,
    FoldingRange,
    FoldingRangeKind,
    FoldingRangeParams,
    Hover,
    HoverParams,
    InitializeParams,
    MarkupContent,
    MarkupKind,
    Position,
    PublishDiagnosticsParams,
    Range,
    SemanticTokens,
    SemanticTokensLegend,
    SemanticTokensParams,
    TextEdit,
    WorkspaceEdit,
)
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from turbo_gherkin._version import get_version
from turbo_gherkin.core import document as core
from turbo_gherkin.core.cancellation import Deadline
from turbo_gherkin.core.config import find_config, load_config
from turbo_gherkin.core.errors import ConfigurationError, OperationCancelled, TurboGherkinError
from turbo_gherkin.core.folding import FoldKind
from turbo_gherkin.core.grammar import SCOPE_WHITE, SCOPES, TokenizerState
from turbo_gherkin.core.service import LanguageService
from turbo_gherkin.core.validator import Severity, SyntaxDiagnostic

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COMMAND_PREFIX = "turboGherkin."
ERROR_LINK_COMMAND = COMMAND_PREFIX + "errorLink"
VALIDATION_TIMEOUT = 5.0

# Categories whose change can alter existing diagnostics
REVALIDATING_CATEGORIES = frozenset(
    {"keywords", "keypairs", "steps", "matchers", "suppressedSections", "syntaxMsg", "vocabulary"}
)

TOKEN_TYPES = [scope for scope in SCOPES if scope != SCOPE_WHITE]
LEGEND = SemanticTokensLegend(token_types=TOKEN_TYPES, token_modifiers=[])

server = LanguageServer("turbo-gherkin-lsp", f"v{get_version()}")

server.workspace_root: Optional[Path] = None
server.service = LanguageService()


# =============================================================================
# Position conversion
# =============================================================================


def to_core_position(position: Position) -> core.Position:
    return core.Position(line=position.line + 1, column=position.character + 1)


def to_lsp_range(text_range: core.TextRange) -> Range:
    return Range(
        start=Position(line=text_range.start_line - 1, character=text_range.start_column - 1),
        end=Position(line=text_range.end_line - 1, character=text_range.end_column - 1),
    )


def to_lsp_diagnostic(problem: SyntaxDiagnostic) -> Diagnostic:
    return Diagnostic(
        range=Range(
            start=Position(line=problem.line - 1, character=problem.start_column - 1),
            end=Position(line=problem.line - 1, character=problem.end_column - 1),
        ),
        message=problem.message,
        severity=DiagnosticSeverity(int(problem.severity)),
        source=problem.source,
    )


def to_syntax_diagnostic(diagnostic: Diagnostic) -> SyntaxDiagnostic:
    severity = Severity(int(diagnostic.severity)) if diagnostic.severity else Severity.ERROR
    return SyntaxDiagnostic(
        line=diagnostic.range.start.line + 1,
        start_column=diagnostic.range.start.character + 1,
        end_column=diagnostic.range.end.character + 1,
        message=diagnostic.message,
        severity=severity,
        source=diagnostic.source or "syntax",
    )


def _document(ls: LanguageServer, uri: str) -> core.TextDocument:
    """Engine view of an open document."""
    text_document = ls.workspace.get_text_document(uri)
    return core.TextDocument(text_document.source, uri=uri)


# =============================================================================
# Workspace loading
# =============================================================================


def _load_workspace(ls: LanguageServer) -> None:
    """Apply turbo-gherkin.toml and the configured vocabulary file."""
    if not ls.workspace_root:
        return

    config = load_config(find_config(ls.workspace_root))
    logging.getLogger("turbo_gherkin").setLevel(config.engine.log_level.upper())
    ls.service.apply_config(config.engine)

    vocabulary_path = config.vocabulary_path()
    if vocabulary_path is None:
        logger.info("No vocabulary configured; waiting for turboGherkin commands")
        return
    try:
        payload = vocabulary_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError("vocabulary", f"Cannot read {vocabulary_path}: {e}") from e
    ls.service.load_vocabulary(payload)
    logger.info(f"Loaded vocabulary from {vocabulary_path}")


@server.feature(INITIALIZE)
def initialize(ls: LanguageServer, params: InitializeParams):
    """Initialize the language server."""
    root = params.root_uri and to_fs_path(params.root_uri) or params.root_path
    if root:
        ls.workspace_root = Path(root)
        logger.info(f"Workspace root: {ls.workspace_root}")
        try:
            _load_workspace(ls)
        except TurboGherkinError as e:
            logger.error(f"Failed to load workspace configuration: {e}")


# =============================================================================
# Diagnostics
# =============================================================================


def _validate(ls: LanguageServer, uri: str) -> None:
    """Check a document and publish its diagnostics."""
    text_document = ls.workspace.get_text_document(uri)
    try:
        problems = ls.service.check_syntax(
            core.TextDocument(text_document.source, uri=uri),
            cancel=Deadline.after(VALIDATION_TIMEOUT),
        )
    except OperationCancelled as e:
        logger.warning(f"Validation of {uri} abandoned: {e}")
        return
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[to_lsp_diagnostic(p) for p in problems],
            version=text_document.version,
        )
    )


def _revalidate_all(ls: LanguageServer) -> None:
    for uri in list(ls.workspace.text_documents):
        _validate(ls, uri)


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams):
    """Handle document open."""
    logger.info(f"Opened: {params.text_document.uri}")
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams):
    """Handle document change."""
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: LanguageServer, params: DidSaveTextDocumentParams):
    """Handle document save."""
    logger.info(f"Saved: {params.text_document.uri}")
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: LanguageServer, params: DidCloseTextDocumentParams):
    """Handle document close."""
    logger.info(f"Closed: {params.text_document.uri}")
    ls.service.clear_document(params.text_document.uri)
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


# =============================================================================
# Language features
# =============================================================================


@server.feature(TEXT_DOCUMENT_FOLDING_RANGE)
def folding_range(ls: LanguageServer, params: FoldingRangeParams) -> List[FoldingRange]:
    """Provide folding ranges."""
    folds = ls.service.provide_folding_ranges(_document(ls, params.text_document.uri))
    kinds = {FoldKind.COMMENT: FoldingRangeKind.Comment, FoldKind.REGION: FoldingRangeKind.Region}
    return [
        FoldingRange(start_line=fold.start - 1, end_line=fold.end - 1, kind=kinds.get(fold.kind))
        for fold in folds
    ]


def _completion_kind(kind: int) -> CompletionItemKind:
    try:
        return CompletionItemKind(kind)
    except ValueError:
        return CompletionItemKind.Function


@server.feature(TEXT_DOCUMENT_COMPLETION)
def completion(ls: LanguageServer, params: CompletionParams) -> CompletionList:
    """Provide step, metatag and variable completions."""
    items = ls.service.provide_completion_items(
        _document(ls, params.text_document.uri), to_core_position(params.position)
    )
    return CompletionList(
        is_incomplete=False,
        items=[
            CompletionItem(
                label=item.label,
                kind=_completion_kind(item.kind),
                detail=item.detail,
                documentation=(
                    MarkupContent(kind=MarkupKind.Markdown, value=item.documentation)
                    if item.documentation
                    else None
                ),
                sort_text=item.sort_text,
                filter_text=item.filter_text,
                text_edit=TextEdit(range=to_lsp_range(item.range), new_text=item.insert_text),
            )
            for item in items
        ],
    )


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: LanguageServer, params: HoverParams) -> Optional[Hover]:
    """Provide hover information."""
    result = ls.service.provide_hover(
        _document(ls, params.text_document.uri), to_core_position(params.position)
    )
    if result is None:
        return None
    return Hover(
        contents=MarkupContent(kind=MarkupKind.Markdown, value="\n\n".join(result.contents)),
        range=to_lsp_range(result.range),
    )


@server.feature(TEXT_DOCUMENT_CODE_ACTION)
def code_action(ls: LanguageServer, params: CodeActionParams) -> Optional[List[CodeAction]]:
    """Offer quick fixes for syntax errors."""
    uri = params.text_document.uri
    by_problem = {to_syntax_diagnostic(d): d for d in params.context.diagnostics}
    result = ls.service.provide_code_actions(_document(ls, uri), list(by_problem))
    if result is None:
        return None

    actions: List[CodeAction] = []
    for fix in result.fixes:
        actions.append(
            CodeAction(
                title=fix.title,
                kind=CodeActionKind.QuickFix,
                diagnostics=[by_problem[fix.diagnostic]],
                is_preferred=fix.is_preferred,
                edit=WorkspaceEdit(
                    changes={uri: [TextEdit(range=to_lsp_range(fix.range), new_text=fix.text)]}
                ),
            )
        )
    for link in result.commands:
        actions.append(
            CodeAction(
                title=link.title,
                kind=CodeActionKind.QuickFix,
                diagnostics=[by_problem[link.diagnostic]],
                command=Command(
                    title=link.title,
                    command=ERROR_LINK_COMMAND,
                    arguments=[{"id": link.link_id, "uri": uri, "line": link.diagnostic.line}],
                ),
            )
        )
    return actions


@server.feature(TEXT_DOCUMENT_DOCUMENT_LINK)
def document_link(ls: LanguageServer, params: DocumentLinkParams) -> List[DocumentLink]:
    """Provide links for quoted data references."""
    links = ls.service.provide_links(_document(ls, params.text_document.uri))
    return [
        DocumentLink(range=to_lsp_range(link.range), target=link.url, tooltip=link.tooltip)
        for link in links
    ]


def encode_semantic_tokens(service: LanguageService, lines: List[str]) -> List[int]:
    """Tokenize lines in order and encode them as LSP relative token data."""
    data: List[int] = []
    state = service.get_initial_state()
    previous_line = 0
    previous_start = 0
    for number, line in enumerate(lines):
        result = service.tokenize(line, state)
        state = result.end_state
        tokens = result.tokens
        for i, token in enumerate(tokens):
            if token.scopes not in TOKEN_TYPES:
                continue
            end = tokens[i + 1].start_index if i + 1 < len(tokens) else len(line)
            if end <= token.start_index:
                continue
            delta_line = number - previous_line
            delta_start = token.start_index - previous_start if delta_line == 0 else token.start_index
            data.extend(
                [delta_line, delta_start, end - token.start_index, TOKEN_TYPES.index(token.scopes), 0]
            )
            previous_line = number
            previous_start = token.start_index
    return data


@server.feature(TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, LEGEND)
def semantic_tokens(ls: LanguageServer, params: SemanticTokensParams) -> SemanticTokens:
    """Provide full-document semantic tokens from the vocabulary grammar."""
    document = _document(ls, params.text_document.uri)
    lines = [document.line(n) for n in range(1, document.line_count + 1)]
    return SemanticTokens(data=encode_semantic_tokens(ls.service, lines))


# =============================================================================
# Workspace commands
# =============================================================================


def _failure(e: TurboGherkinError) -> dict[str, Any]:
    category = e.category if isinstance(e, ConfigurationError) else "engine"
    return {"ok": False, "category": category, "error": str(e)}


def _run_setter(ls: LanguageServer, category: str, apply) -> dict[str, Any]:
    try:
        apply()
    except TurboGherkinError as e:
        logger.error(f"turboGherkin command for '{category}' failed: {e}")
        return _failure(e)
    if category in REVALIDATING_CATEGORIES:
        _revalidate_all(ls)
    return {"ok": True}


SETTER_COMMANDS: dict[str, Any] = {}


def _register_setter(name: str, category: str, method: str, accepts_clear: bool = False) -> None:
    def handler(ls: LanguageServer, *args):
        setter = getattr(ls.service, method)
        payload = args[0] if args else None
        if accepts_clear and len(args) > 1:
            return _run_setter(ls, category, lambda: setter(payload, bool(args[1])))
        return _run_setter(ls, category, lambda: setter(payload))

    handler.__name__ = method
    server.command(COMMAND_PREFIX + name)(handler)
    SETTER_COMMANDS[name] = handler


for _name, _category, _method, _clear in [
    ("setKeywords", "keywords", "set_keywords", False),
    ("setKeypairs", "keypairs", "set_keypairs", False),
    ("setMetatags", "metatags", "set_metatags", False),
    ("setStepList", "steps", "set_step_list", True),
    ("setElements", "elements", "set_elements", True),
    ("setVariables", "variables", "set_variables", True),
    ("setMatchers", "matchers", "set_matchers", False),
    ("setImports", "imports", "set_imports", True),
    ("setErrorLinks", "errorLinks", "set_error_links", False),
    ("setSyntaxMsg", "syntaxMsg", "set_syntax_msg", False),
    ("setSoundHint", "soundHint", "set_sound_hint", False),
    ("setSuppressedSections", "suppressedSections", "set_suppressed_sections", False),
    ("loadVocabulary", "vocabulary", "load_vocabulary", False),
]:
    _register_setter(_name, _category, _method, _clear)


@server.command(COMMAND_PREFIX + "getSyntaxMsg")
def get_syntax_msg(ls: LanguageServer, *args) -> str:
    return ls.service.get_syntax_msg()


@server.command(COMMAND_PREFIX + "getLinkData")
def get_link_data(ls: LanguageServer, *args) -> Optional[dict[str, Any]]:
    """Resolve a dotted key (``table.row.column``) against a document: args are (uri, key)."""
    if len(args) < 2:
        return None
    uri, key = args[0], str(args[1])
    try:
        found = ls.service.get_link_data(_document(ls, uri), key)
    except OperationCancelled as e:
        logger.warning(f"getLinkData abandoned: {e}")
        return None
    if found is None:
        return None
    return {
        "key": found.record.key,
        "name": found.record.name,
        "file": found.record.file,
        "data": dict(found.record.data),
        "table": found.table,
        "column": found.column,
        "param": found.param,
    }


@server.command(COMMAND_PREFIX + "tokenize")
def tokenize(ls: LanguageServer, *args) -> dict[str, Any]:
    """Tokenize one line: args are (line, state) where state is a stack list or null."""
    line = str(args[0]) if args else ""
    stack = args[1] if len(args) > 1 and args[1] else None
    state = TokenizerState(tuple(stack)) if stack else None
    result = ls.service.tokenize(line, state)
    return {
        "tokens": [{"startIndex": t.start_index, "scopes": t.scopes} for t in result.tokens],
        "endState": list(result.end_state.stack),
    }


@server.command(ERROR_LINK_COMMAND)
def error_link(ls: LanguageServer, *args) -> dict[str, Any]:
    """Echo an error-link activation back to the client, which owns the action."""
    payload = args[0] if args else {}
    if not isinstance(payload, dict):
        payload = {"id": payload}
    logger.info(f"Error link activated: {payload}")
    return {"ok": True, **payload}


def start_server(tcp: bool = False, host: str = "127.0.0.1", port: int = 2087):
    """Start the Turbo-Gherkin LSP server."""
    logger.info("Starting Turbo-Gherkin Language Server...")
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()


if __name__ == "__main__":
    start_server()
