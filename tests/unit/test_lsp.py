"""Tests for the LSP adapter: position conversion, handlers and workspace commands."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
from lsprotocol.types import (
    ClientCapabilities,
    CodeActionContext,
    CodeActionParams,
    CompletionParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentLinkParams,
    FoldingRangeParams,
    HoverParams,
    InitializeParams,
    Position,
    Range,
    SemanticTokensParams,
    TextDocumentIdentifier,
    TextDocumentItem,
)

from turbo_gherkin.core.errors import ConfigurationError
from turbo_gherkin.core.service import LanguageService

URI = "file:///work/login.feature"


class _DummyWorkspace:
    def __init__(self) -> None:
        self.text_documents: dict[str, SimpleNamespace] = {}

    def get_text_document(self, uri: str) -> SimpleNamespace:
        return self.text_documents[uri]


class _DummyServer:
    """Stands in for the pygls server: open documents plus captured notifications."""

    def __init__(self, service: LanguageService) -> None:
        self.service = service
        self.workspace = _DummyWorkspace()
        self.workspace_root: Path | None = None
        self.published: list = []

    def open(self, *lines: str, uri: str = URI, version: int = 1) -> None:
        self.workspace.text_documents[uri] = SimpleNamespace(
            uri=uri, source="\n".join(lines), version=version
        )

    def text_document_publish_diagnostics(self, params) -> None:
        self.published.append(params)


@pytest.fixture
def ls(service: LanguageService) -> _DummyServer:
    return _DummyServer(service)


def identifier(uri: str = URI) -> TextDocumentIdentifier:
    return TextDocumentIdentifier(uri=uri)


def open_document(ls: _DummyServer, *lines: str, uri: str = URI) -> None:
    from turbo_gherkin.lsp.server import did_open

    ls.open(*lines, uri=uri)
    did_open(
        ls,
        DidOpenTextDocumentParams(
            text_document=TextDocumentItem(
                uri=uri, language_id="feature", version=1, text="\n".join(lines)
            )
        ),
    )


class TestPositionConversion:
    def test_core_position_is_one_indexed(self) -> None:
        from turbo_gherkin.lsp.server import to_core_position

        position = to_core_position(Position(line=0, character=0))
        assert (position.line, position.column) == (1, 1)

    def test_lsp_range_is_zero_indexed(self) -> None:
        from turbo_gherkin.core.document import TextRange
        from turbo_gherkin.lsp.server import to_lsp_range

        result = to_lsp_range(TextRange(10, 17, 10, 24))
        assert (result.start.line, result.start.character) == (9, 16)
        assert (result.end.line, result.end.character) == (9, 23)

    def test_diagnostic_conversion_is_reversible(self) -> None:
        from lsprotocol.types import DiagnosticSeverity

        from turbo_gherkin.core.validator import SyntaxDiagnostic
        from turbo_gherkin.lsp.server import to_lsp_diagnostic, to_syntax_diagnostic

        problem = SyntaxDiagnostic(line=2, start_column=5, end_column=14, message="Syntax error")
        diagnostic = to_lsp_diagnostic(problem)

        assert diagnostic.range.start == Position(line=1, character=4)
        assert diagnostic.severity == DiagnosticSeverity.Error
        assert diagnostic.source == "syntax"
        assert to_syntax_diagnostic(diagnostic) == problem


class TestDiagnostics:
    def test_open_publishes_diagnostics(self, ls: _DummyServer) -> None:
        open_document(ls, "Scenario: x", "    And I fly", '    And I click the button "Save"')

        assert len(ls.published) == 1
        published = ls.published[0]
        assert published.uri == URI
        assert published.version == 1
        assert [d.range.start.line for d in published.diagnostics] == [1]
        assert published.diagnostics[0].range.start.character == 4

    def test_close_clears_diagnostics(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import did_close

        open_document(ls, "Scenario: x", "    And I fly")
        did_close(ls, DidCloseTextDocumentParams(text_document=identifier()))

        assert ls.published[-1].diagnostics == []
        assert ls.service.get_diagnostics(URI) == []


class TestLanguageFeatures:
    def test_folding_range(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import folding_range

        ls.open("@skip", "@skip", "plain")
        folds = folding_range(ls, FoldingRangeParams(text_document=identifier()))

        assert [(f.start_line, f.end_line, f.kind) for f in folds] == [(0, 1, None)]

    def test_completion(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import completion

        ls.open("    And ")
        result = completion(
            ls,
            CompletionParams(text_document=identifier(), position=Position(line=0, character=8)),
        )

        item = next(i for i in result.items if i.label == 'I click the button "Save"')
        assert item.text_edit.new_text == 'And I click the button "Save"\n'
        assert item.text_edit.range.start.character == 4
        assert item.documentation.value == "Clicks a button"
        assert item.sort_text == "001"

    def test_hover(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import hover

        ls.open("Scenario: x", '    And I click the button "Save"')
        result = hover(
            ls, HoverParams(text_document=identifier(), position=Position(line=1, character=5))
        )

        assert "Clicks a button" in result.contents.value
        assert result.range.start == Position(line=1, character=0)

    def test_no_hover(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import hover

        ls.open("    And I fly")
        params = HoverParams(text_document=identifier(), position=Position(line=0, character=5))
        assert hover(ls, params) is None

    def test_document_link(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import document_link

        ls.open(
            "Variables:",
            "    * Users",
            "        | id | name  |",
            "        | 1  | Alice |",
            "Scenario: x",
            '    And I open "Users.1"',
        )
        links = document_link(ls, DocumentLinkParams(text_document=identifier()))

        assert [(link.target, link.tooltip) for link in links] == [("link:Users.1", "Alice")]
        assert links[0].range.start == Position(line=5, character=16)


class TestCodeActions:
    def test_fixes_then_error_links(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import ERROR_LINK_COMMAND, code_action

        open_document(ls, "Scenario: x", '    And I clik the buton "Save"')
        diagnostics = ls.published[0].diagnostics
        actions = code_action(
            ls,
            CodeActionParams(
                text_document=identifier(),
                range=diagnostics[0].range,
                context=CodeActionContext(diagnostics=diagnostics),
            ),
        )

        best = actions[0]
        edit = best.edit.changes[URI][0]
        assert edit.new_text == 'I click the button "Save"'
        assert edit.range.start == Position(line=1, character=8)
        assert best.is_preferred
        assert best.diagnostics == [diagnostics[0]]

        link = actions[-1]
        assert link.command.command == ERROR_LINK_COMMAND
        assert link.command.arguments == [{"id": "report", "uri": URI, "line": 2}]

    def test_nothing_without_diagnostics(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import code_action

        ls.open("Scenario: x")
        params = CodeActionParams(
            text_document=identifier(),
            range=Range(start=Position(line=0, character=0), end=Position(line=0, character=0)),
            context=CodeActionContext(diagnostics=[]),
        )
        assert code_action(ls, params) is None


class TestSemanticTokens:
    def test_relative_encoding(self, service: LanguageService) -> None:
        from turbo_gherkin.lsp.server import TOKEN_TYPES, encode_semantic_tokens

        tag = TOKEN_TYPES.index("tag")
        data = encode_semantic_tokens(service, ["@tree", "", "@a"])
        assert data == [0, 0, 5, tag, 0, 2, 0, 2, tag, 0]

    def test_handler_uses_open_document(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import encode_semantic_tokens, semantic_tokens

        ls.open("@tree", "Scenario: x")
        result = semantic_tokens(ls, SemanticTokensParams(text_document=identifier()))
        assert result.data == encode_semantic_tokens(ls.service, ["@tree", "Scenario: x"])

    def test_legend_excludes_whitespace(self) -> None:
        from turbo_gherkin.lsp.server import LEGEND

        assert "white" not in LEGEND.token_types
        assert "keyword" in LEGEND.token_types


class TestWorkspaceCommands:
    def test_every_setter_registered(self) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS

        assert set(SETTER_COMMANDS) == {
            "setKeywords",
            "setKeypairs",
            "setMetatags",
            "setStepList",
            "setElements",
            "setVariables",
            "setMatchers",
            "setImports",
            "setErrorLinks",
            "setSyntaxMsg",
            "setSoundHint",
            "setSuppressedSections",
            "loadVocabulary",
        }

    def test_failed_setter_reports_category(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS

        before = ls.service.vocabulary.keywords
        result = SETTER_COMMANDS["setKeywords"](ls, "{not json")

        assert result["ok"] is False
        assert result["category"] == "keywords"
        assert "invalid JSON" in result["error"]
        assert ls.service.vocabulary.keywords == before

    def test_step_list_revalidates_open_documents(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS

        open_document(ls, "Scenario: x", '    And I clik the buton "Save"')
        assert len(ls.published[-1].diagnostics) == 1

        result = SETTER_COMMANDS["setStepList"](ls, [{"insertText": 'And I clik the buton "x"'}], False)

        assert result == {"ok": True}
        assert len(ls.published) == 2
        assert ls.published[-1].diagnostics == []

    def test_clearing_step_list(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS

        SETTER_COMMANDS["setStepList"](ls, [{"insertText": "And I wait"}], True)
        assert list(ls.service.vocabulary.steps) == ["i wait"]

    def test_variables_do_not_revalidate(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS

        open_document(ls, "Scenario: x")
        SETTER_COMMANDS["setVariables"](ls, {"Other": "x"})

        assert len(ls.published) == 1
        assert "other" in ls.service.vocabulary.variables

    def test_syntax_message_round_trip(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import SETTER_COMMANDS, get_syntax_msg

        open_document(ls, "Scenario: x", "    And I fly")
        SETTER_COMMANDS["setSyntaxMsg"](ls, "Unknown step")

        assert get_syntax_msg(ls) == "Unknown step"
        assert ls.published[-1].diagnostics[0].message == "Unknown step"

    def test_get_link_data(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import get_link_data

        ls.open("Variables:", "    * Users", "        | id | name  |", "        | 1  | Alice |")

        assert get_link_data(ls, URI, "Users.1.name") == {
            "key": "1",
            "name": "Alice",
            "file": None,
            "data": {"id": "1", "name": "Alice"},
            "table": "users",
            "column": "name",
            "param": "Users.1.name",
        }
        assert get_link_data(ls, URI, "Users.7") is None
        assert get_link_data(ls, URI) is None

    def test_tokenize_carries_state(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import tokenize

        opened = tokenize(ls, '    """', None)
        assert opened["endState"] == ["root", "multiline"]

        inner = tokenize(ls, "And not a keyword", opened["endState"])
        assert [t["scopes"] for t in inner["tokens"]] == ["string"]
        assert inner["endState"] == ["root", "multiline"]

    def test_tokenize_unknown_state_falls_back_to_root(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import tokenize

        result = tokenize(ls, "@tree", ["bogus"])

        assert [t["scopes"] for t in result["tokens"]] == ["tag"]
        assert result["endState"] == ["root"]

    def test_error_link_echoes_payload(self, ls: _DummyServer) -> None:
        from turbo_gherkin.lsp.server import error_link

        assert error_link(ls, {"id": "report", "uri": URI, "line": 2}) == {
            "ok": True,
            "id": "report",
            "uri": URI,
            "line": 2,
        }
        assert error_link(ls, "report") == {"ok": True, "id": "report"}


class TestWorkspaceLoading:
    def test_initialize_loads_vocabulary(self, tmp_path: Path, vocabulary_file: Path) -> None:
        from turbo_gherkin.lsp.server import initialize

        (tmp_path / "turbo-gherkin.toml").write_text(
            '[engine]\nsyntax_message = "Unknown step"\n\n[vocabulary]\npath = "vocabulary.json"\n',
            encoding="utf-8",
        )
        ls = _DummyServer(LanguageService())
        initialize(
            ls,
            InitializeParams(
                capabilities=ClientCapabilities(), process_id=None, root_uri=tmp_path.as_uri()
            ),
        )

        assert ls.workspace_root == tmp_path
        assert "i click the button" in ls.service.vocabulary.steps
        assert ls.service.get_syntax_msg() == "Unknown step"

    def test_missing_vocabulary_file(self, tmp_path: Path) -> None:
        from turbo_gherkin.lsp.server import _load_workspace

        (tmp_path / "turbo-gherkin.toml").write_text(
            '[vocabulary]\npath = "missing.json"\n', encoding="utf-8"
        )
        ls = _DummyServer(LanguageService())
        ls.workspace_root = tmp_path

        with pytest.raises(ConfigurationError) as exc_info:
            _load_workspace(ls)
        assert exc_info.value.category == "vocabulary"

    def test_initialize_survives_bad_config(self, tmp_path: Path) -> None:
        from turbo_gherkin.lsp.server import initialize

        (tmp_path / "turbo-gherkin.toml").write_text("[engine\n", encoding="utf-8")
        ls = _DummyServer(LanguageService())
        initialize(
            ls,
            InitializeParams(
                capabilities=ClientCapabilities(), process_id=None, root_uri=tmp_path.as_uri()
            ),
        )

        assert ls.workspace_root == tmp_path
        assert ls.service.vocabulary.steps == {}
