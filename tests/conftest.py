"""Shared pytest fixtures for Turbo-Gherkin tests."""

from pathlib import Path

import pytest

from turbo_gherkin.core.document import TextDocument
from turbo_gherkin.core.service import LanguageService

MATCHERS = {
    "en": {
        "name": "English",
        "feature": ["Feature"],
        "background": ["Background"],
        "scenario": ["Scenario"],
        "variables": ["Variables"],
        "given": ["Given "],
        "when": ["When ", "If "],
        "then": ["Then "],
        "and": ["And "],
        "but": ["But "],
        "import": ["Import"],
    }
}

VOCABULARY = {
    "matchers": MATCHERS,
    "keywords": ["Given", "When", "Then", "And", "But", "If", "When not"],
    "keypairs": {"if": ["then"]},
    "metatags": ["try", "except"],
    "steps": [
        {
            "insertText": 'And I click the button "Save"',
            "documentation": "Clicks a button",
            "section": "UI",
            "sortText": "001",
        },
        {
            "insertText": 'When I enter "value" into the field "name"',
            "documentation": "Types a value",
            "section": "Input",
        },
        {
            "insertText": "If the dialog is open",
            "documentation": "Checks the dialog",
            "section": "Conditions",
        },
        {
            "insertText": 'And I open the form "Name"\n    | key | value |',
            "documentation": "Opens a form",
            "section": "UI",
        },
        {"insertText": 'And I log "message"'},
    ],
    "variables": {"UserName": "Alice", "Count": 3},
    "errorLinks": [{"id": "report", "title": "Report a problem"}],
}


@pytest.fixture
def vocabulary_payload() -> dict:
    """Return a complete vocabulary object as a host would send it."""
    return VOCABULARY


@pytest.fixture
def service() -> LanguageService:
    """Return a LanguageService loaded with the test vocabulary."""
    svc = LanguageService()
    svc.load_vocabulary(VOCABULARY)
    return svc


@pytest.fixture
def make_document():
    """Return a factory building documents from lines."""

    def _make(*lines: str, uri: str = "file:///test.feature") -> TextDocument:
        return TextDocument.from_lines(list(lines), uri=uri)

    return _make


@pytest.fixture
def vocabulary_file(tmp_path: Path) -> Path:
    """Write the test vocabulary to a JSON file."""
    import json

    path = tmp_path / "vocabulary.json"
    path.write_text(json.dumps(VOCABULARY, ensure_ascii=False), encoding="utf-8")
    return path
