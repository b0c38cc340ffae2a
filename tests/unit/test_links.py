"""Tests for variables-section link resolution."""

from __future__ import annotations

import pytest

from turbo_gherkin.core.document import TextRange
from turbo_gherkin.core.errors import OperationCancelled
from turbo_gherkin.core.service import LanguageService
from turbo_gherkin.core.vocabulary import LinkRecord

COMMON_IMPORT = [
    {
        "name": "common.feature",
        "path": "/lib/common.feature",
        "items": [
            {"name": "Users", "table": {"head": ["id", "name"], "body": [["1", "Alice"]]}},
            {"name": "Greeting", "value": "hello"},
        ],
    }
]


@pytest.fixture
def feature(make_document):
    return make_document(
        "Feature: Data",
        "Variables:",
        '    BaseUrl = "http://localhost"',
        "    * Users",
        "        | id | name  |",
        "        | 1  | Alice |",
        '        | 2  | "Bob" |',
        "    # ignored",
        "Scenario: Use data",
        '    And I open "Users.1"',
        '    And I open "BaseUrl"',
        '    And I open "Users.1.name"',
        '    And I open "e1cib/app/Catalog"',
        '    And I open "Unknown.ref"',
    )


class TestGetLinkData:
    def test_table_row(self, service: LanguageService, feature) -> None:
        found = service.get_link_data(feature, "Users.1")

        assert found.record == LinkRecord(key="1", name="Alice", data={"id": "1", "name": "Alice"})
        assert found.table == "users"
        assert found.column is None
        assert found.param == "Users.1"

    def test_quoted_cells_trimmed(self, service: LanguageService, feature) -> None:
        assert service.get_link_data(feature, "users.2").record.name == "Bob"

    def test_assignment(self, service: LanguageService, feature) -> None:
        found = service.get_link_data(feature, "baseurl")
        assert found.record.name == '"http://localhost"'
        assert found.table == ""

    def test_three_part_key(self, service: LanguageService, feature) -> None:
        found = service.get_link_data(feature, "Users.1.name")
        assert found.column == "name"
        assert found.record.key == "1"

    def test_two_part_fallback_to_default_table(self, service: LanguageService, feature) -> None:
        found = service.get_link_data(feature, "BaseUrl.host")
        assert found.table == ""
        assert found.column == "host"
        assert found.record.name == '"http://localhost"'

    def test_unresolved(self, service: LanguageService, feature) -> None:
        assert service.get_link_data(feature, "Users.9") is None
        assert service.get_link_data(feature, "a.b.c.d") is None

    def test_no_variables_section(self, service: LanguageService, make_document) -> None:
        document = make_document("Scenario: x", '    And I open "a"')
        assert service.get_link_data(document, "a") is None

    def test_multiline_value(self, service: LanguageService, make_document) -> None:
        document = make_document(
            "Variables:",
            "    Text =",
            '    """',
            "    line one",
            "    line two",
            '    """',
        )
        assert service.get_link_data(document, "Text").record.name == "    line one\n    line two"

    def test_other_line_ends_table(self, service: LanguageService, make_document) -> None:
        document = make_document(
            "Variables:",
            "    * Users",
            "        | id | name |",
            "        | 1  | Ann  |",
            "    free text",
            "        | key  | value |",
            "        | k1   | v1    |",
        )
        assert service.get_link_data(document, "Users.1").record.name == "Ann"
        assert service.get_link_data(document, "k1").record.name == "v1"


class TestImportedLinks:
    def test_import_merges_tables(self, service: LanguageService, make_document) -> None:
        service.set_imports(COMMON_IMPORT)
        document = make_document("Variables:", '    Import "Common.feature"', "Scenario: x")

        assert service.get_link_data(document, "Greeting").record.name == "hello"
        record = service.get_link_data(document, "Users.1").record
        assert record.file == "/lib/common.feature"

    def test_import_and_in_document_tables_agree(
        self, service: LanguageService, feature, make_document
    ) -> None:
        service.set_imports(COMMON_IMPORT)
        imported = service.get_link_data(
            make_document("Variables:", '    Import "common.feature"'), "Users.1"
        ).record
        local = service.get_link_data(feature, "Users.1").record

        assert (imported.key, imported.name, imported.data) == (local.key, local.name, local.data)

    def test_unknown_import_ignored(self, service: LanguageService, make_document) -> None:
        document = make_document("Variables:", '    Import "missing.feature"', "    A = 1")
        assert service.get_link_data(document, "a").record.name == "1"


class TestProvideLinks:
    def test_links_after_variables_block(self, service: LanguageService, feature) -> None:
        links = service.provide_links(feature)
        by_url = {link.url: link for link in links}

        assert set(by_url) == {
            "link:Users.1",
            "link:BaseUrl",
            "link:Users.1.name",
            "e1cib/app/Catalog",
        }
        assert by_url["link:Users.1"].range == TextRange(10, 17, 10, 24)
        assert by_url["link:Users.1"].tooltip == "Alice"
        assert by_url["link:BaseUrl"].tooltip == '"http://localhost"'
        assert by_url["link:Users.1.name"].tooltip == "Alice"
        assert by_url["e1cib/app/Catalog"].tooltip is None

    def test_references_inside_block_not_linked(self, service: LanguageService, make_document) -> None:
        document = make_document("Variables:", '    A = "A"', '    B = "e1cib/x"')
        links = service.provide_links(document)
        assert [link.url for link in links] == ["e1cib/x"]

    def test_cancellation(self, service: LanguageService, feature) -> None:
        with pytest.raises(OperationCancelled):
            service.provide_links(feature, cancel=lambda: True)
