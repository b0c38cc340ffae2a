"""Tests for word splitting, keyword matching and phrase keys."""

from __future__ import annotations

from turbo_gherkin.core import words as w


class TestFindKeyword:
    """find_keyword returns the longest case-insensitive positional prefix."""

    def test_longest_keyword_wins(self) -> None:
        keywords = [("when", "not"), ("when",)]
        assert w.find_keyword(keywords, ["when", "not", "x"]) == ("when", "not")

    def test_shorter_keyword_when_longer_does_not_match(self) -> None:
        keywords = [("when", "not"), ("when",)]
        assert w.find_keyword(keywords, ["When", "the", "x"]) == ("when",)

    def test_case_insensitive(self) -> None:
        assert w.find_keyword([("and",)], ["AND", "go"]) == ("and",)

    def test_no_match(self) -> None:
        assert w.find_keyword([("and",)], ["then", "go"]) is None

    def test_empty_tokens(self) -> None:
        assert w.find_keyword([("and",)], []) is None

    def test_keyword_longer_than_tokens(self) -> None:
        assert w.find_keyword([("when", "not")], ["when"]) is None


class TestSplitWords:
    def test_quoted_strings_stay_whole(self) -> None:
        assert w.split_words('And I click "Save all" now') == ["And", "I", "click", '"Save all"', "now"]

    def test_angle_placeholders_stay_whole(self) -> None:
        assert w.split_words("And I wait <timeout> seconds") == ["And", "I", "wait", "<timeout>", "seconds"]

    def test_punctuation_is_separate_token(self) -> None:
        assert w.split_words("And I see: ok") == ["And", "I", "see", ":", "ok"]

    def test_cyrillic_words(self) -> None:
        assert w.split_words("И я нажимаю кнопку") == ["И", "я", "нажимаю", "кнопку"]


class TestPhraseKey:
    def test_drops_keyword_and_placeholders(self) -> None:
        keywords = [("and",)]
        assert w.line_key(keywords, '  And I click the button "Save"') == "i click the button"

    def test_stops_at_comment(self) -> None:
        keywords = [("and",)]
        assert w.line_key(keywords, "And I go // somewhere else") == "i go"

    def test_filter_words_without_keyword(self) -> None:
        assert w.filter_words(["a", "b"], None) == ["a", "b"]


class TestPlaceholders:
    def test_is_placeholder(self) -> None:
        assert w.is_placeholder('"x"')
        assert w.is_placeholder("'x'")
        assert w.is_placeholder("<x>")
        assert not w.is_placeholder("x")

    def test_sigil_placeholder_name(self) -> None:
        assert w.has_sigil('"$Name$"')
        assert w.placeholder_name('"$Name$"') == "Name"
        assert w.placeholder_name('"Name"') == "Name"

    def test_trim_quotes(self) -> None:
        assert w.trim_quotes('"Bob"') == "Bob"
        assert w.trim_quotes("'Bob'") == "Bob"
        assert w.trim_quotes("Bob") == "Bob"


class TestColumns:
    def test_first_non_whitespace_column(self) -> None:
        assert w.first_non_whitespace_column("    And") == 5
        assert w.first_non_whitespace_column("   ") == 0

    def test_last_non_whitespace_column(self) -> None:
        assert w.last_non_whitespace_column("    And  ") == 8
        assert w.last_non_whitespace_column("") == 0

    def test_escape_markdown(self) -> None:
        assert w.escape_markdown("a*b_c") == "a\\*b\\_c"
        assert w.escape_markdown("") == ""
