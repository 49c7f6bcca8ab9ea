import pytest

from citation_locator.geometry.highlight import (
    MIN_WORD_DIFFERENCE,
    compute_anchor_highlight,
    should_highlight_anchor_text,
    word_count,
)
from citation_locator.search.limits import InputTooLargeError
from citation_locator.types import TextItem


def make_item(text: str, y: float = 750.0) -> TextItem:
    return TextItem(x=50.0, y=y, width=6.0 * len(text), height=12.0, text=text)


class TestWordCount:
    def test_counts_words(self):
        assert word_count("  revenue  grew\tfast \n") == 3

    def test_empty(self):
        assert word_count("") == 0
        assert word_count("   ") == 0

    def test_trim_does_not_change_count(self):
        for text in ["  a b  ", "\tone\n", "x", ""]:
            assert word_count(text) == word_count(text.strip())

    def test_too_large(self):
        with pytest.raises(InputTooLargeError):
            word_count("a" * 100_001)


class TestShouldHighlightAnchorText:
    @pytest.mark.parametrize("anchor,phrase,expected", [
        ("revenue", "revenue grew fast", True),
        ("revenue", "revenue grew", True),
        ("revenue grew", "revenue grew fast", False),
        ("revenue grew", "net revenue grew fast", True),
        ("revenue grew fast", "revenue grew fast", False),
        ("net revenue grew fast", "revenue grew", False),
    ])
    def test_policy(self, anchor, phrase, expected):
        assert should_highlight_anchor_text(anchor, phrase) is expected

    def test_missing_inputs(self):
        assert not should_highlight_anchor_text(None, "a b c")
        assert not should_highlight_anchor_text("a", None)
        assert not should_highlight_anchor_text("   ", "a b c")

    def test_min_difference(self):
        assert MIN_WORD_DIFFERENCE == 2

    def test_idempotent(self):
        first = should_highlight_anchor_text("two words", "four words right here")
        second = should_highlight_anchor_text("two words", "four words right here")
        assert first == second


class TestComputeAnchorHighlight:
    def test_distinct_anchor_shown(self):
        phrase = make_item("Sales increased by ten percent")
        anchor = make_item("ten percent", y=730.0)
        result = compute_anchor_highlight(phrase, anchor, "ten percent", "Sales increased by ten percent")

        assert result.show
        assert result.item == anchor

    def test_same_text_as_phrase_hidden(self):
        phrase = make_item("Revenue grew")
        anchor = make_item("revenue grew")
        result = compute_anchor_highlight(phrase, anchor, "revenue", "revenue grew fast today")
        assert not result.show

    def test_word_policy_applies(self):
        phrase = make_item("revenue grew fast")
        anchor = make_item("revenue grew")
        result = compute_anchor_highlight(phrase, anchor, "revenue grew", "revenue grew fast")
        assert not result.show

    def test_missing_anchor_item(self):
        result = compute_anchor_highlight(make_item("a b c"), None, "a", "a b c")
        assert not result.show
        assert result.item is None
