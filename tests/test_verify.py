"""
End-to-end tests for citation_locator.verify.

Each test builds a synthetic layout, verifies one claim and checks the
verdict, the attempt trail and the matched items.
"""

from typing import List, Optional, Sequence

import pytest

from citation_locator.config import EngineConfig
from citation_locator.search.limits import InputTooLargeError
from citation_locator.types import (
    Claim,
    Confidence,
    SearchMethod,
    SearchStatus,
    SourceLayout,
    SourcePage,
    TextItem,
    VariationType,
)
from citation_locator.verify import pending_verification, verify_citation, verify_citations


def make_page(page_number: int, lines: Sequence[str]) -> SourcePage:
    items = tuple(
        TextItem(x=50.0, y=750.0 - 20.0 * i, width=6.0 * len(text), height=12.0, text=text)
        for i, text in enumerate(lines)
    )
    return SourcePage(page_number=page_number, width=600.0, height=800.0, items=items)


def make_layout(*pages: Sequence[str]) -> SourceLayout:
    return SourceLayout(pages=tuple(make_page(n + 1, lines) for n, lines in enumerate(pages)))


def filler(n: int) -> List[str]:
    return [f"Filler paragraph number {n}", "Nothing of interest here"]


def make_claim(
    phrase: str,
    page: Optional[int] = None,
    lines: Sequence[int] = (),
    anchor: Optional[str] = None
) -> Claim:
    return Claim(expected_phrase=phrase, expected_page=page, expected_lines=tuple(lines), anchor_text=anchor)


class TestScenarios:
    def test_verbatim_on_expected_page_and_line(self):
        layout = make_layout(["Annual report", "Revenue grew 12% in 2023", "Costs fell"])
        result = verify_citation(make_claim("Revenue grew 12% in 2023", page=1, lines=[2]), layout)

        assert result.status == SearchStatus.FOUND
        assert len(result.search_attempts) == 1
        assert result.search_attempts[0].success
        assert result.search_attempts[0].matched_variation == VariationType.EXACT
        assert result.ambiguity is None

        doc = result.document
        assert doc.verified_page == 1
        assert doc.verified_lines == (2,)
        assert doc.total_lines_on_page == 3
        assert doc.phrase_match_item.text == "Revenue grew 12% in 2023"
        assert doc.phrase_match_item.y == pytest.approx(730.0)

    def test_found_on_other_page(self):
        pages = [filler(n) for n in range(1, 7)] + [["The disputed figure was 4.2 million"]]
        layout = make_layout(*pages)
        result = verify_citation(make_claim("The disputed figure was 4.2 million", page=5), layout)

        assert result.status == SearchStatus.FOUND_ON_OTHER_PAGE
        winner = result.search_attempts[-1]
        assert winner.found_location.page == 7
        assert result.document.verified_page == 7

    def test_anchor_text_only(self):
        layout = make_layout(["The board approved the merger in March"])
        result = verify_citation(
            make_claim("The merger was rejected outright", page=1, anchor="approved the merger"),
            layout
        )

        assert result.status == SearchStatus.FOUND_ANCHOR_TEXT_ONLY
        assert result.search_attempts[-1].method == SearchMethod.CURRENT_PAGE
        assert result.verified_anchor_text == "approved the merger"
        assert result.verified_full_phrase is None
        assert result.document.anchor_match_item == result.document.phrase_match_item

    def test_ambiguous_three_occurrences(self):
        layout = make_layout(
            ["Net revenue rose in the first half"],
            ["The net revenue figure was restated"],
            ["Net revenue was flat"],
        )
        result = verify_citation(make_claim("net revenue", page=2), layout)

        assert result.status == SearchStatus.FOUND
        assert result.ambiguity is not None
        assert result.ambiguity.total_occurrences == 3
        assert result.ambiguity.occurrences_on_expected_page == 1
        assert result.ambiguity.confidence in (Confidence.MEDIUM, Confidence.LOW)


class TestStatuses:
    def test_not_found(self):
        layout = make_layout(["nothing relevant"])
        result = verify_citation(make_claim("zzzz yyyy", page=1), layout)

        assert result.status == SearchStatus.NOT_FOUND
        assert result.document is None
        assert result.search_attempts
        assert all(not attempt.success for attempt in result.search_attempts)

    def test_phrase_missed_anchor(self):
        layout = make_layout(["Sales increased by ten percent"])
        result = verify_citation(
            make_claim("Sales increased by ten percent", page=1, anchor="twenty"),
            layout
        )
        assert result.status == SearchStatus.FOUND_PHRASE_MISSED_ANCHOR_TEXT
        assert result.document.anchor_match_item is None

    def test_anchor_located_inside_phrase(self):
        layout = make_layout(["Sales increased", "by ten percent"])
        result = verify_citation(
            make_claim("Sales increased by ten percent", page=1, anchor="ten percent"),
            layout
        )
        assert result.status == SearchStatus.FOUND
        assert result.verified_anchor_text == "ten percent"
        assert result.document.anchor_match_item.text == "ten percent"
        assert result.document.anchor_match_item.y == pytest.approx(730.0)

    def test_found_on_other_line(self):
        layout = make_layout(["a", "b", "the target phrase", "d", "e"])
        result = verify_citation(make_claim("the target phrase", page=1, lines=[1]), layout)
        assert result.status == SearchStatus.FOUND_ON_OTHER_LINE
        assert result.document.verified_lines == (3,)

    def test_first_word_found(self):
        layout = make_layout(["Quarterly report attached"])
        result = verify_citation(make_claim("Quarterly zzz qqq", page=1), layout)
        assert result.status == SearchStatus.FIRST_WORD_FOUND

    def test_partial_text_found(self):
        layout = make_layout(["an extraordinarily long sentence"])
        result = verify_citation(make_claim("qq extraordinarily zz", page=1), layout)
        assert result.status == SearchStatus.PARTIAL_TEXT_FOUND

    def test_shorter_number_not_verified_inside_longer_one(self):
        layout = make_layout(["Revenue grew by 50 percent last year"])
        result = verify_citation(make_claim("Revenue grew by 5", page=1, lines=[1]), layout)

        assert result.status != SearchStatus.FOUND
        assert result.status == SearchStatus.FIRST_WORD_FOUND
        assert result.search_attempts[0].method == SearchMethod.EXACT_LINE_MATCH
        assert not result.search_attempts[0].success

    def test_fragment_not_found_inside_longer_word(self):
        layout = make_layout(["We concatenate strings here"])
        result = verify_citation(make_claim("cat zebra", page=1), layout)
        assert result.status == SearchStatus.NOT_FOUND

    def test_anchor_on_adjacent_page(self):
        layout = make_layout(filler(1), filler(2), ["The key figure was restated"])
        result = verify_citation(
            make_claim("The disputed total was 4.2 million", page=2, anchor="key figure"),
            layout
        )

        assert result.status == SearchStatus.FOUND_ANCHOR_TEXT_ONLY
        assert result.search_attempts[-1].method == SearchMethod.ADJACENT_PAGES
        assert result.verified_anchor_text == "key figure"

    def test_match_spanning_expected_line(self):
        layout = make_layout(["intro", "Sales increased", "by ten percent", "outro"])
        result = verify_citation(
            make_claim("Sales increased by ten percent", page=1, lines=[3]),
            layout
        )

        assert result.status == SearchStatus.FOUND
        assert result.document.verified_lines == (2, 3)
        assert result.search_attempts[-1].found_location.lines == (2, 3)

    def test_expected_line_alias(self):
        layout = make_layout(["a", "the target phrase"])
        result = verify_citation(
            Claim(expected_phrase="the target phrase", expected_page=1, expected_line=2),
            layout
        )
        assert result.status == SearchStatus.FOUND
        assert result.search_attempts[0].method == SearchMethod.EXACT_LINE_MATCH

    def test_pending(self):
        pending = pending_verification()
        assert pending.status == SearchStatus.PENDING
        assert pending.search_attempts == ()


class TestMatchItems:
    def test_multi_line_match_merges_boxes(self):
        layout = make_layout(["The quick brown fox", "jumps over the lazy dog"])
        result = verify_citation(make_claim("brown fox jumps over", page=1), layout)

        item = result.document.phrase_match_item
        assert item.text == "brown fox jumps over"
        assert item.x == pytest.approx(50.0)
        assert item.y == pytest.approx(750.0)
        assert item.height == pytest.approx(32.0)
        assert item.width == pytest.approx(6.0 * len("jumps over the lazy dog"))
        assert result.document.verified_lines == (1, 2)


class TestSnippet:
    def test_context_words_each_side(self):
        words = " ".join(f"w{i}" for i in range(1, 21))
        layout = make_layout([words])
        result = verify_citation(make_claim("w10 w11", page=1), layout)
        assert result.verified_match_snippet == "...w5 w6 w7 w8 w9 w10 w11 w12 w13 w14 w15 w16..."

    def test_short_page_has_no_ellipsis(self):
        layout = make_layout(["alpha beta gamma"])
        result = verify_citation(make_claim("beta", page=1), layout)
        assert result.verified_match_snippet == "alpha beta gamma"

    def test_context_words_configurable(self):
        layout = make_layout(["one two three four five"])
        result = verify_citation(make_claim("three", page=1), layout, EngineConfig(context_words=1))
        assert result.verified_match_snippet == "...two three four..."


class TestBatch:
    def test_verify_citations(self):
        layout = make_layout(["alpha beta gamma"])
        results = verify_citations([make_claim("alpha", page=1), make_claim("zzzz")], layout)
        assert [r.status for r in results] == [SearchStatus.FOUND, SearchStatus.NOT_FOUND]

    def test_input_too_large_propagates(self):
        layout = make_layout(["alpha"])
        with pytest.raises(InputTooLargeError):
            verify_citation(make_claim("alpha beta"), layout, EngineConfig(max_phrase_length=5))
