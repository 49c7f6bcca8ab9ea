from typing import Sequence

from citation_locator.search.ambiguity import detect_ambiguity
from citation_locator.search.strategies import resolve
from citation_locator.types import (
    Claim,
    Confidence,
    FoundLocation,
    SearchAttempt,
    SearchMethod,
    SearchScope,
    SourceLayout,
    SourcePage,
    TextItem,
    VariationType,
)


def make_layout(*pages: Sequence[str]) -> SourceLayout:
    return SourceLayout(pages=tuple(
        SourcePage(
            page_number=n + 1,
            items=tuple(
                TextItem(x=0.0, y=700.0 - 20.0 * i, width=100.0, height=12.0, text=text)
                for i, text in enumerate(lines)
            ),
        )
        for n, lines in enumerate(pages)
    ))


def make_winner(
    phrase: str,
    method: SearchMethod = SearchMethod.CURRENT_PAGE,
    page: int = 1,
    variation: VariationType = VariationType.EXACT
) -> SearchAttempt:
    return SearchAttempt(
        method=method,
        search_phrase=phrase,
        search_scope=SearchScope.PAGE,
        success=True,
        matched_variation=variation,
        found_location=FoundLocation(page=page, line=1),
    )


class TestDetectAmbiguity:
    def test_single_occurrence_is_none(self):
        layout = make_layout(["unique phrase here"], ["something else"])
        assert detect_ambiguity("unique phrase", make_winner("unique phrase"), layout, 1) is None

    def test_no_winner_is_none(self):
        layout = make_layout(["alpha"])
        assert detect_ambiguity("alpha", None, layout, 1) is None

    def test_three_occurrences_medium(self):
        layout = make_layout(["net revenue rose"], ["net revenue fell", "and net revenue again"])
        info = detect_ambiguity("net revenue", make_winner("net revenue", page=2), layout, 2)

        assert info.total_occurrences == 3
        assert info.occurrences_on_expected_page == 2
        assert info.confidence == Confidence.MEDIUM
        assert info.note == "Found 3 occurrences in document (2 on page 2)"

    def test_many_occurrences_low(self):
        layout = make_layout(*[["the total"] for _ in range(5)])
        info = detect_ambiguity(
            "the total", make_winner("the total", SearchMethod.REGEX_SEARCH), layout, None
        )

        assert info.total_occurrences == 5
        assert info.confidence == Confidence.LOW
        # Falls back to the found page
        assert info.occurrences_on_expected_page == 1

    def test_line_scoped_win_stays_medium(self):
        layout = make_layout(*[["the total"] for _ in range(5)])
        info = detect_ambiguity(
            "the total", make_winner("the total", SearchMethod.EXACT_LINE_MATCH), layout, 1
        )
        assert info.confidence == Confidence.MEDIUM

    def test_counts_under_winning_variation(self):
        layout = make_layout(["Café one"], ["cafe two"])
        exact = detect_ambiguity("cafe", make_winner("cafe", page=2), layout, 2)
        accent = detect_ambiguity(
            "cafe", make_winner("cafe", page=2, variation=VariationType.ACCENT), layout, 2
        )
        assert exact is None
        assert accent.total_occurrences == 2

    def test_scans_whole_document_regardless_of_scope(self):
        layout = make_layout(["target here"], ["target there"])
        resolution = resolve(Claim(expected_phrase="target", expected_page=1), layout)
        info = detect_ambiguity("target", resolution.winner, layout, 1)
        assert info.total_occurrences == 2

    def test_mid_word_hits_not_counted(self):
        layout = make_layout(["the cat sat"], ["concatenate the catalog"], ["a cat again"])
        info = detect_ambiguity("cat", make_winner("cat"), layout, 1)

        assert info.total_occurrences == 2
        assert info.occurrences_on_expected_page == 1
