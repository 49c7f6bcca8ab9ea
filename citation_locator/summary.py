"""
Audit summary of an attempt trail.

Attempts are grouped by the phrase they searched for, in first-seen order,
so a reader can see which phrases were tried, where, and whether any of them
hit.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from citation_locator.types import PhraseType, SearchAttempt, SearchMethod, SearchScope

FRAGMENT_LABELS: Dict[SearchMethod, str] = {
    SearchMethod.FIRST_WORD_FALLBACK: "First word",
    SearchMethod.LONGEST_WORD_FALLBACK: "Longest word",
    SearchMethod.FIRST_HALF_FALLBACK: "First half",
    SearchMethod.LAST_HALF_FALLBACK: "Last half",
    SearchMethod.FIRST_QUARTER_FALLBACK: "First quarter",
    SearchMethod.SECOND_QUARTER_FALLBACK: "Second quarter",
    SearchMethod.THIRD_QUARTER_FALLBACK: "Third quarter",
    SearchMethod.FOURTH_QUARTER_FALLBACK: "Fourth quarter",
    SearchMethod.CUSTOM_PHRASE_FALLBACK: "Custom phrase",
}


def phrase_label(attempt: SearchAttempt) -> str:
    if attempt.search_phrase_type == PhraseType.ANCHOR_TEXT:
        return "Anchor text"
    if attempt.search_phrase_type == PhraseType.FULL_PHRASE:
        return "Full phrase"
    return FRAGMENT_LABELS.get(attempt.method, "Fragment")


@dataclass
class SearchQueryGroup:
    """
    Attempts that searched for the same phrase.

    Attributes:
        search_phrase: The phrase searched for
        phrase_type: Full phrase, anchor text or fragment
        phrase_label: Display label ("Full phrase", "First half", ...)
        methods_tried: Distinct methods, in trail order
        pages: Distinct pages searched, sorted
        includes_doc_scan: Whether any attempt scanned the whole document
        any_success: Whether any attempt in the group matched
        variations: Distinct matched variations, in trail order
        attempt_count: Number of attempts in the group
    """
    search_phrase: str
    phrase_type: PhraseType
    phrase_label: str
    methods_tried: List[SearchMethod] = field(default_factory=list)
    pages: List[int] = field(default_factory=list)
    includes_doc_scan: bool = False
    any_success: bool = False
    variations: List[str] = field(default_factory=list)
    attempt_count: int = 0


@dataclass
class SearchSummary:
    total_attempts: int
    query_groups: List[SearchQueryGroup]
    includes_full_doc_scan: bool
    closest_match: Optional[str] = None
    closest_match_page: Optional[int] = None

    @property
    def distinct_queries(self) -> int:
        return len(self.query_groups)


def build_search_summary(attempts: Sequence[SearchAttempt]) -> SearchSummary:
    groups: Dict[str, SearchQueryGroup] = {}
    for attempt in attempts:
        group = groups.get(attempt.search_phrase)
        if group is None:
            group = SearchQueryGroup(
                search_phrase=attempt.search_phrase,
                phrase_type=attempt.search_phrase_type,
                phrase_label=phrase_label(attempt),
            )
            groups[attempt.search_phrase] = group

        group.attempt_count += 1
        if attempt.method not in group.methods_tried:
            group.methods_tried.append(attempt.method)
        pages = set(group.pages) | set(attempt.pages_searched)
        if attempt.page_searched is not None:
            pages.add(attempt.page_searched)
        group.pages = sorted(pages)
        if attempt.search_scope == SearchScope.DOCUMENT:
            group.includes_doc_scan = True
        if attempt.success:
            group.any_success = True
        if attempt.matched_variation is not None and attempt.matched_variation.value not in group.variations:
            group.variations.append(attempt.matched_variation.value)

    closest = next((a for a in attempts if a.success and a.matched_text), None)
    return SearchSummary(
        total_attempts=len(attempts),
        query_groups=list(groups.values()),
        includes_full_doc_scan=any(g.includes_doc_scan for g in groups.values()),
        closest_match=closest.matched_text if closest else None,
        closest_match_page=(
            closest.found_location.page if closest and closest.found_location else None
        ),
    )
