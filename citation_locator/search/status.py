"""
Verdict derivation and the display helpers built on it.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Sequence

from citation_locator.types import (
    Claim,
    Confidence,
    PhraseType,
    SearchAttempt,
    SearchMethod,
    SearchStatus,
    VariationType,
    Verification,
)

# Fallbacks that search a piece of the phrase rather than all of it
STRUCTURAL_METHODS: FrozenSet[SearchMethod] = frozenset({
    SearchMethod.FIRST_WORD_FALLBACK,
    SearchMethod.LONGEST_WORD_FALLBACK,
    SearchMethod.FIRST_HALF_FALLBACK,
    SearchMethod.LAST_HALF_FALLBACK,
    SearchMethod.FIRST_QUARTER_FALLBACK,
    SearchMethod.SECOND_QUARTER_FALLBACK,
    SearchMethod.THIRD_QUARTER_FALLBACK,
    SearchMethod.FOURTH_QUARTER_FALLBACK,
    SearchMethod.CUSTOM_PHRASE_FALLBACK,
})

PARTIAL_STATUSES: FrozenSet[SearchStatus] = frozenset({
    SearchStatus.FOUND_ANCHOR_TEXT_ONLY,
    SearchStatus.FOUND_ON_OTHER_PAGE,
    SearchStatus.FOUND_ON_OTHER_LINE,
    SearchStatus.PARTIAL_TEXT_FOUND,
    SearchStatus.FIRST_WORD_FOUND,
})

EXACT_VARIATIONS: FrozenSet[VariationType] = frozenset({
    VariationType.EXACT,
    VariationType.NORMALIZED,
})


def _is_structural(winner: SearchAttempt) -> bool:
    if winner.method in STRUCTURAL_METHODS:
        return True
    # Key span over the phrase itself (no anchor) is still a loose match
    return (
        winner.method == SearchMethod.KEYSPAN_FALLBACK
        and winner.search_phrase_type == PhraseType.FULL_PHRASE
    )


def assemble_status(
    claim: Claim,
    attempts: Sequence[SearchAttempt],
    winner: Optional[SearchAttempt],
    anchor_located: bool = True
) -> SearchStatus:
    """
    Derive the verdict for a claim from its attempt trail.

    Args:
        claim: The claim that was searched for
        attempts: Full attempt trail, winner included
        winner: The successful attempt, or None
        anchor_located: Whether the anchor text was found inside a full-phrase match

    Returns:
        Exactly one SearchStatus; every input combination is covered
    """
    if winner is None or not winner.success:
        return SearchStatus.NOT_FOUND

    phrase_matched = any(
        attempt.success and attempt.search_phrase_type == PhraseType.FULL_PHRASE
        for attempt in attempts
    )
    if winner.search_phrase_type == PhraseType.ANCHOR_TEXT and not phrase_matched:
        return SearchStatus.FOUND_ANCHOR_TEXT_ONLY

    if winner.search_phrase_type == PhraseType.FULL_PHRASE and not anchor_located:
        return SearchStatus.FOUND_PHRASE_MISSED_ANCHOR_TEXT

    location = winner.found_location
    if location is not None and claim.expected_page is not None:
        if location.page != claim.expected_page:
            return SearchStatus.FOUND_ON_OTHER_PAGE
        found_lines = set(location.lines)
        if location.line is not None:
            found_lines.add(location.line)
        if claim.expected_lines and found_lines and found_lines.isdisjoint(claim.expected_lines):
            return SearchStatus.FOUND_ON_OTHER_LINE

    if winner.method == SearchMethod.FIRST_WORD_FALLBACK:
        return SearchStatus.FIRST_WORD_FOUND
    if _is_structural(winner):
        return SearchStatus.PARTIAL_TEXT_FOUND
    return SearchStatus.FOUND


def trust_level(attempt: SearchAttempt) -> Confidence:
    """How much a successful attempt can be trusted for display purposes."""
    if attempt.search_phrase_type == PhraseType.FRAGMENT:
        return Confidence.LOW
    if attempt.matched_variation in EXACT_VARIATIONS:
        if attempt.search_phrase_type == PhraseType.FULL_PHRASE:
            return Confidence.HIGH
        return Confidence.MEDIUM
    return Confidence.MEDIUM


@dataclass(frozen=True)
class CitationFlags:
    is_verified: bool
    is_miss: bool
    is_partial_match: bool
    is_pending: bool


def status_flags(verification: Optional[Verification]) -> CitationFlags:
    """
    Collapse a verification into the four booleans a status icon needs.

    A missing verification, PENDING and LOADING are all pending.
    """
    if verification is None or verification.status in (SearchStatus.PENDING, SearchStatus.LOADING):
        return CitationFlags(False, False, False, True)
    if verification.status == SearchStatus.NOT_FOUND:
        return CitationFlags(False, True, False, False)

    winner = next(
        (attempt for attempt in reversed(verification.search_attempts) if attempt.success),
        None
    )
    partial = verification.status in PARTIAL_STATUSES or (
        winner is not None and trust_level(winner) == Confidence.LOW
    )
    return CitationFlags(True, False, partial, False)


def status_label(flags: CitationFlags) -> str:
    if flags.is_pending:
        return "Verifying"
    if flags.is_miss:
        return "Not Found"
    if flags.is_partial_match:
        return "Partial Match"
    return "Verified"


# Every status maps to a highlight color; None means nothing is drawn
HIGHLIGHT_COLORS: Dict[SearchStatus, Optional[str]] = {
    SearchStatus.FOUND: "blue",
    SearchStatus.FOUND_PHRASE_MISSED_ANCHOR_TEXT: "blue",
    SearchStatus.FOUND_ANCHOR_TEXT_ONLY: "amber",
    SearchStatus.FOUND_ON_OTHER_PAGE: "amber",
    SearchStatus.FOUND_ON_OTHER_LINE: "amber",
    SearchStatus.PARTIAL_TEXT_FOUND: "amber",
    SearchStatus.FIRST_WORD_FOUND: "amber",
    SearchStatus.NOT_FOUND: None,
    SearchStatus.PENDING: None,
    SearchStatus.LOADING: None,
}


def highlight_color(verification: Verification) -> Optional[str]:
    color = HIGHLIGHT_COLORS[verification.status]
    if color == "blue" and status_flags(verification).is_partial_match:
        return "amber"
    return color
