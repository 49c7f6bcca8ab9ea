"""
Ambiguity detection for a resolved match.

The winning phrase is counted again across every page of the document under
the variation and match mode that won, regardless of how narrow the winning
strategy's scope was.
"""

import logging
from typing import Dict, Optional

from citation_locator.config import DEFAULT_CONFIG, EngineConfig
from citation_locator.search.scope import Scope, SearchContext, match_mode_for
from citation_locator.types import (
    AmbiguityInfo,
    Confidence,
    SearchAttempt,
    SearchMethod,
    SearchScope,
    SourceLayout,
)

logger = logging.getLogger(__name__)

# A win inside the expected lines is specific enough to keep medium confidence
LINE_SCOPED_METHODS = frozenset({
    SearchMethod.EXACT_LINE_MATCH,
    SearchMethod.LINE_WITH_BUFFER,
    SearchMethod.EXPANDED_LINE_BUFFER,
})


def count_per_page(
    search_phrase: str,
    winner: SearchAttempt,
    ctx: SearchContext
) -> Dict[int, int]:
    mode = match_mode_for(winner.method)
    return {
        page: ctx.count(
            Scope(SearchScope.PAGE, (page,)), search_phrase, winner.matched_variation, mode
        )
        for page in ctx.layout.page_numbers
    }


def detect_ambiguity(
    search_phrase: str,
    winner: Optional[SearchAttempt],
    layout: SourceLayout,
    expected_page: Optional[int] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    context: Optional[SearchContext] = None
) -> Optional[AmbiguityInfo]:
    """
    Report whether the winning phrase occurs more than once.

    Args:
        search_phrase: The phrase the winning attempt searched for
        winner: The winning attempt; None or unsuccessful gives None
        layout: Whole source layout
        expected_page: Page the claim pointed at (falls back to the found page)
        config: Confidence threshold and size ceilings
        context: Per-call cache shared with the resolver

    Returns:
        AmbiguityInfo when the phrase occurs at least twice, otherwise None
    """
    if winner is None or not winner.success or winner.matched_variation is None:
        return None

    ctx = context or SearchContext(layout, config)
    per_page = count_per_page(search_phrase, winner, ctx)
    total = sum(per_page.values())
    if total <= 1:
        return None

    page = expected_page
    if page is None and winner.found_location is not None:
        page = winner.found_location.page
    on_page = per_page.get(page, 0) if page is not None else 0

    if total <= config.ambiguity_medium_max or winner.method in LINE_SCOPED_METHODS:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    note = f"Found {total} occurrences in document"
    if page is not None:
        note += f" ({on_page} on page {page})"
    logger.info("Ambiguous match for %r: %s", search_phrase, note)

    return AmbiguityInfo(
        total_occurrences=total,
        occurrences_on_expected_page=on_page,
        confidence=confidence,
        note=note,
    )
