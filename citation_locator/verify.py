"""
Citation verification entry point.

verify_citation is a pure function of (claim, layout, config): it allocates
its own SearchContext, runs the strategy chain, locates the anchor inside the
winning match, checks for ambiguity and assembles the verdict.
"""

import logging
from typing import List, Optional, Sequence

from citation_locator.config import DEFAULT_CONFIG, EngineConfig
from citation_locator.geometry.bbox_utils import union_items
from citation_locator.search.ambiguity import detect_ambiguity
from citation_locator.search.limits import MAX_REGEX_INPUT_LENGTH, safe_split
from citation_locator.search.scope import Scope, ScopeMatch, SearchContext
from citation_locator.search.status import assemble_status
from citation_locator.search.strategies import resolve
from citation_locator.types import (
    Claim,
    DocumentMatch,
    PhraseType,
    SearchScope,
    SearchStatus,
    SourceLayout,
    TextItem,
    Verification,
)

logger = logging.getLogger(__name__)


def pending_verification() -> Verification:
    """Placeholder verdict for a claim whose verification has not run yet."""
    return Verification(status=SearchStatus.PENDING)


def _page_refs(match: ScopeMatch):
    # A document-wide regex hit can run over a page break; keep the first page
    return [ref for ref in match.refs if ref.page == match.page]


def _merged_item(ctx: SearchContext, match: ScopeMatch, text: str) -> Optional[TextItem]:
    return union_items([ctx.item(ref) for ref in _page_refs(match)], text)


def match_snippet(ctx: SearchContext, match: ScopeMatch, context_words: int) -> Optional[str]:
    """
    The matched text with a few words of context on each side.

    Returns None when the verified page is too large to split safely.
    """
    page_text = ctx.scope_text(Scope(SearchScope.PAGE, (match.page,)))
    if len(page_text.text) > MAX_REGEX_INPUT_LENGTH:
        return None

    refs = _page_refs(match)
    try:
        first = page_text.refs.index(refs[0])
        last = page_text.refs.index(refs[-1])
    except ValueError:
        return None
    start = page_text.starts[first] + match.start_in_item
    if len(refs) == len(match.refs):
        end = page_text.starts[last] + match.end_in_item
    else:
        # Match continues on the next page; cut at the end of this page
        end = len(page_text.text)

    before = [w for w in safe_split(page_text.text[:start]) if w]
    after = [w for w in safe_split(page_text.text[end:]) if w]
    head = before[-context_words:] if context_words else []
    tail = after[:context_words] if context_words else []

    parts = head + [page_text.text[start:end].strip()] + tail
    snippet = " ".join(parts)
    if len(before) > len(head):
        snippet = "..." + snippet
    if len(after) > len(tail):
        snippet += "..."
    return snippet


def verify_citation(
    claim: Claim,
    layout: SourceLayout,
    config: EngineConfig = DEFAULT_CONFIG
) -> Verification:
    """
    Verify one claim against a source layout.

    Args:
        claim: Phrase, optional anchor text and expected location
        layout: Pages of text items
        config: Engine constants

    Returns:
        Verification with status, attempt trail and, when found, the matched items

    Raises:
        InputTooLargeError: If the phrase or a scanned text exceeds its ceiling
    """
    ctx = SearchContext(layout, config)
    resolution = resolve(claim, layout, config, context=ctx)
    winner, match = resolution.winner, resolution.match

    if winner is None or match is None:
        logger.info("Not found: %r", claim.expected_phrase[:60])
        return Verification(status=SearchStatus.NOT_FOUND, search_attempts=resolution.attempts)

    phrase_item = _merged_item(ctx, match, match.matched_text)
    anchor = claim.anchor_text.strip() if claim.anchor_text else None

    anchor_item: Optional[TextItem] = None
    verified_anchor: Optional[str] = None
    anchor_located = True
    if winner.search_phrase_type == PhraseType.ANCHOR_TEXT:
        anchor_item = phrase_item
        verified_anchor = match.matched_text
    elif anchor:
        anchor_match = ctx.locate_in_items(_page_refs(match), anchor)
        if anchor_match is not None:
            anchor_item = _merged_item(ctx, anchor_match, anchor_match.matched_text)
            verified_anchor = anchor_match.matched_text
        elif winner.search_phrase_type == PhraseType.FULL_PHRASE:
            anchor_located = False

    ambiguity = detect_ambiguity(
        winner.search_phrase, winner, layout, claim.expected_page, config, context=ctx
    )
    status = assemble_status(claim, resolution.attempts, winner, anchor_located)
    logger.info(
        "%s via %s (%s) on page %d",
        status.value, winner.method.value, winner.matched_variation.value, match.page
    )

    return Verification(
        status=status,
        search_attempts=resolution.attempts,
        ambiguity=ambiguity,
        document=DocumentMatch(
            verified_page=match.page,
            verified_lines=match.lines,
            total_lines_on_page=ctx.line_count(match.page),
            phrase_match_item=phrase_item,
            anchor_match_item=anchor_item,
        ),
        verified_full_phrase=(
            match.matched_text if winner.search_phrase_type != PhraseType.ANCHOR_TEXT else None
        ),
        verified_anchor_text=verified_anchor,
        verified_match_snippet=match_snippet(ctx, match, config.context_words),
    )


def verify_citations(
    claims: Sequence[Claim],
    layout: SourceLayout,
    config: EngineConfig = DEFAULT_CONFIG
) -> List[Verification]:
    """Verify several claims independently, in order."""
    return [verify_citation(claim, layout, config) for claim in claims]
