"""
Cascading search over a source layout.

Strategies run in a fixed order, narrowest scope first. Each one either does
not apply to the claim (skipped, nothing recorded) or produces exactly one
SearchAttempt. The chain stops at the first successful attempt.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from citation_locator.config import DEFAULT_CONFIG, EngineConfig
from citation_locator.search.limits import safe_split, validate_input_length
from citation_locator.search.scope import MatchMode, Scope, ScopeMatch, SearchContext
from citation_locator.types import (
    Claim,
    FoundLocation,
    PhraseType,
    SearchAttempt,
    SearchMethod,
    SearchScope,
    SourceLayout,
)

logger = logging.getLogger(__name__)


@dataclass
class StrategyOutcome:
    attempt: SearchAttempt
    match: Optional[ScopeMatch] = None


@dataclass
class Resolution:
    """
    Result of running the chain for one claim.

    Attributes:
        attempts: Every executed attempt, in chain order
        winner: The successful attempt (always the last one), or None
        match: Items and text behind the winner, or None
    """
    attempts: Tuple[SearchAttempt, ...]
    winner: Optional[SearchAttempt]
    match: Optional[ScopeMatch]


Strategy = Callable[[Claim, SearchContext], Optional[StrategyOutcome]]


# Helpers

def _expected_page(claim: Claim, ctx: SearchContext) -> Optional[int]:
    if claim.expected_page is None or not ctx.has_page(claim.expected_page):
        return None
    return claim.expected_page


def _anchor(claim: Claim) -> Optional[str]:
    if claim.anchor_text is None or not claim.anchor_text.strip():
        return None
    return claim.anchor_text.strip()


def _buffered(lines: Sequence[int], buffer: int) -> Tuple[int, ...]:
    return tuple(sorted({
        line + offset
        for line in lines
        for offset in range(-buffer, buffer + 1)
        if line + offset >= 1
    }))


def _proximity_order(ctx: SearchContext, page: Optional[int]) -> List[int]:
    pages = ctx.layout.page_numbers
    if page is None:
        return pages
    return sorted(pages, key=lambda n: (abs(n - page), n))


def _words(text: str, ctx: SearchContext) -> List[str]:
    stripped = text.strip()
    if not stripped:
        return []
    return safe_split(stripped, r"\s+", max_length=ctx.config.max_phrase_length)


def _describe(pages: Sequence[int], lines: Optional[Sequence[int]]) -> str:
    if not pages:
        return "no pages"
    where = f"page {pages[0]}" if len(pages) == 1 else "pages " + ", ".join(map(str, pages))
    if lines:
        where += " lines " + ", ".join(map(str, lines))
    return where


def _outcome(
    method: SearchMethod,
    phrase: str,
    phrase_type: PhraseType,
    scope_kind: SearchScope,
    pages: Sequence[int],
    lines: Optional[Sequence[int]],
    match: Optional[ScopeMatch],
    note: Optional[str] = None
) -> StrategyOutcome:
    common = dict(
        method=method,
        search_phrase=phrase,
        search_phrase_type=phrase_type,
        search_scope=scope_kind,
        page_searched=pages[0] if len(pages) == 1 else None,
        pages_searched=tuple(pages),
        line_searched=tuple(lines or ()),
    )
    if match is None:
        attempt = SearchAttempt(
            success=False,
            note=note or f"not found on {_describe(pages, lines)}",
            **common
        )
        return StrategyOutcome(attempt)

    lines_found = match.lines
    attempt = SearchAttempt(
        success=True,
        matched_variation=match.variation,
        matched_text=match.matched_text,
        found_location=FoundLocation(
            page=match.page,
            line=lines_found[0] if lines_found else None,
            lines=lines_found,
        ),
        occurrences_found=match.occurrences,
        note=note,
        **common
    )
    return StrategyOutcome(attempt, match)


def _search_pages(
    ctx: SearchContext,
    method: SearchMethod,
    phrase: str,
    phrase_type: PhraseType,
    pages: Sequence[int],
    lines: Optional[Tuple[int, ...]],
    scope_kind: SearchScope,
    mode: MatchMode = MatchMode.SUBSTRING
) -> StrategyOutcome:
    """Search pages one at a time, in the given order, stopping at the first hit."""
    for page in pages:
        match = ctx.locate(Scope(scope_kind, (page,), lines), phrase, mode)
        if match is not None:
            return _outcome(method, phrase, phrase_type, scope_kind, pages, lines, match)
    return _outcome(method, phrase, phrase_type, scope_kind, pages, lines, None)


def _search_phrase_then_anchor(
    claim: Claim,
    ctx: SearchContext,
    method: SearchMethod,
    pages: Sequence[int],
    lines: Optional[Tuple[int, ...]],
    scope_kind: SearchScope
) -> StrategyOutcome:
    """Search the full phrase; if it is nowhere in scope, try the anchor text the same way."""
    outcome = _search_pages(
        ctx, method, claim.expected_phrase, PhraseType.FULL_PHRASE, pages, lines, scope_kind
    )
    anchor = _anchor(claim)
    if outcome.attempt.success or anchor is None:
        return outcome

    for page in pages:
        match = ctx.locate(Scope(scope_kind, (page,), lines), anchor)
        if match is not None:
            return _outcome(
                method, anchor, PhraseType.ANCHOR_TEXT, scope_kind, pages, lines, match,
                note="full phrase not found; anchor text matched"
            )
    return _outcome(
        method, claim.expected_phrase, PhraseType.FULL_PHRASE, scope_kind, pages, lines, None,
        note=f"phrase and anchor text not found on {_describe(pages, lines)}"
    )


# Location-scoped strategies (1-7)

def exact_line_match(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None or not claim.expected_lines:
        return None
    lines = tuple(sorted(set(claim.expected_lines)))
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.EXACT_LINE_MATCH, [page], lines, SearchScope.LINE
    )


def line_with_buffer(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None or not claim.expected_lines:
        return None
    lines = _buffered(claim.expected_lines, ctx.config.line_buffer)
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.LINE_WITH_BUFFER, [page], lines, SearchScope.LINE
    )


def expanded_line_buffer(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None or not claim.expected_lines:
        return None
    lines = _buffered(claim.expected_lines, ctx.config.expanded_line_buffer)
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.EXPANDED_LINE_BUFFER, [page], lines, SearchScope.LINE
    )


def current_page(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None:
        return None
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.CURRENT_PAGE, [page], None, SearchScope.PAGE
    )


def anchor_text_fallback(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    anchor = _anchor(claim)
    if page is None or anchor is None:
        return None
    return _search_pages(
        ctx, SearchMethod.ANCHOR_TEXT_FALLBACK, anchor,
        PhraseType.ANCHOR_TEXT, [page], None, SearchScope.PAGE
    )


def adjacent_pages(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None:
        return None
    pages = [n for n in (page - 1, page + 1) if ctx.has_page(n)]
    if not pages:
        return None
    if claim.expected_lines:
        lines = _buffered(claim.expected_lines, ctx.config.expanded_line_buffer)
        kind = SearchScope.LINE
    else:
        lines, kind = None, SearchScope.PAGE
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.ADJACENT_PAGES, pages, lines, kind
    )


def expanded_window(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    page = _expected_page(claim, ctx)
    if page is None:
        return None
    # Adjacent pages were only partly searched when lines were given
    first = 1 if claim.expected_lines else 2
    pages = [
        n
        for distance in range(first, ctx.config.page_window + 1)
        for n in (page - distance, page + distance)
        if ctx.has_page(n)
    ]
    if not pages:
        return None
    return _search_phrase_then_anchor(
        claim, ctx, SearchMethod.EXPANDED_WINDOW, pages, None, SearchScope.PAGE
    )


# Document scan (8)

def regex_search(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    pages = ctx.layout.page_numbers
    scope = Scope(SearchScope.DOCUMENT, tuple(pages))

    match = ctx.locate(scope, claim.expected_phrase, MatchMode.REGEX)
    if match is not None:
        return _outcome(
            SearchMethod.REGEX_SEARCH, claim.expected_phrase, PhraseType.FULL_PHRASE,
            SearchScope.DOCUMENT, pages, None, match
        )

    anchor = _anchor(claim)
    if anchor is not None:
        match = ctx.locate(scope, anchor, MatchMode.REGEX)
        if match is not None:
            return _outcome(
                SearchMethod.REGEX_SEARCH, anchor, PhraseType.ANCHOR_TEXT,
                SearchScope.DOCUMENT, pages, None, match,
                note="full phrase not found; anchor text matched"
            )

    note = "phrase and anchor text not found in document" if anchor else None
    return _outcome(
        SearchMethod.REGEX_SEARCH, claim.expected_phrase, PhraseType.FULL_PHRASE,
        SearchScope.DOCUMENT, pages, None, None,
        note=note or "phrase not found in document"
    )


# Structural fallbacks (9)

def first_word(words: List[str]) -> Optional[str]:
    return words[0] if len(words) >= 2 else None


def longest_word(words: List[str]) -> Optional[str]:
    if len(words) < 2:
        return None
    return max(words, key=len)


def first_half(words: List[str]) -> Optional[str]:
    if len(words) < 2:
        return None
    return " ".join(words[:(len(words) + 1) // 2])


def last_half(words: List[str]) -> Optional[str]:
    if len(words) < 2:
        return None
    return " ".join(words[(len(words) + 1) // 2:])


def quarter(index: int) -> Callable[[List[str]], Optional[str]]:
    def fragment(words: List[str]) -> Optional[str]:
        n = len(words)
        if n < 4:
            return None
        return " ".join(words[index * n // 4:(index + 1) * n // 4])
    return fragment


def _fragment_fallback(
    method: SearchMethod,
    make_fragment: Callable[[List[str]], Optional[str]]
) -> Strategy:
    def strategy(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
        fragment = make_fragment(_words(claim.expected_phrase, ctx))
        if not fragment or fragment.lower() == claim.expected_phrase.strip().lower():
            return None
        pages = _proximity_order(ctx, _expected_page(claim, ctx))
        return _search_pages(
            ctx, method, fragment, PhraseType.FRAGMENT,
            pages, None, SearchScope.DOCUMENT
        )
    strategy.__name__ = method.value
    return strategy


def custom_phrase_fallback(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    if claim.custom_phrase is None or not claim.custom_phrase.strip():
        return None
    validate_input_length(claim.custom_phrase, ctx.config.max_phrase_length, "custom phrase")
    pages = _proximity_order(ctx, _expected_page(claim, ctx))
    return _search_pages(
        ctx, SearchMethod.CUSTOM_PHRASE_FALLBACK, claim.custom_phrase.strip(),
        PhraseType.FRAGMENT, pages, None, SearchScope.DOCUMENT
    )


def keyspan_fallback(claim: Claim, ctx: SearchContext) -> Optional[StrategyOutcome]:
    anchor = _anchor(claim)
    if anchor is not None:
        span, phrase_type = anchor, PhraseType.ANCHOR_TEXT
    else:
        span, phrase_type = claim.expected_phrase.strip(), PhraseType.FULL_PHRASE
    pages = _proximity_order(ctx, _expected_page(claim, ctx))
    return _search_pages(
        ctx, SearchMethod.KEYSPAN_FALLBACK, span, phrase_type,
        pages, None, SearchScope.DOCUMENT, MatchMode.COMPACT
    )


STRATEGY_CHAIN: Tuple[Tuple[SearchMethod, Strategy], ...] = (
    (SearchMethod.EXACT_LINE_MATCH, exact_line_match),
    (SearchMethod.LINE_WITH_BUFFER, line_with_buffer),
    (SearchMethod.EXPANDED_LINE_BUFFER, expanded_line_buffer),
    (SearchMethod.CURRENT_PAGE, current_page),
    (SearchMethod.ANCHOR_TEXT_FALLBACK, anchor_text_fallback),
    (SearchMethod.ADJACENT_PAGES, adjacent_pages),
    (SearchMethod.EXPANDED_WINDOW, expanded_window),
    (SearchMethod.REGEX_SEARCH, regex_search),
    (SearchMethod.FIRST_WORD_FALLBACK,
     _fragment_fallback(SearchMethod.FIRST_WORD_FALLBACK, first_word)),
    (SearchMethod.LONGEST_WORD_FALLBACK,
     _fragment_fallback(SearchMethod.LONGEST_WORD_FALLBACK, longest_word)),
    (SearchMethod.FIRST_HALF_FALLBACK,
     _fragment_fallback(SearchMethod.FIRST_HALF_FALLBACK, first_half)),
    (SearchMethod.LAST_HALF_FALLBACK,
     _fragment_fallback(SearchMethod.LAST_HALF_FALLBACK, last_half)),
    (SearchMethod.FIRST_QUARTER_FALLBACK,
     _fragment_fallback(SearchMethod.FIRST_QUARTER_FALLBACK, quarter(0))),
    (SearchMethod.SECOND_QUARTER_FALLBACK,
     _fragment_fallback(SearchMethod.SECOND_QUARTER_FALLBACK, quarter(1))),
    (SearchMethod.THIRD_QUARTER_FALLBACK,
     _fragment_fallback(SearchMethod.THIRD_QUARTER_FALLBACK, quarter(2))),
    (SearchMethod.FOURTH_QUARTER_FALLBACK,
     _fragment_fallback(SearchMethod.FOURTH_QUARTER_FALLBACK, quarter(3))),
    (SearchMethod.CUSTOM_PHRASE_FALLBACK, custom_phrase_fallback),
    (SearchMethod.KEYSPAN_FALLBACK, keyspan_fallback),
)


def run_chain(claim: Claim, ctx: SearchContext) -> Iterator[StrategyOutcome]:
    """Yield one outcome per applicable strategy, ending with the first success."""
    for method, strategy in STRATEGY_CHAIN:
        outcome = strategy(claim, ctx)
        if outcome is None:
            logger.debug("%s: not applicable", method.value)
            continue
        attempt = outcome.attempt
        logger.debug(
            "%s: %s (%s)",
            method.value,
            "matched" if attempt.success else "no match",
            attempt.matched_variation.value if attempt.matched_variation else attempt.note
        )
        yield outcome
        if attempt.success:
            return


def _no_op(claim: Claim, note: str) -> SearchAttempt:
    return SearchAttempt(
        method=SearchMethod.REGEX_SEARCH,
        search_phrase=claim.expected_phrase,
        search_scope=SearchScope.DOCUMENT,
        success=False,
        note=note,
    )


def resolve(
    claim: Claim,
    layout: SourceLayout,
    config: EngineConfig = DEFAULT_CONFIG,
    context: Optional[SearchContext] = None
) -> Resolution:
    """
    Run the strategy chain for a claim.

    Args:
        claim: Phrase, optional anchor and expected location
        layout: Pages of text items to search
        config: Buffers, windows and size ceilings
        context: Existing per-call cache to reuse, if any

    Returns:
        Resolution with the attempt trail and, on success, the winning match

    Raises:
        InputTooLargeError: If the phrase or a scanned text exceeds its ceiling
    """
    if not claim.expected_phrase.strip():
        return Resolution((_no_op(claim, "empty phrase; nothing to search"),), None, None)
    if not layout.pages:
        return Resolution((_no_op(claim, "source layout has no pages"),), None, None)

    validate_input_length(claim.expected_phrase, config.max_phrase_length, "claim phrase")
    ctx = context or SearchContext(layout, config)

    outcomes = tuple(run_chain(claim, ctx))
    attempts = tuple(outcome.attempt for outcome in outcomes)
    last = outcomes[-1] if outcomes else None
    if last is not None and last.attempt.success:
        return Resolution(attempts, last.attempt, last.match)
    return Resolution(attempts, None, None)
