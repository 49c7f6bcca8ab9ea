"""
Search scopes over a source layout.

A scope is a set of pages, optionally restricted to some line numbers. Its
text is the item texts joined with single spaces, in reading order, with an
offset table back to the items. SearchContext holds the per-call caches so
that any scope (the whole document included) is canonicalized at most once
per variation during one verification.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from citation_locator.config import DEFAULT_CONFIG, EngineConfig
from citation_locator.search.normalize import (
    VARIATION_ORDER,
    MappedText,
    canonicalize,
    canonicalize_mapped,
    compact,
    compact_mapped,
)
from citation_locator.types import (
    SearchMethod,
    SearchScope,
    SourceLayout,
    TextItem,
    VariationType,
)


class MatchMode(Enum):
    SUBSTRING = "substring"
    REGEX = "regex"      # whitespace between words optional
    COMPACT = "compact"  # letters and digits only


def match_mode_for(method: SearchMethod) -> MatchMode:
    if method == SearchMethod.REGEX_SEARCH:
        return MatchMode.REGEX
    if method == SearchMethod.KEYSPAN_FALLBACK:
        return MatchMode.COMPACT
    return MatchMode.SUBSTRING


@dataclass(frozen=True)
class Scope:
    """
    Attributes:
        kind: Reported scope of the search (line, page or document)
        pages: Page numbers searched, in the order their text is joined
        lines: Line numbers to keep on each page, or None for every line
    """
    kind: SearchScope
    pages: Tuple[int, ...]
    lines: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class ItemRef:
    page: int
    index: int
    line: int


@dataclass
class ScopeText:
    text: str
    refs: List[ItemRef]
    starts: List[int]

    def refs_between(self, start: int, end: int) -> List[ItemRef]:
        """Items whose text overlaps the raw range [start, end)."""
        if not self.refs or end <= start:
            return []
        i = max(bisect_right(self.starts, start) - 1, 0)
        found = []
        while i < len(self.refs) and self.starts[i] < end:
            ref_end = self.starts[i + 1] - 1 if i + 1 < len(self.starts) else len(self.text)
            if ref_end > start:
                found.append(self.refs[i])
            i += 1
        return found


@dataclass
class ScopeMatch:
    """Where a phrase was found inside a scope."""
    variation: VariationType
    refs: List[ItemRef]
    matched_text: str
    occurrences: int = 1
    # Offsets of the match inside the first and last matched item texts
    start_in_item: int = 0
    end_in_item: int = 0

    @property
    def page(self) -> int:
        return self.refs[0].page

    @property
    def lines(self) -> Tuple[int, ...]:
        return tuple(sorted({ref.line for ref in self.refs if ref.page == self.page}))


def assign_lines(items: Sequence[TextItem], tolerance: float = 0.5) -> List[int]:
    """
    Derive 1-based line numbers from item adjacency.

    An item starts a new line when its top edge is further than
    tolerance * (taller of the two heights) from the previous item's.

    Args:
        items: Items of one page in reading order
        tolerance: Fraction of item height treated as the same baseline

    Returns:
        Line number for each item, parallel to items
    """
    lines: List[int] = []
    line = 0
    prev: Optional[TextItem] = None
    for item in items:
        if prev is None:
            line = 1
        elif abs(item.y - prev.y) > tolerance * max(item.height, prev.height, 0.0):
            line += 1
        lines.append(line)
        prev = item
    return lines


def _find(haystack: str, needle: str, mode: MatchMode) -> Optional[Tuple[int, int]]:
    if mode == MatchMode.COMPACT:
        idx = haystack.find(needle)
        return (idx, idx + len(needle)) if idx >= 0 else None
    m = _pattern_for(needle, mode).search(haystack)
    return m.span() if m else None


def _count(haystack: str, needle: str, mode: MatchMode) -> int:
    if mode == MatchMode.COMPACT:
        return haystack.count(needle)
    return sum(1 for _ in _pattern_for(needle, mode).finditer(haystack))


def _pattern_for(needle: str, mode: MatchMode) -> "re.Pattern[str]":
    """
    Needle as a pattern that cannot start or end inside a word.

    A needle edge that is a letter or digit must sit at a word edge of the
    haystack, so "by 5" does not match "by 50". Edges that are punctuation
    are left open. In REGEX mode whitespace between words is optional.
    """
    if mode == MatchMode.REGEX:
        body = r"\s*".join(re.escape(word) for word in needle.split(" "))
    else:
        body = re.escape(needle)
    head = r"(?<!\w)" if needle[0].isalnum() else ""
    tail = r"(?!\w)" if needle[-1].isalnum() else ""
    return re.compile(head + body + tail)


class SearchContext:
    """Private working state of one verification call."""

    def __init__(self, layout: SourceLayout, config: EngineConfig = DEFAULT_CONFIG):
        self.layout = layout
        self.config = config
        self._lines: Dict[int, List[int]] = {}
        self._texts: Dict[Scope, ScopeText] = {}
        self._canonical: Dict[Tuple[Scope, VariationType, MatchMode], MappedText] = {}

    def has_page(self, page_number: int) -> bool:
        return self.layout.page(page_number) is not None

    def lines_for(self, page_number: int) -> List[int]:
        if page_number not in self._lines:
            page = self.layout.page(page_number)
            items = page.items if page is not None else ()
            self._lines[page_number] = assign_lines(items, self.config.line_tolerance)
        return self._lines[page_number]

    def line_count(self, page_number: int) -> int:
        lines = self.lines_for(page_number)
        return max(lines) if lines else 0

    def item(self, ref: ItemRef) -> TextItem:
        return self.layout.page(ref.page).items[ref.index]

    def scope_text(self, scope: Scope) -> ScopeText:
        if scope not in self._texts:
            refs: List[ItemRef] = []
            for page_number in scope.pages:
                page = self.layout.page(page_number)
                if page is None:
                    continue
                lines = self.lines_for(page_number)
                for index, item in enumerate(page.items):
                    if scope.lines is not None and lines[index] not in scope.lines:
                        continue
                    if not item.text.strip():
                        continue
                    refs.append(ItemRef(page_number, index, lines[index]))
            self._texts[scope] = self._join(refs)
        return self._texts[scope]

    def _join(self, refs: List[ItemRef]) -> ScopeText:
        parts: List[str] = []
        starts: List[int] = []
        offset = 0
        for ref in refs:
            text = self.item(ref).text
            starts.append(offset)
            parts.append(text)
            offset += len(text) + 1
        return ScopeText(" ".join(parts), refs, starts)

    def canonical(self, scope: Scope, variation: VariationType, mode: MatchMode) -> MappedText:
        key = (scope, variation, mode)
        if key not in self._canonical:
            self._canonical[key] = self._canonicalize(self.scope_text(scope), variation, mode)
        return self._canonical[key]

    def _canonicalize(self, text: ScopeText, variation: VariationType, mode: MatchMode) -> MappedText:
        mapped = canonicalize_mapped(text.text, variation, self.config.max_scan_length)
        if mode == MatchMode.COMPACT:
            mapped = compact_mapped(mapped)
        return mapped

    def needle(self, phrase: str, variation: VariationType, mode: MatchMode) -> str:
        needle = canonicalize(phrase, variation, self.config.max_phrase_length)
        if mode == MatchMode.COMPACT:
            needle = compact(needle)
        return needle

    def locate(
        self,
        scope: Scope,
        phrase: str,
        mode: MatchMode = MatchMode.SUBSTRING
    ) -> Optional[ScopeMatch]:
        """
        Find phrase in scope, trying variations strictest first.

        Returns:
            ScopeMatch for the first variation that matches, or None
        """
        text = self.scope_text(scope)
        if not text.refs:
            return None
        return self._locate(text, phrase, mode, lambda v: self.canonical(scope, v, mode))

    def locate_in_items(self, refs: Sequence[ItemRef], phrase: str) -> Optional[ScopeMatch]:
        """Find phrase inside an explicit run of items (not cached)."""
        text = self._join(list(refs))
        if not text.refs:
            return None
        return self._locate(
            text, phrase, MatchMode.SUBSTRING,
            lambda v: self._canonicalize(text, v, MatchMode.SUBSTRING)
        )

    def _locate(self, text: ScopeText, phrase: str, mode: MatchMode, canonical_for) -> Optional[ScopeMatch]:
        for variation in VARIATION_ORDER:
            needle = self.needle(phrase, variation, mode)
            if not needle:
                continue
            hay = canonical_for(variation)
            span = _find(hay.text, needle, mode)
            if span is None:
                continue
            raw_start, raw_end = hay.source_span(*span)
            refs = text.refs_between(raw_start, raw_end)
            if not refs:
                continue
            first = text.starts[text.refs.index(refs[0])]
            last = text.starts[text.refs.index(refs[-1])]
            return ScopeMatch(
                variation=variation,
                refs=refs,
                matched_text=text.text[raw_start:raw_end],
                occurrences=_count(hay.text, needle, mode),
                start_in_item=max(raw_start - first, 0),
                end_in_item=raw_end - last,
            )
        return None

    def count(self, scope: Scope, phrase: str, variation: VariationType, mode: MatchMode) -> int:
        """Occurrences of phrase in scope under one variation."""
        needle = self.needle(phrase, variation, mode)
        if not needle or not self.scope_text(scope).refs:
            return 0
        return _count(self.canonical(scope, variation, mode).text, needle, mode)
