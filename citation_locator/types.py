from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VariationType(str, Enum):
    """Canonicalization class that allowed a match, strictest first."""
    EXACT = "exact"
    NORMALIZED = "normalized"
    CURRENCY = "currency"
    DATE = "date"
    NUMERIC = "numeric"
    SYMBOL = "symbol"
    ACCENT = "accent"


class SearchMethod(str, Enum):
    """Search strategies, declared in chain (priority) order."""
    EXACT_LINE_MATCH = "exact_line_match"
    LINE_WITH_BUFFER = "line_with_buffer"
    EXPANDED_LINE_BUFFER = "expanded_line_buffer"
    CURRENT_PAGE = "current_page"
    ANCHOR_TEXT_FALLBACK = "anchor_text_fallback"
    ADJACENT_PAGES = "adjacent_pages"
    EXPANDED_WINDOW = "expanded_window"
    REGEX_SEARCH = "regex_search"
    FIRST_WORD_FALLBACK = "first_word_fallback"
    LONGEST_WORD_FALLBACK = "longest_word_fallback"
    FIRST_HALF_FALLBACK = "first_half_fallback"
    LAST_HALF_FALLBACK = "last_half_fallback"
    FIRST_QUARTER_FALLBACK = "first_quarter_fallback"
    SECOND_QUARTER_FALLBACK = "second_quarter_fallback"
    THIRD_QUARTER_FALLBACK = "third_quarter_fallback"
    FOURTH_QUARTER_FALLBACK = "fourth_quarter_fallback"
    CUSTOM_PHRASE_FALLBACK = "custom_phrase_fallback"
    KEYSPAN_FALLBACK = "keyspan_fallback"


class SearchScope(str, Enum):
    LINE = "line"
    PAGE = "page"
    DOCUMENT = "document"


class PhraseType(str, Enum):
    FULL_PHRASE = "full_phrase"
    ANCHOR_TEXT = "anchor_text"
    FRAGMENT = "fragment"


class SearchStatus(str, Enum):
    FOUND = "found"
    FOUND_ANCHOR_TEXT_ONLY = "found_anchor_text_only"
    FOUND_PHRASE_MISSED_ANCHOR_TEXT = "found_phrase_missed_anchor_text"
    FOUND_ON_OTHER_PAGE = "found_on_other_page"
    FOUND_ON_OTHER_LINE = "found_on_other_line"
    PARTIAL_TEXT_FOUND = "partial_text_found"
    FIRST_WORD_FOUND = "first_word_found"
    NOT_FOUND = "not_found"
    PENDING = "pending"
    LOADING = "loading"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Source layout (input)

class TextItem(BaseModel):
    """
    One laid-out text fragment of a source page.

    Coordinates are document units with a bottom-up y axis: ``y`` is the top
    edge of the box measured upward from the bottom of the page, and the box
    extends downward by ``height``.
    """
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float
    text: str = ""


class SourcePage(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    width: Optional[float] = None
    height: Optional[float] = None
    items: Tuple[TextItem, ...] = ()


class SourceLayout(BaseModel):
    model_config = ConfigDict(frozen=True)

    pages: Tuple[SourcePage, ...] = ()

    def page(self, page_number: int) -> Optional[SourcePage]:
        for page in self.pages:
            if page.page_number == page_number:
                return page
        return None

    @property
    def page_numbers(self) -> List[int]:
        return [page.page_number for page in self.pages]


class Claim(BaseModel):
    """The phrase an AI response says it quoted, and where it says it is."""
    model_config = ConfigDict(frozen=True)

    expected_phrase: str
    anchor_text: Optional[str] = None
    expected_page: Optional[int] = None
    expected_lines: Tuple[int, ...] = ()
    custom_phrase: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_single_line(cls, data):
        if isinstance(data, dict) and "expected_line" in data:
            data = dict(data)
            line = data.pop("expected_line")
            if line is not None and not data.get("expected_lines"):
                data["expected_lines"] = (line,)
        return data


# Attempt trail and verdict (output)

class FoundLocation(BaseModel):
    """First matched line, plus every line the match touched on its page."""
    model_config = ConfigDict(frozen=True)

    page: int
    line: Optional[int] = None
    lines: Tuple[int, ...] = ()


class SearchAttempt(BaseModel):
    """Outcome of one strategy. Never mutated once appended to the trail."""
    model_config = ConfigDict(frozen=True)

    method: SearchMethod
    search_phrase: str
    search_phrase_type: PhraseType = PhraseType.FULL_PHRASE
    search_scope: SearchScope
    success: bool
    page_searched: Optional[int] = None
    pages_searched: Tuple[int, ...] = ()
    line_searched: Tuple[int, ...] = ()
    matched_variation: Optional[VariationType] = None
    matched_text: Optional[str] = None
    found_location: Optional[FoundLocation] = None
    occurrences_found: Optional[int] = None
    note: Optional[str] = None


class AmbiguityInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_occurrences: int
    occurrences_on_expected_page: int
    confidence: Confidence
    note: str


class DocumentMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    verified_page: int
    verified_lines: Tuple[int, ...] = ()
    total_lines_on_page: int = 0
    phrase_match_item: TextItem
    anchor_match_item: Optional[TextItem] = None


class Verification(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SearchStatus
    search_attempts: Tuple[SearchAttempt, ...] = ()
    ambiguity: Optional[AmbiguityInfo] = None
    document: Optional[DocumentMatch] = None
    verified_full_phrase: Optional[str] = None
    verified_anchor_text: Optional[str] = None
    verified_match_snippet: Optional[str] = None


# Geometry

class RenderScale(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class EvidenceRect(BaseModel):
    """Highlight box in percent of the rendered image, each value in [0, 100]."""
    model_config = ConfigDict(frozen=True)

    left: float
    top: float
    width: float
    height: float

    def to_css(self) -> Dict[str, str]:
        return {
            "left": f"{self.left}%",
            "top": f"{self.top}%",
            "width": f"{self.width}%",
            "height": f"{self.height}%",
        }


class ScrollTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    scroll_left: float
    scroll_top: float


class OriginPercent(BaseModel):
    model_config = ConfigDict(frozen=True)

    x_percent: float
    y_percent: float


# CLI report

class EvidenceOverlay(BaseModel):
    page: int
    image_width: int
    image_height: int
    phrase_rect: Optional[EvidenceRect]
    anchor_rect: Optional[EvidenceRect]
    origin: Optional[OriginPercent]
    image_path: Optional[str]


class ClaimResult(BaseModel):
    claim: Claim
    verification: Verification
    evidence: Optional[EvidenceOverlay]


class VerificationReport(BaseModel):
    run_id: str
    inputs: Dict[str, str]
    results: List[ClaimResult]
