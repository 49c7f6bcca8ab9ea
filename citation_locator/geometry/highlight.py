from dataclasses import dataclass
from typing import Optional

from citation_locator.search.limits import MAX_REGEX_INPUT_LENGTH, safe_split
from citation_locator.types import TextItem

# Extra words the full phrase needs over the anchor before the anchor gets its own box
MIN_WORD_DIFFERENCE = 2


def word_count(text: str) -> int:
    """
    Count whitespace-delimited words.

    Raises:
        InputTooLargeError: If text is longer than MAX_REGEX_INPUT_LENGTH
    """
    trimmed = text.strip()
    if not trimmed:
        return 0
    return len(safe_split(trimmed, r"\s+", max_length=MAX_REGEX_INPUT_LENGTH))


def should_highlight_anchor_text(anchor_text: Optional[str], full_phrase: Optional[str]) -> bool:
    """
    Decide whether the anchor deserves a highlight inside the phrase highlight.

    The phrase must have at least MIN_WORD_DIFFERENCE more words than the
    anchor, except that a one-word anchor only needs one extra word.

    Examples:
        1 word in 3 words  -> True
        1 word in 2 words  -> True
        2 words in 3 words -> False
        2 words in 4 words -> True
    """
    if not anchor_text or not full_phrase:
        return False

    anchor_words = word_count(anchor_text)
    phrase_words = word_count(full_phrase)
    if anchor_words == 0 or phrase_words == 0:
        return False
    if anchor_words >= phrase_words:
        return False

    difference = phrase_words - anchor_words
    if anchor_words == 1 and difference >= 1:
        return True
    return difference >= MIN_WORD_DIFFERENCE


@dataclass
class AnchorHighlight:
    show: bool
    item: Optional[TextItem]


def compute_anchor_highlight(
    phrase_item: Optional[TextItem],
    anchor_item: Optional[TextItem],
    anchor_text: Optional[str],
    full_phrase: Optional[str]
) -> AnchorHighlight:
    """
    Combine the box check and the word policy.

    The anchor box is shown only when its text differs from the phrase box
    text (case-insensitively) and should_highlight_anchor_text agrees.
    """
    phrase_text = phrase_item.text if phrase_item is not None else ""
    anchor_box_text = anchor_item.text if anchor_item is not None else ""
    distinct = bool(
        anchor_box_text and phrase_text
        and anchor_box_text.lower() != phrase_text.lower()
    )
    show = distinct and should_highlight_anchor_text(anchor_text, full_phrase)
    return AnchorHighlight(show=show, item=anchor_item)
