"""
Canonical text forms used to compare a claimed phrase with document text.

Each VariationType names one canonicalization. All of them lowercase the text
and collapse whitespace; the looser ones additionally fold currency, date,
numeric, punctuation or accent formatting. Document text is canonicalized as a
MappedText so that a match found in canonical space can be traced back to the
raw characters (and from there to the text items) it came from.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Union

from citation_locator.search.limits import MAX_REGEX_INPUT_LENGTH, validate_input_length
from citation_locator.types import VariationType


# Strictest first; every strategy walks this list in order
VARIATION_ORDER: List[VariationType] = list(VariationType)


@dataclass
class MappedText:
    """
    Canonical text with a back-reference to its source.

    Attributes:
        text: The canonical text
        origin: For each character of text, the index of the source
                character it was derived from
    """
    text: str
    origin: List[int]

    @classmethod
    def from_text(cls, text: str) -> "MappedText":
        return cls(text, list(range(len(text))))

    def map_chars(self, fn: Callable[[str], str]) -> "MappedText":
        """Apply a per-character transform; a character may expand or vanish."""
        outs = [fn(ch) for ch in self.text]
        if all(len(out) == 1 for out in outs):
            return MappedText("".join(outs), self.origin)

        origin: List[int] = []
        for out, src in zip(outs, self.origin):
            origin.extend([src] * len(out))
        return MappedText("".join(outs), origin)

    def sub(
        self,
        pattern: Pattern[str],
        repl: Union[str, Callable[[re.Match], str]]
    ) -> "MappedText":
        """
        re.sub that keeps the origin table in step.

        Replacement characters inherit the origins of the matched characters
        position by position; the last replacement character always maps to
        the last matched character so the replaced region keeps its extent.
        """
        if pattern.search(self.text) is None:
            return self

        chars: List[str] = []
        origin: List[int] = []
        last = 0
        for m in pattern.finditer(self.text):
            start, end = m.span()
            chars.append(self.text[last:start])
            origin.extend(self.origin[last:start])

            out = repl(m) if callable(repl) else m.expand(repl)
            span = self.origin[start:end]
            if not span:
                # Zero-width match: borrow the neighbouring origin
                if start < len(self.origin):
                    span = [self.origin[start]]
                elif self.origin:
                    span = [self.origin[-1]]
                else:
                    span = [0]
            for i in range(len(out)):
                if i == len(out) - 1:
                    origin.append(span[-1])
                else:
                    origin.append(span[min(i, len(span) - 1)])
            chars.append(out)
            last = end

        chars.append(self.text[last:])
        origin.extend(self.origin[last:])
        return MappedText("".join(chars), origin)

    def source_span(self, start: int, end: int) -> Tuple[int, int]:
        """Map a canonical [start, end) range to a source [start, end) range."""
        return self.origin[start], self.origin[end - 1] + 1


# exact

_WHITESPACE = re.compile(r"\s+")
_EDGE_SPACE = re.compile(r"^ | $")


def _collapse(m: MappedText) -> MappedText:
    m = m.sub(_WHITESPACE, " ")
    return m.sub(_EDGE_SPACE, "")


def _exact(m: MappedText) -> MappedText:
    return _collapse(m.map_chars(str.lower))


# normalized

_ZERO_WIDTH = re.compile("[\u200b\u200c\u200d\u2060\ufeff\u00ad]")
_SINGLE_QUOTES = re.compile("[\u2018\u2019\u201a\u201b\u2032`\u00b4]")
_DOUBLE_QUOTES = re.compile("[\u201c\u201d\u201e\u201f\u2033\u00ab\u00bb]")
_LINE_BREAK_HYPHEN = re.compile(r"(?<=\w)- (?=\w)")


def _nfkc(ch: str) -> str:
    return unicodedata.normalize("NFKC", ch)


def _normalized(m: MappedText) -> MappedText:
    m = m.map_chars(_nfkc)
    m = m.sub(_ZERO_WIDTH, "")
    m = m.map_chars(str.lower)
    m = m.sub(_SINGLE_QUOTES, "'")
    m = m.sub(_DOUBLE_QUOTES, '"')
    m = _collapse(m)
    # "verifi- cation" split across a line break
    return m.sub(_LINE_BREAK_HYPHEN, "")


# currency

_CURRENCY_SYMBOLS = re.compile("[$\u20ac\u00a3\u00a5\u20b9\u00a2\u20a9\u20bd\u20ba\u20aa\u0e3f]")
_CURRENCY_CODES = re.compile(r"\b(?:usd|eur|gbp|jpy|inr|cad|aud|chf|cny|nzd|hkd|sgd)\b")
_THOUSANDS_COMMA = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")
_ZERO_CENTS = re.compile(r"(?<=\d)\.00(?!\d)")


def _currency(m: MappedText) -> MappedText:
    m = _normalized(m)
    m = m.sub(_CURRENCY_SYMBOLS, " ")
    m = m.sub(_CURRENCY_CODES, " ")
    m = m.sub(_THOUSANDS_COMMA, "")
    m = m.sub(_ZERO_CENTS, "")
    return _collapse(m)


# date

_MONTH_NAMES = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_MONTHS: Dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_ISO_DATE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
_MONTH_FIRST_DATE = re.compile(
    r"\b" + _MONTH_NAMES + r"\.? (\d{1,2})(?:st|nd|rd|th)?,? (\d{4})\b"
)
_DAY_FIRST_DATE = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)? (?:of )?" + _MONTH_NAMES + r"\.?,? (\d{4})\b"
)
_SLASH_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})\b")
_DOT_DATE = re.compile(r"\b(\d{1,2})\.(\d{1,2})\.(\d{4})\b")


def _iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _expand_year(year: str) -> int:
    value = int(year)
    if len(year) == 2:
        value += 2000 if value < 70 else 1900
    return value


def _iso_date(m: re.Match) -> str:
    return _iso(int(m.group(1)), int(m.group(2)), int(m.group(3))) or m.group(0)


def _month_first_date(m: re.Match) -> str:
    month = _MONTHS[m.group(1)[:3]]
    return _iso(int(m.group(3)), month, int(m.group(2))) or m.group(0)


def _day_first_date(m: re.Match) -> str:
    month = _MONTHS[m.group(2)[:3]]
    return _iso(int(m.group(3)), month, int(m.group(1))) or m.group(0)


def _slash_date(m: re.Match) -> str:
    first, second = int(m.group(1)), int(m.group(2))
    year = _expand_year(m.group(3))
    # US order unless the first field cannot be a month
    if first > 12:
        return _iso(year, second, first) or m.group(0)
    return _iso(year, first, second) or m.group(0)


def _dot_date(m: re.Match) -> str:
    return _iso(int(m.group(3)), int(m.group(2)), int(m.group(1))) or m.group(0)


def _date(m: MappedText) -> MappedText:
    m = _normalized(m)
    m = m.sub(_ISO_DATE, _iso_date)
    m = m.sub(_MONTH_FIRST_DATE, _month_first_date)
    m = m.sub(_DAY_FIRST_DATE, _day_first_date)
    m = m.sub(_SLASH_DATE, _slash_date)
    return m.sub(_DOT_DATE, _dot_date)


# numeric

_EUROPEAN_NUMBER = re.compile(r"\b\d{1,3}(?:\.\d{3})+,\d+\b")
_GROUP_SEPARATOR = re.compile(r"(?<=\d)[,'](?=\d{3}(?!\d))")
_TRAILING_ZEROS = re.compile(r"(\d\.\d*?)0+(?!\d)")
_BARE_POINT = re.compile(r"(?<=\d)\.(?!\d)")
_PERCENT_SPACE = re.compile(r"(?<=\d) (?=%)")


def _european_number(m: re.Match) -> str:
    return m.group(0).replace(".", "").replace(",", ".")


def _numeric(m: MappedText) -> MappedText:
    m = _normalized(m)
    m = m.sub(_EUROPEAN_NUMBER, _european_number)
    m = m.sub(_GROUP_SEPARATOR, "")
    m = m.sub(_TRAILING_ZEROS, r"\1")
    m = m.sub(_BARE_POINT, "")
    return m.sub(_PERCENT_SPACE, "")


# symbol

_DASHES = re.compile("[\u2010\u2011\u2012\u2013\u2014\u2015\u2212\ufe58\ufe63\uff0d]")
_AMPERSAND = re.compile(r"\s*&\s*")


def _punctuation_to_space(ch: str) -> str:
    return " " if unicodedata.category(ch).startswith("P") else ch


def _symbol(m: MappedText) -> MappedText:
    m = _normalized(m)
    m = m.sub(_DASHES, "-")
    m = m.sub(_AMPERSAND, " and ")
    m = m.map_chars(_punctuation_to_space)
    return _collapse(m)


# accent

_LIGATURES: Dict[str, str] = {
    "ß": "ss", "æ": "ae", "œ": "oe", "ø": "o",
    "ł": "l", "đ": "d", "ð": "d", "þ": "th", "ı": "i",
}


def _fold_accent(ch: str) -> str:
    if ch in _LIGATURES:
        return _LIGATURES[ch]
    decomposed = unicodedata.normalize("NFKD", ch)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _accent(m: MappedText) -> MappedText:
    m = _normalized(m)
    return m.map_chars(_fold_accent)


_PIPELINES: Dict[VariationType, Callable[[MappedText], MappedText]] = {
    VariationType.EXACT: _exact,
    VariationType.NORMALIZED: _normalized,
    VariationType.CURRENCY: _currency,
    VariationType.DATE: _date,
    VariationType.NUMERIC: _numeric,
    VariationType.SYMBOL: _symbol,
    VariationType.ACCENT: _accent,
}

_NON_ALNUM = re.compile(r"[\W_]+")


def canonicalize_mapped(
    text: str,
    variation: VariationType,
    max_length: int = MAX_REGEX_INPUT_LENGTH
) -> MappedText:
    """
    Canonicalize text under a variation, keeping the source mapping.

    Args:
        text: Raw text (typically the joined text of a search scope)
        variation: Canonicalization class to apply
        max_length: Size ceiling checked before any regex work

    Returns:
        MappedText whose origin indexes into text

    Raises:
        InputTooLargeError: If text exceeds max_length
    """
    validate_input_length(text, max_length, what="scan text")
    return _PIPELINES[variation](MappedText.from_text(text))


def canonicalize(
    text: str,
    variation: VariationType,
    max_length: int = MAX_REGEX_INPUT_LENGTH
) -> str:
    """Canonicalize text under a variation and return only the string."""
    return canonicalize_mapped(text, variation, max_length).text


def compact_mapped(m: MappedText) -> MappedText:
    """Drop every character that is not a letter or digit."""
    return m.sub(_NON_ALNUM, "")


def compact(text: str) -> str:
    return _NON_ALNUM.sub("", text)
