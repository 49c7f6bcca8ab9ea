"""
Test module for citation_locator.search.normalize.

Each variation is checked on the formatting differences it is meant to fold,
plus the origin mapping that lets a canonical match be traced back to raw text.
"""

import pytest

from citation_locator.search.limits import InputTooLargeError
from citation_locator.search.normalize import (
    VARIATION_ORDER,
    canonicalize,
    canonicalize_mapped,
    compact,
)
from citation_locator.types import VariationType


def both(a: str, b: str, variation: VariationType):
    return canonicalize(a, variation), canonicalize(b, variation)


class TestVariationOrder:
    def test_strictest_first(self):
        assert VARIATION_ORDER[0] == VariationType.EXACT
        assert VARIATION_ORDER[-1] == VariationType.ACCENT
        assert len(VARIATION_ORDER) == len(VariationType)


class TestExact:
    def test_lowercases_and_collapses_whitespace(self):
        assert canonicalize("  Hello   World\n", VariationType.EXACT) == "hello world"

    def test_keeps_punctuation(self):
        assert canonicalize("Hello, World!", VariationType.EXACT) == "hello, world!"


class TestNormalized:
    def test_curly_quotes_unified(self):
        text = "“quoted” and ‘single’"
        assert canonicalize(text, VariationType.NORMALIZED) == "\"quoted\" and 'single'"

    def test_zero_width_characters_removed(self):
        assert canonicalize("veri\u200bfied", VariationType.NORMALIZED) == "verified"

    def test_soft_hyphen_removed(self):
        assert canonicalize("hyphen\u00adation", VariationType.NORMALIZED) == "hyphenation"

    def test_line_break_hyphen_joined(self):
        assert canonicalize("verifi- cation", VariationType.NORMALIZED) == "verification"

    def test_nfkc_compatibility_forms(self):
        # Fullwidth digits and the fi ligature
        assert canonicalize("\uff11\uff12 \ufb01le", VariationType.NORMALIZED) == "12 file"

    def test_non_breaking_space_collapsed(self):
        assert canonicalize("net\u00a0income", VariationType.NORMALIZED) == "net income"


class TestCurrency:
    def test_symbol_and_code_forms_match(self):
        a, b = both("$1,000", "1000 USD", VariationType.CURRENCY)
        assert a == b == "1000"

    def test_zero_cents_dropped(self):
        assert canonicalize("$1,000.00", VariationType.CURRENCY) == "1000"

    def test_euro_symbol(self):
        assert canonicalize("€250", VariationType.CURRENCY) == "250"

    def test_real_cents_kept(self):
        assert canonicalize("$12.50", VariationType.CURRENCY) == "12.50"


class TestDate:
    @pytest.mark.parametrize("text", [
        "2024-03-05",
        "March 5, 2024",
        "Mar 5 2024",
        "5 March 2024",
        "5th of March, 2024",
        "03/05/2024",
        "05.03.2024",
    ])
    def test_formats_rewritten_to_iso(self, text):
        assert canonicalize(text, VariationType.DATE) == "2024-03-05"

    def test_day_first_slash_when_first_field_exceeds_twelve(self):
        assert canonicalize("25/12/2023", VariationType.DATE) == "2023-12-25"

    def test_two_digit_year(self):
        assert canonicalize("1/2/24", VariationType.DATE) == "2024-01-02"

    def test_invalid_date_left_untouched(self):
        assert canonicalize("02/30/2024", VariationType.DATE) == "02/30/2024"

    def test_surrounding_text_kept(self):
        assert canonicalize("Signed on March 5, 2024 by", VariationType.DATE) == "signed on 2024-03-05 by"


class TestNumeric:
    def test_european_number(self):
        assert canonicalize("1.234,56", VariationType.NUMERIC) == "1234.56"

    def test_thousands_separator_removed(self):
        a, b = both("1,234,567", "1234567", VariationType.NUMERIC)
        assert a == b

    def test_trailing_decimal_zeros(self):
        assert canonicalize("12.50", VariationType.NUMERIC) == "12.5"
        assert canonicalize("3.0", VariationType.NUMERIC) == "3"

    def test_interior_zero_kept(self):
        assert canonicalize("10.05", VariationType.NUMERIC) == "10.05"

    def test_space_before_percent(self):
        assert canonicalize("45 %", VariationType.NUMERIC) == "45%"


class TestSymbol:
    def test_dash_family_equivalent(self):
        a, b = both("state–of–the–art", "state-of-the-art", VariationType.SYMBOL)
        assert a == b == "state of the art"

    def test_ampersand_to_and(self):
        assert canonicalize("R&D", VariationType.SYMBOL) == "r and d"

    def test_punctuation_becomes_space(self):
        assert canonicalize("Hello, world!", VariationType.SYMBOL) == "hello world"


class TestAccent:
    def test_diacritics_folded(self):
        assert canonicalize("Café naïve", VariationType.ACCENT) == "cafe naive"

    def test_ligatures(self):
        assert canonicalize("Straße", VariationType.ACCENT) == "strasse"
        assert canonicalize("æon", VariationType.ACCENT) == "aeon"


class TestMappedText:
    def test_source_span_after_collapse(self):
        raw = "Hello   World"
        mapped = canonicalize_mapped(raw, VariationType.EXACT)
        start = mapped.text.index("world")
        s, e = mapped.source_span(start, start + len("world"))
        assert raw[s:e] == "World"

    def test_source_span_after_expansion(self):
        raw = "x Straße y"
        mapped = canonicalize_mapped(raw, VariationType.ACCENT)
        start = mapped.text.index("strasse")
        s, e = mapped.source_span(start, start + len("strasse"))
        assert raw[s:e] == "Straße"

    def test_source_span_after_date_rewrite(self):
        raw = "Signed March 5, 2024."
        mapped = canonicalize_mapped(raw, VariationType.DATE)
        start = mapped.text.index("2024-03-05")
        s, e = mapped.source_span(start, start + len("2024-03-05"))
        assert raw[s:e] == "March 5, 2024"

    def test_origin_parallel_to_text(self):
        for variation in VARIATION_ORDER:
            mapped = canonicalize_mapped("  $1,000 on 5 March 2024 \u2014 Café  ", variation)
            assert len(mapped.origin) == len(mapped.text)


class TestLimits:
    def test_too_large_raises(self):
        with pytest.raises(InputTooLargeError):
            canonicalize("a" * 11, VariationType.EXACT, max_length=10)

    def test_at_limit_ok(self):
        assert canonicalize("a" * 10, VariationType.EXACT, max_length=10) == "a" * 10


class TestCompact:
    def test_strips_non_alphanumerics(self):
        assert compact("u.s.-based firm") == "usbasedfirm"
