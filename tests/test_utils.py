"""Tests for text normalization and parsing helpers."""

import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cross_arbitrage.utils import (
    format_profit, format_risk, normalize_text, parse_datetime, safe_float, tokenize
)


class TestNormalizeText:

    def test_lowercases_and_replaces_punctuation_with_spaces(self):
        assert normalize_text("Will Bitcoin reach $100,000?") == "will bitcoin reach 100 000"

    def test_collapses_whitespace_and_trims(self):
        assert normalize_text("  Fed   rate\t cut \n") == "fed rate cut"

    def test_empty_and_missing_input(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""
        assert normalize_text(42) == ""

    @pytest.mark.parametrize("text", [
        "Will Trump win the 2024 election?",
        "U.S. GDP > 3%  in Q4!!",
        "   ",
        "Ünïcödé — dashes / slashes",
    ])
    def test_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once


class TestTokenize:

    def test_drops_short_words(self):
        assert tokenize("Will the Fed cut by 25 bps in Q1?") == {"will", "the", "fed", "cut", "bps"}

    def test_empty(self):
        assert tokenize(None) == set()


class TestSafeFloat:

    def test_parses_numbers_and_strings(self):
        assert safe_float("1.5") == 1.5
        assert safe_float(3) == 3.0

    def test_defaults(self):
        assert safe_float(None) == 0.0
        assert safe_float("abc") == 0.0
        assert safe_float(float("nan"), default=-1.0) == -1.0
        assert safe_float(True, default=0.5) == 0.5


class TestParseDatetime:

    def test_iso_with_z_suffix(self):
        assert parse_datetime("2024-11-05T00:00:00Z") == datetime(2024, 11, 5, tzinfo=timezone.utc)

    def test_date_only_is_midnight_utc(self):
        assert parse_datetime("2024-11-05") == datetime(2024, 11, 5, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        assert parse_datetime("2024-11-05T02:00:00+02:00") == datetime(2024, 11, 5, tzinfo=timezone.utc)

    def test_epoch_seconds(self):
        assert parse_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_naive_datetime_becomes_utc(self):
        parsed = parse_datetime(datetime(2025, 1, 1, 12, 0))
        assert parsed.tzinfo is not None
        assert parsed == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_unparseable_gives_none(self):
        assert parse_datetime("next tuesday") is None
        assert parse_datetime("") is None
        assert parse_datetime(None) is None
        assert parse_datetime(["2024"]) is None


def test_formatting():
    assert format_profit(0.05) == "5.00%"
    assert format_profit(0.1234) == "12.34%"
    assert format_risk(0.3) == "30.0%"
    assert format_risk(0.655) == "65.5%"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
