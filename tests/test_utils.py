"""Tests for shared utility functions."""

from datetime import datetime, timezone

from src.utils import normalize_phone, parse_instant, parse_party_size, seats_from_cell, to_local
from tests.conftest import PARIS


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("06 12 34 56 78") == "0612345678"

    def test_strips_dashes(self):
        assert normalize_phone("06-12-34-56-78") == "0612345678"

    def test_strips_dots_and_parentheses(self):
        assert normalize_phone("(06) 12.34.56.78") == "0612345678"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+33 6 12 34 56 78") == "+33612345678"

    def test_strips_whitespace(self):
        assert normalize_phone("  0612345678  ") == "0612345678"


class TestParsePartySize:
    def test_int(self):
        assert parse_party_size(4) == 4

    def test_numeric_string(self):
        assert parse_party_size(" 6 ") == 6

    def test_whole_float(self):
        assert parse_party_size(3.0) == 3

    def test_fractional_float_rejected(self):
        assert parse_party_size(2.5) is None

    def test_zero_and_negative_rejected(self):
        assert parse_party_size(0) is None
        assert parse_party_size(-2) is None
        assert parse_party_size("0") is None

    def test_non_numeric_rejected(self):
        assert parse_party_size("four") is None
        assert parse_party_size("") is None
        assert parse_party_size(None) is None

    def test_superscript_digit_rejected(self):
        assert parse_party_size("²") is None

    def test_bool_rejected(self):
        assert parse_party_size(True) is None


class TestSeatsFromCell:
    def test_number(self):
        assert seats_from_cell("5") == 5

    def test_garbage_counts_as_zero(self):
        assert seats_from_cell("abc") == 0
        assert seats_from_cell("") == 0
        assert seats_from_cell(None) == 0

    def test_negative_counts_as_zero(self):
        assert seats_from_cell("-3") == 0


class TestInstants:
    def test_naive_is_taken_as_local(self):
        local = to_local(datetime(2025, 6, 11, 12, 30), PARIS)
        assert local.hour == 12
        assert local.utcoffset().total_seconds() == 7200

    def test_aware_is_converted(self):
        local = to_local(datetime(2025, 6, 11, 10, 30, tzinfo=timezone.utc), PARIS)
        assert (local.hour, local.minute) == (12, 30)

    def test_parse_zulu_suffix(self):
        parsed = parse_instant("2025-06-11T17:30:00Z", PARIS)
        assert parsed.hour == 19

    def test_parse_with_offset(self):
        parsed = parse_instant("2025-06-11T19:30:00+02:00", PARIS)
        assert parsed.hour == 19

    def test_parse_winter_offset(self):
        parsed = parse_instant("2025-01-15T11:00:00Z", PARIS)
        assert parsed.hour == 12

    def test_parse_garbage_returns_none(self):
        assert parse_instant("next tuesday", PARIS) is None
        assert parse_instant("", PARIS) is None
        assert parse_instant(None, PARIS) is None
