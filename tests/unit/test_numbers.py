"""
Unit Tests for Numeric and Time Parsing Utilities

Run with:
    pytest tests/unit/test_numbers.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.errors import FetchErrorKind, MalformedError
from core.utils import parse_decimal, parse_price, to_utc_datetime


class TestParseDecimal:

    @pytest.mark.parametrize("value, expected", [
        ("64250.10000000", Decimal("64250.10000000")),
        ("-1.248", Decimal("-1.248")),
        (42, Decimal("42")),
        (" 0.5 ", Decimal("0.5")),
    ])
    def test_valid_values(self, value, expected):
        assert parse_decimal(value, "lastPrice") == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity", True, [], {}])
    def test_invalid_values_raise(self, value):
        with pytest.raises(MalformedError) as exc_info:
            parse_decimal(value, "lastPrice", "binance", "BTCUSDT")

        assert exc_info.value.kind is FetchErrorKind.MALFORMED
        assert "lastPrice" in str(exc_info.value)
        assert str(exc_info.value).startswith("[binance BTCUSDT]")


class TestParsePrice:

    def test_positive_price(self):
        assert parse_price("0.00001234", "c[0]") == Decimal("0.00001234")

    @pytest.mark.parametrize("value", ["0", "0.00000000", "-5"])
    def test_non_positive_price_raises(self, value):
        with pytest.raises(MalformedError):
            parse_price(value, "c[0]")


class TestToUtcDatetime:

    def test_milliseconds(self):
        assert to_utc_datetime(1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_seconds(self):
        assert to_utc_datetime(1704067200) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            to_utc_datetime(-1)
