"""
Tests for date normalization.
"""

import logging
from datetime import date, datetime

import pytest

from tradeledger.data.dates import looks_like_date, normalize_date, parse_trade_date


class TestNormalizeDate:
    """Tests for normalize_date function."""

    def test_day_first(self):
        """Test DD-MM-YYYY is converted to ISO format."""
        assert normalize_date("15-03-2024") == "2024-03-15"

    def test_iso_unchanged(self):
        """Test an ISO date comes back unchanged."""
        assert normalize_date("2024-03-15") == "2024-03-15"

    def test_garbage_returns_none(self):
        """Test unparseable text yields None instead of raising."""
        assert normalize_date("abc") is None

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_values(self, value):
        """Test missing values yield None."""
        assert normalize_date(value) is None

    def test_slash_separator(self):
        """Test slashes are accepted like dashes."""
        assert normalize_date("15/03/2024") == "2024-03-15"

    def test_single_digit_parts(self):
        """Test single-digit day and month are zero padded."""
        assert normalize_date("5-3-2024") == "2024-03-05"

    def test_ambiguous_prefers_day_first(self):
        """Test 03-04-2024 resolves to 3 April, not 4 March."""
        assert normalize_date("03-04-2024") == "2024-04-03"

    def test_month_first_when_day_first_impossible(self):
        """Test 12/31/2024 falls through to MM-DD-YYYY."""
        assert normalize_date("12/31/2024") == "2024-12-31"

    def test_time_component_dropped(self):
        """Test timestamps lose their time of day."""
        assert normalize_date("2024-03-15 09:15:32") == "2024-03-15"
        assert normalize_date("2024-03-15T09:15:32") == "2024-03-15"
        assert normalize_date("15-03-2024 14:05") == "2024-03-15"

    def test_named_month(self):
        """Test named-month layouts are handled by the fallback."""
        assert normalize_date("15 Mar 2024") == "2024-03-15"
        assert normalize_date("Sep 3, 2025") == "2025-09-03"
        assert normalize_date("15-Mar-2024") == "2024-03-15"

    def test_year_out_of_range(self):
        """Test years outside 2000-2100 are rejected."""
        assert normalize_date("15-03-1999") is None

    def test_impossible_calendar_date(self):
        """Test 31 February is not accepted under any layout."""
        assert normalize_date("31-02-2024") is None

    def test_date_objects(self):
        """Test date and datetime objects are accepted."""
        assert normalize_date(date(2024, 3, 15)) == "2024-03-15"
        assert normalize_date(datetime(2024, 3, 15, 9, 15)) == "2024-03-15"

    def test_year_first_with_slashes(self):
        """Test YYYY/MM/DD is read as year first."""
        assert normalize_date("2024/03/15") == "2024-03-15"


class TestParseTradeDate:
    """Tests for parse_trade_date function."""

    def test_returns_date(self):
        """Test a date object is returned."""
        assert parse_trade_date("15-03-2024") == date(2024, 3, 15)

    def test_returns_none_for_invalid(self):
        """Test invalid input returns None."""
        assert parse_trade_date("not a date") is None


class TestLooksLikeDate:
    """Tests for looks_like_date function."""

    def test_matches_normalize_date(self):
        assert looks_like_date("15-03-2024")
        assert looks_like_date("15 Mar 2024")
        assert not looks_like_date("INFY")
        assert not looks_like_date("")
        assert not looks_like_date(None)

    def test_logs_nothing(self, caplog):
        with caplog.at_level(logging.WARNING):
            looks_like_date("not a date")

        assert caplog.records == []

    def test_normalize_date_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            normalize_date("not a date")

        assert "Could not parse date" in caplog.text
