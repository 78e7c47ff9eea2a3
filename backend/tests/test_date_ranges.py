"""
Unit tests for named date range resolution.

Core logic tests - fast, deterministic, catches regressions.
Reference moment: Wednesday 2025-02-12 15:30.
"""
from datetime import date, datetime, time
import pytest

from constants import (
    DATE_RANGE_OPTIONS,
    CUSTOM_DATE_RANGES,
    resolve_date_range,
    resolve_date_ranges,
    is_valid_date_range,
)

NOW = datetime(2025, 2, 12, 15, 30)


def _day_bounds(first, last):
    return {
        'start': datetime.combine(first, time.min),
        'end': datetime.combine(last, time.max),
    }


class TestResolveDateRange:
    """Test range resolution to inclusive datetime bounds."""

    @pytest.mark.parametrize("range_id, first, last", [
        ("today", date(2025, 2, 12), date(2025, 2, 12)),
        ("yesterday", date(2025, 2, 11), date(2025, 2, 11)),
        ("this_week", date(2025, 2, 10), date(2025, 2, 16)),
        ("last_week", date(2025, 2, 3), date(2025, 2, 9)),
        ("last_30_days", date(2025, 1, 13), date(2025, 2, 12)),
        ("this_month", date(2025, 2, 1), date(2025, 2, 28)),
        ("last_month", date(2025, 1, 1), date(2025, 1, 31)),
        ("this_quarter", date(2025, 1, 1), date(2025, 3, 31)),
        ("last_quarter", date(2024, 10, 1), date(2024, 12, 31)),
        ("this_year", date(2025, 1, 1), date(2025, 12, 31)),
        ("last_year", date(2024, 1, 1), date(2024, 12, 31)),
    ])
    def test_bounds(self, range_id, first, last):
        assert resolve_date_range(range_id, now=NOW) == _day_bounds(first, last)

    def test_week_starting_sunday(self):
        """week_start=6 puts Sunday first."""
        bounds = resolve_date_range("this_week", now=NOW, week_start=6)
        assert bounds == _day_bounds(date(2025, 2, 9), date(2025, 2, 15))

    def test_last_month_across_year(self):
        bounds = resolve_date_range("last_month", now=datetime(2025, 1, 20))
        assert bounds == _day_bounds(date(2024, 12, 1), date(2024, 12, 31))

    def test_leap_february(self):
        bounds = resolve_date_range("this_month", now=datetime(2024, 2, 5))
        assert bounds['end'].date() == date(2024, 2, 29)

    @pytest.mark.parametrize("range_id", [None, "", "other", "next_century"])
    def test_unresolvable(self, range_id):
        assert resolve_date_range(range_id, now=NOW) is None


class TestResolveDateRanges:
    """Test the per-instance range table."""

    def test_every_fixed_range_resolved(self):
        ranges = resolve_date_ranges(now=NOW)
        assert set(ranges) == set(DATE_RANGE_OPTIONS) - CUSTOM_DATE_RANGES

    def test_start_before_end(self):
        for bounds in resolve_date_ranges(now=NOW).values():
            assert bounds['start'] <= bounds['end']


class TestIsValidDateRange:
    def test_vocabulary(self):
        assert is_valid_date_range("this_month")
        assert is_valid_date_range("other")
        assert not is_valid_date_range("someday")
        assert not is_valid_date_range(None)
