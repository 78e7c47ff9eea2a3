"""
Shared constants for order stats.

Single source of truth for:
- Table names and order/adjustment status values
- Date range vocabulary and resolution (named range -> start/end)
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, Optional

from dateutil.relativedelta import relativedelta


# =============================================================================
# TABLES
# =============================================================================

ORDERS_TABLE = 'orders'
ORDER_ITEMS_TABLE = 'order_items'
ORDER_ADJUSTMENTS_TABLE = 'order_adjustments'
ORDER_ADDRESSES_TABLE = 'order_addresses'
CUSTOMERS_TABLE = 'customers'
DOWNLOADS_TABLE = 'downloads'


def table_name(base: str, prefix: Optional[str] = None) -> str:
    """
    Get a table name with the configured prefix.

    Args:
        base: Unprefixed table name (e.g. ORDERS_TABLE)
        prefix: Explicit prefix; defaults to Config.STATS_TABLE_PREFIX
    """
    if prefix is None:
        from config import Config
        prefix = Config.STATS_TABLE_PREFIX
    return f"{prefix}{base}"


# =============================================================================
# ORDER VALUES
# =============================================================================

ORDER_STATUS_COMPLETE = 'complete'
ORDER_STATUS_REFUNDED = 'refunded'

ADJUSTMENT_TYPE_DISCOUNT = 'discount'


# =============================================================================
# DATE RANGE SPECIFICATION - SINGLE SOURCE OF TRUTH
# =============================================================================
#
# Named ranges for report filtering. Callers pass a range ID, the stats
# engine resolves it to concrete datetimes once per instance.
#
# Usage:
#   from constants import resolve_date_range
#   bounds = resolve_date_range('this_month')  # {'start': datetime, 'end': datetime}
#

DATE_RANGE_OPTIONS = {
    'today': 'Today',
    'yesterday': 'Yesterday',
    'this_week': 'This Week',
    'last_week': 'Last Week',
    'last_30_days': 'Last 30 Days',
    'this_month': 'This Month',
    'last_month': 'Last Month',
    'this_quarter': 'This Quarter',
    'last_quarter': 'Last Quarter',
    'this_year': 'This Year',
    'last_year': 'Last Year',
    'other': 'Custom',
}

# Ranges without a fixed resolution (caller supplies start/end)
CUSTOM_DATE_RANGES = {'other'}


def start_of_day(value: date) -> datetime:
    """Midnight at the beginning of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: date) -> datetime:
    """Last microsecond of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


def _quarter_start(day: date) -> date:
    return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)


def _week_start(day: date, week_start: int) -> date:
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def _bounds(first: date, last: date) -> Dict[str, datetime]:
    return {'start': start_of_day(first), 'end': end_of_day(last)}


def resolve_date_range(
    range_id: Optional[str],
    now: Optional[datetime] = None,
    week_start: int = 0
) -> Optional[Dict[str, datetime]]:
    """
    Resolve a named range to inclusive start/end datetimes.

    Args:
        range_id: Range ID (see DATE_RANGE_OPTIONS)
        now: Reference moment (defaults to datetime.now())
        week_start: First weekday of a week (0 = Monday)

    Returns:
        {'start': datetime, 'end': datetime}, or None for unknown or custom
        ranges.

    Example:
        # From Wed 2025-02-12:
        # this_month   -> [2025-02-01 00:00, 2025-02-28 23:59:59.999999]
        # last_quarter -> [2024-10-01 00:00, 2024-12-31 23:59:59.999999]
    """
    if not range_id or range_id not in DATE_RANGE_OPTIONS or range_id in CUSTOM_DATE_RANGES:
        return None

    if now is None:
        now = datetime.now()
    today = now.date()

    if range_id == 'today':
        return _bounds(today, today)

    if range_id == 'yesterday':
        yesterday = today - timedelta(days=1)
        return _bounds(yesterday, yesterday)

    if range_id == 'this_week':
        first = _week_start(today, week_start)
        return _bounds(first, first + timedelta(days=6))

    if range_id == 'last_week':
        first = _week_start(today, week_start) - timedelta(days=7)
        return _bounds(first, first + timedelta(days=6))

    if range_id == 'last_30_days':
        return _bounds(today - timedelta(days=30), today)

    if range_id == 'this_month':
        first = today.replace(day=1)
        return _bounds(first, first + relativedelta(months=1) - timedelta(days=1))

    if range_id == 'last_month':
        first = today.replace(day=1) - relativedelta(months=1)
        return _bounds(first, first + relativedelta(months=1) - timedelta(days=1))

    if range_id == 'this_quarter':
        first = _quarter_start(today)
        return _bounds(first, first + relativedelta(months=3) - timedelta(days=1))

    if range_id == 'last_quarter':
        first = _quarter_start(today) - relativedelta(months=3)
        return _bounds(first, first + relativedelta(months=3) - timedelta(days=1))

    if range_id == 'this_year':
        return _bounds(date(today.year, 1, 1), date(today.year, 12, 31))

    # last_year
    return _bounds(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))


def resolve_date_ranges(
    now: Optional[datetime] = None,
    week_start: int = 0
) -> Dict[str, Dict[str, datetime]]:
    """Resolve every fixed range in DATE_RANGE_OPTIONS against one moment."""
    if now is None:
        now = datetime.now()
    ranges = {}
    for range_id in DATE_RANGE_OPTIONS:
        bounds = resolve_date_range(range_id, now=now, week_start=week_start)
        if bounds is not None:
            ranges[range_id] = bounds
    return ranges


def is_valid_date_range(range_id: Optional[str]) -> bool:
    """Check if a range ID is part of the vocabulary."""
    return bool(range_id) and range_id in DATE_RANGE_OPTIONS
