"""
Unit tests for the stats SQL fragment builder.

Fragments are (sql, params) pairs with :name bind params only.
"""
from datetime import datetime
import pytest

from db.sql import extract_param_names
from services.stats.query_vars import parse_query_vars
from services.stats.sql_builder import (
    AMOUNT_FUNCTIONS,
    COUNT_FUNCTIONS,
    GATEWAY_FUNCTIONS,
    LIFETIME_VALUE_FUNCTIONS,
    EMPTY_FRAGMENT,
    select_function,
    build_date_query,
    with_date_query,
    equals_filter,
    where_fragment,
    combine,
    build_where,
)

START = datetime(2024, 1, 1)
END = datetime(2024, 1, 31, 23, 59, 59)


class TestSelectFunction:
    """Aggregate operator allow-lists."""

    @pytest.mark.parametrize("requested, accepted, default, expected", [
        ("AVG", AMOUNT_FUNCTIONS, "SUM", "AVG"),
        ("max", AMOUNT_FUNCTIONS, "SUM", "MAX"),
        ("COUNT", AMOUNT_FUNCTIONS, "SUM", "SUM"),
        ("SUM", COUNT_FUNCTIONS, "COUNT", "COUNT"),
        ("AVG", COUNT_FUNCTIONS, "COUNT", "AVG"),
        ("SUM", GATEWAY_FUNCTIONS, "COUNT", "SUM"),
        ("MIN", GATEWAY_FUNCTIONS, "COUNT", "COUNT"),
        ("MAX", LIFETIME_VALUE_FUNCTIONS, "SUM", "SUM"),
        (None, AMOUNT_FUNCTIONS, "SUM", "SUM"),
        ("DROP", AMOUNT_FUNCTIONS, "SUM", "SUM"),
    ])
    def test_allow_list(self, requested, accepted, default, expected):
        assert select_function(requested, accepted, default) == expected


class TestBuildDateQuery:
    """Date bound fragment for table.column."""

    def test_neither_bound(self):
        assert build_date_query('orders', 'date_created') == EMPTY_FRAGMENT

    def test_start_only(self):
        sql, params = build_date_query('orders', 'date_created', start=START)
        assert sql == "AND orders.date_created >= :date_start"
        assert params == {'date_start': START}

    def test_end_only(self):
        sql, params = build_date_query('orders', 'date_created', end=END)
        assert sql == "AND orders.date_created <= :date_end"
        assert params == {'date_end': END}

    def test_both_bounds(self):
        sql, params = build_date_query('order_items', 'date_created', START, END)
        assert sql == (
            "AND order_items.date_created >= :date_start "
            "AND order_items.date_created <= :date_end"
        )
        assert params == {'date_start': START, 'date_end': END}

    def test_with_date_query_uses_target_table(self):
        v = parse_query_vars({
            'table': 'customers',
            'date_query_column': 'date_created',
            'start': START,
        })
        v = with_date_query(v)

        assert v.date_query_sql == "AND customers.date_created >= :date_start"
        assert v.date_query_params == {'date_start': START}


class TestFilters:
    """Equality filters and fragment combination."""

    def test_equals_filter(self):
        assert equals_filter('status', 'order_status', 'refunded') == (
            "AND status = :order_status", {'order_status': 'refunded'}
        )

    def test_equals_filter_none_is_no_filter(self):
        assert equals_filter('gateway', 'gateway', None) == EMPTY_FRAGMENT

    def test_equals_filter_zero_still_filters(self):
        sql, params = equals_filter('product_id', 'product_id', 0)
        assert params == {'product_id': 0}

    def test_where_fragment_copies_params(self):
        v = parse_query_vars({'where_sql': 'AND total > :min_total', 'where_params': {'min_total': 5}})
        sql, params = where_fragment(v)
        params['min_total'] = 99

        assert sql == 'AND total > :min_total'
        assert v.where_params == {'min_total': 5}

    def test_combine_skips_empty(self):
        sql, params = combine(
            EMPTY_FRAGMENT,
            equals_filter('gateway', 'gateway', 'stripe'),
            ('', {}),
        )
        assert sql == "AND gateway = :gateway"
        assert params == {'gateway': 'stripe'}

    def test_combine_same_value_allowed(self):
        sql, params = combine(
            build_date_query('orders', 'date_created', START),
            build_date_query('orders', 'date_created', START),
        )
        assert params == {'date_start': START}

    def test_combine_conflict_raises(self):
        with pytest.raises(ValueError):
            combine(
                equals_filter('gateway', 'gateway', 'stripe'),
                equals_filter('gateway', 'gateway', 'paypal'),
            )

    def test_build_where_empty(self):
        assert build_where() == ("WHERE 1=1", {})

    def test_build_where_placeholders_match_params(self):
        where, params = build_where(
            equals_filter('status', 'order_status', 'refunded'),
            build_date_query('orders', 'date_created', START, END),
        )
        assert where.startswith("WHERE 1=1 AND status = :order_status")
        assert set(extract_param_names(where)) == set(params)
