"""
SQL fragment builder for stats queries.

Every fragment is a (sql, params) pair: sql uses :name bind params only,
params holds their values. Fragments start with "AND " so they can be
appended to a base "WHERE 1=1".

Usage:
    from services.stats.sql_builder import build_where, equals_filter

    where, params = build_where(
        equals_filter('gateway', 'gateway', 'stripe'),
        (vars.date_query_sql, vars.date_query_params),
    )
    sql = f"SELECT COUNT(id) FROM orders {where}"
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from services.stats.query_vars import QueryVars

Fragment = Tuple[str, Dict[str, Any]]

EMPTY_FRAGMENT: Fragment = ('', {})

# =============================================================================
# AGGREGATE FUNCTIONS
# =============================================================================

AMOUNT_FUNCTIONS = ('SUM', 'AVG', 'MIN', 'MAX')
COUNT_FUNCTIONS = ('COUNT', 'AVG')
GATEWAY_FUNCTIONS = ('COUNT', 'AVG', 'SUM')
LIFETIME_VALUE_FUNCTIONS = ('AVG', 'SUM')


def select_function(requested: Optional[str], accepted: Iterable[str], default: str) -> str:
    """
    Pick the aggregate operator for a calculation.

    Returns the upper-cased request when it is in the accepted list,
    otherwise the calculation's default.
    """
    accepted = tuple(accepted)
    if requested and requested.upper() in accepted:
        return requested.upper()
    return default


# =============================================================================
# DATE QUERY
# =============================================================================

def build_date_query(
    table: str,
    column: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> Fragment:
    """
    Build the date bound fragment for table.column.

    - neither bound: no fragment
    - start only:    AND t.c >= :date_start
    - end only:      AND t.c <= :date_end
    - both:          AND t.c >= :date_start AND t.c <= :date_end
    """
    if not start and not end:
        return EMPTY_FRAGMENT

    target = f"{table}.{column}"
    bounds = []
    params: Dict[str, Any] = {}

    if start:
        bounds.append(f"{target} >= :date_start")
        params['date_start'] = start
    if end:
        bounds.append(f"{target} <= :date_end")
        params['date_end'] = end

    return "AND " + " AND ".join(bounds), params


def with_date_query(query_vars: QueryVars) -> QueryVars:
    """Return query_vars with date_query_sql/params generated for its table."""
    sql, params = build_date_query(
        query_vars.table,
        query_vars.date_query_column,
        query_vars.start,
        query_vars.end,
    )
    return query_vars.model_copy(update={
        'date_query_sql': sql,
        'date_query_params': params,
    })


# =============================================================================
# FILTERS
# =============================================================================

def equals_filter(column: str, param: str, value: Any) -> Fragment:
    """
    Equality filter as a bound fragment; no fragment when value is None.

    Example:
        equals_filter('status', 'order_status', 'refunded')
        -> ("AND status = :order_status", {'order_status': 'refunded'})
    """
    if value is None:
        return EMPTY_FRAGMENT
    return f"AND {column} = :{param}", {param: value}


def where_fragment(query_vars: QueryVars) -> Fragment:
    """The reserved where_sql fragment of query_vars."""
    return query_vars.where_sql, dict(query_vars.where_params)


def date_fragment(query_vars: QueryVars) -> Fragment:
    """The generated date fragment of query_vars."""
    return query_vars.date_query_sql, dict(query_vars.date_query_params)


def combine(*fragments: Fragment) -> Fragment:
    """
    Join fragments into one "AND ..." string with merged params.

    Raises:
        ValueError: If two fragments bind the same name to different values
    """
    parts = []
    params: Dict[str, Any] = {}
    for sql, fragment_params in fragments:
        if not sql:
            continue
        parts.append(sql.strip())
        for key, value in fragment_params.items():
            if key in params and params[key] != value:
                raise ValueError(f"Conflicting values for bind param :{key}")
            params[key] = value
    return " ".join(parts), params


def build_where(*fragments: Fragment) -> Fragment:
    """Build "WHERE 1=1 ..." from fragments."""
    sql, params = combine(*fragments)
    if sql:
        return f"WHERE 1=1 {sql}", params
    return "WHERE 1=1", params
