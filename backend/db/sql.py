"""
SQL execution helper with enforced best practices.

Best practices enforced:
1. Use :name param style only (SQLAlchemy bind params)
2. Pass Python date/datetime objects directly (no string dates)
3. Never use percent-paren psycopg2-specific style
4. Every :placeholder in the SQL has a matching param

Usage:
    from db.sql import run_sql_scalar

    total = run_sql_scalar(
        db,
        '''
        SELECT SUM(total)
        FROM orders
        WHERE 1=1 AND orders.date_created >= :date_start
        ''',
        date_start=datetime(2024, 1, 1)
    )
"""
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import text

logger = logging.getLogger('stats.sql')


# Regex patterns for validation
PSYCOPG2_PARAM_PATTERN = re.compile(r'%\([a-zA-Z_][a-zA-Z0-9_]*\)s')
# Matches :word but not ::cast
SQLALCHEMY_PARAM_PATTERN = re.compile(r'(?<![:\w]):([a-zA-Z_][a-zA-Z0-9_]*)')


class SQLParamStyleError(Exception):
    """Raised when SQL uses incorrect parameter style."""
    pass


class SQLDateParamError(Exception):
    """Raised when date parameters are not Python date/datetime objects."""
    pass


def validate_sql_text(sql: str) -> None:
    """
    Validate that SQL text uses correct :name param style.

    Raises SQLParamStyleError if psycopg2 percent-paren style is detected.
    """
    matches = PSYCOPG2_PARAM_PATTERN.findall(sql)
    if matches:
        raise SQLParamStyleError(
            f"SQL contains psycopg2-style params: {matches}. "
            f"Use SQLAlchemy :name style instead."
        )


def validate_params(params: Dict[str, Any]) -> None:
    """
    Validate that date parameters are Python date/datetime objects.

    Raises SQLDateParamError if date params are strings.
    """
    for key, value in params.items():
        is_date_param = key.endswith('_date') or key.startswith('date_')

        if is_date_param and value is not None:
            if isinstance(value, str):
                raise SQLDateParamError(
                    f"Date parameter '{key}' is a string ('{value}'). "
                    f"Pass a Python date or datetime object instead."
                )
            if not isinstance(value, (date, datetime)):
                raise SQLDateParamError(
                    f"Date parameter '{key}' has type {type(value).__name__}. "
                    f"Expected date or datetime."
                )


def extract_param_names(sql: str) -> List[str]:
    """Extract :name parameter names from SQL text."""
    return SQLALCHEMY_PARAM_PATTERN.findall(sql)


def validate_sql_params(sql: str, params: Dict[str, Any]) -> None:
    """
    Fail fast if SQL placeholders don't match params dict.

    Raises:
        ValueError if any placeholder missing from params
    """
    placeholders = set(extract_param_names(sql))
    param_keys = set(params.keys())

    missing = placeholders - param_keys
    if missing:
        raise ValueError(
            f"SQL placeholders missing from params: {missing}. "
            f"SQL has: {placeholders}, params has: {param_keys}"
        )

    unused = param_keys - placeholders
    if unused:
        logger.warning(f"Unused params (not in SQL): {unused}")


def _validate(sql: str, params: Dict[str, Any]) -> None:
    validate_sql_text(sql)
    validate_params(params)
    validate_sql_params(sql, params)


def _execute(db, sql: str, params: Dict[str, Any]):
    # Handle both db and db.session patterns
    session = getattr(db, 'session', db)
    logger.debug(f"Executing SQL: {' '.join(sql.split())} params={params}")
    return session.execute(text(sql), params)


def run_sql(
    db,
    sql: str,
    validate: bool = True,
    **params
) -> List[Tuple]:
    """
    Execute SQL with validation and return all rows.

    Args:
        db: SQLAlchemy database session (or object with .session.execute)
        sql: SQL text using :name param style
        validate: Whether to validate SQL and params (default True)
        **params: Named parameters to pass to the query

    Returns:
        List of result rows

    Raises:
        SQLParamStyleError: If SQL uses psycopg2 percent-paren style
        SQLDateParamError: If date params are strings instead of date objects
        ValueError: If a :placeholder has no matching param
    """
    if validate:
        _validate(sql, params)
    return _execute(db, sql, params).fetchall()


def run_sql_scalar(
    db,
    sql: str,
    validate: bool = True,
    **params
) -> Any:
    """
    Execute SQL and return a single scalar value.

    Useful for COUNT(*), SUM(), etc. Returns None for an empty result.
    """
    if validate:
        _validate(sql, params)
    row = _execute(db, sql, params).fetchone()
    return row[0] if row else None


def run_sql_one(
    db,
    sql: str,
    validate: bool = True,
    **params
) -> Optional[Tuple]:
    """
    Execute SQL and return a single row or None.
    """
    if validate:
        _validate(sql, params)
    return _execute(db, sql, params).fetchone()
