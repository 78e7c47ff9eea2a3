"""
Query Vars - the parameter set that drives one stats calculation.

QueryVars is frozen: a calculation never edits shared state. Each call
builds its own value from the constructor originals plus per-call
overrides, so nothing has to be reset afterwards.

Usage:
    from services.stats.query_vars import parse_query_vars

    originals = parse_query_vars({'range': 'this_month'}, date_ranges=ranges)
    per_call = parse_query_vars({'output': 'formatted'}, base=originals,
                                date_ranges=ranges)
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from constants import is_valid_date_range
from utils.normalize import coerce_to_datetime

logger = logging.getLogger('stats')

OUTPUT_RAW = 'raw'
OUTPUT_FORMATTED = 'formatted'
OUTPUT_FORMATS = (OUTPUT_RAW, OUTPUT_FORMATTED)

DEFAULT_FUNCTION = 'SUM'

# Table and column names are interpolated into SQL, never bound
IDENTIFIER_PATTERN = re.compile(r'^[a-z_][a-z0-9_]*$')


def _absint(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return abs(int(float(value)))
    except OverflowError:
        raise ValueError(f"Expected a finite number, got {value!r}")


class QueryVars(BaseModel):
    """
    Every option a calculation understands, with its default.

    - start/end: inclusive bounds; a plain date becomes the beginning
      (start) or end (end) of that day
    - range: named range; when known it replaces start/end
    - where_sql/where_params: reserved for internal use, an extra
      "AND ..." fragment written with :name bind params
    - date_query_*: generated from start/end for the target table
    - function/output: aggregate operator and output format
    - the rest are per-calculation filters
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra='ignore',
    )

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    range: str = ''
    where_sql: str = ''
    where_params: Dict[str, Any] = Field(default_factory=dict)
    date_query_sql: str = ''
    date_query_params: Dict[str, Any] = Field(default_factory=dict)
    date_query_column: str = ''
    column: str = ''
    table: str = ''
    function: str = DEFAULT_FUNCTION
    output: str = OUTPUT_RAW

    # Calculation filters
    product_id: Optional[int] = None
    number: Optional[int] = None
    discount_code: Optional[str] = None
    gateway: Optional[str] = None
    user_id: Optional[int] = None
    customer: Optional[int] = None
    email: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None

    @field_validator('start', mode='before')
    @classmethod
    def coerce_start(cls, v):
        return coerce_to_datetime(v)

    @field_validator('end', mode='before')
    @classmethod
    def coerce_end(cls, v):
        return coerce_to_datetime(v, end_of_day=True)

    @field_validator('range', 'where_sql', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return '' if v is None else v

    @field_validator('function', mode='before')
    @classmethod
    def upper_function(cls, v):
        if not v:
            return DEFAULT_FUNCTION
        return str(v).strip().upper()

    @field_validator('column', 'table', 'date_query_column', mode='before')
    @classmethod
    def lower_identifier(cls, v):
        if not v:
            return ''
        v = str(v).strip().lower()
        if not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"Invalid SQL identifier: {v!r}")
        return v

    @field_validator('output', mode='before')
    @classmethod
    def known_output(cls, v):
        v = str(v or '').strip().lower()
        return v if v in OUTPUT_FORMATS else OUTPUT_RAW

    @field_validator('product_id', 'number', 'user_id', 'customer', mode='before')
    @classmethod
    def absint(cls, v):
        return _absint(v)

    @field_validator('discount_code', 'gateway', 'email', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator('country', 'state', mode='before')
    @classmethod
    def upper_code(cls, v):
        if v is None:
            return None
        v = str(v).strip().upper()
        return v or None

    @property
    def is_formatted(self) -> bool:
        return self.output == OUTPUT_FORMATTED


def parse_query_vars(
    query: Optional[Union[Mapping[str, Any], QueryVars]] = None,
    *,
    base: Optional[QueryVars] = None,
    date_ranges: Optional[Mapping[str, Mapping[str, datetime]]] = None
) -> QueryVars:
    """
    Merge a query mapping over base vars (or over the defaults).

    Keys in query win over base. A known range replaces start/end with the
    resolved bounds; an unknown range leaves them as they are.

    Args:
        query: Overrides (mapping or QueryVars)
        base: Vars to merge onto; defaults when None
        date_ranges: Resolved named ranges {range_id: {start, end}}

    Returns:
        A new QueryVars
    """
    if isinstance(query, QueryVars):
        query = query.model_dump(exclude_unset=True)

    data: Dict[str, Any] = base.model_dump() if base is not None else {}
    data.update(query or {})
    query_vars = QueryVars.model_validate(data)

    if query_vars.range:
        bounds = (date_ranges or {}).get(query_vars.range)
        if bounds:
            query_vars = query_vars.model_copy(update={
                'start': bounds['start'],
                'end': bounds['end'],
            })
        elif not is_valid_date_range(query_vars.range):
            logger.warning(f"Unknown date range {query_vars.range!r}; using start/end as given")

    return query_vars
