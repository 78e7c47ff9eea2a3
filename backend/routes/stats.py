"""
Order Stats API Routes

Endpoints:
- GET /api/stats                 - Registered metric names
- GET /api/stats/ranges          - Named date ranges resolved for now
- GET /api/stats/<metric>        - One metric for the given query vars

This is a THIN route handler - all business logic is in services/stats/.
"""

import time
from dataclasses import is_dataclass, asdict
from flask import Blueprint, request, jsonify, abort
from pydantic import ValidationError as QueryVarsError

from utils.normalize import (
    ValidationError,
    to_int,
    to_str,
    coerce_to_datetime,
    validation_error_response,
)

stats_bp = Blueprint('stats', __name__)

# Filters passed through as strings
STRING_PARAMS = ('range', 'output', 'function', 'discount_code', 'gateway', 'email', 'country', 'state')

# Filters that must be integers
INT_PARAMS = ('product_id', 'number', 'user_id', 'customer')


def parse_stats_query(args) -> dict:
    """
    Parse request args into query vars.

    Raises:
        ValidationError: If a date or integer param cannot be parsed
    """
    query = {}

    for name in STRING_PARAMS:
        value = to_str(args.get(name))
        if value is not None:
            query[name] = value

    for name in INT_PARAMS:
        value = to_int(args.get(name), field=name)
        if value is not None:
            query[name] = value

    for name in ('start', 'end'):
        raw = to_str(args.get(name))
        if raw is None:
            continue
        try:
            query[name] = coerce_to_datetime(raw, end_of_day=(name == 'end'))
        except ValueError:
            raise ValidationError(
                f"Expected date (YYYY-MM-DD) or ISO datetime, got {raw!r}",
                field=name,
                received_value=raw
            )

    return query


def serialize_value(value):
    """Stats result -> JSON-safe value."""
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


@stats_bp.route("/stats", methods=["GET"])
def stats_index():
    """List registered metrics."""
    from services.stats import list_metrics

    return jsonify({"metrics": list_metrics()})


@stats_bp.route("/stats/ranges", methods=["GET"])
def stats_ranges():
    """Named date ranges resolved against the current moment."""
    from config import Config
    from constants import resolve_date_ranges

    ranges = resolve_date_ranges(week_start=Config.STATS_WEEK_START)
    return jsonify({
        "ranges": {
            range_id: {
                "start": bounds["start"].isoformat(),
                "end": bounds["end"].isoformat(),
            }
            for range_id, bounds in ranges.items()
        }
    })


@stats_bp.route("/stats/<metric>", methods=["GET"])
def get_stat(metric: str):
    """
    Run one metric.

    Query params:
        range, start, end, output, function
        product_id, number, discount_code, gateway,
        user_id, customer, email, country, state

    Returns:
        {"metric": "order_earnings", "value": 1234.5, "meta": {...}}
    """
    from services.stats import METRIC_REGISTRY, run_metric

    if metric not in METRIC_REGISTRY:
        abort(404, description=f"Unknown metric: {metric}")

    start = time.time()

    try:
        query = parse_stats_query(request.args)
    except ValidationError as e:
        return validation_error_response(e)

    try:
        value = run_metric(metric, query)
    except QueryVarsError as e:
        return validation_error_response(ValidationError(str(e), field="query"))

    elapsed = time.time() - start
    return jsonify({
        "metric": metric,
        "value": serialize_value(value),
        "meta": {
            "elapsed_ms": round(elapsed * 1000, 2),
            "query": {
                key: param.isoformat() if hasattr(param, 'isoformat') else param
                for key, param in query.items()
            },
        }
    })
