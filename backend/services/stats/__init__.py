"""
Order Stats Package

Aggregate reporting over orders, order items, discounts, gateways, tax
and customers:
- Immutable per-call query vars (no state leaks between calls)
- Bound SQL fragments with placeholder validation
- Optional currency formatting

Usage:
    from services.stats import OrderStats, run_metric

    stats = OrderStats({"range": "last_month", "output": "formatted"})
    stats.get_order_earnings()

    run_metric("gateway_sales", {"range": "this_year"})
"""

from services.stats.order_stats import OrderStats

from services.stats.query_vars import (
    QueryVars,
    parse_query_vars,
    OUTPUT_RAW,
    OUTPUT_FORMATTED,
)

from services.stats.formatter import (
    CurrencyFormat,
    format_currency,
    maybe_format,
)

from services.stats.results import (
    GatewaySales,
    GatewayEarnings,
    TopCustomer,
    TopProduct,
)

from services.stats.lookups import StatsLookups

from services.stats.registry import (
    run_metric,
    list_metrics,
    METRIC_ORDER,
    METRIC_REGISTRY,
    UnknownMetricError,
)

__all__ = [
    'OrderStats',
    'QueryVars',
    'parse_query_vars',
    'OUTPUT_RAW',
    'OUTPUT_FORMATTED',
    'CurrencyFormat',
    'format_currency',
    'maybe_format',
    'GatewaySales',
    'GatewayEarnings',
    'TopCustomer',
    'TopProduct',
    'StatsLookups',
    'run_metric',
    'list_metrics',
    'METRIC_ORDER',
    'METRIC_REGISTRY',
    'UnknownMetricError',
]
