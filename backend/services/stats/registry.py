"""
Stats Registry - metric name -> OrderStats method.

The route and CLI call this, not OrderStats methods directly.

Usage:
    from services.stats.registry import run_metric

    value = run_metric('order_earnings', {'range': 'this_month'})
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from services.stats.order_stats import OrderStats

logger = logging.getLogger('stats.registry')


# =============================================================================
# METRIC REGISTRY
# =============================================================================

# Explicit order - listings rely on this (stable, deterministic)
METRIC_ORDER = [
    'order_earnings',
    'order_count',
    'order_refund_count',
    'order_refund_amount',
    'refund_rate',
    'order_item_earnings',
    'order_item_count',
    'most_valuable_order_items',
    'discount_usage_count',
    'discount_savings',
    'average_discount_amount',
    'ratio_of_discounted_orders',
    'gateway_sales',
    'gateway_earnings',
    'gateway_refund_amount',
    'gateway_average_value',
    'tax',
    'tax_by_location',
    'customer_lifetime_value',
    'customer_order_count',
    'customer_age',
    'most_valuable_customers',
]

# Registry by name for lookup
METRIC_REGISTRY = {metric: f"get_{metric}" for metric in METRIC_ORDER}


class UnknownMetricError(KeyError):
    """Raised when a metric name is not registered."""

    def __init__(self, metric: str):
        super().__init__(metric)
        self.metric = metric

    def __str__(self):
        return f"Unknown metric: {self.metric}. Available: {METRIC_ORDER}"


# =============================================================================
# EXECUTION
# =============================================================================

def run_metric(
    metric: str,
    query: Optional[Mapping[str, Any]] = None,
    stats: Optional[OrderStats] = None,
) -> Any:
    """
    Run one metric.

    Args:
        metric: Registered metric name (e.g. 'order_earnings')
        query: Query vars for this run
        stats: Existing OrderStats to run on; a new one is built from query
               when omitted (query then becomes its originals)

    Raises:
        UnknownMetricError: If metric is not registered
    """
    method_name = METRIC_REGISTRY.get(metric)
    if method_name is None:
        raise UnknownMetricError(metric)

    if stats is None:
        stats = OrderStats(query)
        query = None

    logger.debug(f"Running metric {metric}")
    return getattr(stats, method_name)(query)


def list_metrics() -> List[Dict[str, str]]:
    """List metric names with the first docstring line of their method."""
    metrics = []
    for metric in METRIC_ORDER:
        doc = getattr(OrderStats, METRIC_REGISTRY[metric]).__doc__ or ''
        summary = doc.strip().splitlines()[0] if doc.strip() else ''
        metrics.append({"metric": metric, "description": summary})
    return metrics
