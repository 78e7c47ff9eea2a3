"""
Order Stats - aggregate calculations over orders, order items, order
adjustments and customers.

One OrderStats instance serves one reporting request. Constructor query
vars are the defaults for every calculation; each method takes an optional
mapping of overrides that applies to that call only.

Usage:
    from services.stats import OrderStats

    stats = OrderStats({'range': 'this_month', 'output': 'formatted'})
    stats.get_order_earnings()                        # '$12,345.00'
    stats.get_order_count()                           # 321
    stats.get_order_count({'range': 'last_month'})    # override for this call
    stats.get_gateway_earnings()                      # [GatewayEarnings, ...]

Every calculation:
    1. Targets its table/column/date column
    2. Merges per-call overrides onto the originals (override wins)
    3. Builds the date fragment and table-specific SQL
    4. Executes through db.sql (scalar or rows)
    5. Normalizes (null -> 0 / 0.00, casts, rounding)
    6. Formats when output == 'formatted'

The originals are never modified, so no filter leaks into the next call.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from constants import (
    ORDERS_TABLE,
    ORDER_ITEMS_TABLE,
    ORDER_ADJUSTMENTS_TABLE,
    ORDER_ADDRESSES_TABLE,
    CUSTOMERS_TABLE,
    ORDER_STATUS_REFUNDED,
    ADJUSTMENT_TYPE_DISCOUNT,
    resolve_date_ranges,
    table_name,
)
from db.sql import run_sql, run_sql_one, run_sql_scalar
from services.stats.formatter import CurrencyFormat, maybe_format
from services.stats.locations import resolve_country, resolve_subdivision
from services.stats.lookups import StatsLookups
from services.stats.query_vars import QueryVars, parse_query_vars
from services.stats.results import (
    GatewayEarnings,
    GatewaySales,
    TopCustomer,
    TopProduct,
)
from services.stats.sql_builder import (
    AMOUNT_FUNCTIONS,
    COUNT_FUNCTIONS,
    GATEWAY_FUNCTIONS,
    LIFETIME_VALUE_FUNCTIONS,
    Fragment,
    build_where,
    date_fragment,
    equals_filter,
    select_function,
    where_fragment,
    with_date_query,
)

logger = logging.getLogger('stats')

Query = Optional[Mapping[str, Any]]


def _absint(value: Any) -> int:
    return abs(int(float(value)))


class OrderStats:
    """
    Order statistics calculator.

    Args:
        query: Constructor query vars (see QueryVars for every option)
        session: SQLAlchemy session or Flask-SQLAlchemy db (defaults to models.database.db)
        now: Reference moment for named date ranges (defaults to datetime.now())
        lookups: Customer/download resolvers for "most valuable" results
        currency_format: Display settings for formatted output (defaults to Config)
        gateways: Registered payment gateways (defaults to Config)
        week_start: First weekday for week ranges (defaults to Config)
        table_prefix: Table name prefix (defaults to Config)
        shop_country/shop_state: Store location for tax by location (defaults to Config)
    """

    def __init__(
        self,
        query: Query = None,
        *,
        session=None,
        now: Optional[datetime] = None,
        lookups: Optional[StatsLookups] = None,
        currency_format: Optional[CurrencyFormat] = None,
        gateways: Optional[Sequence[str]] = None,
        week_start: Optional[int] = None,
        table_prefix: Optional[str] = None,
        shop_country: Optional[str] = None,
        shop_state: Optional[str] = None,
    ):
        if None in (gateways, week_start, table_prefix, shop_country, shop_state):
            from config import Config

            gateways = Config.STATS_PAYMENT_GATEWAYS if gateways is None else gateways
            week_start = Config.STATS_WEEK_START if week_start is None else week_start
            table_prefix = Config.STATS_TABLE_PREFIX if table_prefix is None else table_prefix
            shop_country = Config.STATS_SHOP_COUNTRY if shop_country is None else shop_country
            shop_state = Config.STATS_SHOP_STATE if shop_state is None else shop_state

        self._session = session
        self.lookups = lookups or StatsLookups()
        self.currency_format = currency_format
        self.gateways = list(gateways)
        self.table_prefix = table_prefix
        self.shop_country = (shop_country or '').upper()
        self.shop_state = (shop_state or '').upper()

        # Resolved once; read-only for the lifetime of the instance
        self.date_ranges = resolve_date_ranges(now=now, week_start=week_start)

        self._originals = parse_query_vars(query, date_ranges=self.date_ranges)

    # =========================================================================
    # QUERY VARS
    # =========================================================================

    @property
    def query_vars(self) -> QueryVars:
        """Copy of the constructor originals; editing it changes nothing."""
        return self._originals.model_copy(deep=True)

    @property
    def session(self):
        if self._session is None:
            from models.database import db
            return db
        return self._session

    def _table(self, base: str) -> str:
        return table_name(base, self.table_prefix)

    def _prepare(
        self,
        query: Query,
        table: str,
        column: str,
        date_query_column: str = 'date_created',
        **preset
    ) -> QueryVars:
        """
        Build the vars for one calculation.

        The target table/column (and any preset) go onto the originals first,
        then per-call overrides are merged on top, then the date fragment is
        generated.
        """
        base = self._originals.model_copy(update={
            'table': self._table(table),
            'column': column,
            'date_query_column': date_query_column,
            **preset,
        })
        query_vars = parse_query_vars(query, base=base, date_ranges=self.date_ranges)
        return with_date_query(query_vars)

    def _format(self, data: Any, query_vars: QueryVars) -> Any:
        return maybe_format(data, query_vars.output, self.currency_format)

    def _scalar(self, metric: str, sql: str, params: Dict[str, Any]) -> Any:
        result = run_sql_scalar(self.session, sql, **params)
        logger.debug(f"{metric}: raw result {result!r}")
        return result

    # =========================================================================
    # ORDERS
    # =========================================================================

    def get_order_earnings(self, query: Query = None) -> Union[float, str]:
        """
        Calculate order earnings.

        Functions: SUM (default), AVG, MIN, MAX over orders.total.
        Returns 0.00 when there are no orders.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'total')
        return self._order_amount('order_earnings', query_vars)

    def get_order_count(self, query: Query = None) -> int:
        """
        Calculate the number of orders.

        Functions: COUNT (default) or AVG. Anything else falls back to COUNT.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        return self._order_count('order_count', query_vars)

    def get_order_refund_count(self, query: Query = None) -> int:
        """Number of refunded orders (see get_order_count)."""
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        return self._order_count(
            'order_refund_count',
            query_vars,
            equals_filter('status', 'order_status', ORDER_STATUS_REFUNDED),
        )

    def get_order_refund_amount(self, query: Query = None) -> Union[float, str]:
        """Total of refunded orders (see get_order_earnings)."""
        query_vars = self._prepare(query, ORDERS_TABLE, 'total')
        return self._order_amount(
            'order_refund_amount',
            query_vars,
            equals_filter('status', 'order_status', ORDER_STATUS_REFUNDED),
        )

    def get_refund_rate(self, query: Query = None) -> float:
        """
        Percentage of orders that were refunded, rounded to 2 places.

        No SQL function can be passed. Returns 0 when there are no orders.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        table = query_vars.table

        status_sql, status_params = equals_filter('status', 'order_status', ORDER_STATUS_REFUNDED)
        inner_where, inner_params = build_where(where_fragment(query_vars), date_fragment(query_vars))
        outer_where, outer_params = build_where(
            (status_sql, status_params),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )

        sql = f"""
            SELECT COUNT({table}.id) * 100.0 / NULLIF(o.total, 0) AS refund_rate
            FROM {table}
            CROSS JOIN (
                SELECT COUNT(id) AS total
                FROM {table}
                {inner_where}
            ) o
            {outer_where}
            GROUP BY o.total
        """
        result = self._scalar('refund_rate', sql, {**inner_params, **outer_params})

        return 0 if result is None else round(float(result), 2)

    def _order_amount(self, metric: str, query_vars: QueryVars, *filters: Fragment):
        function = select_function(query_vars.function, AMOUNT_FUNCTIONS, 'SUM')
        where, params = build_where(*filters, where_fragment(query_vars), date_fragment(query_vars))

        sql = f"""
            SELECT {function}({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar(metric, sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    def _order_count(self, metric: str, query_vars: QueryVars, *filters: Fragment) -> int:
        function = select_function(query_vars.function, COUNT_FUNCTIONS, 'COUNT')
        where, params = build_where(*filters, where_fragment(query_vars), date_fragment(query_vars))

        sql = f"""
            SELECT {function}({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar(metric, sql, params)

        return 0 if result is None else _absint(result)

    # =========================================================================
    # ORDER ITEMS
    # =========================================================================

    def get_order_item_earnings(self, query: Query = None) -> Union[float, str]:
        """
        Calculate order item earnings.

        Functions: SUM (default), AVG, MIN, MAX over order_items.total.
        Pass product_id to limit to one product.
        """
        query_vars = self._prepare(query, ORDER_ITEMS_TABLE, 'total')
        function = select_function(query_vars.function, AMOUNT_FUNCTIONS, 'SUM')

        where, params = build_where(
            equals_filter('product_id', 'product_id', query_vars.product_id),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT {function}({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar('order_item_earnings', sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    def get_order_item_count(self, query: Query = None) -> int:
        """
        Calculate the number of order items.

        Functions: COUNT (default) or AVG. AVG is the average number of items
        per order. Pass product_id to limit to one product.
        """
        query_vars = self._prepare(query, ORDER_ITEMS_TABLE, 'id')
        function = select_function(query_vars.function, COUNT_FUNCTIONS, 'COUNT')

        where, params = build_where(
            equals_filter('product_id', 'product_id', query_vars.product_id),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )

        # Averaging items per order needs a per-order subquery
        if function == 'AVG':
            sql = f"""
                SELECT AVG(item_count)
                FROM (
                    SELECT COUNT(id) AS item_count
                    FROM {query_vars.table}
                    {where}
                    GROUP BY order_id
                ) AS counts
            """
        else:
            sql = f"""
                SELECT {function}({query_vars.column})
                FROM {query_vars.table}
                {where}
            """
        result = self._scalar('order_item_count', sql, params)

        return 0 if result is None else _absint(result)

    def get_most_valuable_order_items(self, query: Query = None) -> List[TopProduct]:
        """
        Products with the highest order item totals, highest first.

        Pass number to get more than one (default 1).
        """
        query_vars = self._prepare(query, ORDER_ITEMS_TABLE, 'id')
        number = 1 if query_vars.number is None else query_vars.number

        where, params = build_where(where_fragment(query_vars), date_fragment(query_vars))
        sql = f"""
            SELECT product_id, SUM(total) AS total
            FROM {query_vars.table}
            {where}
            GROUP BY product_id
            ORDER BY total DESC
            LIMIT :number
        """
        rows = run_sql(self.session, sql, number=number, **params)

        results = []
        for row in rows:
            product_id = _absint(row.product_id)
            total = 0.00 if row.total is None else float(row.total)
            results.append(TopProduct(
                product_id=product_id,
                total=self._format(total, query_vars),
                download=self.lookups.download(product_id),
            ))
        logger.debug(f"most_valuable_order_items: {len(results)} rows")
        return results

    # =========================================================================
    # DISCOUNTS
    # =========================================================================

    def _discount_filters(self, query_vars: QueryVars, by_code: bool = True) -> List[Fragment]:
        filters = [equals_filter('type', 'adjustment_type', ADJUSTMENT_TYPE_DISCOUNT)]
        if by_code:
            filters.append(equals_filter('description', 'discount_code', query_vars.discount_code))
        return filters

    def get_discount_usage_count(self, query: Query = None) -> int:
        """Number of times discounts were applied. Pass discount_code for one code."""
        query_vars = self._prepare(query, ORDER_ADJUSTMENTS_TABLE, 'id')

        where, params = build_where(
            *self._discount_filters(query_vars),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT COUNT({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar('discount_usage_count', sql, params)

        return 0 if result is None else _absint(result)

    def get_discount_savings(self, query: Query = None) -> Union[float, str]:
        """Total saved through discounts. Pass discount_code for one code."""
        query_vars = self._prepare(query, ORDER_ADJUSTMENTS_TABLE, 'amount')

        where, params = build_where(
            *self._discount_filters(query_vars),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT SUM({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar('discount_savings', sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    def get_average_discount_amount(self, query: Query = None) -> Union[float, str]:
        """Average discount applied to an order, across all codes."""
        query_vars = self._prepare(query, ORDER_ADJUSTMENTS_TABLE, 'amount')

        where, params = build_where(
            *self._discount_filters(query_vars, by_code=False),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT AVG({query_vars.column})
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar('average_discount_amount', sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    def get_ratio_of_discounted_orders(self, query: Query = None) -> str:
        """
        Ratio of discounted orders to all orders, reduced by their GCD.

        4 discounted out of 8 -> '1:2'. With no discounted orders the ratio
        is not reduced: '0:<total>'.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        table = query_vars.table

        inner_where, inner_params = build_where(
            ('AND discount > 0', {}),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        outer_where, outer_params = build_where(where_fragment(query_vars), date_fragment(query_vars))

        sql = f"""
            SELECT COUNT({table}.id) AS total, MAX(o.discounted_orders) AS discounted_orders
            FROM {table}
            CROSS JOIN (
                SELECT COUNT(id) AS discounted_orders
                FROM {table}
                {inner_where}
            ) o
            {outer_where}
        """
        row = run_sql_one(self.session, sql, **{**inner_params, **outer_params})

        total = _absint(row.total) if row is not None and row.total is not None else 0
        discounted = (
            _absint(row.discounted_orders)
            if row is not None and row.discounted_orders is not None
            else 0
        )
        logger.debug(f"ratio_of_discounted_orders: discounted={discounted} total={total}")

        if discounted == 0:
            return f"0:{total}"

        divisor = math.gcd(discounted, total)
        return f"{discounted // divisor}:{total // divisor}"

    # =========================================================================
    # GATEWAYS
    # =========================================================================

    def _gateway_data(self, metric: str, query: Query, *filters: Fragment):
        """
        Per-gateway aggregate of orders.total, merged onto a zero row for every
        registered gateway (or just the requested gateway).

        Returns:
            (query_vars, function, [(gateway, value or None), ...])
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'total', function='COUNT')
        function = select_function(query_vars.function, GATEWAY_FUNCTIONS, 'COUNT')
        aggregate = f"{function}({query_vars.column})" if function != 'COUNT' else 'COUNT(id)'

        where, params = build_where(
            equals_filter('gateway', 'gateway', query_vars.gateway),
            *filters,
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT gateway, {aggregate} AS value
            FROM {query_vars.table}
            {where}
            GROUP BY gateway
        """
        rows = run_sql(self.session, sql, **params)
        values = {row.gateway: row.value for row in rows}

        gateways = [query_vars.gateway] if query_vars.gateway else self.gateways
        logger.debug(f"{metric}: {len(rows)} gateway rows, reporting {gateways}")
        return query_vars, function, [(gateway, values.get(gateway)) for gateway in gateways]

    def get_gateway_sales(self, query: Query = None) -> List[GatewaySales]:
        """
        Orders per gateway.

        Functions: COUNT (default), AVG, SUM. Only COUNT comes back as an int.
        Pass gateway to report just that gateway.
        """
        _, function, data = self._gateway_data('gateway_sales', query)

        results = []
        for gateway, value in data:
            if value is None:
                count = 0
            elif function == 'COUNT':
                count = _absint(value)
            else:
                count = float(value)
            results.append(GatewaySales(gateway=gateway, count=count))
        return results

    def get_gateway_earnings(self, query: Query = None) -> List[GatewayEarnings]:
        """Sum of order totals per gateway."""
        return self._gateway_amounts('gateway_earnings', query, 'SUM')

    def get_gateway_refund_amount(self, query: Query = None) -> List[GatewayEarnings]:
        """Sum of refunded order totals per gateway."""
        return self._gateway_amounts(
            'gateway_refund_amount',
            query,
            'SUM',
            equals_filter('status', 'order_status', ORDER_STATUS_REFUNDED),
        )

    def get_gateway_average_value(self, query: Query = None) -> List[GatewayEarnings]:
        """Average order total per gateway."""
        return self._gateway_amounts('gateway_average_value', query, 'AVG')

    def _gateway_amounts(self, metric: str, query: Query, function: str, *filters: Fragment):
        query = {**(query or {}), 'function': function}
        query_vars, _, data = self._gateway_data(metric, query, *filters)

        return [
            GatewayEarnings(
                gateway=gateway,
                earnings=self._format(0.00 if value is None else float(value), query_vars),
            )
            for gateway, value in data
        ]

    # =========================================================================
    # TAX
    # =========================================================================

    def get_tax(self, query: Query = None) -> Union[float, str]:
        """
        Calculate tax collected.

        Functions: SUM (default), AVG, MIN, MAX over orders.tax.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'tax')
        return self._order_amount('tax', query_vars)

    def get_tax_by_location(self, query: Query = None) -> Union[float, str]:
        """
        Tax collected from orders billed to a country (and optionally a state).

        country/state are ISO 3166 codes or names and default to the store
        location. An unknown country, or a state that is not a subdivision of
        the country, yields 0.00 without querying.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'tax')
        requested_country = query_vars.country or self.shop_country
        requested_state = query_vars.state if query_vars.country else (query_vars.state or self.shop_state)

        country = resolve_country(requested_country)
        if country is None:
            logger.info(f"tax_by_location: unknown country {requested_country!r}")
            return self._format(0.00, query_vars)

        state = None
        if requested_state:
            state = resolve_subdivision(country, requested_state)
            if state is None:
                logger.info(f"tax_by_location: unknown state {requested_state!r} for {country}")
                return self._format(0.00, query_vars)

        table = query_vars.table
        addresses = self._table(ORDER_ADDRESSES_TABLE)

        where, params = build_where(
            equals_filter(f"{addresses}.country", 'country', country),
            equals_filter(f"{addresses}.region", 'region', state),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT SUM({table}.{query_vars.column})
            FROM {table}
            INNER JOIN {addresses} ON {addresses}.order_id = {table}.id
            {where}
        """
        result = self._scalar('tax_by_location', sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    def _customer_filters(self, query_vars: QueryVars) -> List[Fragment]:
        return [
            equals_filter('user_id', 'user_id', query_vars.user_id),
            equals_filter('customer_id', 'customer_id', query_vars.customer),
            equals_filter('email', 'email', query_vars.email),
        ]

    def get_customer_lifetime_value(self, query: Query = None) -> Union[float, str]:
        """
        Lifetime value of customers (sum of each customer's orders).

        Functions: SUM (default) or AVG across customers. Filter by user_id,
        customer or email for a single customer.
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'total')
        function = select_function(query_vars.function, LIFETIME_VALUE_FUNCTIONS, 'SUM')

        where, params = build_where(
            *self._customer_filters(query_vars),
            where_fragment(query_vars),
            date_fragment(query_vars),
        )
        sql = f"""
            SELECT {function}(o.total)
            FROM (
                SELECT SUM(total) AS total
                FROM {query_vars.table}
                {where}
                GROUP BY customer_id
            ) o
        """
        result = self._scalar('customer_lifetime_value', sql, params)

        total = 0.00 if result is None else float(result)
        return self._format(total, query_vars)

    def get_customer_order_count(self, query: Query = None) -> int:
        """Number of orders placed by a customer (user_id, customer or email)."""
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        return self._order_count('customer_order_count', query_vars, *self._customer_filters(query_vars))

    def get_customer_age(self, query: Query = None) -> float:
        """Average age of customer accounts in days, rounded to 2 places."""
        query_vars = self._prepare(query, CUSTOMERS_TABLE, 'id')

        where, params = build_where(date_fragment(query_vars))
        sql = f"""
            SELECT AVG(EXTRACT(EPOCH FROM (NOW() - date_created)) / 86400)
            FROM {query_vars.table}
            {where}
        """
        result = self._scalar('customer_age', sql, params)

        return 0 if result is None else round(float(result), 2)

    def get_most_valuable_customers(self, query: Query = None) -> List[TopCustomer]:
        """
        Customers with the highest order totals, highest first.

        Pass number to get more than one (default 1).
        """
        query_vars = self._prepare(query, ORDERS_TABLE, 'id')
        number = 1 if query_vars.number is None else query_vars.number

        where, params = build_where(where_fragment(query_vars), date_fragment(query_vars))
        sql = f"""
            SELECT customer_id, SUM(total) AS total
            FROM {query_vars.table}
            {where}
            GROUP BY customer_id
            ORDER BY total DESC
            LIMIT :number
        """
        rows = run_sql(self.session, sql, number=number, **params)

        results = []
        for row in rows:
            customer_id = _absint(row.customer_id)
            total = 0.00 if row.total is None else float(row.total)
            results.append(TopCustomer(
                customer_id=customer_id,
                total=self._format(total, query_vars),
                customer=self.lookups.customer(customer_id),
            ))
        logger.debug(f"most_valuable_customers: {len(results)} rows")
        return results
