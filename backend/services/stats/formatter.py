"""
Result formatter - turns raw aggregates into display currency strings.

    maybe_format(1234.5, 'formatted')  -> '$1,234.50'
    maybe_format(1234.5, 'raw')        -> 1234.5

Only numeric values are formatted. Dataclass results and mappings have each
numeric field formatted; everything else is returned untouched.
"""

import dataclasses
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional

from services.stats.query_vars import OUTPUT_FORMATTED


# Currency symbols for common currencies
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "INR": "₹",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "CHF": "CHF",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "BRL": "R$",
    "MXN": "MX$",
    "SGD": "S$",
    "HKD": "HK$",
    "KRW": "₩",
    "ZAR": "R",
    "PLN": "zł",
    "THB": "฿",
    "MYR": "RM",
    "IDR": "Rp",
    "PHP": "₱",
    "TRY": "₺",
}

# Currencies with no minor unit
ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW", "VND", "CLP", "ISK", "TWD"}


@dataclass(frozen=True)
class CurrencyFormat:
    """How amounts are displayed."""
    currency: str = "USD"
    position: str = "before"  # symbol before or after the amount
    thousands_separator: str = ","
    decimal_separator: str = "."
    decimals: int = 2

    @property
    def symbol(self) -> str:
        return CURRENCY_SYMBOLS.get(self.currency, self.currency)

    @classmethod
    def from_config(cls) -> 'CurrencyFormat':
        from config import Config

        currency = Config.STATS_CURRENCY
        decimals = 0 if currency in ZERO_DECIMAL_CURRENCIES else Config.STATS_DECIMALS
        return cls(
            currency=currency,
            position=Config.STATS_CURRENCY_POSITION,
            thousands_separator=Config.STATS_THOUSANDS_SEPARATOR,
            decimal_separator=Config.STATS_DECIMAL_SEPARATOR,
            decimals=decimals,
        )


def is_numeric(value: Any) -> bool:
    """Numbers and numeric strings; bools are not numeric."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float, Decimal, str)):
        try:
            return Decimal(str(value).strip()).is_finite()
        except InvalidOperation:
            return False
    return False


def format_amount(value: Any, fmt: CurrencyFormat) -> str:
    """
    Format a number with the configured separators and precision.

    Rounds half up: format_amount(1234.565) -> '1,234.57'
    """
    amount = Decimal(str(value).strip())
    quantum = Decimal(1).scaleb(-fmt.decimals)
    amount = amount.quantize(quantum, rounding=ROUND_HALF_UP)

    sign = '-' if amount < 0 else ''
    whole, _, fraction = f"{abs(amount):f}".partition('.')
    whole = f"{int(whole):,}".replace(',', fmt.thousands_separator)

    if fmt.decimals > 0:
        return f"{sign}{whole}{fmt.decimal_separator}{fraction}"
    return f"{sign}{whole}"


def currency_filter(formatted_amount: str, fmt: CurrencyFormat) -> str:
    """Attach the currency symbol; the minus sign stays in front."""
    negative = formatted_amount.startswith('-')
    amount = formatted_amount[1:] if negative else formatted_amount
    sign = '-' if negative else ''

    if fmt.position == 'after':
        return f"{sign}{amount}{fmt.symbol}"
    return f"{sign}{fmt.symbol}{amount}"


def format_currency(value: Any, fmt: Optional[CurrencyFormat] = None) -> str:
    """Number -> display string, e.g. 1234.5 -> '$1,234.50'."""
    if fmt is None:
        fmt = CurrencyFormat.from_config()
    return currency_filter(format_amount(value, fmt), fmt)


def maybe_format(data: Any, output: str, fmt: Optional[CurrencyFormat] = None) -> Any:
    """
    Format data when output is 'formatted'; return it unchanged otherwise.

    Args:
        data: Scalar, dataclass instance or mapping
        output: 'raw' or 'formatted' (anything else is treated as raw)
        fmt: Currency display settings (defaults to Config)
    """
    if data is None or output != OUTPUT_FORMATTED:
        return data

    if fmt is None:
        fmt = CurrencyFormat.from_config()

    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        changes = {
            field.name: format_currency(getattr(data, field.name), fmt)
            for field in dataclasses.fields(data)
            if is_numeric(getattr(data, field.name))
        }
        return dataclasses.replace(data, **changes)

    if isinstance(data, Mapping):
        return {
            key: format_currency(value, fmt) if is_numeric(value) else value
            for key, value in data.items()
        }

    if is_numeric(data):
        return format_currency(data, fmt)

    return data
