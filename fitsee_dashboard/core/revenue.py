"""
Revenue calculations.

Computes revenue net of the payment processor's transaction fee.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

from fitsee_dashboard.storage.models import BillingLog

# 2.90% transaction fee on every billed price
TRANSACTION_FEE_RATE = Decimal("0.029")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a stored price to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def net_price(price: Number) -> Decimal:
    """Price after deducting the transaction fee."""
    amount = to_decimal(price)
    return amount - amount * TRANSACTION_FEE_RATE


def calculate_net_revenue(records: Iterable[BillingLog]) -> Decimal:
    """Sum net prices over billing records.

    No rounding is applied; round with ``quantize_currency`` when presenting.

    Args:
        records: Billing records with a ``price`` field

    Returns:
        Net revenue as an exact Decimal (``Decimal("0")`` when empty)
    """
    total = Decimal("0")
    for record in records:
        total += net_price(record.price)
    return total


def quantize_currency(amount: Decimal) -> Decimal:
    """Round to cents (half-up) for display."""
    return to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_currency(amount: Number) -> str:
    """Format an amount as dollars, e.g. ``$1,234.56``."""
    rounded = quantize_currency(to_decimal(amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"
