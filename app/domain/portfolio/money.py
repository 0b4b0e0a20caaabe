"""
Fixed-point rounding rules for money, prices and percentages.

All monetary arithmetic in the domain uses ``decimal.Decimal``.
Values are rounded half-up to a fixed number of places:
    price  : 4 places (share prices, average cost)
    money  : 2 places (position values, P&L, portfolio totals)
    percent: 2 places
"""

from decimal import ROUND_HALF_UP, Decimal

PRICE_QUANTUM = Decimal("0.0001")
MONEY_QUANTUM = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.01")

HUNDRED = Decimal("100")


def to_price(value: Decimal) -> Decimal:
    return Decimal(value).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_percent(value: Decimal) -> Decimal:
    return Decimal(value).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return ``part / whole * 100`` rounded, or zero when ``whole`` is zero."""
    if whole == 0:
        return to_percent(Decimal("0"))
    return to_percent(part / whole * HUNDRED)
