"""
Portfolio value history built from instrument candles.

Two sources:
    live     : sum of candle close * held quantity per timestamp, plus cash.
    synthetic: linear interpolation between the portfolio cost basis and
               its current total, used when the provider is unreachable.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal

from app.domain.portfolio.entities import Candle, ValuePoint
from app.domain.portfolio.money import to_money

HOUR = timedelta(hours=1)


def aggregate_value_history(
    candles_by_figi: dict[str, list[Candle]],
    quantities: dict[str, int],
    cash: Decimal,
    limit: int,
) -> list[ValuePoint]:
    """Aggregate per-instrument candles into portfolio value points.

    Args:
        candles_by_figi: Candles keyed by instrument identifier.
        quantities: Shares held per instrument identifier.
        cash: Cash added to every point.
        limit: Keep only the most recent ``limit`` points.

    Returns:
        Time-ordered value points; empty when there are no candles.
    """
    totals: dict[datetime, Decimal] = defaultdict(Decimal)
    for figi, candles in candles_by_figi.items():
        quantity = quantities.get(figi, 0)
        for candle in candles:
            totals[candle.time] += candle.close * quantity

    points = [
        ValuePoint(timestamp=ts, value=to_money(value + cash))
        for ts, value in sorted(totals.items())
    ]
    return points[-limit:] if limit > 0 else []


def synthetic_value_history(
    start_value: Decimal, end_value: Decimal, end_time: datetime, points: int
) -> list[ValuePoint]:
    """Interpolate ``points`` hourly values from ``start_value`` to ``end_value``.

    The last point is stamped ``end_time`` and carries ``end_value``.
    """
    if points <= 0:
        return []
    if points == 1:
        return [ValuePoint(timestamp=end_time, value=to_money(end_value))]

    step = (end_value - start_value) / (points - 1)
    return [
        ValuePoint(
            timestamp=end_time - HOUR * (points - 1 - i),
            value=to_money(start_value + step * i),
        )
        for i in range(points)
    ]
