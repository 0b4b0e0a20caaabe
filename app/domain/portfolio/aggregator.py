"""
Portfolio aggregator: rolls position values into portfolio totals.

Totals are always rebuilt from the full position set, never updated
incrementally, so that

    total_value == sum(position.current_value) + available_cash

holds after any number of trades or refreshes.

``daily_gain`` is the sum of unrealized P&L across positions. It is
not a day-over-day figure; the name is kept for the dashboard.
"""

from dataclasses import replace
from decimal import Decimal

from app.domain.portfolio.entities import (
    AllocationSlice,
    Portfolio,
    Position,
    Stock,
    utcnow,
)
from app.domain.portfolio.money import percent_of, to_money

CASH_LABEL = "CASH"


class PortfolioAggregator:
    """Recomputes portfolio-level summary fields."""

    def recompute(self, portfolio: Portfolio, positions: list[Position]) -> Portfolio:
        """Return ``portfolio`` with totals rebuilt from ``positions``.

        Args:
            portfolio: The portfolio whose summary is refreshed.
            positions: Every position of the portfolio, open or closed.

        Returns:
            A new Portfolio instance; the input is left untouched.
        """
        positions_value = sum((p.current_value for p in positions), Decimal("0"))
        daily_gain = to_money(sum((p.unrealized_pnl for p in positions), Decimal("0")))
        total_value = to_money(positions_value + portfolio.available_cash)

        return replace(
            portfolio,
            total_value=total_value,
            daily_gain=daily_gain,
            daily_gain_percent=percent_of(daily_gain, total_value - daily_gain),
            active_positions=sum(1 for p in positions if p.quantity > 0),
            updated_at=utcnow(),
        )

    def allocation(
        self, portfolio: Portfolio, holdings: list[tuple[Position, Stock]]
    ) -> list[AllocationSlice]:
        """Split the portfolio total into per-stock and cash slices.

        Closed positions are skipped. The cash slice is appended only
        when there is cash available.
        """
        slices = [
            AllocationSlice(
                label=stock.ticker,
                value=position.current_value,
                percent=percent_of(position.current_value, portfolio.total_value),
            )
            for position, stock in holdings
            if position.quantity > 0
        ]
        if portfolio.available_cash > 0:
            slices.append(
                AllocationSlice(
                    label=CASH_LABEL,
                    value=portfolio.available_cash,
                    percent=self.cash_percent(portfolio),
                    is_cash=True,
                )
            )
        return slices

    @staticmethod
    def cash_percent(portfolio: Portfolio) -> Decimal:
        return percent_of(portfolio.available_cash, portfolio.total_value)
