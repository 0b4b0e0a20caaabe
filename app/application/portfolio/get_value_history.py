"""
Use case: Chart the value of a portfolio over recent days.

Input: GetValueHistoryQuery (portfolio_id, days)
Output: ValueHistoryResult
Side effects: Outbound market-data calls (cached).
Failure cases: PortfolioNotFoundError.

When the market-data provider is unavailable the use case does not
fail: it returns a synthetic series interpolated from the portfolio's
cost basis to its current total, flagged ``synthetic=True``.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from app.application.portfolio.dtos import GetValueHistoryQuery, ValueHistoryResult
from app.domain.portfolio.entities import Portfolio, utcnow
from app.domain.portfolio.errors import PortfolioNotFoundError, UpstreamUnavailableError
from app.domain.portfolio.history import aggregate_value_history, synthetic_value_history
from app.domain.portfolio.ports import (
    CANDLE_INTERVAL_HOUR,
    MarketDataPort,
    PortfolioRepository,
    PositionRepository,
    StockRepository,
)

logger = logging.getLogger(__name__)


class GetValueHistoryUseCase:
    """Builds the value history from hourly candles of every open position."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        stock_repo: StockRepository,
        position_repo: PositionRepository,
        market_data: MarketDataPort,
        max_points: int = 24,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._portfolio_repo = portfolio_repo
        self._stock_repo = stock_repo
        self._position_repo = position_repo
        self._market_data = market_data
        self._max_points = max_points
        self._clock = clock

    def execute(self, query: GetValueHistoryQuery) -> ValueHistoryResult:
        """Run the value history use case.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist.
        """
        logger.info(
            "Building value history for portfolio=%s days=%s",
            query.portfolio_id,
            query.days,
        )

        portfolio = self._portfolio_repo.get_by_id(query.portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(query.portfolio_id)

        quantities: dict[str, int] = {}
        for position in self._position_repo.list_by_portfolio(portfolio.id):
            stock = self._stock_repo.get_by_id(position.stock_id)
            if stock is not None:
                quantities[stock.figi] = quantities.get(stock.figi, 0) + position.quantity

        end = self._clock()
        start = end - timedelta(days=query.days)
        try:
            candles = {
                figi: self._market_data.get_candles(figi, start, end, CANDLE_INTERVAL_HOUR)
                for figi in quantities
            }
        except UpstreamUnavailableError as exc:
            logger.warning(
                "Market data unavailable, serving synthetic history for portfolio=%s: %s",
                portfolio.id,
                exc.reason,
            )
            return self._synthetic(portfolio, end)

        points = aggregate_value_history(
            candles, quantities, portfolio.available_cash, self._max_points
        )
        return ValueHistoryResult(portfolio_id=portfolio.id, points=points, synthetic=False)

    def _synthetic(self, portfolio: Portfolio, end: datetime) -> ValueHistoryResult:
        points = synthetic_value_history(
            start_value=portfolio.total_value - portfolio.daily_gain,
            end_value=portfolio.total_value,
            end_time=end,
            points=self._max_points,
        )
        return ValueHistoryResult(portfolio_id=portfolio.id, points=points, synthetic=True)
