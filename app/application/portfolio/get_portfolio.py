"""
Use case: Retrieve a portfolio snapshot.

Input: GetPortfolioQuery (portfolio_id)
Output: PortfolioSnapshotResult
Side effects: None.
Failure cases: PortfolioNotFoundError.
"""

import logging

from app.application.portfolio.dtos import (
    GetPortfolioQuery,
    HoldingResult,
    PortfolioSnapshotResult,
)
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.errors import PortfolioNotFoundError
from app.domain.portfolio.ports import (
    PortfolioRepository,
    PositionRepository,
    StockRepository,
)

logger = logging.getLogger(__name__)


class GetPortfolioUseCase:
    """Joins a portfolio with its open positions and allocation breakdown."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        stock_repo: StockRepository,
        position_repo: PositionRepository,
        aggregator: PortfolioAggregator,
    ) -> None:
        self._portfolio_repo = portfolio_repo
        self._stock_repo = stock_repo
        self._position_repo = position_repo
        self._aggregator = aggregator

    def execute(self, query: GetPortfolioQuery) -> PortfolioSnapshotResult:
        """Run the snapshot use case.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist.
        """
        logger.info("Fetching portfolio=%s", query.portfolio_id)

        portfolio = self._portfolio_repo.get_by_id(query.portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(query.portfolio_id)

        holdings = []
        for position in self._position_repo.list_by_portfolio(portfolio.id):
            stock = self._stock_repo.get_by_id(position.stock_id)
            if stock is None:
                logger.warning(
                    "Skipping position id=%s with missing stock id=%s",
                    position.id,
                    position.stock_id,
                )
                continue
            holdings.append(HoldingResult(position=position, stock=stock))

        allocation = self._aggregator.allocation(
            portfolio, [(h.position, h.stock) for h in holdings]
        )
        return PortfolioSnapshotResult(
            portfolio=portfolio,
            holdings=holdings,
            allocation=allocation,
            cash_allocation_percent=self._aggregator.cash_percent(portfolio),
        )
