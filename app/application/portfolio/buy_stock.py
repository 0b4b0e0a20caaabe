"""
Use case: Buy shares of a stock into a portfolio.

Input: BuyStockCommand (portfolio_id, ticker, quantity, price)
Output: TradeResult
Side effects: Creates or updates a position, recomputes portfolio totals.
Failure cases: TradeValidationError, StockNotFoundError, PortfolioNotFoundError.
"""

import logging

from app.application.portfolio.dtos import BuyStockCommand, TradeResult
from app.application.portfolio.locks import PortfolioLocks
from app.application.portfolio.recompute import recompute_portfolio
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.ledger import PositionLedger
from app.domain.portfolio.ports import (
    PortfolioRepository,
    PositionRepository,
    StockRepository,
)

logger = logging.getLogger(__name__)


class BuyStockUseCase:
    """Orchestrates a purchase.

    Delegates the position arithmetic to the PositionLedger, then
    rebuilds the portfolio totals with the PortfolioAggregator.
    """

    def __init__(
        self,
        ledger: PositionLedger,
        aggregator: PortfolioAggregator,
        portfolio_repo: PortfolioRepository,
        stock_repo: StockRepository,
        position_repo: PositionRepository,
        locks: PortfolioLocks,
    ) -> None:
        self._ledger = ledger
        self._aggregator = aggregator
        self._portfolio_repo = portfolio_repo
        self._stock_repo = stock_repo
        self._position_repo = position_repo
        self._locks = locks

    def execute(self, command: BuyStockCommand) -> TradeResult:
        """Run the buy use case.

        Args:
            command: The purchase request.

        Returns:
            The resulting position and the re-aggregated portfolio.
        """
        logger.info(
            "Buying portfolio=%s ticker=%s qty=%s price=%s",
            command.portfolio_id,
            command.ticker,
            command.quantity,
            command.price,
        )

        with self._locks.hold(command.portfolio_id):
            existing_quantity = self._current_quantity(command.portfolio_id, command.ticker)
            position = self._ledger.buy(
                portfolio_id=command.portfolio_id,
                ticker=command.ticker,
                quantity=command.quantity,
                price=command.price,
            )
            portfolio = recompute_portfolio(
                command.portfolio_id,
                self._portfolio_repo,
                self._position_repo,
                self._aggregator,
            )

        stock = self._stock_repo.get_by_id(position.stock_id)
        message = (
            "Position updated successfully"
            if existing_quantity > 0
            else "Stock purchased successfully"
        )
        return TradeResult(
            message=message, position=position, stock=stock, portfolio=portfolio
        )

    def _current_quantity(self, portfolio_id: int, ticker: str) -> int:
        stock = self._stock_repo.get_by_ticker(ticker.strip().upper())
        if stock is None:
            return 0
        position = self._position_repo.find(portfolio_id, stock.id)
        return position.quantity if position is not None else 0
