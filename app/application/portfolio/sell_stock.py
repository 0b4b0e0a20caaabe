"""
Use case: Sell shares of a stock from a portfolio.

Input: SellStockCommand (portfolio_id, ticker, quantity)
Output: TradeResult
Side effects: Reduces or closes a position, recomputes portfolio totals.
Failure cases: TradeValidationError, StockNotFoundError, PortfolioNotFoundError,
    PositionNotFoundError, InsufficientSharesError.
"""

import logging

from app.application.portfolio.dtos import SellStockCommand, TradeResult
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


class SellStockUseCase:
    """Orchestrates a sale through the ledger and the aggregator."""

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

    def execute(self, command: SellStockCommand) -> TradeResult:
        """Run the sell use case.

        Returns:
            The position after the sale and the re-aggregated portfolio.
        """
        logger.info(
            "Selling portfolio=%s ticker=%s qty=%s",
            command.portfolio_id,
            command.ticker,
            command.quantity,
        )

        with self._locks.hold(command.portfolio_id):
            position = self._ledger.sell(
                portfolio_id=command.portfolio_id,
                ticker=command.ticker,
                quantity=command.quantity,
            )
            portfolio = recompute_portfolio(
                command.portfolio_id,
                self._portfolio_repo,
                self._position_repo,
                self._aggregator,
            )

        message = (
            "Stock sold successfully" if position.is_open else "Position sold completely"
        )
        return TradeResult(
            message=message,
            position=position,
            stock=self._stock_repo.get_by_id(position.stock_id),
            portfolio=portfolio,
        )
