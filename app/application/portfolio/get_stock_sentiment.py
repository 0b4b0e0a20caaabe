"""
Use case: Retrieve a stock together with its news sentiment.

Input: GetStockSentimentQuery (ticker)
Output: StockSentimentResult
Side effects: None.
Failure cases: StockNotFoundError.
"""

import logging

from app.application.portfolio.dtos import GetStockSentimentQuery, StockSentimentResult
from app.domain.portfolio.errors import StockNotFoundError
from app.domain.portfolio.ports import AdvisoryDataPort, StockRepository

logger = logging.getLogger(__name__)


class GetStockSentimentUseCase:
    """Resolves the stock and asks the advisory port for its sentiment.

    A stock without sentiment data is not an error; the result simply
    carries no sentiment.
    """

    def __init__(self, stock_repo: StockRepository, advisory_port: AdvisoryDataPort) -> None:
        self._stock_repo = stock_repo
        self._advisory_port = advisory_port

    def execute(self, query: GetStockSentimentQuery) -> StockSentimentResult:
        """Run the sentiment use case.

        Raises:
            StockNotFoundError: If the ticker is unknown.
        """
        ticker = query.ticker.strip().upper()
        logger.info("Retrieving sentiment for ticker=%s", ticker)

        stock = self._stock_repo.get_by_ticker(ticker)
        if stock is None:
            raise StockNotFoundError(ticker)

        return StockSentimentResult(
            stock=stock,
            sentiment=self._advisory_port.get_sentiment(stock.id),
        )
