"""
Use case: List every tracked stock with its current prices.

Input: None
Output: list[Stock]
Side effects: None.
"""

import logging

from app.domain.portfolio.entities import Stock
from app.domain.portfolio.ports import StockRepository

logger = logging.getLogger(__name__)


class ListStocksUseCase:
    def __init__(self, stock_repo: StockRepository) -> None:
        self._stock_repo = stock_repo

    def execute(self) -> list[Stock]:
        stocks = self._stock_repo.list_all()
        logger.info("Listing %d stocks", len(stocks))
        return stocks
