"""
Port interfaces (ABCs) for the portfolio bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.domain.portfolio.entities import (
    Candle,
    Instrument,
    NewsSentiment,
    Portfolio,
    Position,
    Recommendation,
    Stock,
)

CANDLE_INTERVAL_HOUR = "CANDLE_INTERVAL_HOUR"
CANDLE_INTERVAL_DAY = "CANDLE_INTERVAL_DAY"


class PortfolioRepository(ABC):
    """Port for portfolio persistence."""

    @abstractmethod
    def get_by_id(self, portfolio_id: int) -> Optional[Portfolio]:
        """Return a portfolio by its ID, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[Portfolio]:
        """Return every stored portfolio ordered by ID."""
        raise NotImplementedError

    @abstractmethod
    def add(self, portfolio: Portfolio) -> Portfolio:
        """Store a new portfolio and return it with its assigned ID."""
        raise NotImplementedError

    @abstractmethod
    def save(self, portfolio: Portfolio) -> Portfolio:
        """Replace a stored portfolio. Raises PortfolioNotFoundError if absent."""
        raise NotImplementedError


class StockRepository(ABC):
    """Port for stock persistence."""

    @abstractmethod
    def get_by_id(self, stock_id: int) -> Optional[Stock]:
        raise NotImplementedError

    @abstractmethod
    def get_by_ticker(self, ticker: str) -> Optional[Stock]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[Stock]:
        """Return every stored stock ordered by ticker."""
        raise NotImplementedError

    @abstractmethod
    def add(self, stock: Stock) -> Stock:
        raise NotImplementedError

    @abstractmethod
    def save(self, stock: Stock) -> Stock:
        raise NotImplementedError


class PositionRepository(ABC):
    """Port for position persistence.

    Closed positions (quantity 0) stay stored; listing methods hide
    them unless ``include_closed`` is set.
    """

    @abstractmethod
    def find(self, portfolio_id: int, stock_id: int) -> Optional[Position]:
        """Return the position for a (portfolio, stock) pair, open or closed."""
        raise NotImplementedError

    @abstractmethod
    def list_by_portfolio(
        self, portfolio_id: int, include_closed: bool = False
    ) -> list[Position]:
        """Return positions of a portfolio ordered by ID."""
        raise NotImplementedError

    @abstractmethod
    def add(self, position: Position) -> Position:
        raise NotImplementedError

    @abstractmethod
    def save(self, position: Position) -> Position:
        raise NotImplementedError


class RecommendationRepository(ABC):
    """Port for advisory recommendation persistence."""

    @abstractmethod
    def list_by_portfolio(self, portfolio_id: int) -> list[Recommendation]:
        raise NotImplementedError

    @abstractmethod
    def add(self, recommendation: Recommendation) -> Recommendation:
        raise NotImplementedError

    @abstractmethod
    def save(self, recommendation: Recommendation) -> Recommendation:
        raise NotImplementedError


class NewsSentimentRepository(ABC):
    """Port for news sentiment persistence, one record per stock."""

    @abstractmethod
    def get_by_stock(self, stock_id: int) -> Optional[NewsSentiment]:
        raise NotImplementedError

    @abstractmethod
    def add(self, sentiment: NewsSentiment) -> NewsSentiment:
        raise NotImplementedError

    @abstractmethod
    def save(self, sentiment: NewsSentiment) -> NewsSentiment:
        raise NotImplementedError


class AdvisoryDataPort(ABC):
    """Port for advisory annotations (recommendations, sentiment).

    The ledger and aggregator never depend on this port, so the data
    behind it may be synthetic or live.
    """

    @abstractmethod
    def get_recommendations(self, portfolio_id: int) -> list[Recommendation]:
        raise NotImplementedError

    @abstractmethod
    def get_sentiment(self, stock_id: int) -> Optional[NewsSentiment]:
        raise NotImplementedError


class MarketDataPort(ABC):
    """Port for the external market-data provider.

    Every method raises UpstreamUnavailableError on failure and returns
    an empty collection when the provider has no data.
    """

    @abstractmethod
    def list_shares(self) -> list[Instrument]:
        """Return all shares the provider can quote."""
        raise NotImplementedError

    @abstractmethod
    def get_last_prices(self, figis: list[str]) -> dict[str, Decimal]:
        """Return the latest price per instrument identifier."""
        raise NotImplementedError

    @abstractmethod
    def get_candles(
        self, figi: str, start: datetime, end: datetime, interval: str
    ) -> list[Candle]:
        """Return time-ordered OHLC candles for an instrument.

        Args:
            figi: Instrument identifier.
            start: Start of the range (inclusive).
            end: End of the range (exclusive).
            interval: Candle granularity, e.g. ``CANDLE_INTERVAL_HOUR``.
        """
        raise NotImplementedError
