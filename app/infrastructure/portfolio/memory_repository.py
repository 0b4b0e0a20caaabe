"""
Adapter: In-memory persistence for the portfolio context.

Implements the repository ports over owned dictionaries keyed by
generated identity. Identity generation lives in one place,
IdentitySequence, with one counter per entity type; IDs start at 1,
are assigned on ``add`` and never reused.

Swapping in a durable backend means providing other implementations
of the same ports; the ledger and aggregator do not change.
"""

import threading
from dataclasses import replace
from typing import Optional

from app.domain.portfolio.entities import (
    NewsSentiment,
    Portfolio,
    Position,
    Recommendation,
    Stock,
    utcnow,
)
from app.domain.portfolio.errors import (
    NotFoundError,
    PortfolioNotFoundError,
    StockNotFoundError,
)
from app.domain.portfolio.ports import (
    NewsSentimentRepository,
    PortfolioRepository,
    PositionRepository,
    RecommendationRepository,
    StockRepository,
)


class IdentitySequence:
    """Thread-safe auto-incrementing counters, one per entity type."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}

    def next_id(self, entity: str) -> int:
        with self._lock:
            value = self._counters.get(entity, 0) + 1
            self._counters[entity] = value
            return value

    def peek(self, entity: str) -> int:
        """Return the last ID issued for ``entity`` (0 when none)."""
        with self._lock:
            return self._counters.get(entity, 0)


class InMemoryPortfolioRepository(PortfolioRepository):
    """Portfolios keyed by ID; ``save`` only replaces existing records."""

    def __init__(self, sequence: IdentitySequence) -> None:
        self._sequence = sequence
        self._rows: dict[int, Portfolio] = {}

    def get_by_id(self, portfolio_id: int) -> Optional[Portfolio]:
        return self._rows.get(portfolio_id)

    def list_all(self) -> list[Portfolio]:
        return [self._rows[k] for k in sorted(self._rows)]

    def add(self, portfolio: Portfolio) -> Portfolio:
        stored = replace(portfolio, id=self._sequence.next_id("portfolio"))
        self._rows[stored.id] = stored
        return stored

    def save(self, portfolio: Portfolio) -> Portfolio:
        if portfolio.id not in self._rows:
            raise PortfolioNotFoundError(portfolio.id)
        self._rows[portfolio.id] = portfolio
        return portfolio


class InMemoryStockRepository(StockRepository):
    """Stocks keyed by ID with a unique ticker index."""

    def __init__(self, sequence: IdentitySequence) -> None:
        self._sequence = sequence
        self._rows: dict[int, Stock] = {}
        self._by_ticker: dict[str, int] = {}

    def get_by_id(self, stock_id: int) -> Optional[Stock]:
        return self._rows.get(stock_id)

    def get_by_ticker(self, ticker: str) -> Optional[Stock]:
        stock_id = self._by_ticker.get(ticker.strip().upper())
        return self._rows.get(stock_id) if stock_id is not None else None

    def list_all(self) -> list[Stock]:
        return sorted(self._rows.values(), key=lambda s: s.ticker)

    def add(self, stock: Stock) -> Stock:
        ticker = stock.ticker.strip().upper()
        if ticker in self._by_ticker:
            raise ValueError(f"Duplicate ticker: {ticker}")
        stored = replace(stock, ticker=ticker, id=self._sequence.next_id("stock"))
        self._rows[stored.id] = stored
        self._by_ticker[ticker] = stored.id
        return stored

    def save(self, stock: Stock) -> Stock:
        current = self._rows.get(stock.id)
        if current is None:
            raise StockNotFoundError(stock.ticker)
        if current.ticker != stock.ticker:
            raise ValueError(f"Ticker of stock {stock.id} cannot change")
        self._rows[stock.id] = stock
        return stock


class InMemoryPositionRepository(PositionRepository):
    """Positions keyed by ID with a unique (portfolio, stock) index."""

    def __init__(self, sequence: IdentitySequence) -> None:
        self._sequence = sequence
        self._rows: dict[int, Position] = {}
        self._by_pair: dict[tuple[int, int], int] = {}

    def find(self, portfolio_id: int, stock_id: int) -> Optional[Position]:
        position_id = self._by_pair.get((portfolio_id, stock_id))
        return self._rows.get(position_id) if position_id is not None else None

    def list_by_portfolio(
        self, portfolio_id: int, include_closed: bool = False
    ) -> list[Position]:
        return [
            self._rows[k]
            for k in sorted(self._rows)
            if self._rows[k].portfolio_id == portfolio_id
            and (include_closed or self._rows[k].quantity > 0)
        ]

    def add(self, position: Position) -> Position:
        pair = (position.portfolio_id, position.stock_id)
        if pair in self._by_pair:
            raise ValueError(f"Position already exists for portfolio/stock {pair}")
        stored = replace(position, id=self._sequence.next_id("position"))
        self._rows[stored.id] = stored
        self._by_pair[pair] = stored.id
        return stored

    def save(self, position: Position) -> Position:
        current = self._rows.get(position.id)
        if current is None:
            raise NotFoundError(f"Position not found: {position.id}")
        if (current.portfolio_id, current.stock_id) != (
            position.portfolio_id,
            position.stock_id,
        ):
            raise ValueError("Positions never move between portfolios or stocks")
        self._rows[position.id] = position
        return position


class InMemoryRecommendationRepository(RecommendationRepository):
    """Recommendations keyed by ID, listed per portfolio in insertion order."""

    def __init__(self, sequence: IdentitySequence) -> None:
        self._sequence = sequence
        self._rows: dict[int, Recommendation] = {}

    def list_by_portfolio(self, portfolio_id: int) -> list[Recommendation]:
        return [
            self._rows[k]
            for k in sorted(self._rows)
            if self._rows[k].portfolio_id == portfolio_id
        ]

    def add(self, recommendation: Recommendation) -> Recommendation:
        stored = replace(recommendation, id=self._sequence.next_id("recommendation"))
        self._rows[stored.id] = stored
        return stored

    def save(self, recommendation: Recommendation) -> Recommendation:
        if recommendation.id not in self._rows:
            raise NotFoundError(f"Recommendation not found: {recommendation.id}")
        self._rows[recommendation.id] = recommendation
        return recommendation


class InMemoryNewsSentimentRepository(NewsSentimentRepository):
    """One sentiment record per stock; ``save`` matches on the stock ID."""

    def __init__(self, sequence: IdentitySequence) -> None:
        self._sequence = sequence
        self._rows: dict[int, NewsSentiment] = {}

    def get_by_stock(self, stock_id: int) -> Optional[NewsSentiment]:
        return next((s for s in self._rows.values() if s.stock_id == stock_id), None)

    def add(self, sentiment: NewsSentiment) -> NewsSentiment:
        if self.get_by_stock(sentiment.stock_id) is not None:
            raise ValueError(f"Sentiment already exists for stock {sentiment.stock_id}")
        stored = replace(sentiment, id=self._sequence.next_id("news_sentiment"))
        self._rows[stored.id] = stored
        return stored

    def save(self, sentiment: NewsSentiment) -> NewsSentiment:
        existing = self.get_by_stock(sentiment.stock_id)
        if existing is None:
            raise NotFoundError(f"News sentiment not found for stock: {sentiment.stock_id}")
        stored = replace(sentiment, id=existing.id, updated_at=utcnow())
        self._rows[existing.id] = stored
        return stored


class InMemoryStore:
    """Bundles every in-memory repository around one identity sequence."""

    def __init__(self) -> None:
        self.sequence = IdentitySequence()
        self.portfolios = InMemoryPortfolioRepository(self.sequence)
        self.stocks = InMemoryStockRepository(self.sequence)
        self.positions = InMemoryPositionRepository(self.sequence)
        self.recommendations = InMemoryRecommendationRepository(self.sequence)
        self.news_sentiments = InMemoryNewsSentimentRepository(self.sequence)
