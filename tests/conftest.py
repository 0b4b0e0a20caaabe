"""
Shared fixtures for the portfolio test suite.

Provides an in-memory market-data fake, fresh stores (empty or seeded
with the demo dataset) and a TestClient whose dependencies point at
them. No test reaches the network.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.application.portfolio.locks import PortfolioLocks
from app.domain.portfolio.entities import Candle, Instrument, Portfolio, Stock
from app.domain.portfolio.errors import UpstreamUnavailableError
from app.domain.portfolio.ports import MarketDataPort
from app.infrastructure.portfolio.memory_repository import InMemoryStore
from app.infrastructure.portfolio.seed import seed_demo_data
from app.interfaces.portfolio.dependencies import (
    get_locks,
    get_market_data,
    get_store,
)
from app.main import app
from app.shared.security.rate_limiting import limiter

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeMarketData(MarketDataPort):
    """Scriptable MarketDataPort.

    Attributes:
        instruments: Returned by ``list_shares``.
        prices: Last price per FIGI.
        candles: Candles per FIGI, returned for any range and interval.
        fail_shares / fail_prices: Raise UpstreamUnavailableError.
        fail_candles_for: FIGIs whose candle lookup raises.
        calls: Names of the methods called, in order.
    """

    def __init__(self) -> None:
        self.instruments: list[Instrument] = []
        self.prices: dict[str, Decimal] = {}
        self.candles: dict[str, list[Candle]] = {}
        self.fail_shares = False
        self.fail_prices = False
        self.fail_candles_for: set[str] = set()
        self.calls: list[str] = []

    def list_shares(self) -> list[Instrument]:
        self.calls.append("list_shares")
        if self.fail_shares:
            raise UpstreamUnavailableError("shares down")
        return list(self.instruments)

    def get_last_prices(self, figis: list[str]) -> dict[str, Decimal]:
        self.calls.append("get_last_prices")
        if self.fail_prices:
            raise UpstreamUnavailableError("prices down")
        return {f: self.prices[f] for f in figis if f in self.prices}

    def get_candles(
        self, figi: str, start: datetime, end: datetime, interval: str
    ) -> list[Candle]:
        self.calls.append("get_candles")
        if figi in self.fail_candles_for or "*" in self.fail_candles_for:
            raise UpstreamUnavailableError(f"candles down for {figi}")
        return list(self.candles.get(figi, []))


def make_candle(
    figi: str, close: str, time: Optional[datetime] = None, hours_ago: int = 0
) -> Candle:
    """Build a flat candle closing at ``close``."""
    price = Decimal(close)
    return Candle(
        figi=figi,
        time=time or FIXED_NOW - timedelta(hours=hours_ago),
        open=price,
        high=price,
        low=price,
        close=price,
        volume=100,
    )


def add_stock(
    store: InMemoryStore,
    ticker: str,
    current: str,
    previous: Optional[str] = None,
    figi: Optional[str] = None,
) -> Stock:
    return store.stocks.add(
        Stock(
            ticker=ticker,
            name=ticker.title(),
            figi=figi or f"FIGI-{ticker}",
            currency="RUB",
            lot=1,
            current_price=Decimal(current),
            previous_price=Decimal(previous or current),
        )
    )


def add_portfolio(store: InMemoryStore, cash: str = "10000.00") -> Portfolio:
    return store.portfolios.add(
        Portfolio(name="Test", available_cash=Decimal(cash), budget=Decimal("100000.00"))
    )


@pytest.fixture
def store() -> InMemoryStore:
    """An empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def demo_store() -> InMemoryStore:
    """A store loaded with the demo dataset."""
    demo = InMemoryStore()
    seed_demo_data(demo)
    return demo


@pytest.fixture
def market_data() -> FakeMarketData:
    return FakeMarketData()


@pytest.fixture
def client(demo_store: InMemoryStore, market_data: FakeMarketData):
    """TestClient bound to the demo store and the market-data fake."""
    locks = PortfolioLocks()
    app.dependency_overrides[get_store] = lambda: demo_store
    app.dependency_overrides[get_market_data] = lambda: market_data
    app.dependency_overrides[get_locks] = lambda: locks
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()
