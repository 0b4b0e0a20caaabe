"""
Dependency injection for the portfolio bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the portfolio context.

Process-wide singletons (store, quote cache, market-data adapter,
portfolio locks) are memoized with ``lru_cache``; tests replace them
through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from app.application.portfolio.buy_stock import BuyStockUseCase
from app.application.portfolio.get_portfolio import GetPortfolioUseCase
from app.application.portfolio.get_recommendations import GetRecommendationsUseCase
from app.application.portfolio.get_stock_sentiment import GetStockSentimentUseCase
from app.application.portfolio.get_value_history import GetValueHistoryUseCase
from app.application.portfolio.list_stocks import ListStocksUseCase
from app.application.portfolio.locks import PortfolioLocks
from app.application.portfolio.refresh_market_data import RefreshMarketDataUseCase
from app.application.portfolio.sell_stock import SellStockUseCase
from app.application.portfolio.update_portfolio import UpdatePortfolioUseCase
from app.core.config import settings
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.ledger import PositionLedger
from app.domain.portfolio.ports import MarketDataPort
from app.infrastructure.portfolio.advisory_adapter import StoredAdvisoryAdapter
from app.infrastructure.portfolio.memory_repository import InMemoryStore
from app.infrastructure.portfolio.quote_cache import QuoteCache
from app.infrastructure.portfolio.seed import seed_demo_data
from app.infrastructure.portfolio.tinkoff_market_data import TinkoffMarketDataAdapter


@lru_cache
def get_store() -> InMemoryStore:
    """Return the process-wide store, seeded with demo data when enabled."""
    store = InMemoryStore()
    if settings.seed_demo_data:
        seed_demo_data(store)
    return store


@lru_cache
def get_quote_cache() -> QuoteCache:
    return QuoteCache(
        ttl_seconds=settings.quote_cache_ttl_seconds,
        max_entries=settings.quote_cache_max_entries,
    )


@lru_cache
def get_market_data() -> MarketDataPort:
    """Build the Tinkoff Invest adapter behind the shared quote cache."""
    return TinkoffMarketDataAdapter(
        token=settings.tinkoff_api_token,
        cache=get_quote_cache(),
        base_url=settings.tinkoff_base_url,
        timeout=settings.market_data_timeout_seconds,
    )


@lru_cache
def get_locks() -> PortfolioLocks:
    return PortfolioLocks()


def _ledger(store: InMemoryStore) -> PositionLedger:
    return PositionLedger(store.portfolios, store.stocks, store.positions)


def get_portfolio_use_case(
    store: InMemoryStore = Depends(get_store),
) -> GetPortfolioUseCase:
    """Build GetPortfolioUseCase with its infrastructure dependencies."""
    return GetPortfolioUseCase(
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        aggregator=PortfolioAggregator(),
    )


def get_update_portfolio_use_case(
    store: InMemoryStore = Depends(get_store),
    locks: PortfolioLocks = Depends(get_locks),
) -> UpdatePortfolioUseCase:
    """Build UpdatePortfolioUseCase with its infrastructure dependencies."""
    return UpdatePortfolioUseCase(
        portfolio_repo=store.portfolios,
        position_repo=store.positions,
        aggregator=PortfolioAggregator(),
        locks=locks,
    )


def get_buy_stock_use_case(
    store: InMemoryStore = Depends(get_store),
    locks: PortfolioLocks = Depends(get_locks),
) -> BuyStockUseCase:
    """Build BuyStockUseCase with its infrastructure dependencies."""
    return BuyStockUseCase(
        ledger=_ledger(store),
        aggregator=PortfolioAggregator(),
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        locks=locks,
    )


def get_sell_stock_use_case(
    store: InMemoryStore = Depends(get_store),
    locks: PortfolioLocks = Depends(get_locks),
) -> SellStockUseCase:
    """Build SellStockUseCase with its infrastructure dependencies."""
    return SellStockUseCase(
        ledger=_ledger(store),
        aggregator=PortfolioAggregator(),
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        locks=locks,
    )


def get_list_stocks_use_case(
    store: InMemoryStore = Depends(get_store),
) -> ListStocksUseCase:
    return ListStocksUseCase(stock_repo=store.stocks)


def get_stock_sentiment_use_case(
    store: InMemoryStore = Depends(get_store),
) -> GetStockSentimentUseCase:
    return GetStockSentimentUseCase(
        stock_repo=store.stocks,
        advisory_port=StoredAdvisoryAdapter(store.recommendations, store.news_sentiments),
    )


def get_recommendations_use_case(
    store: InMemoryStore = Depends(get_store),
) -> GetRecommendationsUseCase:
    return GetRecommendationsUseCase(
        portfolio_repo=store.portfolios,
        advisory_port=StoredAdvisoryAdapter(store.recommendations, store.news_sentiments),
    )


def get_value_history_use_case(
    store: InMemoryStore = Depends(get_store),
    market_data: MarketDataPort = Depends(get_market_data),
) -> GetValueHistoryUseCase:
    """Build GetValueHistoryUseCase with its infrastructure dependencies."""
    return GetValueHistoryUseCase(
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        market_data=market_data,
        max_points=settings.history_points,
    )


def get_refresh_market_data_use_case(
    store: InMemoryStore = Depends(get_store),
    market_data: MarketDataPort = Depends(get_market_data),
    locks: PortfolioLocks = Depends(get_locks),
) -> RefreshMarketDataUseCase:
    """Build RefreshMarketDataUseCase with its infrastructure dependencies."""
    return RefreshMarketDataUseCase(
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        ledger=_ledger(store),
        aggregator=PortfolioAggregator(),
        market_data=market_data,
        locks=locks,
        tracked_tickers=settings.tracked_tickers,
    )
