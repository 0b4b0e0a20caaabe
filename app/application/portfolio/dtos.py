"""
Data Transfer Objects for the portfolio application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.domain.portfolio.entities import (
    AllocationSlice,
    NewsSentiment,
    Portfolio,
    Position,
    Recommendation,
    RiskProfile,
    Stock,
    ValuePoint,
)


@dataclass(frozen=True)
class BuyStockCommand:
    """Input DTO for buying shares.

    Attributes:
        portfolio_id: Portfolio receiving the shares.
        ticker: Stock ticker symbol.
        quantity: Number of shares, > 0.
        price: Trade price per share, > 0.
    """

    portfolio_id: int
    ticker: str
    quantity: int
    price: Decimal


@dataclass(frozen=True)
class SellStockCommand:
    """Input DTO for selling shares.

    Attributes:
        portfolio_id: Portfolio holding the shares.
        ticker: Stock ticker symbol.
        quantity: Number of shares, > 0.
    """

    portfolio_id: int
    ticker: str
    quantity: int


@dataclass(frozen=True)
class GetPortfolioQuery:
    portfolio_id: int


@dataclass(frozen=True)
class UpdatePortfolioCommand:
    """Input DTO for a partial portfolio settings update.

    Fields left as None are not changed.
    """

    portfolio_id: int
    name: Optional[str] = None
    risk_profile: Optional[RiskProfile] = None
    budget: Optional[Decimal] = None
    available_cash: Optional[Decimal] = None


@dataclass(frozen=True)
class GetStockSentimentQuery:
    ticker: str


@dataclass(frozen=True)
class GetRecommendationsQuery:
    portfolio_id: int


@dataclass(frozen=True)
class GetValueHistoryQuery:
    """Input DTO for the portfolio value history.

    Attributes:
        portfolio_id: Portfolio to chart.
        days: Number of days of hourly candles to request.
    """

    portfolio_id: int
    days: int = 7


@dataclass(frozen=True)
class HoldingResult:
    """An open position joined with its stock."""

    position: Position
    stock: Stock


@dataclass(frozen=True)
class PortfolioSnapshotResult:
    """Output DTO for a full portfolio view.

    Attributes:
        portfolio: Portfolio with up-to-date totals.
        holdings: Open positions with their stocks.
        allocation: Per-stock and cash allocation slices.
        cash_allocation_percent: Cash share of the total value.
    """

    portfolio: Portfolio
    holdings: list[HoldingResult]
    allocation: list[AllocationSlice]
    cash_allocation_percent: Decimal


@dataclass(frozen=True)
class TradeResult:
    """Output DTO for a buy or sell.

    Attributes:
        message: Human-readable outcome.
        position: The position after the trade (quantity 0 when closed).
        stock: The traded stock.
        portfolio: The portfolio with recomputed totals.
    """

    message: str
    position: Position
    stock: Stock
    portfolio: Portfolio


@dataclass(frozen=True)
class StockSentimentResult:
    stock: Stock
    sentiment: Optional[NewsSentiment]


@dataclass(frozen=True)
class RecommendationsResult:
    portfolio_id: int
    recommendations: list[Recommendation]


@dataclass(frozen=True)
class ValueHistoryResult:
    """Output DTO for the value history.

    Attributes:
        portfolio_id: Charted portfolio.
        points: Time-ordered value points.
        synthetic: True when the points were interpolated because the
            market-data provider was unavailable.
    """

    portfolio_id: int
    points: list[ValuePoint]
    synthetic: bool


@dataclass(frozen=True)
class RefreshResult:
    """Output DTO for a market-data refresh.

    Attributes:
        stocks_updated: Tickers whose prices were refreshed.
        stocks_added: Tracked tickers newly registered from the provider.
        stocks_skipped: Tickers left unchanged after a per-stock failure.
        portfolios_recomputed: Number of portfolios re-aggregated.
    """

    stocks_updated: tuple[str, ...]
    stocks_added: tuple[str, ...]
    stocks_skipped: tuple[str, ...]
    portfolios_recomputed: int
