"""
Domain entities for the portfolio bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
Entities are immutable: every change produces a new instance via
``dataclasses.replace`` and is persisted through a repository port.

An ``id`` of ``UNSAVED_ID`` marks an entity that has not been stored
yet; repositories assign the real identity on ``add``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

UNSAVED_ID = 0

ZERO = Decimal("0")


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(tz=timezone.utc)


class RiskProfile(Enum):
    """Investor risk profile."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RecommendationType(Enum):
    """Kind of advisory recommendation."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    STRATEGY = "STRATEGY"


class RiskLevel(Enum):
    """Risk level attached to a recommendation."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Stock:
    """A listed share tracked by the dashboard.

    Prices are mutated only by the market-data refresh flow.
    Stocks are never deleted.
    """

    ticker: str
    name: str
    figi: str
    currency: str
    lot: int
    current_price: Decimal
    previous_price: Decimal
    change_percent: Decimal = ZERO
    sector: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)
    id: int = UNSAVED_ID


@dataclass(frozen=True)
class Position:
    """Holding of one stock inside one portfolio.

    ``current_value``, ``unrealized_pnl`` and ``unrealized_pnl_percent``
    are derived fields; the ledger recomputes them on every mutation
    and on every price refresh. A position with ``quantity == 0`` is
    closed and kept only for the audit trail.
    """

    portfolio_id: int
    stock_id: int
    quantity: int
    average_price: Decimal
    current_value: Decimal = ZERO
    unrealized_pnl: Decimal = ZERO
    unrealized_pnl_percent: Decimal = ZERO
    recommendation: str = "HOLD"
    updated_at: datetime = field(default_factory=utcnow)
    id: int = UNSAVED_ID

    @property
    def is_open(self) -> bool:
        return self.quantity > 0

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.average_price


@dataclass(frozen=True)
class Portfolio:
    """A virtual portfolio tracking positions and cash.

    ``total_value``, ``daily_gain``, ``daily_gain_percent`` and
    ``active_positions`` are rebuilt from scratch by the aggregator.
    """

    name: str
    available_cash: Decimal
    budget: Decimal
    risk_profile: RiskProfile = RiskProfile.MODERATE
    total_value: Decimal = ZERO
    daily_gain: Decimal = ZERO
    daily_gain_percent: Decimal = ZERO
    active_positions: int = 0
    updated_at: datetime = field(default_factory=utcnow)
    id: int = UNSAVED_ID


@dataclass(frozen=True)
class Recommendation:
    """An advisory recommendation shown next to a portfolio."""

    portfolio_id: int
    type: RecommendationType
    title: str
    description: str
    risk_level: RiskLevel
    stock_id: Optional[int] = None
    target_price: Optional[Decimal] = None
    potential: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    id: int = UNSAVED_ID


@dataclass(frozen=True)
class NewsSentiment:
    """Aggregated news sentiment for a stock, scored 0-100."""

    stock_id: int
    sentiment: Decimal
    bullish_points: tuple[str, ...] = ()
    bearish_points: tuple[str, ...] = ()
    updated_at: datetime = field(default_factory=utcnow)
    id: int = UNSAVED_ID


@dataclass(frozen=True)
class Instrument:
    """A tradable share as listed by the market-data provider."""

    figi: str
    ticker: str
    name: str
    currency: str
    lot: int


@dataclass(frozen=True)
class Candle:
    """A single OHLCV candle for an instrument."""

    figi: str
    time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass(frozen=True)
class ValuePoint:
    """Portfolio value at a point in time."""

    timestamp: datetime
    value: Decimal


@dataclass(frozen=True)
class AllocationSlice:
    """Share of the portfolio total held in one asset (or in cash)."""

    label: str
    value: Decimal
    percent: Decimal
    is_cash: bool = False
