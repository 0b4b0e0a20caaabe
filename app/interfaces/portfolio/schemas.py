"""
Pydantic schemas for portfolio API request/response validation.

These schemas enforce input validation and define the API contract.
Field names are snake_case in Python and camelCase on the wire;
requests accept either form. Money and percentages are Decimals and
serialize as strings so no precision is lost.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TICKER_DESCRIPTION = "MOEX share ticker (case-insensitive)"
TICKER_PATTERN = r"^[A-Za-z0-9]+$"
TICKER_MIN_LEN = 1
TICKER_MAX_LEN = 12

MAX_QUANTITY = 1_000_000_000
MAX_PRICE = Decimal("1000000000")
MAX_AMOUNT = Decimal("1000000000000000")

RiskProfileName = Literal["conservative", "moderate", "aggressive"]


class ApiModel(BaseModel):
    """Base model: camelCase aliases, population by field name allowed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _TickerRequest(ApiModel):
    ticker: str = Field(
        ...,
        min_length=TICKER_MIN_LEN,
        max_length=TICKER_MAX_LEN,
        pattern=TICKER_PATTERN,
        description=TICKER_DESCRIPTION,
    )
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, description="Number of shares")

    @field_validator("ticker")
    @classmethod
    def _upper_ticker(cls, value: str) -> str:
        return value.upper()


class BuyRequest(_TickerRequest):
    """Request schema for the buy endpoint.

    Attributes:
        ticker: Share ticker.
        quantity: Number of shares, 1 to MAX_QUANTITY.
        price: Trade price per share, > 0 and at most MAX_PRICE.
    """

    price: Decimal = Field(..., gt=0, le=MAX_PRICE, description="Trade price per share")


class SellRequest(_TickerRequest):
    """Request schema for the sell endpoint."""


class UpdatePortfolioRequest(ApiModel):
    """Partial update of portfolio settings; omitted fields are unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    risk_profile: Optional[RiskProfileName] = None
    budget: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)
    available_cash: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)


class StockItem(ApiModel):
    id: int
    ticker: str
    name: str
    figi: str
    currency: str
    lot: int
    current_price: Decimal
    previous_price: Decimal
    change_percent: Decimal
    sector: Optional[str] = None
    updated_at: datetime


class PositionItem(ApiModel):
    """An open position joined with its stock."""

    id: int
    stock_id: int
    quantity: int
    average_price: Decimal
    current_value: Decimal
    unrealized_pnl: Decimal = Field(alias="unrealizedPnL")
    unrealized_pnl_percent: Decimal = Field(alias="unrealizedPnLPercent")
    recommendation: str
    updated_at: datetime
    stock: StockItem


class AllocationItem(ApiModel):
    label: str
    value: Decimal
    percent: Decimal
    is_cash: bool


class PortfolioItem(ApiModel):
    """Portfolio summary fields."""

    id: int
    name: str
    total_value: Decimal
    daily_gain: Decimal
    daily_gain_percent: Decimal
    active_positions: int
    available_cash: Decimal
    budget: Decimal
    risk_profile: RiskProfileName
    updated_at: datetime


class PortfolioResponse(PortfolioItem):
    """Response schema for the portfolio snapshot endpoint."""

    cash_allocation_percent: Decimal
    positions: list[PositionItem]
    allocation: list[AllocationItem]


class TradeResponse(ApiModel):
    """Response schema for buy and sell.

    The position has quantity 0 after a full sell.
    """

    message: str
    position: PositionItem
    portfolio: PortfolioItem


class NewsSentimentItem(ApiModel):
    sentiment: Decimal = Field(..., description="Score from 0 (bearish) to 100 (bullish)")
    bullish_points: list[str]
    bearish_points: list[str]
    updated_at: datetime


class SentimentResponse(ApiModel):
    """Response schema for the stock sentiment endpoint.

    ``news`` is null when no sentiment has been recorded for the stock.
    """

    stock: StockItem
    news: Optional[NewsSentimentItem] = None


class RecommendationItem(ApiModel):
    id: int
    type: str
    title: str
    description: str
    stock_id: Optional[int] = None
    target_price: Optional[Decimal] = None
    risk_level: str
    potential: Optional[str] = None
    created_at: datetime


class RecommendationsResponse(ApiModel):
    portfolio_id: int
    recommendations: list[RecommendationItem]


class ValuePointItem(ApiModel):
    timestamp: datetime
    value: Decimal


class ValueHistoryResponse(ApiModel):
    """Response schema for the value history endpoint.

    Attributes:
        synthetic: True when the series was interpolated because the
            market-data provider was unavailable.
    """

    portfolio_id: int
    synthetic: bool
    points: list[ValuePointItem]


class RefreshResponse(ApiModel):
    message: str
    stocks_updated: list[str]
    stocks_added: list[str]
    stocks_skipped: list[str]
    portfolios_recomputed: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    message: str
    detail: Any = None
