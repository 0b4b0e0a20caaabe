"""
FastAPI router for the portfolio bounded context.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Path, Query, Request

from app.application.portfolio.buy_stock import BuyStockUseCase
from app.application.portfolio.dtos import (
    BuyStockCommand,
    GetPortfolioQuery,
    GetRecommendationsQuery,
    GetStockSentimentQuery,
    GetValueHistoryQuery,
    SellStockCommand,
    TradeResult,
    UpdatePortfolioCommand,
)
from app.application.portfolio.get_portfolio import GetPortfolioUseCase
from app.application.portfolio.get_recommendations import GetRecommendationsUseCase
from app.application.portfolio.get_stock_sentiment import GetStockSentimentUseCase
from app.application.portfolio.get_value_history import GetValueHistoryUseCase
from app.application.portfolio.list_stocks import ListStocksUseCase
from app.application.portfolio.refresh_market_data import RefreshMarketDataUseCase
from app.application.portfolio.sell_stock import SellStockUseCase
from app.application.portfolio.update_portfolio import UpdatePortfolioUseCase
from app.core.config import settings
from app.domain.portfolio.entities import Portfolio, Position, RiskProfile, Stock
from app.interfaces.portfolio.dependencies import (
    get_buy_stock_use_case,
    get_list_stocks_use_case,
    get_portfolio_use_case,
    get_recommendations_use_case,
    get_refresh_market_data_use_case,
    get_sell_stock_use_case,
    get_stock_sentiment_use_case,
    get_update_portfolio_use_case,
    get_value_history_use_case,
)
from app.interfaces.portfolio.schemas import (
    AllocationItem,
    BuyRequest,
    ErrorResponse,
    NewsSentimentItem,
    PortfolioItem,
    PortfolioResponse,
    PositionItem,
    RecommendationItem,
    RecommendationsResponse,
    RefreshResponse,
    SellRequest,
    SentimentResponse,
    StockItem,
    TradeResponse,
    UpdatePortfolioRequest,
    ValueHistoryResponse,
    ValuePointItem,
)
from app.shared.security.rate_limiting import limiter

router = APIRouter(tags=["portfolio"])


def _stock_item(stock: Stock) -> StockItem:
    return StockItem(
        id=stock.id,
        ticker=stock.ticker,
        name=stock.name,
        figi=stock.figi,
        currency=stock.currency,
        lot=stock.lot,
        current_price=stock.current_price,
        previous_price=stock.previous_price,
        change_percent=stock.change_percent,
        sector=stock.sector,
        updated_at=stock.updated_at,
    )


def _position_item(position: Position, stock: Stock) -> PositionItem:
    return PositionItem(
        id=position.id,
        stock_id=position.stock_id,
        quantity=position.quantity,
        average_price=position.average_price,
        current_value=position.current_value,
        unrealized_pnl=position.unrealized_pnl,
        unrealized_pnl_percent=position.unrealized_pnl_percent,
        recommendation=position.recommendation,
        updated_at=position.updated_at,
        stock=_stock_item(stock),
    )


def _portfolio_fields(portfolio: Portfolio) -> dict:
    return {
        "id": portfolio.id,
        "name": portfolio.name,
        "total_value": portfolio.total_value,
        "daily_gain": portfolio.daily_gain,
        "daily_gain_percent": portfolio.daily_gain_percent,
        "active_positions": portfolio.active_positions,
        "available_cash": portfolio.available_cash,
        "budget": portfolio.budget,
        "risk_profile": portfolio.risk_profile.value,
        "updated_at": portfolio.updated_at,
    }


def _trade_response(result: TradeResult) -> TradeResponse:
    return TradeResponse(
        message=result.message,
        position=_position_item(result.position, result.stock),
        portfolio=PortfolioItem(**_portfolio_fields(result.portfolio)),
    )


@router.get(
    "/portfolios/{portfolio_id}",
    response_model=PortfolioResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Portfolio snapshot",
    description="Portfolio totals, open positions with their stocks, and allocation.",
)
def get_portfolio(
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    use_case: GetPortfolioUseCase = Depends(get_portfolio_use_case),
) -> PortfolioResponse:
    """Return the full portfolio snapshot."""
    result = use_case.execute(GetPortfolioQuery(portfolio_id=portfolio_id))
    return PortfolioResponse(
        **_portfolio_fields(result.portfolio),
        cash_allocation_percent=result.cash_allocation_percent,
        positions=[_position_item(h.position, h.stock) for h in result.holdings],
        allocation=[
            AllocationItem(
                label=s.label, value=s.value, percent=s.percent, is_cash=s.is_cash
            )
            for s in result.allocation
        ],
    )


@router.patch(
    "/portfolios/{portfolio_id}",
    response_model=PortfolioItem,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update portfolio settings",
    description="Partially update name, risk profile, budget or available cash.",
)
def update_portfolio(
    request: UpdatePortfolioRequest,
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    use_case: UpdatePortfolioUseCase = Depends(get_update_portfolio_use_case),
) -> PortfolioItem:
    """Apply a partial settings update."""
    portfolio = use_case.execute(
        UpdatePortfolioCommand(
            portfolio_id=portfolio_id,
            name=request.name,
            risk_profile=RiskProfile(request.risk_profile) if request.risk_profile else None,
            budget=request.budget,
            available_cash=request.available_cash,
        )
    )
    return PortfolioItem(**_portfolio_fields(portfolio))


@router.get(
    "/portfolios/{portfolio_id}/history",
    response_model=ValueHistoryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Portfolio value history",
    description=(
        "Hourly portfolio value built from market candles; falls back to an "
        "interpolated series flagged synthetic when market data is unavailable."
    ),
)
def get_value_history(
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    days: int = Query(7, ge=1, le=30, description="Days of candles to request"),
    use_case: GetValueHistoryUseCase = Depends(get_value_history_use_case),
) -> ValueHistoryResponse:
    """Return the portfolio value history."""
    result = use_case.execute(GetValueHistoryQuery(portfolio_id=portfolio_id, days=days))
    return ValueHistoryResponse(
        portfolio_id=result.portfolio_id,
        synthetic=result.synthetic,
        points=[ValuePointItem(timestamp=p.timestamp, value=p.value) for p in result.points],
    )


@router.get(
    "/portfolios/{portfolio_id}/recommendations",
    response_model=RecommendationsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Portfolio recommendations",
)
def get_recommendations(
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    use_case: GetRecommendationsUseCase = Depends(get_recommendations_use_case),
) -> RecommendationsResponse:
    """Return advisory recommendations for a portfolio."""
    result = use_case.execute(GetRecommendationsQuery(portfolio_id=portfolio_id))
    return RecommendationsResponse(
        portfolio_id=result.portfolio_id,
        recommendations=[
            RecommendationItem(
                id=r.id,
                type=r.type.value,
                title=r.title,
                description=r.description,
                stock_id=r.stock_id,
                target_price=r.target_price,
                risk_level=r.risk_level.value,
                potential=r.potential,
                created_at=r.created_at,
            )
            for r in result.recommendations
        ],
    )


@router.post(
    "/portfolios/{portfolio_id}/buy",
    response_model=TradeResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Buy shares",
    description="Open or augment a position using weighted-average cost.",
)
def buy_stock(
    request: BuyRequest,
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    use_case: BuyStockUseCase = Depends(get_buy_stock_use_case),
) -> TradeResponse:
    """Buy shares into a portfolio."""
    result = use_case.execute(
        BuyStockCommand(
            portfolio_id=portfolio_id,
            ticker=request.ticker,
            quantity=request.quantity,
            price=request.price,
        )
    )
    return _trade_response(result)


@router.post(
    "/portfolios/{portfolio_id}/sell",
    response_model=TradeResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Sell shares",
    description="Reduce or close a position; the average price is unchanged.",
)
def sell_stock(
    request: SellRequest,
    portfolio_id: int = Path(..., ge=1, description="Portfolio identifier"),
    use_case: SellStockUseCase = Depends(get_sell_stock_use_case),
) -> TradeResponse:
    """Sell shares from a portfolio."""
    result = use_case.execute(
        SellStockCommand(
            portfolio_id=portfolio_id,
            ticker=request.ticker,
            quantity=request.quantity,
        )
    )
    return _trade_response(result)


@router.get(
    "/stocks",
    response_model=list[StockItem],
    summary="List stocks",
)
def list_stocks(
    use_case: ListStocksUseCase = Depends(get_list_stocks_use_case),
) -> list[StockItem]:
    """Return every known stock ordered by ticker."""
    return [_stock_item(s) for s in use_case.execute()]


@router.get(
    "/stocks/{ticker}/sentiment",
    response_model=SentimentResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Stock news sentiment",
)
def get_stock_sentiment(
    ticker: str = Path(..., min_length=1, max_length=12),
    use_case: GetStockSentimentUseCase = Depends(get_stock_sentiment_use_case),
) -> SentimentResponse:
    """Return the news sentiment recorded for a stock."""
    result = use_case.execute(GetStockSentimentQuery(ticker=ticker))
    news = None
    if result.sentiment is not None:
        news = NewsSentimentItem(
            sentiment=result.sentiment.sentiment,
            bullish_points=list(result.sentiment.bullish_points),
            bearish_points=list(result.sentiment.bearish_points),
            updated_at=result.sentiment.updated_at,
        )
    return SentimentResponse(stock=_stock_item(result.stock), news=news)


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={429: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Refresh market data",
    description="Pull last prices for the tracked tickers and recompute every portfolio.",
)
@limiter.limit(settings.rate_limit_heavy)
def refresh_market_data(
    request: Request,
    use_case: RefreshMarketDataUseCase = Depends(get_refresh_market_data_use_case),
) -> RefreshResponse:
    """Refresh stock prices and portfolio valuations."""
    result = use_case.execute()
    return RefreshResponse(
        message="Market data refreshed",
        stocks_updated=list(result.stocks_updated),
        stocks_added=list(result.stocks_added),
        stocks_skipped=list(result.stocks_skipped),
        portfolios_recomputed=result.portfolios_recomputed,
    )
