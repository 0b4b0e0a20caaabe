"""
Position ledger: buy/sell arithmetic for (portfolio, stock) pairs.

The ledger owns the authoritative quantity and cost-basis state of
every position. All lookups and validation happen before anything is
written, so a failed operation never leaves a partial mutation behind.

Rules:
    buy:  weighted-average cost,
          new_avg = (old_qty * old_avg + qty * price) / (old_qty + qty)
    sell: quantity shrinks, average price is untouched.
    Derived fields are always valued at the stock's current market
    price, never at the trade price.

Selling the whole quantity soft-closes the position: the record is
kept with quantity 0 and its original average price, and is hidden
from the portfolio's open positions.

Portfolio totals are not touched here; callers run the aggregator.
"""

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from app.domain.portfolio.entities import Position, Stock, utcnow
from app.domain.portfolio.errors import (
    InsufficientSharesError,
    PortfolioNotFoundError,
    PositionNotFoundError,
    StockNotFoundError,
    TradeValidationError,
)
from app.domain.portfolio.money import percent_of, to_money, to_price
from app.domain.portfolio.ports import (
    PortfolioRepository,
    PositionRepository,
    StockRepository,
)

logger = logging.getLogger(__name__)


def weighted_average_price(
    old_quantity: int, old_average: Decimal, quantity: int, price: Decimal
) -> Decimal:
    """Return the average cost per share after adding ``quantity`` at ``price``."""
    total_quantity = old_quantity + quantity
    total_cost = old_quantity * old_average + quantity * price
    return to_price(total_cost / total_quantity)


def revalue(position: Position, current_price: Decimal) -> Position:
    """Recompute the derived valuation fields of a position.

    ``unrealized_pnl`` is taken from the rounded ``current_value`` so that
    ``current_value - quantity * average_price == unrealized_pnl`` holds
    on the stored figures.
    """
    current_value = to_money(position.quantity * current_price)
    cost_basis = position.cost_basis
    unrealized_pnl = to_money(current_value - cost_basis)
    return replace(
        position,
        current_value=current_value,
        unrealized_pnl=unrealized_pnl,
        unrealized_pnl_percent=percent_of(unrealized_pnl, cost_basis),
        updated_at=utcnow(),
    )


def _validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise TradeValidationError("quantity must be an integer")
    if quantity <= 0:
        raise TradeValidationError("quantity must be positive")


def _validate_price(price: Decimal) -> Decimal:
    """Return the trade price rounded to price precision."""
    try:
        price = Decimal(price)
        if not price.is_finite() or price <= 0:
            raise TradeValidationError("price must be positive")
        rounded = to_price(price)
    except InvalidOperation as exc:
        raise TradeValidationError("price is out of range") from exc
    if rounded <= 0:
        raise TradeValidationError("price must be at least 0.0001")
    return rounded


def _normalize_ticker(ticker: str) -> str:
    if not isinstance(ticker, str) or not ticker.strip():
        raise TradeValidationError("ticker is required")
    return ticker.strip().upper()


class PositionLedger:
    """Applies buy and sell operations to stored positions.

    Args:
        portfolios: Portfolio repository port.
        stocks: Stock repository port.
        positions: Position repository port.
    """

    def __init__(
        self,
        portfolios: PortfolioRepository,
        stocks: StockRepository,
        positions: PositionRepository,
    ) -> None:
        self._portfolios = portfolios
        self._stocks = stocks
        self._positions = positions

    def _resolve(self, portfolio_id: int, ticker: str) -> Stock:
        stock = self._stocks.get_by_ticker(ticker)
        if stock is None:
            raise StockNotFoundError(ticker)
        if self._portfolios.get_by_id(portfolio_id) is None:
            raise PortfolioNotFoundError(portfolio_id)
        return stock

    def buy(
        self, portfolio_id: int, ticker: str, quantity: int, price: Decimal
    ) -> Position:
        """Open or augment a position.

        Args:
            portfolio_id: Target portfolio.
            ticker: Stock ticker (case-insensitive).
            quantity: Number of shares bought, > 0.
            price: Trade price per share, > 0.

        Returns:
            The created or updated position.

        Raises:
            TradeValidationError: On invalid quantity or price, including
                prices that round to zero and out-of-range amounts.
            StockNotFoundError: If the ticker is unknown.
            PortfolioNotFoundError: If the portfolio is unknown.
        """
        ticker = _normalize_ticker(ticker)
        _validate_quantity(quantity)
        price = _validate_price(price)

        stock = self._resolve(portfolio_id, ticker)
        existing = self._positions.find(portfolio_id, stock.id)

        try:
            if existing is None:
                position = revalue(
                    Position(
                        portfolio_id=portfolio_id,
                        stock_id=stock.id,
                        quantity=quantity,
                        average_price=price,
                    ),
                    stock.current_price,
                )
            else:
                position = revalue(
                    replace(
                        existing,
                        quantity=existing.quantity + quantity,
                        average_price=weighted_average_price(
                            existing.quantity, existing.average_price, quantity, price
                        ),
                    ),
                    stock.current_price,
                )
        except InvalidOperation as exc:
            raise TradeValidationError("trade amount is out of range") from exc

        if existing is None:
            created = self._positions.add(position)
            logger.info(
                "Opened position id=%s portfolio=%s ticker=%s qty=%s avg=%s",
                created.id,
                portfolio_id,
                ticker,
                created.quantity,
                created.average_price,
            )
            return created

        saved = self._positions.save(position)
        logger.info(
            "Augmented position id=%s portfolio=%s ticker=%s qty=%s avg=%s",
            saved.id,
            portfolio_id,
            ticker,
            saved.quantity,
            saved.average_price,
        )
        return saved

    def sell(self, portfolio_id: int, ticker: str, quantity: int) -> Position:
        """Reduce or close a position.

        Returns:
            The updated position; quantity 0 when fully sold.

        Raises:
            TradeValidationError: On a non-positive quantity.
            StockNotFoundError: If the ticker is unknown.
            PortfolioNotFoundError: If the portfolio is unknown.
            PositionNotFoundError: If no open position exists.
            InsufficientSharesError: If quantity exceeds the shares held.
        """
        ticker = _normalize_ticker(ticker)
        _validate_quantity(quantity)

        stock = self._resolve(portfolio_id, ticker)
        existing = self._positions.find(portfolio_id, stock.id)
        if existing is None or not existing.is_open:
            raise PositionNotFoundError(portfolio_id, ticker)
        if existing.quantity < quantity:
            raise InsufficientSharesError(ticker, quantity, existing.quantity)

        reduced = replace(existing, quantity=existing.quantity - quantity)
        saved = self._positions.save(revalue(reduced, stock.current_price))
        if saved.is_open:
            logger.info(
                "Reduced position id=%s portfolio=%s ticker=%s qty=%s",
                saved.id,
                portfolio_id,
                ticker,
                saved.quantity,
            )
        else:
            logger.info(
                "Closed position id=%s portfolio=%s ticker=%s",
                saved.id,
                portfolio_id,
                ticker,
            )
        return saved

    def revalue_portfolio(self, portfolio_id: int) -> list[Position]:
        """Revalue every open position of a portfolio at current prices."""
        revalued = []
        for position in self._positions.list_by_portfolio(portfolio_id):
            stock = self._stocks.get_by_id(position.stock_id)
            if stock is None:
                logger.warning(
                    "Position id=%s references missing stock id=%s",
                    position.id,
                    position.stock_id,
                )
                revalued.append(position)
                continue
            revalued.append(self._positions.save(revalue(position, stock.current_price)))
        return revalued
