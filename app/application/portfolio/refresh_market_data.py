"""
Use case: Refresh stock prices from the market-data provider.

Input: None (the tracked ticker universe comes from configuration)
Output: RefreshResult
Side effects: Updates stock prices, registers newly listed tracked
    stocks, revalues every position and re-aggregates every portfolio.
Failure cases: None raised for provider failures. A failed batch price
    request skips every stock; portfolios are still revalued and
    re-aggregated at the stored prices.

Per-stock failures (no quote, previous-close lookup failure) skip that
stock and the refresh carries on with the rest.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Optional

from app.application.portfolio.dtos import RefreshResult
from app.application.portfolio.locks import PortfolioLocks
from app.application.portfolio.recompute import recompute_portfolio
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.entities import Stock, utcnow
from app.domain.portfolio.errors import UpstreamUnavailableError
from app.domain.portfolio.ledger import PositionLedger
from app.domain.portfolio.money import percent_of, to_price
from app.domain.portfolio.ports import (
    CANDLE_INTERVAL_DAY,
    MarketDataPort,
    PortfolioRepository,
    PositionRepository,
    StockRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    stock: Stock
    is_new: bool


class RefreshMarketDataUseCase:
    """Pulls prices for the tracked universe and recomputes all valuations."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        stock_repo: StockRepository,
        position_repo: PositionRepository,
        ledger: PositionLedger,
        aggregator: PortfolioAggregator,
        market_data: MarketDataPort,
        locks: PortfolioLocks,
        tracked_tickers: list[str],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._portfolio_repo = portfolio_repo
        self._stock_repo = stock_repo
        self._position_repo = position_repo
        self._ledger = ledger
        self._aggregator = aggregator
        self._market_data = market_data
        self._locks = locks
        self._tracked = [t.strip().upper() for t in tracked_tickers if t.strip()]
        self._clock = clock

    def execute(self) -> RefreshResult:
        """Run the refresh."""
        logger.info("Refreshing market data for %d tracked tickers", len(self._tracked))

        candidates = self._candidates()
        figis = [c.stock.figi for c in candidates]
        prices = self._last_prices(figis)

        updated: list[str] = []
        added: list[str] = []
        skipped: list[str] = []
        for candidate in candidates:
            stock = candidate.stock
            current = prices.get(stock.figi)
            if current is None:
                logger.warning("No last price for %s (%s), skipping", stock.ticker, stock.figi)
                skipped.append(stock.ticker)
                continue

            previous = self._previous_close(stock, current)
            if previous is None:
                skipped.append(stock.ticker)
                continue

            refreshed = replace(
                stock,
                current_price=to_price(current),
                previous_price=to_price(previous),
                change_percent=percent_of(current - previous, previous),
                updated_at=utcnow(),
            )
            if candidate.is_new:
                self._stock_repo.add(refreshed)
                added.append(stock.ticker)
            else:
                self._stock_repo.save(refreshed)
            updated.append(stock.ticker)

        portfolios = self._portfolio_repo.list_all()
        for portfolio in portfolios:
            with self._locks.hold(portfolio.id):
                self._ledger.revalue_portfolio(portfolio.id)
                recompute_portfolio(
                    portfolio.id,
                    self._portfolio_repo,
                    self._position_repo,
                    self._aggregator,
                )

        logger.info(
            "Refresh done: updated=%d added=%d skipped=%d portfolios=%d",
            len(updated),
            len(added),
            len(skipped),
            len(portfolios),
        )
        return RefreshResult(
            stocks_updated=tuple(updated),
            stocks_added=tuple(added),
            stocks_skipped=tuple(skipped),
            portfolios_recomputed=len(portfolios),
        )

    def _candidates(self) -> list[_Candidate]:
        known = {s.ticker: s for s in self._stock_repo.list_all()}
        candidates = [
            _Candidate(stock=known[ticker], is_new=False)
            for ticker in self._tracked
            if ticker in known
        ]

        missing = [t for t in self._tracked if t not in known]
        if not missing:
            return candidates

        try:
            instruments = self._market_data.list_shares()
        except UpstreamUnavailableError as exc:
            logger.warning("Could not list instruments, new tickers ignored: %s", exc.reason)
            return candidates

        listed = {i.ticker.upper(): i for i in instruments}
        for ticker in missing:
            instrument = listed.get(ticker)
            if instrument is None:
                logger.warning("Tracked ticker %s is not listed by the provider", ticker)
                continue
            candidates.append(
                _Candidate(
                    stock=Stock(
                        ticker=ticker,
                        name=instrument.name,
                        figi=instrument.figi,
                        currency=instrument.currency,
                        lot=instrument.lot,
                        current_price=Decimal("0"),
                        previous_price=Decimal("0"),
                    ),
                    is_new=True,
                )
            )
        return candidates

    def _last_prices(self, figis: list[str]) -> dict[str, Decimal]:
        if not figis:
            return {}
        try:
            return self._market_data.get_last_prices(figis)
        except UpstreamUnavailableError as exc:
            logger.warning("Last prices unavailable, skipping %d stocks: %s", len(figis), exc.reason)
            return {}

    def _previous_close(self, stock: Stock, current: Decimal) -> Optional[Decimal]:
        """Return yesterday's close, ``current`` when there is no candle,
        or None when the lookup fails."""
        now = self._clock()
        today = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        yesterday = today - timedelta(days=1)
        try:
            candles = self._market_data.get_candles(
                stock.figi, yesterday, today, CANDLE_INTERVAL_DAY
            )
        except UpstreamUnavailableError as exc:
            logger.warning("Previous close unavailable for %s, skipping: %s", stock.ticker, exc.reason)
            return None
        if not candles:
            return current
        return candles[-1].close
