"""
Tests for the portfolio application layer (use cases).

Use cases run against the in-memory store and the FakeMarketData
port from conftest. Each test verifies orchestration: what is
recomputed, what is skipped, and what is left untouched on failure.
"""

import threading
from dataclasses import replace
from decimal import Decimal

import pytest

from app.application.portfolio.buy_stock import BuyStockUseCase
from app.application.portfolio.dtos import (
    BuyStockCommand,
    GetPortfolioQuery,
    GetRecommendationsQuery,
    GetStockSentimentQuery,
    GetValueHistoryQuery,
    SellStockCommand,
    UpdatePortfolioCommand,
)
from app.application.portfolio.get_portfolio import GetPortfolioUseCase
from app.application.portfolio.get_recommendations import GetRecommendationsUseCase
from app.application.portfolio.get_stock_sentiment import GetStockSentimentUseCase
from app.application.portfolio.get_value_history import GetValueHistoryUseCase
from app.application.portfolio.list_stocks import ListStocksUseCase
from app.application.portfolio.locks import PortfolioLocks
from app.application.portfolio.refresh_market_data import RefreshMarketDataUseCase
from app.application.portfolio.sell_stock import SellStockUseCase
from app.application.portfolio.update_portfolio import UpdatePortfolioUseCase
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.entities import Instrument, RiskProfile
from app.domain.portfolio.errors import (
    InsufficientSharesError,
    PortfolioNotFoundError,
    StockNotFoundError,
    TradeValidationError,
)
from app.domain.portfolio.ledger import PositionLedger
from app.infrastructure.portfolio.advisory_adapter import StoredAdvisoryAdapter
from tests.conftest import FIXED_NOW, add_portfolio, add_stock, make_candle

SBER_FIGI = "BBG004730N88"
GAZP_FIGI = "BBG004730ZJ9"


def _trade_use_cases(store, locks=None):
    locks = locks or PortfolioLocks()
    args = dict(
        ledger=PositionLedger(store.portfolios, store.stocks, store.positions),
        aggregator=PortfolioAggregator(),
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        locks=locks,
    )
    return BuyStockUseCase(**args), SellStockUseCase(**args)


def _refresh(store, market_data, tracked):
    return RefreshMarketDataUseCase(
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        ledger=PositionLedger(store.portfolios, store.stocks, store.positions),
        aggregator=PortfolioAggregator(),
        market_data=market_data,
        locks=PortfolioLocks(),
        tracked_tickers=tracked,
        clock=lambda: FIXED_NOW,
    )


def _history(store, market_data, max_points=24):
    return GetValueHistoryUseCase(
        portfolio_repo=store.portfolios,
        stock_repo=store.stocks,
        position_repo=store.positions,
        market_data=market_data,
        max_points=max_points,
        clock=lambda: FIXED_NOW,
    )


# ══════════════════════════════════════════════════════════════════════
# Trading
# ══════════════════════════════════════════════════════════════════════


class TestBuyStockUseCase:
    """Tests for BuyStockUseCase."""

    def test_buy_existing_position_recomputes_portfolio(self, demo_store) -> None:
        """Augmenting SBER re-averages cost and rebuilds portfolio totals."""
        buy, _ = _trade_use_cases(demo_store)
        result = buy.execute(
            BuyStockCommand(portfolio_id=1, ticker="SBER", quantity=10, price=Decimal("260"))
        )

        assert result.message == "Position updated successfully"
        assert result.position.quantity == 184
        assert result.position.average_price == Decimal("250.5435")
        assert result.position.current_value == Decimal("48852.00")
        assert result.portfolio.total_value == Decimal("96089.00")
        assert result.portfolio.available_cash == Decimal("15332.00")
        assert result.stock.ticker == "SBER"

    def test_buy_new_stock(self, demo_store) -> None:
        """Buying a stock not yet held opens a position."""
        add_stock(demo_store, "ROSN", "550.00")
        buy, _ = _trade_use_cases(demo_store)
        result = buy.execute(
            BuyStockCommand(portfolio_id=1, ticker="rosn", quantity=2, price=Decimal("540"))
        )

        assert result.message == "Stock purchased successfully"
        assert result.portfolio.active_positions == 5

    def test_failed_buy_leaves_portfolio_untouched(self, demo_store) -> None:
        """An unknown ticker aborts before anything is written."""
        before = demo_store.portfolios.get_by_id(1)
        buy, _ = _trade_use_cases(demo_store)
        with pytest.raises(StockNotFoundError):
            buy.execute(
                BuyStockCommand(portfolio_id=1, ticker="NOPE", quantity=1, price=Decimal("1"))
            )
        assert demo_store.portfolios.get_by_id(1) == before

    def test_concurrent_buys_do_not_lose_updates(self, store) -> None:
        """Parallel buys on one portfolio add up exactly."""
        add_stock(store, "SBER", "100.00")
        portfolio = add_portfolio(store)
        buy, _ = _trade_use_cases(store)

        def worker():
            for _ in range(10):
                buy.execute(
                    BuyStockCommand(
                        portfolio_id=portfolio.id,
                        ticker="SBER",
                        quantity=1,
                        price=Decimal("100"),
                    )
                )

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        stock = store.stocks.get_by_ticker("SBER")
        assert store.positions.find(portfolio.id, stock.id).quantity == 80
        assert store.portfolios.get_by_id(portfolio.id).total_value == Decimal("18000.00")


class TestSellStockUseCase:
    """Tests for SellStockUseCase."""

    def test_full_sell_closes_position(self, demo_store) -> None:
        """Selling all GAZP closes it and drops it from active positions."""
        _, sell = _trade_use_cases(demo_store)
        result = sell.execute(SellStockCommand(portfolio_id=1, ticker="GAZP", quantity=10))

        assert result.message == "Position sold completely"
        assert result.position.quantity == 0
        assert result.portfolio.active_positions == 3
        assert result.portfolio.total_value == Decimal("92149.00")

    def test_partial_sell(self, demo_store) -> None:
        """A partial sell keeps the position open."""
        _, sell = _trade_use_cases(demo_store)
        result = sell.execute(SellStockCommand(portfolio_id=1, ticker="SBER", quantity=74))

        assert result.message == "Stock sold successfully"
        assert result.position.quantity == 100
        assert result.position.average_price == Decimal("250.00")

    def test_oversell_keeps_totals(self, demo_store) -> None:
        """InsufficientShares aborts without touching the portfolio."""
        before = demo_store.portfolios.get_by_id(1)
        _, sell = _trade_use_cases(demo_store)
        with pytest.raises(InsufficientSharesError):
            sell.execute(SellStockCommand(portfolio_id=1, ticker="LKOH", quantity=4))
        assert demo_store.portfolios.get_by_id(1) == before


# ══════════════════════════════════════════════════════════════════════
# Queries
# ══════════════════════════════════════════════════════════════════════


class TestGetPortfolioUseCase:
    """Tests for GetPortfolioUseCase."""

    def _use_case(self, store) -> GetPortfolioUseCase:
        return GetPortfolioUseCase(
            portfolio_repo=store.portfolios,
            stock_repo=store.stocks,
            position_repo=store.positions,
            aggregator=PortfolioAggregator(),
        )

    def test_snapshot_of_demo_portfolio(self, demo_store) -> None:
        """The snapshot joins positions with stocks and adds allocation."""
        result = self._use_case(demo_store).execute(GetPortfolioQuery(portfolio_id=1))

        assert [h.stock.ticker for h in result.holdings] == ["SBER", "LKOH", "MGNT", "GAZP"]
        assert [s.label for s in result.allocation] == ["SBER", "LKOH", "MGNT", "GAZP", "CASH"]
        assert result.cash_allocation_percent == Decimal("16.41")

    def test_closed_positions_hidden(self, demo_store) -> None:
        """Soft-closed positions do not appear in the snapshot."""
        _, sell = _trade_use_cases(demo_store)
        sell.execute(SellStockCommand(portfolio_id=1, ticker="MGNT", quantity=2))
        result = self._use_case(demo_store).execute(GetPortfolioQuery(portfolio_id=1))
        assert "MGNT" not in [h.stock.ticker for h in result.holdings]

    def test_unknown_portfolio(self, demo_store) -> None:
        """A missing portfolio raises PortfolioNotFoundError."""
        with pytest.raises(PortfolioNotFoundError):
            self._use_case(demo_store).execute(GetPortfolioQuery(portfolio_id=7))


class TestAdvisoryUseCases:
    """Tests for stock listing, sentiment and recommendations."""

    def test_list_stocks_sorted(self, demo_store) -> None:
        """Stocks come back ordered by ticker."""
        stocks = ListStocksUseCase(demo_store.stocks).execute()
        assert [s.ticker for s in stocks] == ["GAZP", "LKOH", "MGNT", "SBER"]

    def test_sentiment_lookup_case_insensitive(self, demo_store) -> None:
        """Sentiment is resolved from a lower-case ticker."""
        use_case = GetStockSentimentUseCase(
            demo_store.stocks,
            StoredAdvisoryAdapter(demo_store.recommendations, demo_store.news_sentiments),
        )
        result = use_case.execute(GetStockSentimentQuery(ticker="gazp"))

        assert result.stock.ticker == "GAZP"
        assert result.sentiment.sentiment == Decimal("45.00")
        assert len(result.sentiment.bearish_points) == 2

    def test_sentiment_unknown_ticker(self, demo_store) -> None:
        """An unknown ticker raises StockNotFoundError."""
        use_case = GetStockSentimentUseCase(
            demo_store.stocks,
            StoredAdvisoryAdapter(demo_store.recommendations, demo_store.news_sentiments),
        )
        with pytest.raises(StockNotFoundError):
            use_case.execute(GetStockSentimentQuery(ticker="NOPE"))

    def test_recommendations(self, demo_store) -> None:
        """Seeded recommendations are returned for the demo portfolio."""
        use_case = GetRecommendationsUseCase(
            demo_store.portfolios,
            StoredAdvisoryAdapter(demo_store.recommendations, demo_store.news_sentiments),
        )
        result = use_case.execute(GetRecommendationsQuery(portfolio_id=1))
        assert [r.type.value for r in result.recommendations] == ["BUY", "SELL"]

        with pytest.raises(PortfolioNotFoundError):
            use_case.execute(GetRecommendationsQuery(portfolio_id=2))


# ══════════════════════════════════════════════════════════════════════
# Settings
# ══════════════════════════════════════════════════════════════════════


class TestUpdatePortfolioUseCase:
    """Tests for UpdatePortfolioUseCase."""

    def _use_case(self, store) -> UpdatePortfolioUseCase:
        return UpdatePortfolioUseCase(
            portfolio_repo=store.portfolios,
            position_repo=store.positions,
            aggregator=PortfolioAggregator(),
            locks=PortfolioLocks(),
        )

    def test_cash_change_recomputes_total(self, demo_store) -> None:
        """Changing available cash rebuilds the total value."""
        portfolio = self._use_case(demo_store).execute(
            UpdatePortfolioCommand(portfolio_id=1, available_cash=Decimal("20000"))
        )
        assert portfolio.available_cash == Decimal("20000.00")
        assert portfolio.total_value == Decimal("98102.00")

    def test_settings_change(self, demo_store) -> None:
        """Name, risk profile and budget are updated in place."""
        portfolio = self._use_case(demo_store).execute(
            UpdatePortfolioCommand(
                portfolio_id=1,
                name="  Growth ",
                risk_profile=RiskProfile.AGGRESSIVE,
                budget=Decimal("150000"),
            )
        )
        assert portfolio.name == "Growth"
        assert portfolio.risk_profile is RiskProfile.AGGRESSIVE
        assert portfolio.budget == Decimal("150000.00")
        assert portfolio.total_value == Decimal("93434.00")

    @pytest.mark.parametrize(
        "changes",
        [
            {"budget": Decimal("-1")},
            {"available_cash": Decimal("-0.01")},
            {"name": "   "},
            {"budget": Decimal("1e30")},
            {"available_cash": Decimal("1e27")},
        ],
    )
    def test_invalid_values_rejected(self, demo_store, changes) -> None:
        """Negative or oversized amounts and blank names are validation errors."""
        before = demo_store.portfolios.get_by_id(1)
        with pytest.raises(TradeValidationError):
            self._use_case(demo_store).execute(UpdatePortfolioCommand(portfolio_id=1, **changes))
        assert demo_store.portfolios.get_by_id(1) == before

    def test_unknown_portfolio(self, demo_store) -> None:
        """Updating a missing portfolio raises PortfolioNotFoundError."""
        with pytest.raises(PortfolioNotFoundError):
            self._use_case(demo_store).execute(UpdatePortfolioCommand(portfolio_id=5, name="x"))


# ══════════════════════════════════════════════════════════════════════
# Market data
# ══════════════════════════════════════════════════════════════════════


class TestRefreshMarketDataUseCase:
    """Tests for RefreshMarketDataUseCase."""

    def test_partial_failure_skips_stock(self, demo_store, market_data) -> None:
        """A failing previous-close lookup skips only that stock."""
        market_data.instruments = [
            Instrument(figi="FIGI-ROSN", ticker="ROSN", name="Роснефть", currency="RUB", lot=1)
        ]
        market_data.prices = {
            SBER_FIGI: Decimal("270.00"),
            GAZP_FIGI: Decimal("130.00"),
            "FIGI-ROSN": Decimal("550.00"),
        }
        market_data.candles = {SBER_FIGI: [make_candle(SBER_FIGI, "265.50", hours_ago=24)]}
        market_data.fail_candles_for = {GAZP_FIGI}

        result = _refresh(demo_store, market_data, ["SBER", "GAZP", "ROSN"]).execute()

        assert result.stocks_updated == ("SBER", "ROSN")
        assert result.stocks_added == ("ROSN",)
        assert result.stocks_skipped == ("GAZP",)
        assert result.portfolios_recomputed == 1

        sber = demo_store.stocks.get_by_ticker("SBER")
        assert sber.current_price == Decimal("270.0000")
        assert sber.previous_price == Decimal("265.5000")
        assert sber.change_percent == Decimal("1.69")
        assert demo_store.stocks.get_by_ticker("GAZP").current_price == Decimal("128.50")

        rosn = demo_store.stocks.get_by_ticker("ROSN")
        assert rosn.previous_price == rosn.current_price
        assert rosn.change_percent == Decimal("0.00")

        portfolio = demo_store.portfolios.get_by_id(1)
        assert portfolio.total_value == Decimal("94217.00")

    def test_batch_failure_skips_all_and_recomputes(self, demo_store, market_data) -> None:
        """A failed last-price batch skips every stock but still re-aggregates."""
        market_data.fail_prices = True
        market_data.instruments = [
            Instrument(figi="FIGI-ROSN", ticker="ROSN", name="Роснефть", currency="RUB", lot=1)
        ]
        before_stocks = demo_store.stocks.list_all()
        portfolio = demo_store.portfolios.get_by_id(1)
        demo_store.portfolios.save(replace(portfolio, available_cash=Decimal("20000.00")))

        result = _refresh(demo_store, market_data, ["SBER", "GAZP", "ROSN"]).execute()

        assert result.stocks_updated == ()
        assert result.stocks_added == ()
        assert result.stocks_skipped == ("SBER", "GAZP", "ROSN")
        assert result.portfolios_recomputed == 1
        assert demo_store.stocks.list_all() == before_stocks
        assert demo_store.portfolios.get_by_id(1).total_value == Decimal("98102.00")

    def test_instrument_listing_failure_ignored(self, demo_store, market_data) -> None:
        """Known stocks still refresh when the instrument list is unavailable."""
        market_data.fail_shares = True
        market_data.prices = {SBER_FIGI: Decimal("265.50")}

        result = _refresh(demo_store, market_data, ["SBER", "ROSN"]).execute()

        assert result.stocks_updated == ("SBER",)
        assert result.stocks_added == ()
        assert demo_store.stocks.get_by_ticker("ROSN") is None

    def test_no_listing_when_all_known(self, demo_store, market_data) -> None:
        """Instruments are listed only when a tracked ticker is missing."""
        _refresh(demo_store, market_data, ["SBER"]).execute()
        assert "list_shares" not in market_data.calls

    def test_missing_quote_skips_stock(self, demo_store, market_data) -> None:
        """A stock without a last price is reported as skipped."""
        market_data.prices = {SBER_FIGI: Decimal("265.50")}
        result = _refresh(demo_store, market_data, ["SBER", "LKOH"]).execute()
        assert result.stocks_skipped == ("LKOH",)

    def test_repeated_refresh_does_not_drift(self, demo_store, market_data) -> None:
        """Refreshing with unchanged prices keeps the total stable."""
        market_data.prices = {SBER_FIGI: Decimal("265.50"), GAZP_FIGI: Decimal("128.50")}
        use_case = _refresh(demo_store, market_data, ["SBER", "GAZP"])
        for _ in range(3):
            use_case.execute()
        assert demo_store.portfolios.get_by_id(1).total_value == Decimal("93434.00")


class TestGetValueHistoryUseCase:
    """Tests for GetValueHistoryUseCase."""

    def test_live_history(self, store, market_data) -> None:
        """Live points are close * quantity plus cash, flagged not synthetic."""
        stock = add_stock(store, "SBER", "110.00", figi="F-SBER")
        portfolio = add_portfolio(store, cash="1000.00")
        buy, _ = _trade_use_cases(store)
        buy.execute(
            BuyStockCommand(
                portfolio_id=portfolio.id, ticker="SBER", quantity=10, price=Decimal("100")
            )
        )
        market_data.candles = {
            stock.figi: [
                make_candle(stock.figi, "100", hours_ago=1),
                make_candle(stock.figi, "110"),
            ]
        }

        result = _history(store, market_data).execute(
            GetValueHistoryQuery(portfolio_id=portfolio.id, days=1)
        )

        assert result.synthetic is False
        assert [p.value for p in result.points] == [Decimal("2000.00"), Decimal("2100.00")]

    def test_provider_down_serves_synthetic(self, demo_store, market_data) -> None:
        """An unreachable provider yields a labelled interpolated series."""
        market_data.fail_candles_for = {"*"}
        result = _history(demo_store, market_data, max_points=24).execute(
            GetValueHistoryQuery(portfolio_id=1)
        )

        assert result.synthetic is True
        assert len(result.points) == 24
        assert result.points[0].value == Decimal("90582.00")
        assert result.points[-1].value == Decimal("93434.00")
        assert result.points[-1].timestamp == FIXED_NOW

    def test_no_candles_is_empty_live_series(self, demo_store, market_data) -> None:
        """Provider "no data" is not a failure."""
        result = _history(demo_store, market_data).execute(GetValueHistoryQuery(portfolio_id=1))
        assert result.synthetic is False
        assert result.points == []

    def test_unknown_portfolio(self, demo_store, market_data) -> None:
        """A missing portfolio is an error, not a synthetic series."""
        with pytest.raises(PortfolioNotFoundError):
            _history(demo_store, market_data).execute(GetValueHistoryQuery(portfolio_id=9))
