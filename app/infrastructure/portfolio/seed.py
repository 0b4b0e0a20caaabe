"""
Demo data for a fresh in-memory store.

Loads four Russian blue chips, one portfolio holding all of them, two
recommendations and two news sentiment records. Position and portfolio
derived fields are computed with the ledger and aggregator rules
rather than hard-coded.
"""

import logging
from decimal import Decimal

from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.entities import (
    NewsSentiment,
    Portfolio,
    Position,
    Recommendation,
    RecommendationType,
    RiskLevel,
    RiskProfile,
    Stock,
)
from app.domain.portfolio.ledger import revalue
from app.domain.portfolio.money import percent_of
from app.infrastructure.portfolio.memory_repository import InMemoryStore

logger = logging.getLogger(__name__)

DEMO_STOCKS = [
    ("SBER", "Сбербанк", "BBG004730N88", 10, "265.50", "260.00", "Финансы"),
    ("LKOH", "Лукойл", "BBG004731354", 1, "6420.00", "6350.00", "Нефть и газ"),
    ("MGNT", "Магнит", "BBG004730RP0", 10, "5680.00", "5720.00", "Потребительские товары"),
    ("GAZP", "Газпром", "BBG004730ZJ9", 10, "128.50", "126.00", "Нефть и газ"),
]

# ticker, quantity, average price, advisory label
DEMO_POSITIONS = [
    ("SBER", 174, "250.00", "BUY"),
    ("LKOH", 3, "6300.00", "HOLD"),
    ("MGNT", 2, "5800.00", "PARTIAL_SELL"),
    ("GAZP", 10, "125.00", "HOLD"),
]


def seed_demo_data(store: InMemoryStore) -> Portfolio:
    """Populate ``store`` with the demo dataset and return the portfolio."""
    stocks = {}
    for ticker, name, figi, lot, current, previous, sector in DEMO_STOCKS:
        current_price, previous_price = Decimal(current), Decimal(previous)
        stocks[ticker] = store.stocks.add(
            Stock(
                ticker=ticker,
                name=name,
                figi=figi,
                currency="RUB",
                lot=lot,
                current_price=current_price,
                previous_price=previous_price,
                change_percent=percent_of(current_price - previous_price, previous_price),
                sector=sector,
            )
        )

    portfolio = store.portfolios.add(
        Portfolio(
            name="Основной портфель",
            available_cash=Decimal("15332.00"),
            budget=Decimal("110000.00"),
            risk_profile=RiskProfile.MODERATE,
        )
    )

    for ticker, quantity, average, label in DEMO_POSITIONS:
        stock = stocks[ticker]
        position = Position(
            portfolio_id=portfolio.id,
            stock_id=stock.id,
            quantity=quantity,
            average_price=Decimal(average),
            recommendation=label,
        )
        store.positions.add(revalue(position, stock.current_price))

    portfolio = store.portfolios.save(
        PortfolioAggregator().recompute(
            portfolio, store.positions.list_by_portfolio(portfolio.id, include_closed=True)
        )
    )

    store.recommendations.add(
        Recommendation(
            portfolio_id=portfolio.id,
            stock_id=stocks["SBER"].id,
            type=RecommendationType.BUY,
            title="Увеличить позицию в SBER",
            description=(
                "Сбербанк показывает стабильный рост. "
                "Рекомендуется докупить на текущих уровнях."
            ),
            target_price=Decimal("285.00"),
            risk_level=RiskLevel.LOW,
            potential="+8-12%",
        )
    )
    store.recommendations.add(
        Recommendation(
            portfolio_id=portfolio.id,
            stock_id=stocks["MGNT"].id,
            type=RecommendationType.SELL,
            title="Зафиксировать прибыль MGNT",
            description=(
                "Магнит достиг целевых уровней. "
                "Рекомендуется частичная фиксация прибыли."
            ),
            risk_level=RiskLevel.MEDIUM,
            potential="Фиксация: +15%",
        )
    )

    store.news_sentiments.add(
        NewsSentiment(
            stock_id=stocks["SBER"].id,
            sentiment=Decimal("75.00"),
            bullish_points=(
                "Рост кредитного портфеля на 12% г/г",
                "Увеличение дивидендных выплат",
            ),
            bearish_points=("Возможное ужесточение регулирования",),
        )
    )
    store.news_sentiments.add(
        NewsSentiment(
            stock_id=stocks["GAZP"].id,
            sentiment=Decimal("45.00"),
            bullish_points=("Высокие цены на газ в Европе",),
            bearish_points=("Геополитические риски", "Снижение экспортных объёмов"),
        )
    )

    logger.info(
        "Seeded demo portfolio id=%s with %d stocks, total_value=%s",
        portfolio.id,
        len(stocks),
        portfolio.total_value,
    )
    return portfolio
