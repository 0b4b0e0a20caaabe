"""
Shared step: rebuild a portfolio's totals and persist them.

Every use case that changes positions, prices or cash ends with this
step. It is a full recompute over every stored position.
"""

from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.entities import Portfolio
from app.domain.portfolio.errors import PortfolioNotFoundError
from app.domain.portfolio.ports import PortfolioRepository, PositionRepository


def recompute_portfolio(
    portfolio_id: int,
    portfolio_repo: PortfolioRepository,
    position_repo: PositionRepository,
    aggregator: PortfolioAggregator,
) -> Portfolio:
    """Recompute and save the totals of one portfolio.

    Raises:
        PortfolioNotFoundError: If the portfolio does not exist.
    """
    portfolio = portfolio_repo.get_by_id(portfolio_id)
    if portfolio is None:
        raise PortfolioNotFoundError(portfolio_id)
    positions = position_repo.list_by_portfolio(portfolio_id, include_closed=True)
    return portfolio_repo.save(aggregator.recompute(portfolio, positions))
