"""
Use case: Update portfolio settings.

Input: UpdatePortfolioCommand (portfolio_id, optional name, risk_profile,
    budget, available_cash)
Output: Portfolio
Side effects: Persists the changed settings; a cash change triggers a
    full recompute of the portfolio totals.
Failure cases: PortfolioNotFoundError, TradeValidationError.
"""

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from app.application.portfolio.dtos import UpdatePortfolioCommand
from app.application.portfolio.locks import PortfolioLocks
from app.application.portfolio.recompute import recompute_portfolio
from app.domain.portfolio.aggregator import PortfolioAggregator
from app.domain.portfolio.entities import Portfolio, utcnow
from app.domain.portfolio.errors import PortfolioNotFoundError, TradeValidationError
from app.domain.portfolio.money import to_money
from app.domain.portfolio.ports import PortfolioRepository, PositionRepository

logger = logging.getLogger(__name__)


def _to_amount(value: Decimal, field: str) -> Decimal:
    try:
        return to_money(value)
    except InvalidOperation as exc:
        raise TradeValidationError(f"{field} is out of range") from exc


class UpdatePortfolioUseCase:
    """Applies a partial settings update to a portfolio."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        position_repo: PositionRepository,
        aggregator: PortfolioAggregator,
        locks: PortfolioLocks,
    ) -> None:
        self._portfolio_repo = portfolio_repo
        self._position_repo = position_repo
        self._aggregator = aggregator
        self._locks = locks

    def execute(self, command: UpdatePortfolioCommand) -> Portfolio:
        """Run the update use case.

        Returns:
            The updated portfolio.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist.
            TradeValidationError: On an empty name or an amount that is
                negative or too large to represent.
        """
        logger.info("Updating settings of portfolio=%s", command.portfolio_id)

        changes: dict[str, object] = {}
        if command.name is not None:
            if not command.name.strip():
                raise TradeValidationError("name must not be empty")
            changes["name"] = command.name.strip()
        if command.risk_profile is not None:
            changes["risk_profile"] = command.risk_profile
        if command.budget is not None:
            if command.budget < 0:
                raise TradeValidationError("budget must not be negative")
            changes["budget"] = _to_amount(command.budget, "budget")
        if command.available_cash is not None:
            if command.available_cash < 0:
                raise TradeValidationError("available cash must not be negative")
            changes["available_cash"] = _to_amount(command.available_cash, "available cash")

        with self._locks.hold(command.portfolio_id):
            portfolio = self._portfolio_repo.get_by_id(command.portfolio_id)
            if portfolio is None:
                raise PortfolioNotFoundError(command.portfolio_id)
            if not changes:
                return portfolio

            self._portfolio_repo.save(replace(portfolio, updated_at=utcnow(), **changes))
            if "available_cash" in changes:
                return recompute_portfolio(
                    command.portfolio_id,
                    self._portfolio_repo,
                    self._position_repo,
                    self._aggregator,
                )
            return self._portfolio_repo.get_by_id(command.portfolio_id)
