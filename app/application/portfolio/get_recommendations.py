"""
Use case: Retrieve advisory recommendations for a portfolio.

Input: GetRecommendationsQuery (portfolio_id)
Output: RecommendationsResult
Side effects: None.
Failure cases: PortfolioNotFoundError.
"""

import logging

from app.application.portfolio.dtos import GetRecommendationsQuery, RecommendationsResult
from app.domain.portfolio.errors import PortfolioNotFoundError
from app.domain.portfolio.ports import AdvisoryDataPort, PortfolioRepository

logger = logging.getLogger(__name__)


class GetRecommendationsUseCase:
    """Verifies the portfolio exists, then delegates to the AdvisoryDataPort."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        advisory_port: AdvisoryDataPort,
    ) -> None:
        self._portfolio_repo = portfolio_repo
        self._advisory_port = advisory_port

    def execute(self, query: GetRecommendationsQuery) -> RecommendationsResult:
        """Run the recommendations use case.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist.
        """
        logger.info("Retrieving recommendations for portfolio=%s", query.portfolio_id)

        if self._portfolio_repo.get_by_id(query.portfolio_id) is None:
            raise PortfolioNotFoundError(query.portfolio_id)

        return RecommendationsResult(
            portfolio_id=query.portfolio_id,
            recommendations=self._advisory_port.get_recommendations(query.portfolio_id),
        )
