"""
Adapter: Advisory data served from the repositories.

Implements AdvisoryDataPort on top of the recommendation and news
sentiment repositories. The records are demo content seeded at
startup; a live research feed would be another implementation of the
same port.
"""

from typing import Optional

from app.domain.portfolio.entities import NewsSentiment, Recommendation
from app.domain.portfolio.ports import (
    AdvisoryDataPort,
    NewsSentimentRepository,
    RecommendationRepository,
)


class StoredAdvisoryAdapter(AdvisoryDataPort):
    def __init__(
        self,
        recommendation_repo: RecommendationRepository,
        sentiment_repo: NewsSentimentRepository,
    ) -> None:
        self._recommendation_repo = recommendation_repo
        self._sentiment_repo = sentiment_repo

    def get_recommendations(self, portfolio_id: int) -> list[Recommendation]:
        return self._recommendation_repo.list_by_portfolio(portfolio_id)

    def get_sentiment(self, stock_id: int) -> Optional[NewsSentiment]:
        return self._sentiment_repo.get_by_stock(stock_id)
