from typing import Callable, List, Sequence, Tuple
from sqlalchemy.orm import Session
from marketplace.exceptions import ValidationException
from marketplace.models.service_model import Service
from marketplace.services.service_crud import ServiceCRUD
from marketplace.logger import get_logger

logger = get_logger(__name__)

# Given a query and one description per item, returns one similarity per item.
Ranker = Callable[[str, Sequence[str]], Sequence[float]]

# Upper bound on candidates handed to the ranker per request
CANDIDATE_POOL = 100


class RecommendationService:
    @staticmethod
    def recommend(db: Session, query: str, ranker: Ranker, limit: int = 10) -> List[Tuple[Service, float]]:
        """Active services ordered by the ranker's score for ``query``, best first"""
        query = (query or "").strip()
        if not query:
            raise ValidationException("Query parameter is required")
        if limit < 1:
            raise ValidationException("limit must be at least 1")

        services = ServiceCRUD.get_active_services(db, limit=CANDIDATE_POOL)
        if not services:
            return []

        scores = list(ranker(query, [ServiceCRUD.describe(s) for s in services]))
        if len(scores) != len(services):
            raise ValueError(
                f"Ranker returned {len(scores)} scores for {len(services)} services"
            )

        ranked = sorted(zip(services, scores), key=lambda pair: pair[1], reverse=True)
        logger.debug(f"Ranked {len(ranked)} services for query {query!r}")
        return [(service, round(float(score), 2)) for service, score in ranked[:limit]]


recommendation_service = RecommendationService()
