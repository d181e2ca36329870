from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple
from sqlalchemy.orm import Session
from marketplace.exceptions import NotFoundException
from marketplace.models.review_model import Review
from marketplace.models.service_model import Service
from marketplace.logger import get_logger

logger = get_logger(__name__)

ONE_DECIMAL = Decimal("0.1")


def mean_rating(ratings: Iterable[int]) -> Tuple[Decimal, int]:
    """Mean rounded half-up to one decimal, and the count. No ratings gives (0.0, 0)."""
    values = list(ratings)
    if not values:
        return Decimal("0.0"), 0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return mean.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP), len(values)


class RatingAggregator:
    @staticmethod
    def lock_service(db: Session, service_id: str) -> Service:
        """Take the service row lock that serializes recomputes for one service"""
        service = (
            db.query(Service)
            .filter(Service.id == str(service_id))
            .with_for_update()
            .first()
        )
        if service is None:
            raise NotFoundException("Service not found")
        return service

    @staticmethod
    def recompute_rating(db: Session, service_id: str) -> Service:
        """Rebuild rating and review_count from every review of the service.

        Always a full re-read, never an incremental update. Runs inside the
        caller's transaction and leaves the commit to the caller.
        """
        service = RatingAggregator.lock_service(db, service_id)
        db.flush()
        ratings = [
            row.rating
            for row in db.query(Review.rating).filter(Review.service_id == service.id).all()
        ]
        rating, count = mean_rating(ratings)
        service.rating = rating
        service.review_count = count
        db.flush()
        logger.info(f"Service {service.id} rating recomputed: {rating} over {count} reviews")
        return service


rating_aggregator = RatingAggregator()
