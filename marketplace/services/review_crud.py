from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from marketplace.exceptions import (
    ConflictException,
    DomainException,
    ForbiddenException,
    InvalidOperationException,
    NotFoundException,
    ValidationException,
)
from marketplace.models.booking_model import Booking
from marketplace.models.review_model import Review
from marketplace.models.service_model import Service
from marketplace.schemas.booking_schema import BookingStatus
from marketplace.schemas.review_schema import ReviewCreate
from marketplace.security.principal import Principal
from marketplace.services.rating_aggregator import RatingAggregator
from marketplace.logger import get_logger

logger = get_logger(__name__)

DUPLICATE_REVIEW = "Review already exists for this booking"


def _validate_rating(rating) -> None:
    # bool is an int subclass; True must not pass as a 1-star rating
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationException("Rating must be an integer between 1 and 5")


class ReviewCRUD:
    @staticmethod
    def create_review(db: Session, principal: Principal, review: ReviewCreate) -> Review:
        """Attach a review to a completed booking and rebuild the service rating.

        The service row is locked before the duplicate check, the insert and
        the recompute, so concurrent submissions for one service run one at a
        time and the last one to commit has seen every review.
        """
        try:
            _validate_rating(review.rating)

            booking = db.query(Booking).filter(Booking.id == str(review.booking_id)).first()
            if not booking:
                raise NotFoundException("Booking not found")
            if booking.user_id != principal.user_id:
                raise ForbiddenException("Only the customer of this booking can review it")
            if booking.status != BookingStatus.completed.value:
                raise InvalidOperationException("Can only review completed bookings")

            RatingAggregator.lock_service(db, booking.service_id)

            existing_review = db.query(Review.id).filter(Review.booking_id == booking.id).first()
            if existing_review:
                raise ConflictException(DUPLICATE_REVIEW)
        except DomainException as exc:
            db.rollback()
            logger.warning(f"{exc.code}: {exc.message}")
            raise

        db_review = Review(
            user_id=principal.user_id,
            service_id=booking.service_id,
            provider_id=booking.provider_id,
            booking_id=booking.id,
            rating=review.rating,
            comment=review.comment,
        )
        try:
            db.add(db_review)
            db.flush()
            RatingAggregator.recompute_rating(db, booking.service_id)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Conflict: duplicate review for booking {booking.id}")
            raise ConflictException(DUPLICATE_REVIEW)
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating review: {str(e)}")
            raise

        db.refresh(db_review)
        logger.info(f"Review created: {db_review.id} for booking {booking.id}")
        return db_review

    @staticmethod
    def get_review_by_id(db: Session, review_id: str) -> Optional[Review]:
        """Get review by ID"""
        return db.query(Review).filter(Review.id == str(review_id)).first()

    @staticmethod
    def get_review_by_booking(db: Session, booking_id: str) -> Optional[Review]:
        """Get review for a specific booking"""
        return db.query(Review).filter(Review.booking_id == str(booking_id)).first()

    @staticmethod
    def get_service_reviews(db: Session, service_id: str, skip: int = 0, limit: int = 100) -> List[Review]:
        """Get reviews of a service, newest first"""
        if db.query(Service.id).filter(Service.id == str(service_id)).first() is None:
            raise NotFoundException("Service not found")
        return (
            db.query(Review)
            .filter(Review.service_id == str(service_id))
            .order_by(Review.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


review_crud = ReviewCRUD()
