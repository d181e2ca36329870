from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from marketplace.services.review_crud import review_crud
from marketplace.schemas.review_schema import ReviewCreate, ReviewResponse
from marketplace.database import get_db
from marketplace.exceptions import DomainException
from marketplace.security.principal import Principal, get_current_principal
from marketplace.logger import get_logger

review_router = APIRouter()
logger = get_logger(__name__)


@review_router.post(
    "/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED
)
def create_review(
    review: ReviewCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Review a completed booking (customer of that booking only, once)"""
    try:
        logger.info(
            f"User {principal.user_id} creating review for booking {review.booking_id}"
        )
        db_review = review_crud.create_review(db, principal, review)
        return ReviewResponse.model_validate(db_review)

    except DomainException:
        raise
    except Exception as e:
        logger.error(f"Error creating review: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while creating review",
        )
