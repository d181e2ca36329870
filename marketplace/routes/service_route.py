from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List
from marketplace.config import RECENT_REVIEWS_LIMIT, MAX_RECOMMENDATIONS
from marketplace.services.service_crud import service_crud
from marketplace.services.review_crud import review_crud
from marketplace.services.recommendation_service import Ranker, recommendation_service
from marketplace.schemas.service_schema import (
    ServiceResponse,
    ServiceWithReviews,
    Recommendation,
    RecommendationList,
)
from marketplace.schemas.review_schema import ReviewResponse
from marketplace.database import get_db
from marketplace.exceptions import DomainException
from marketplace.security.principal import Principal, get_current_principal
from marketplace.logger import get_logger

service_router = APIRouter()
logger = get_logger(__name__)


def get_ranker() -> Ranker:
    """Similarity scoring lives outside this service.

    Deployments install one with ``app.dependency_overrides[get_ranker]``.
    """
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Recommendation ranking is not configured",
    )


@service_router.get(
    "/services/{service_id}",
    response_model=ServiceWithReviews,
    status_code=status.HTTP_200_OK,
)
def get_service(service_id: str, db: Session = Depends(get_db)):
    """Get a service with its rating and most recent reviews (public endpoint)"""
    try:
        service = service_crud.get_service_or_404(db, service_id)
        reviews = review_crud.get_service_reviews(db, service_id, limit=RECENT_REVIEWS_LIMIT)
        return ServiceWithReviews(
            service=ServiceResponse.model_validate(service),
            reviews=[ReviewResponse.model_validate(r) for r in reviews],
        )

    except DomainException:
        raise
    except Exception as e:
        logger.error(f"Error fetching service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching service",
        )


@service_router.get(
    "/services/{service_id}/reviews",
    response_model=List[ReviewResponse],
    status_code=status.HTTP_200_OK,
)
def get_service_reviews(
    service_id: str,
    skip: int = Query(0, ge=0, description="Number of reviews to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of reviews to retrieve"),
    db: Session = Depends(get_db),
):
    """Get all reviews for a specific service"""
    try:
        reviews = review_crud.get_service_reviews(db, service_id, skip, limit)
        return [ReviewResponse.model_validate(r) for r in reviews]

    except DomainException:
        raise
    except Exception as e:
        logger.error(f"Error fetching reviews for service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching service reviews",
        )


@service_router.get(
    "/recommendations",
    response_model=RecommendationList,
    status_code=status.HTTP_200_OK,
)
def get_recommendations(
    q: str = Query("", description="What the customer is looking for"),
    limit: int = Query(10, ge=1, le=MAX_RECOMMENDATIONS, description="Number of services to return"),
    principal: Principal = Depends(get_current_principal),
    ranker: Ranker = Depends(get_ranker),
    db: Session = Depends(get_db),
):
    """Active services ranked against a free-text query"""
    try:
        logger.info(f"User {principal.user_id} requesting recommendations")
        ranked = recommendation_service.recommend(db, q, ranker, limit)
        return RecommendationList(
            recommendations=[
                Recommendation(service=ServiceResponse.model_validate(s), relevance_score=score)
                for s, score in ranked
            ]
        )

    except DomainException:
        raise
    except Exception as e:
        logger.error(f"Error building recommendations: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while building recommendations",
        )
