from sqlalchemy.orm import Session
from typing import List, Optional
from marketplace.exceptions import NotFoundException
from marketplace.models.service_model import Service
from marketplace.logger import get_logger

logger = get_logger(__name__)


class ServiceCRUD:
    """Read-only view of the service catalog.

    Listings are written by the catalog service; the engine never edits them
    apart from the rating cache owned by RatingAggregator.
    """

    @staticmethod
    def get_service_by_id(db: Session, service_id: str) -> Optional[Service]:
        """Get service by ID"""
        return db.query(Service).filter(Service.id == str(service_id)).first()

    @staticmethod
    def get_service_or_404(db: Session, service_id: str) -> Service:
        db_service = ServiceCRUD.get_service_by_id(db, service_id)
        if not db_service:
            raise NotFoundException("Service not found")
        return db_service

    @staticmethod
    def get_active_services(db: Session, skip: int = 0, limit: int = 100) -> List[Service]:
        """Get only active services"""
        return (
            db.query(Service)
            .filter(Service.is_active == True)
            .order_by(Service.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    def describe(service: Service) -> str:
        """Free text the ranking function matches a query against"""
        parts = [service.title, service.description or "", service.category or ""]
        parts.extend(service.tags or [])
        return " ".join(part for part in parts if part)


service_crud = ServiceCRUD()
