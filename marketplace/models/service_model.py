import uuid
from sqlalchemy import Column, String, Boolean, Numeric, Integer, DateTime, Time, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from marketplace.database import Base
from marketplace.schemas.service_schema import AvailabilityWindow
from marketplace.utils.time_utils import utcnow


class Service(Base):
    """Read-side snapshot of a catalog listing.

    Listings are created and edited by the catalog; the booking engine only
    reads them and owns ``rating``/``review_count``, which are a cache of the
    service's reviews rebuilt on every review write.
    """

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    provider_id = Column(String(36), nullable=False, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    category = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    availability_days = Column(JSON, nullable=False, default=list)
    availability_start = Column(Time, nullable=True)
    availability_end = Column(Time, nullable=True)

    rating = Column(Numeric(2, 1), nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    bookings = relationship("Booking", back_populates="service")
    reviews = relationship("Review", back_populates="service")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="check_service_rating_range"),
        CheckConstraint("review_count >= 0", name="check_service_review_count"),
    )

    @property
    def availability_window(self):
        if self.availability_start is None or self.availability_end is None:
            return None
        return AvailabilityWindow(
            days=self.availability_days or [],
            start_time=self.availability_start,
            end_time=self.availability_end,
        )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, provider={self.provider_id}, active={self.is_active})>"
