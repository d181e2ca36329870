import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, CheckConstraint, Index, text
from sqlalchemy.orm import relationship
from marketplace.database import Base
from marketplace.utils.time_utils import utcnow

ACTIVE_SLOT_PREDICATE = "status IN ('pending', 'confirmed', 'in_progress')"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id = Column(String(36), nullable=False, index=True)
    provider_id = Column(String(36), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    # Price of the service when booked; never recalculated
    total_price = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    service = relationship("Service", back_populates="bookings")
    review = relationship("Review", back_populates="booking", uselist=False)

    __table_args__ = (
        # At most one active booking per (service, date)
        Index(
            "uq_bookings_active_slot",
            "service_id",
            "date",
            unique=True,
            sqlite_where=text(ACTIVE_SLOT_PREDICATE),
            postgresql_where=text(ACTIVE_SLOT_PREDICATE),
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="check_booking_payment_status",
        ),
        CheckConstraint("user_id <> provider_id", name="check_booking_not_self"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, service={self.service_id}, date={self.date}, status={self.status})>"
