from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from marketplace.models.booking_model import Booking
from marketplace.schemas.booking_schema import ACTIVE_STATUSES
from marketplace.utils.time_utils import to_utc_naive
from marketplace.logger import get_logger

logger = get_logger(__name__)


class ConflictChecker:
    """Decides whether a slot ``(service_id, date)`` is free.

    Only an exact timestamp match against an active booking counts as a
    collision; the service's declared weekly hours are not consulted here.
    The answer is only reliable inside the transaction that goes on to insert
    the booking (see ``BookingCRUD.create_booking``).
    """

    @staticmethod
    def find_active_booking(db: Session, service_id: str, date: datetime) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(
                Booking.service_id == str(service_id),
                Booking.date == to_utc_naive(date),
                Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .first()
        )

    @staticmethod
    def check_available(db: Session, service_id: str, date: datetime) -> bool:
        existing = ConflictChecker.find_active_booking(db, service_id, date)
        if existing is not None:
            logger.debug(f"Slot {service_id}@{date.isoformat()} held by booking {existing.id}")
            return False
        return True


conflict_checker = ConflictChecker()
