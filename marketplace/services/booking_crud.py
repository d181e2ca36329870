from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Tuple
from marketplace.config import ENFORCE_AVAILABILITY_WINDOW
from marketplace.exceptions import (
    ConflictException,
    DomainException,
    ForbiddenException,
    InvalidOperationException,
    NotFoundException,
)
from marketplace.models.booking_model import Booking
from marketplace.models.review_model import Review
from marketplace.models.service_model import Service
from marketplace.schemas.booking_schema import BookingCreate, BookingStatus, PaymentStatus
from marketplace.security.principal import Principal, Role
from marketplace.services.conflict_checker import ConflictChecker
from marketplace.services.transition_authority import (
    resolve_actor,
    check_transition,
    check_cancellable,
)
from marketplace.utils.time_utils import utcnow
from marketplace.logger import get_logger

logger = get_logger(__name__)

SLOT_TAKEN = "Service is not available at this time"


def _reject(db: Session, exc: DomainException) -> DomainException:
    """Roll back whatever the request touched and hand the error back for raising"""
    db.rollback()
    logger.warning(f"{exc.code}: {exc.message}")
    return exc


class BookingCRUD:
    @staticmethod
    def create_booking(
            db: Session,
            principal: Principal,
            booking: BookingCreate,
            enforce_availability: Optional[bool] = None,
    ) -> Booking:
        """Create a pending booking for the principal, claiming the slot atomically"""
        if enforce_availability is None:
            enforce_availability = ENFORCE_AVAILABILITY_WINDOW

        service = (
            db.query(Service)
            .filter(Service.id == str(booking.service_id), Service.is_active == True)
            .first()
        )
        if not service:
            raise _reject(db, NotFoundException("Service not found or unavailable"))

        if service.provider_id == principal.user_id:
            raise _reject(db, InvalidOperationException("Cannot book your own service"))

        if enforce_availability:
            window = service.availability_window
            if window is not None and not window.contains(booking.date):
                raise _reject(
                    db, InvalidOperationException("Requested time is outside provider availability")
                )

        if not ConflictChecker.check_available(db, service.id, booking.date):
            raise _reject(db, ConflictException(SLOT_TAKEN))

        db_booking = Booking(
            user_id=principal.user_id,
            provider_id=service.provider_id,
            service_id=service.id,
            date=booking.date,
            notes=booking.notes,
            total_price=service.price,
            status=BookingStatus.pending.value,
            payment_status=PaymentStatus.pending.value,
        )
        try:
            db.add(db_booking)
            db.commit()
        except IntegrityError:
            # Lost the race for the slot to a concurrent insert
            raise _reject(db, ConflictException(SLOT_TAKEN))
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating booking: {str(e)}")
            raise

        db.refresh(db_booking)
        logger.info(f"Booking created: {db_booking.id} by user {principal.user_id}")
        return db_booking

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        """Get booking by ID"""
        return db.query(Booking).filter(Booking.id == str(booking_id)).first()

    @staticmethod
    def _get_or_404(db: Session, booking_id: str, lock: bool = False) -> Booking:
        """Fetch a booking; lock=True holds its row until the transaction ends"""
        query = db.query(Booking).filter(Booking.id == str(booking_id))
        if lock:
            query = query.with_for_update().populate_existing()
        db_booking = query.first()
        if not db_booking:
            raise _reject(db, NotFoundException("Booking not found"))
        return db_booking

    @staticmethod
    def get_booking(db: Session, principal: Principal, booking_id: str) -> Booking:
        """Get booking visible to its customer, its provider or an admin"""
        db_booking = BookingCRUD._get_or_404(db, booking_id)
        try:
            resolve_actor(principal, db_booking)
        except ForbiddenException as exc:
            raise _reject(db, exc)
        return db_booking

    @staticmethod
    def can_review(db: Session, booking: Booking) -> bool:
        if booking.status != BookingStatus.completed.value:
            return False
        return db.query(Review.id).filter(Review.booking_id == booking.id).first() is None

    @staticmethod
    def get_bookings(
            db: Session,
            skip: int = 0,
            limit: int = 100,
            user_id: Optional[str] = None,
            provider_id: Optional[str] = None,
            service_id: Optional[str] = None,
            status: Optional[str] = None,
            payment_status: Optional[str] = None,
    ) -> Tuple[List[Booking], int]:
        """Get bookings with optional filtering, newest first, plus the unpaged total"""
        query = db.query(Booking)

        if user_id:
            query = query.filter(Booking.user_id == str(user_id))
        if provider_id:
            query = query.filter(Booking.provider_id == str(provider_id))
        if service_id:
            query = query.filter(Booking.service_id == str(service_id))
        if status:
            query = query.filter(Booking.status == getattr(status, "value", status))
        if payment_status:
            query = query.filter(
                Booking.payment_status == getattr(payment_status, "value", payment_status)
            )

        total = query.count()
        bookings = query.order_by(Booking.created_at.desc()).offset(skip).limit(limit).all()
        return bookings, total

    @staticmethod
    def get_principal_bookings(
            db: Session,
            principal: Principal,
            status: Optional[BookingStatus] = None,
            skip: int = 0,
            limit: int = 100,
    ) -> Tuple[List[Booking], int]:
        """Customers see their bookings, providers their services' bookings, admins all"""
        if principal.role == Role.admin:
            return BookingCRUD.get_bookings(db, skip=skip, limit=limit, status=status)
        if principal.role == Role.provider:
            return BookingCRUD.get_bookings(
                db, skip=skip, limit=limit, provider_id=principal.user_id, status=status
            )
        return BookingCRUD.get_bookings(
            db, skip=skip, limit=limit, user_id=principal.user_id, status=status
        )

    @staticmethod
    def transition(
            db: Session,
            principal: Principal,
            booking_id: str,
            target_status: BookingStatus,
            notes: Optional[str] = None,
    ) -> Booking:
        """Move a booking to target_status if the principal's role permits it"""
        db_booking = BookingCRUD._get_or_404(db, booking_id, lock=True)
        current = BookingStatus(db_booking.status)

        try:
            actor = resolve_actor(principal, db_booking)
            check_transition(actor, current, target_status)
        except DomainException as exc:
            raise _reject(db, exc)

        try:
            db_booking.status = target_status.value
            if notes is not None:
                db_booking.notes = notes
            db_booking.updated_at = utcnow()
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating booking {booking_id}: {str(e)}")
            raise

        db.refresh(db_booking)
        logger.info(
            f"Booking {db_booking.id} status: {current.value} -> {target_status.value} by {actor.value}"
        )
        return db_booking

    @staticmethod
    def cancel_booking(db: Session, principal: Principal, booking_id: str) -> Booking:
        """Cancel on behalf of the customer, the provider or an admin"""
        db_booking = BookingCRUD._get_or_404(db, booking_id, lock=True)

        try:
            actor = resolve_actor(principal, db_booking)
            check_cancellable(BookingStatus(db_booking.status))
        except DomainException as exc:
            raise _reject(db, exc)

        try:
            db_booking.status = BookingStatus.cancelled.value
            db_booking.updated_at = utcnow()
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Error cancelling booking {booking_id}: {str(e)}")
            raise

        db.refresh(db_booking)
        logger.info(f"Booking cancelled: {db_booking.id} by {actor.value}")
        return db_booking

    @staticmethod
    def delete_booking(db: Session, principal: Principal, booking_id: str) -> None:
        """Hard delete; refused once a review points at the booking"""
        db_booking = BookingCRUD._get_or_404(db, booking_id, lock=True)

        try:
            resolve_actor(principal, db_booking)
        except ForbiddenException as exc:
            raise _reject(db, exc)

        if db.query(Review.id).filter(Review.booking_id == db_booking.id).first() is not None:
            raise _reject(db, InvalidOperationException("Cannot delete booking with existing review"))

        try:
            db.delete(db_booking)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Error deleting booking {booking_id}: {str(e)}")
            raise

        logger.info(f"Booking deleted: {booking_id} by {principal.user_id}")

    @staticmethod
    def update_payment_status(
            db: Session,
            principal: Principal,
            booking_id: str,
            payment_status: PaymentStatus,
    ) -> Booking:
        """Set the passive payment field (admin only)"""
        if not principal.is_admin:
            raise _reject(db, ForbiddenException("Admin access required"))

        db_booking = BookingCRUD._get_or_404(db, booking_id, lock=True)
        try:
            db_booking.payment_status = payment_status.value
            db_booking.updated_at = utcnow()
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Error updating payment status of booking {booking_id}: {str(e)}")
            raise

        db.refresh(db_booking)
        logger.info(f"Booking {db_booking.id} payment status: {payment_status.value}")
        return db_booking


booking_crud = BookingCRUD()
