from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from marketplace.services.booking_crud import booking_crud
from marketplace.schemas.booking_schema import (
    BookingCreate,
    BookingTransition,
    BookingResponse,
    BookingDetail,
    BookingList,
    BookingStatus,
    PaymentStatus,
    PaymentStatusUpdate,
    MessageResponse,
)
from marketplace.database import get_db
from marketplace.exceptions import DomainException
from marketplace.security.principal import Principal, get_current_principal, get_current_admin
from marketplace.logger import get_logger

booking_router = APIRouter()
logger = get_logger(__name__)


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Error occurred while {action}",
    )


# CUSTOMER / PROVIDER ENDPOINTS


@booking_router.post(
    "/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED
)
def create_booking(
    booking: BookingCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Book a service slot (starts pending, price snapshotted)"""
    try:
        logger.info(
            f"User {principal.user_id} creating booking for service {booking.service_id}"
        )
        db_booking = booking_crud.create_booking(db, principal, booking)
        return BookingResponse.model_validate(db_booking)

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error("creating booking", e)


@booking_router.get(
    "/bookings", response_model=BookingList, status_code=status.HTTP_200_OK
)
def list_bookings(
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of bookings to retrieve"),
    booking_status: Optional[BookingStatus] = Query(
        None, alias="status", description="Filter by booking status"
    ),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Bookings visible to the caller: own, own services', or all for admins"""
    try:
        bookings, total = booking_crud.get_principal_bookings(
            db, principal, status=booking_status, skip=skip, limit=limit
        )
        return BookingList(
            bookings=[BookingResponse.model_validate(b) for b in bookings],
            total=total,
            skip=skip,
            limit=limit,
        )

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error("fetching bookings", e)


@booking_router.get(
    "/bookings/{booking_id}",
    response_model=BookingDetail,
    status_code=status.HTTP_200_OK,
)
def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Get booking by ID (customer, provider or admin)"""
    try:
        booking = booking_crud.get_booking(db, principal, booking_id)
        return BookingDetail(
            **BookingResponse.model_validate(booking).model_dump(),
            can_review=booking_crud.can_review(db, booking),
        )

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(f"fetching booking {booking_id}", e)


@booking_router.patch(
    "/bookings/{booking_id}/status",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def transition_booking(
    booking_id: str,
    transition: BookingTransition,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Change booking status within the caller's permitted set"""
    try:
        logger.info(
            f"User {principal.user_id} moving booking {booking_id} to {transition.status.value}"
        )
        db_booking = booking_crud.transition(
            db, principal, booking_id, transition.status, transition.notes
        )
        return BookingResponse.model_validate(db_booking)

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(f"updating booking {booking_id}", e)


@booking_router.post(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Cancel a booking that is not yet completed or cancelled"""
    try:
        db_booking = booking_crud.cancel_booking(db, principal, booking_id)
        return BookingResponse.model_validate(db_booking)

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(f"cancelling booking {booking_id}", e)


@booking_router.delete(
    "/bookings/{booking_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
)
def delete_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Hard delete a booking that has no review"""
    try:
        booking_crud.delete_booking(db, principal, booking_id)
        return MessageResponse(message="Booking deleted successfully")

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(f"deleting booking {booking_id}", e)


# ADMIN ENDPOINTS


@booking_router.get(
    "/admin/bookings",
    response_model=BookingList,
    status_code=status.HTTP_200_OK,
)
def get_all_bookings(
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of bookings to retrieve"),
    booking_status: Optional[BookingStatus] = Query(
        None, alias="status", description="Filter by booking status"
    ),
    payment_status: Optional[PaymentStatus] = Query(
        None, description="Filter by payment status"
    ),
    service_id: Optional[str] = Query(None, description="Filter by service ID"),
    principal: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Get all bookings with filtering (admin only)"""
    try:
        logger.info(f"Admin {principal.user_id} fetching all bookings")
        bookings, total = booking_crud.get_bookings(
            db=db,
            skip=skip,
            limit=limit,
            service_id=service_id,
            status=booking_status,
            payment_status=payment_status,
        )
        return BookingList(
            bookings=[BookingResponse.model_validate(b) for b in bookings],
            total=total,
            skip=skip,
            limit=limit,
        )

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error("fetching bookings", e)


@booking_router.patch(
    "/admin/bookings/{booking_id}/payment-status",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def update_payment_status(
    booking_id: str,
    update: PaymentStatusUpdate,
    principal: Principal = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Record a payment status change (admin only)"""
    try:
        db_booking = booking_crud.update_payment_status(
            db, principal, booking_id, update.payment_status
        )
        return BookingResponse.model_validate(db_booking)

    except DomainException:
        raise
    except Exception as e:
        raise _internal_error(f"updating payment status of booking {booking_id}", e)
