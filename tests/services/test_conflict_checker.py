from datetime import timedelta

import pytest

from conftest import SLOT, make_booking, make_service
from marketplace.schemas.booking_schema import BookingStatus
from marketplace.services.booking_crud import BookingCRUD
from marketplace.services.conflict_checker import ConflictChecker


def test_free_slot_is_available(db, service):
    assert ConflictChecker.check_available(db, service.id, SLOT) is True


@pytest.mark.parametrize(
    "status, available",
    [
        (BookingStatus.pending, False),
        (BookingStatus.confirmed, False),
        (BookingStatus.in_progress, False),
        (BookingStatus.completed, True),
        (BookingStatus.cancelled, True),
    ],
)
def test_only_active_bookings_hold_the_slot(db, customer, admin, service, status, available):
    booking = make_booking(db, customer, service)
    if status is not BookingStatus.pending:
        BookingCRUD.transition(db, admin, booking.id, status)

    assert ConflictChecker.check_available(db, service.id, SLOT) is available


def test_collision_needs_the_exact_timestamp(db, customer, service):
    make_booking(db, customer, service)

    assert ConflictChecker.check_available(db, service.id, SLOT + timedelta(minutes=1)) is True
    assert ConflictChecker.check_available(db, service.id, SLOT - timedelta(seconds=1)) is True


def test_slots_are_per_service(db, customer, service):
    other = make_service(db, title="Gardening")
    make_booking(db, customer, service)

    assert ConflictChecker.check_available(db, other.id, SLOT) is True


def test_find_active_booking_returns_the_holder(db, customer, service):
    booking = make_booking(db, customer, service)

    assert ConflictChecker.find_active_booking(db, service.id, SLOT).id == booking.id
