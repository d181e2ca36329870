"""
Who may move a booking to which status.

The permission table is flat: it lists the statuses an actor may request,
not the edges of a state graph. A provider may therefore take a pending
booking straight to completed. The only state-dependent rule is that
completed and cancelled bookings never move again.
"""

from enum import Enum
from typing import Dict, FrozenSet
from marketplace.exceptions import (
    ForbiddenException,
    InvalidOperationException,
    InvalidTransitionException,
)
from marketplace.models.booking_model import Booking
from marketplace.schemas.booking_schema import BookingStatus, TERMINAL_STATUSES
from marketplace.security.principal import Principal


class Actor(str, Enum):
    customer = "customer"
    provider = "provider"
    admin = "admin"


PERMITTED_TARGETS: Dict[Actor, FrozenSet[BookingStatus]] = {
    Actor.customer: frozenset({BookingStatus.cancelled}),
    Actor.provider: frozenset({
        BookingStatus.confirmed,
        BookingStatus.in_progress,
        BookingStatus.completed,
        BookingStatus.cancelled,
    }),
    Actor.admin: frozenset(BookingStatus),
}


def resolve_actor(principal: Principal, booking: Booking) -> Actor:
    """Relationship of the principal to the booking, or Forbidden"""
    if principal.is_admin:
        return Actor.admin
    if booking.provider_id == principal.user_id:
        return Actor.provider
    if booking.user_id == principal.user_id:
        return Actor.customer
    raise ForbiddenException("Not authorized to access this booking")


def is_permitted(actor: Actor, target: BookingStatus) -> bool:
    return target in PERMITTED_TARGETS[actor]


def check_transition(actor: Actor, current: BookingStatus, target: BookingStatus) -> None:
    if not is_permitted(actor, target):
        raise InvalidTransitionException(
            f"A {actor.value} cannot set a booking to {target.value}",
            details={"actor": actor.value, "target": target.value},
        )
    if current in TERMINAL_STATUSES:
        raise InvalidOperationException(
            f"Booking is already {current.value} and cannot change status",
            details={"current": current.value, "target": target.value},
        )


def check_cancellable(current: BookingStatus) -> None:
    if current in TERMINAL_STATUSES:
        raise InvalidOperationException("Cannot cancel completed or already cancelled booking")
