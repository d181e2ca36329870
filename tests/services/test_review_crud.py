import threading
from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import SLOT, make_booking, make_completed_booking, make_service
from marketplace.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidOperationException,
    NotFoundException,
    ValidationException,
)
from marketplace.models.review_model import Review
from marketplace.models.service_model import Service
from marketplace.schemas.booking_schema import BookingStatus
from marketplace.schemas.review_schema import ReviewCreate
from marketplace.security.principal import Principal, Role
from marketplace.services.booking_crud import BookingCRUD
from marketplace.services.rating_aggregator import RatingAggregator, mean_rating
from marketplace.services.review_crud import ReviewCRUD


def _review(db, principal, booking, rating, comment=None):
    return ReviewCRUD.create_review(
        db, principal, ReviewCreate(booking_id=booking.id, rating=rating, comment=comment)
    )


def test_lifecycle_then_review_sets_rating(db, customer, provider, service):
    booking = make_booking(db, customer, service)
    for target in (BookingStatus.confirmed, BookingStatus.in_progress, BookingStatus.completed):
        BookingCRUD.transition(db, provider, booking.id, target)

    review = _review(db, customer, booking, 4, "Spotless")

    assert review.service_id == service.id
    assert review.provider_id == provider.user_id
    db.refresh(service)
    assert service.rating == Decimal("4.0")
    assert service.review_count == 1

    with pytest.raises(ConflictException):
        _review(db, customer, booking, 5)
    db.refresh(service)
    assert service.review_count == 1


@pytest.mark.parametrize("rating", [0, 6, -1, 4.5, True, "4"])
def test_rating_outside_one_to_five_is_invalid(db, customer, provider, service, rating):
    booking = make_completed_booking(db, customer, provider, service)

    with pytest.raises(ValidationException):
        ReviewCRUD.create_review(
            db, customer, ReviewCreate.model_construct(booking_id=booking.id, rating=rating)
        )
    assert db.query(Review).count() == 0


def test_unknown_booking_is_not_found(db, customer):
    with pytest.raises(NotFoundException):
        ReviewCRUD.create_review(db, customer, ReviewCreate(booking_id="missing", rating=4))


def test_only_the_customer_can_review(db, customer, provider, admin, service):
    booking = make_completed_booking(db, customer, provider, service)

    for principal in (provider, admin):
        with pytest.raises(ForbiddenException):
            _review(db, principal, booking, 5)


@pytest.mark.parametrize(
    "status", [BookingStatus.pending, BookingStatus.confirmed, BookingStatus.in_progress, BookingStatus.cancelled]
)
def test_only_completed_bookings_can_be_reviewed(db, customer, admin, service, status):
    booking = make_booking(db, customer, service)
    if status is not BookingStatus.pending:
        BookingCRUD.transition(db, admin, booking.id, status)

    with pytest.raises(InvalidOperationException):
        _review(db, customer, booking, 5)


def test_rating_is_the_rounded_mean_of_all_reviews(db, provider, service):
    ratings = [5, 4, 4]
    for n, rating in enumerate(ratings):
        principal = Principal(user_id=f"customer-{n + 10}", role=Role.user)
        booking = make_completed_booking(db, principal, provider, service, date=SLOT + timedelta(hours=n))
        _review(db, principal, booking, rating)

    db.refresh(service)
    # 13 / 3 = 4.333...
    assert service.rating == Decimal("4.3")
    assert service.review_count == 3


def test_reviews_only_count_towards_their_own_service(db, customer, provider, service):
    other = make_service(db, title="Window Cleaning")
    _review(db, customer, make_completed_booking(db, customer, provider, service), 2)
    _review(db, customer, make_completed_booking(db, customer, provider, other), 5)

    db.refresh(service)
    db.refresh(other)
    assert (service.rating, service.review_count) == (Decimal("2.0"), 1)
    assert (other.rating, other.review_count) == (Decimal("5.0"), 1)


def test_recompute_repairs_a_drifted_cache(db, customer, provider, service):
    _review(db, customer, make_completed_booking(db, customer, provider, service), 3)
    service.rating = Decimal("1.0")
    service.review_count = 42
    db.commit()

    RatingAggregator.recompute_rating(db, service.id)
    db.commit()

    db.refresh(service)
    assert (service.rating, service.review_count) == (Decimal("3.0"), 1)


def test_recompute_unknown_service(db):
    with pytest.raises(NotFoundException):
        RatingAggregator.recompute_rating(db, "missing")


@pytest.mark.parametrize(
    "ratings, expected",
    [
        ([], (Decimal("0.0"), 0)),
        ([4], (Decimal("4.0"), 1)),
        ([4, 5], (Decimal("4.5"), 2)),
        ([1, 2, 2], (Decimal("1.7"), 3)),
        ([5, 5, 4, 4, 4, 4, 4, 4], (Decimal("4.3"), 8)),
    ],
)
def test_mean_rating(ratings, expected):
    assert mean_rating(ratings) == expected


def test_mean_rating_rounds_half_up():
    # 4.25 must round to 4.3, not to the even 4.2
    assert mean_rating([5, 5, 4, 3])[0] == Decimal("4.3")


def test_concurrent_reviews_leave_a_consistent_rating(db, session_factory, provider, service):
    ratings = [5, 1, 4, 2, 3, 5, 4, 2]
    bookings = []
    for n in range(len(ratings)):
        principal = Principal(user_id=f"reviewer-{n}", role=Role.user)
        booking = make_completed_booking(db, principal, provider, service, date=SLOT + timedelta(hours=n))
        bookings.append((principal, booking.id))
    db.commit()

    barrier = threading.Barrier(len(ratings))
    errors = []

    def submit(principal, booking_id, rating):
        barrier.wait()
        with session_factory() as session:
            try:
                ReviewCRUD.create_review(
                    session, principal, ReviewCreate(booking_id=booking_id, rating=rating)
                )
            except Exception as exc:
                errors.append(exc)

    threads = [
        threading.Thread(target=submit, args=(principal, booking_id, rating))
        for (principal, booking_id), rating in zip(bookings, ratings)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with session_factory() as session:
        stored = session.query(Service).filter(Service.id == service.id).one()
        assert stored.review_count == len(ratings)
        assert stored.rating == mean_rating(ratings)[0]


def test_concurrent_duplicate_reviews_admit_one(db, session_factory, customer, provider, service):
    booking = make_completed_booking(db, customer, provider, service)
    db.commit()

    workers = 4
    barrier = threading.Barrier(workers)
    outcomes = []

    def submit(rating):
        barrier.wait()
        with session_factory() as session:
            try:
                ReviewCRUD.create_review(
                    session, customer, ReviewCreate(booking_id=booking.id, rating=rating)
                )
                outcomes.append("ok")
            except ConflictException:
                outcomes.append("conflict")

    threads = [threading.Thread(target=submit, args=(n + 1,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict"] * (workers - 1) + ["ok"]
    with session_factory() as session:
        assert session.query(Review).filter(Review.booking_id == booking.id).count() == 1
        assert session.query(Service).filter(Service.id == service.id).one().review_count == 1


def test_service_reviews_are_listed_newest_first(db, customer, provider, service):
    first = _review(db, customer, make_completed_booking(db, customer, provider, service), 3)
    second = _review(
        db, customer, make_completed_booking(db, customer, provider, service, date=SLOT + timedelta(days=1)), 5
    )

    reviews = ReviewCRUD.get_service_reviews(db, service.id)

    assert [r.id for r in reviews] == [second.id, first.id]
    assert ReviewCRUD.get_review_by_booking(db, first.booking_id).id == first.id
    with pytest.raises(NotFoundException):
        ReviewCRUD.get_service_reviews(db, "missing")
