import os

# Configuration is read at import time, so it has to be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = ""
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ALGORITHM"] = "HS256"
os.environ["ENFORCE_AVAILABILITY_WINDOW"] = "false"

from datetime import datetime, time  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from marketplace.config import ALGORITHM, SECRET_KEY  # noqa: E402
from marketplace.database import Base, create_db_engine, get_db  # noqa: E402
from marketplace.models.booking_model import Booking  # noqa: E402,F401
from marketplace.models.review_model import Review  # noqa: E402,F401
from marketplace.models.service_model import Service  # noqa: E402
from marketplace.schemas.booking_schema import BookingCreate, BookingStatus  # noqa: E402
from marketplace.security.principal import Principal, Role  # noqa: E402
from marketplace.services.booking_crud import BookingCRUD  # noqa: E402

SLOT = datetime(2024, 6, 1, 10, 0)

PROVIDER_ID = "provider-1"
CUSTOMER_ID = "customer-1"
OTHER_CUSTOMER_ID = "customer-2"
ADMIN_ID = "admin-1"
STRANGER_ID = "stranger-1"


@pytest.fixture
def engine(tmp_path):
    # File-backed so that threads get their own connections to one database
    engine = create_db_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provider():
    return Principal(user_id=PROVIDER_ID, role=Role.provider)


@pytest.fixture
def customer():
    return Principal(user_id=CUSTOMER_ID, role=Role.user)


@pytest.fixture
def other_customer():
    return Principal(user_id=OTHER_CUSTOMER_ID, role=Role.user)


@pytest.fixture
def admin():
    return Principal(user_id=ADMIN_ID, role=Role.admin)


@pytest.fixture
def stranger():
    return Principal(user_id=STRANGER_ID, role=Role.user)


def make_service(db, provider_id=PROVIDER_ID, price=Decimal("50.00"), **overrides):
    fields = dict(
        provider_id=provider_id,
        title="House Cleaning",
        description="Deep clean of a two bedroom flat",
        category="cleaning",
        tags=["home", "cleaning"],
        price=price,
        is_active=True,
        availability_days=["monday", "tuesday", "wednesday", "thursday", "friday"],
        availability_start=time(9, 0),
        availability_end=time(17, 0),
    )
    fields.update(overrides)
    service = Service(**fields)
    db.add(service)
    db.commit()
    return service


def make_booking(db, principal, service, date=SLOT, notes=None):
    return BookingCRUD.create_booking(
        db, principal, BookingCreate(service_id=service.id, date=date, notes=notes)
    )


def make_completed_booking(db, customer, provider, service, date=SLOT):
    booking = make_booking(db, customer, service, date=date)
    return BookingCRUD.transition(db, provider, booking.id, BookingStatus.completed)


@pytest.fixture
def service(db):
    return make_service(db)


def token_for(principal: Principal) -> str:
    return jwt.encode(
        {"sub": principal.user_id, "role": principal.role.value}, SECRET_KEY, algorithm=ALGORITHM
    )


def auth_headers(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {token_for(principal)}"}


@pytest.fixture
def client(session_factory):
    from marketplace.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
