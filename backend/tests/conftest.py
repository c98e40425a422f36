from pathlib import Path
from dotenv import load_dotenv

# Load environment variables for tests before the app reads its settings
load_dotenv(Path(__file__).resolve().parents[1] / ".env.test")

import itertools
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from eventasap.main import app
from eventasap.database import Base
from eventasap.models import Booking, BookingStatus, PaymentStatus, User, UserType
from eventasap.api.dependencies import get_current_user, get_db, get_payment_provider
from eventasap.services.payment_provider import ProviderIntent, ProviderIntentStatus
from eventasap.utils.errors import ProviderError


class FakePaymentProvider:
    """In-memory stand-in for the Stripe client."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.created = []
        self.intents = {}
        self.fail_create = False
        # What retrieve_payment_intent reports for every intent
        self.remote_status = PaymentStatus.SUCCEEDED

    def create_payment_intent(self, amount, currency, metadata, idempotency_key=None):
        if self.fail_create:
            raise ProviderError()
        intent_id = f"pi_test_{next(self._ids)}"
        self.created.append(
            {
                "id": intent_id,
                "amount": amount,
                "currency": currency,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        self.intents[intent_id] = amount
        return ProviderIntent(id=intent_id, client_secret=f"{intent_id}_secret_abc")

    def retrieve_payment_intent(self, intent_id):
        return ProviderIntentStatus(
            id=intent_id, status=self.remote_status, amount=self.intents.get(intent_id, Decimal("0"))
        )


@pytest.fixture
def engine(tmp_path):
    # File-backed so tests can race two real connections against each other
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def Session(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(Session):
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provider():
    return FakePaymentProvider()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(user_type=UserType.CLIENT, **kwargs):
        n = next(counter)
        user = User(
            email=kwargs.pop("email", f"user{n}@test.com"),
            password=kwargs.pop("password", "x"),
            first_name=kwargs.pop("first_name", f"First{n}"),
            last_name=kwargs.pop("last_name", f"Last{n}"),
            user_type=user_type,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user(UserType.CLIENT, first_name="Cara", last_name="Client")


@pytest.fixture
def vendor_user(make_user):
    return make_user(UserType.VENDOR, first_name="Vic", last_name="Vendor", business_name="Vic's Sounds")


@pytest.fixture
def outsider(make_user):
    return make_user(UserType.CLIENT, first_name="Otto", last_name="Outsider")


@pytest.fixture
def make_booking(db, client_user, vendor_user):
    def _make(status=BookingStatus.PENDING, budget=Decimal("500.00"), **fields):
        booking = Booking(
            client_id=fields.pop("client_id", client_user.id),
            vendor_id=fields.pop("vendor_id", vendor_user.id),
            event_type=fields.pop("event_type", "Wedding"),
            event_date=fields.pop("event_date", datetime.utcnow() + timedelta(days=30)),
            event_location=fields.pop("event_location", "Cape Town"),
            budget=budget,
            status=status,
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def api(Session, provider):
    """TestClient wired to the test database and fake provider.

    ``api.as_user(user)`` makes subsequent requests act as that user.
    """

    def override_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_payment_provider] = lambda: provider
    client = TestClient(app)

    def as_user(user):
        user_id = user.id

        def _override(session=Depends(get_db)):
            return session.get(User, user_id)

        app.dependency_overrides[get_current_user] = _override
        return client

    client.as_user = as_user
    yield client
    app.dependency_overrides.clear()
