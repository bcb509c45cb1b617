"""Shared fixtures: in-memory database, authenticated test client, factories."""

import os

# Configure the app before any wellness_api module reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import date, timedelta  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from wellness_api.auth import get_current_user  # noqa: E402
from wellness_api.database import Base, get_db  # noqa: E402
from wellness_api.main import app  # noqa: E402
from wellness_api.models import Booking, HealthProfessional, Meal, User  # noqa: E402
from wellness_api.shared.clock import local_now  # noqa: E402

ALL_WEEK = [
    {"day": day, "startTime": "00:00", "endTime": "23:59", "isAvailable": True}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
]

_sequence = count(1)


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def make_user(db_session):
    def _make_user(role: str = "user", **overrides) -> User:
        n = next(_sequence)
        user = User(
            external_id=overrides.pop("external_id", f"user-{n}"),
            email=overrides.pop("email", f"user{n}@example.com"),
            full_name=overrides.pop("full_name", f"Test User {n}"),
            role=role,
            **overrides,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_professional(db_session):
    def _make_professional(**overrides) -> HealthProfessional:
        professional = HealthProfessional(
            display_name=overrides.pop("display_name", "Dr. Wanjiku"),
            specialty=overrides.pop("specialty", "nutritionist"),
            consultation_fee=overrides.pop("consultation_fee", 2500.0),
            currency=overrides.pop("currency", "KES"),
            is_active=overrides.pop("is_active", True),
            availability=overrides.pop("availability", ALL_WEEK),
            **overrides,
        )
        db_session.add(professional)
        db_session.commit()
        db_session.refresh(professional)
        return professional

    return _make_professional


@pytest.fixture
def professional(make_professional):
    return make_professional()


@pytest.fixture
def make_meal(db_session):
    def _make_meal(name: str = "Githeri", price: float = 150.0, is_active: bool = True) -> Meal:
        meal = Meal(name=name, price=price, currency="KES", is_active=is_active)
        db_session.add(meal)
        db_session.commit()
        db_session.refresh(meal)
        return meal

    return _make_meal


@pytest.fixture
def make_booking(db_session):
    """Insert a booking directly, bypassing the lifecycle rules."""

    def _make_booking(
        user: User,
        professional: HealthProfessional,
        appointment_date: date = None,
        appointment_time: str = "10:00",
        status: str = "pending",
        **overrides,
    ) -> Booking:
        n = next(_sequence)
        booking = Booking(
            booking_number=f"BK000000{n:03d}",
            user_id=user.id,
            professional_id=professional.id,
            appointment_date=appointment_date or local_now().date() + timedelta(days=7),
            appointment_time=appointment_time,
            duration=overrides.pop("duration", 30),
            consultation_type="in_person",
            location="clinic",
            amount=overrides.pop("amount", professional.consultation_fee),
            currency="KES",
            payment_status=overrides.pop("payment_status", "pending"),
            payment_method="mobile_money",
            status=status,
            notifications=[],
            status_history=[{"status": status, "at": "2030-01-01T00:00:00"}],
            **overrides,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _make_booking


class AuthState:
    """Who the overridden get_current_user resolves to."""

    def __init__(self):
        self.user = None

    def login(self, user: User):
        self.user = user


@pytest.fixture
def auth(user):
    state = AuthState()
    state.login(user)
    return state


@pytest.fixture
def client(db_session, auth):
    """TestClient on the real app with the database and identity overridden."""

    def override_get_db():
        yield db_session

    async def override_get_current_user():
        return auth.user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def future_day():
    """A calendar date comfortably outside the cancellation window."""
    return local_now().date() + timedelta(days=5)
