# backend/tests/conftest.py
"""
Pytest configuration.

Every test gets its own SQLite file database so threaded tests can open
several connections against the same data. Settings are pinned before any
package import: dummy gateway, no Redis, UTC studio clock.
"""

import os
import sys

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite:///./test_bootstrap.db")
os.environ["REDIS_URL"] = ""
os.environ["MIDTRANS_SERVER_KEY"] = ""
os.environ["MIDTRANS_CLIENT_KEY"] = ""
os.environ["STUDIO_TIMEZONE"] = "UTC"

backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, backend_dir)

from datetime import date, timedelta
from typing import Callable, Iterator

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from reservation_api.api.dependencies.database import get_db
from reservation_api.api.dependencies.services import get_payment_gateway_dep
from reservation_api.auth import create_access_token
from reservation_api.core.slot_lock import reset_slot_lock_state
from reservation_api.database import create_app_engine, init_db
from reservation_api.integrations.midtrans_client import DummyPaymentGateway
from reservation_api.main import app
from reservation_api.models import Court, Reservation, Timeslot, User
from reservation_api.utils.time_utils import studio_today


@pytest.fixture
def engine(tmp_path):
    eng = create_app_engine(f"sqlite:///{tmp_path / 'reservations.db'}")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _fresh_slot_locks():
    reset_slot_lock_state()
    yield
    reset_slot_lock_state()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(**overrides) -> User:
        counter["n"] += 1
        values = {
            "name": f"Member {counter['n']}",
            "email": f"member{counter['n']}@example.com",
            "hashed_password": "not-a-real-hash",
        }
        values.update(overrides)
        user = User(**values)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_court(db) -> Callable[..., Court]:
    def _make(**overrides) -> Court:
        values = {"name": "Reformer Court A", "capacity": 2, "is_active": True}
        values.update(overrides)
        court = Court(**values)
        db.add(court)
        db.commit()
        return court

    return _make


@pytest.fixture
def make_timeslot(db) -> Callable[..., Timeslot]:
    def _make(**overrides) -> Timeslot:
        values = {"time": "07:00", "duration": 60, "is_active": True}
        values.update(overrides)
        timeslot = Timeslot(**values)
        db.add(timeslot)
        db.commit()
        return timeslot

    return _make


@pytest.fixture
def make_reservation(db) -> Callable[..., Reservation]:
    """Insert a reservation directly, bypassing admission."""

    def _make(user: User, court: Court, timeslot: Timeslot, slot_date: date, **overrides) -> Reservation:
        values = {
            "user_id": user.id,
            "court_id": court.id,
            "timeslot_id": timeslot.id,
            "date": slot_date,
            "status": "pending",
        }
        values.update(overrides)
        reservation = Reservation(**values)
        db.add(reservation)
        db.commit()
        return reservation

    return _make


@pytest.fixture
def user(make_user) -> User:
    return make_user(name="Ayu Lestari", email="ayu@example.com", phone="0811111111")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user(name="Budi Santoso", email="budi@example.com")


@pytest.fixture
def court(make_court) -> Court:
    return make_court()


@pytest.fixture
def timeslot(make_timeslot) -> Timeslot:
    return make_timeslot()


@pytest.fixture
def tomorrow() -> date:
    return studio_today() + timedelta(days=1)


@pytest.fixture
def yesterday() -> date:
    return studio_today() - timedelta(days=1)


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway_dep] = lambda: DummyPaymentGateway()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict]:
    def _headers(user: User) -> dict:
        token = create_access_token({"sub": user.id, "email": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers
