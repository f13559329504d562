"""
Shared fixtures.

Integration tests run against a file-backed SQLite database created per test under
``tmp_path``; the engine factory makes SQLite serialize writers the same way row locks do
on PostgreSQL. Time is frozen with ``FixedClock`` so date validation and token expiry are
deterministic.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest

from hotel_booking.auth.gate import AuthorizationGate
from hotel_booking.auth.passwords import hash_password
from hotel_booking.auth.tokens import TokenService
from hotel_booking.config import Settings
from hotel_booking.db.engine import create_db_engine
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.db.readers.users import get_user
from hotel_booking.db.schema import create_schema, drop_schema
from hotel_booking.db.writers.rooms import insert_room
from hotel_booking.db.writers.users import insert_user
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import Principal, RoomRecord, UserRecord
from hotel_booking.services.accounts import AccountService
from hotel_booking.services.bookings import BookingService

TEST_PASSWORD = "s3cret-pass"


class FixedClock:
    """Clock frozen at ``current``; tests move it with ``advance``."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 5, 20, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'bookings.db'}",
        jwt_secret="test-secret-key-with-enough-bytes-for-hs256",
        db_pool_timeout_seconds=30,
    )


@pytest.fixture
def db(settings: Settings) -> Generator[Database, None, None]:
    database = Database(create_db_engine(settings))
    create_schema(database.engine)
    yield database
    drop_schema(database.engine)
    database.dispose()


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once per session."""
    return hash_password(TEST_PASSWORD)


def _make_user(db: Database, name: str, email: str, password_hash: str, role: Role) -> UserRecord:
    with db.transaction() as conn:
        user_id = insert_user(conn, name, email, password_hash, role=role)
        return get_user(conn, user_id)


def _principal(user: UserRecord) -> Principal:
    return Principal(user_id=user.id, role=user.role, name=user.name, email=user.email)


@pytest.fixture
def owner_user(db: Database, password_hash: str) -> UserRecord:
    return _make_user(db, "Jane Doe", "jane@example.com", password_hash, Role.USER)


@pytest.fixture
def other_user(db: Database, password_hash: str) -> UserRecord:
    return _make_user(db, "John Roe", "john@example.com", password_hash, Role.USER)


@pytest.fixture
def admin_user(db: Database, password_hash: str) -> UserRecord:
    return _make_user(db, "Ada Admin", "admin@example.com", password_hash, Role.ADMIN)


@pytest.fixture
def owner_principal(owner_user: UserRecord) -> Principal:
    return _principal(owner_user)


@pytest.fixture
def other_principal(other_user: UserRecord) -> Principal:
    return _principal(other_user)


@pytest.fixture
def admin_principal(admin_user: UserRecord) -> Principal:
    return _principal(admin_user)


@pytest.fixture
def room(db: Database) -> RoomRecord:
    with db.transaction() as conn:
        room_id = insert_room(conn, "Ocean View Suite", "suite", Decimal("100.00"))
        return get_room(conn, room_id)


@pytest.fixture
def token_service(db: Database, settings: Settings, clock: FixedClock) -> TokenService:
    return TokenService(db, settings, clock)


@pytest.fixture
def gate(db: Database, token_service: TokenService) -> AuthorizationGate:
    return AuthorizationGate(db, token_service)


@pytest.fixture
def booking_service(db: Database, settings: Settings, clock: FixedClock) -> BookingService:
    return BookingService(db, settings, clock)


@pytest.fixture
def account_service(
    db: Database, settings: Settings, token_service: TokenService, clock: FixedClock
) -> AccountService:
    return AccountService(db, settings, token_service, clock)


@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD
