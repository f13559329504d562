"""
Integration tests for the persistence gateway against SQLite.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import text

from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.db.readers.users import get_user_by_email
from hotel_booking.db.writers.rooms import insert_room
from hotel_booking.db.writers.users import insert_user
from hotel_booking.domain.records import UserRecord
from hotel_booking.errors import ConflictError, InternalError, NotFoundError


@pytest.mark.integration
def test_transaction_commits_on_success(db: Database) -> None:
    with db.transaction() as conn:
        room_id = insert_room(conn, "Garden Room", "standard", Decimal("80.00"))

    with db.connect() as conn:
        room = get_room(conn, room_id)

    assert room is not None
    assert room.price == Decimal("80.00")
    assert room.is_available is True


@pytest.mark.integration
def test_transaction_rolls_back_on_domain_error(db: Database) -> None:
    with pytest.raises(NotFoundError):
        with db.transaction() as conn:
            room_id = insert_room(conn, "Garden Room", "standard", Decimal("80.00"))
            raise NotFoundError("nope")

    with db.connect() as conn:
        assert get_room(conn, room_id) is None


@pytest.mark.integration
def test_unique_violation_becomes_conflict(db: Database, owner_user: UserRecord) -> None:
    with pytest.raises(ConflictError):
        with db.transaction() as conn:
            insert_user(conn, "Twin", owner_user.email, "hash")

    with db.connect() as conn:
        assert get_user_by_email(conn, owner_user.email).name == owner_user.name


@pytest.mark.integration
def test_check_constraint_becomes_conflict(db: Database) -> None:
    with pytest.raises(ConflictError):
        with db.transaction() as conn:
            insert_room(conn, "Broken Room", "standard", Decimal("-1.00"))


@pytest.mark.integration
def test_bad_statement_becomes_opaque_internal_error(db: Database) -> None:
    with pytest.raises(InternalError) as exc_info:
        with db.transaction() as conn:
            conn.execute(text("SELECT * FROM no_such_table"))

    assert "no_such_table" not in exc_info.value.message


@pytest.mark.integration
def test_check_health(db: Database) -> None:
    assert db.check_health() is True
