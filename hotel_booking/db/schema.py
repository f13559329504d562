"""
Table registry.

Importing this module registers every model on ``Base.metadata``. Production schemas are
managed by Alembic; ``create_schema`` is used for local SQLite databases and tests.
"""

from sqlalchemy.engine import Engine

from hotel_booking.models.base import Base
from hotel_booking.models.bookings import Booking  # noqa: F401
from hotel_booking.models.rooms import Room  # noqa: F401
from hotel_booking.models.tokens import PasswordReset, RefreshToken  # noqa: F401
from hotel_booking.models.users import User  # noqa: F401

metadata = Base.metadata


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)


def drop_schema(engine: Engine) -> None:
    metadata.drop_all(engine)
