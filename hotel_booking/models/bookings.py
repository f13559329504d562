import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class Booking(Base):
    """
    ORM model for room reservations.

    A booking occupies ``[check_in, check_out)``. Bookings are never deleted, only
    cancelled; non-overlap between active bookings of one room is enforced by the
    lifecycle service under a room lock, not by a table constraint.

    ``nightly_rate`` snapshots the room price at creation so later date changes are
    priced consistently even if the room price moves.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_bookings_dates"),
        CheckConstraint("nights > 0", name="ck_bookings_nights_positive"),
        CheckConstraint("adults >= 1 AND children >= 0", name="ck_bookings_guests"),
        CheckConstraint(
            "nightly_rate >= 0 AND base_price >= 0 AND tax_and_fees >= 0 AND total_price >= 0",
            name="ck_bookings_amounts_non_negative",
        ),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        Index("ix_bookings_room_status_dates", "room_id", "status", "check_in", "check_out"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_code = Column(String(32), nullable=False, unique=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    nights = Column(Integer, nullable=False)
    adults = Column(Integer, nullable=False, server_default="1")
    children = Column(Integer, nullable=False, server_default="0")
    nightly_rate = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    tax_and_fees = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(16), nullable=False, server_default="pending")
    payment_status = Column(String(16), nullable=False, server_default="pending")
    payment_method = Column(String(32), nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    special_requests = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
