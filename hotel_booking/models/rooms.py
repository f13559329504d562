import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String, Uuid, text
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class Room(Base):
    """
    ORM model for bookable rooms.

    Only the columns the reservation core reads are mapped here. ``is_available`` is the
    operator kill switch: when false the room cannot be booked regardless of the calendar.
    """

    __tablename__ = "rooms"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_rooms_price_non_negative"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    category = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, server_default=text("TRUE"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
