from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hotel_booking.domain.enums import BookingStatus, PaymentMethod, PaymentStatus
from hotel_booking.domain.records import BookingRecord, RoomRecord
from hotel_booking.services.bookings import BookingStats, BookingSummary


class BookingCreatePayload(BaseModel):
    """
    Schema for creating a booking. Contact fields default from the account; they are
    required for guest bookings.
    """

    room_id: UUID = Field(..., description="Room to book")
    check_in: date = Field(..., description="Arrival date")
    check_out: date = Field(..., description="Departure date (not charged)")
    adults: int = Field(1, description="Number of adults, at least 1")
    children: int = Field(0, description="Number of children")
    payment_method: PaymentMethod = Field(
        PaymentMethod.CREDIT_CARD, description="credit_card, paypal, cash or bank_transfer"
    )
    special_requests: Optional[str] = Field(None, description="Free text, max 500 characters")
    first_name: Optional[str] = Field(None, description="Contact first name")
    last_name: Optional[str] = Field(None, description="Contact last name")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")


class BookingUpdatePayload(BaseModel):
    """
    Schema for updating a booking. All fields are optional; a single date is combined
    with the stored other date.
    """

    check_in: Optional[date] = Field(None, description="New arrival date")
    check_out: Optional[date] = Field(None, description="New departure date")
    adults: Optional[int] = Field(None, description="Number of adults")
    children: Optional[int] = Field(None, description="Number of children")
    special_requests: Optional[str] = Field(None, description="Free text, max 500 characters")


class BookingStatusPayload(BaseModel):
    status: BookingStatus = Field(..., description="Target booking status")


class PaymentStatusPayload(BaseModel):
    payment_status: PaymentStatus = Field(..., description="Target payment status")


class RoomAvailabilityPayload(BaseModel):
    is_available: bool = Field(..., description="Whether the room accepts bookings")


class BookingOut(BaseModel):
    id: UUID
    booking_code: str
    user_id: Optional[UUID]
    room_id: Optional[UUID]
    check_in: date
    check_out: date
    nights: int
    adults: int
    children: int
    guests: int
    nightly_rate: Decimal
    base_price: Decimal
    tax_and_fees: Decimal
    total_price: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    first_name: str
    last_name: str
    email: str
    phone: Optional[str]
    special_requests: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_record(cls, booking: BookingRecord) -> "BookingOut":
        return cls(
            id=booking.id,
            booking_code=booking.booking_code,
            user_id=booking.user_id,
            room_id=booking.room_id,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=booking.nights,
            adults=booking.adults,
            children=booking.children,
            guests=booking.guests,
            nightly_rate=booking.nightly_rate,
            base_price=booking.base_price,
            tax_and_fees=booking.tax_and_fees,
            total_price=booking.total_price,
            status=booking.status,
            payment_status=booking.payment_status,
            payment_method=booking.payment_method,
            first_name=booking.first_name,
            last_name=booking.last_name,
            email=booking.email,
            phone=booking.phone,
            special_requests=booking.special_requests,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class RoomOut(BaseModel):
    id: UUID
    title: str
    category: str
    price: Decimal
    is_available: bool

    @classmethod
    def from_record(cls, room: RoomRecord) -> "RoomOut":
        return cls(
            id=room.id,
            title=room.title,
            category=room.category,
            price=room.price,
            is_available=room.is_available,
        )


class BookingStatsOut(BaseModel):
    total_spent: Decimal
    average_per_booking: Decimal
    most_visited_category: Optional[str]
    total_bookings: int

    @classmethod
    def from_stats(cls, stats: BookingStats) -> "BookingStatsOut":
        return cls(
            total_spent=stats.total_spent,
            average_per_booking=stats.average_per_booking,
            most_visited_category=stats.most_visited_category,
            total_bookings=stats.total_bookings,
        )


class BookingSummaryOut(BaseModel):
    upcoming: int
    past: int
    cancelled: int
    total: int

    @classmethod
    def from_summary(cls, summary: BookingSummary) -> "BookingSummaryOut":
        return cls(
            upcoming=summary.upcoming,
            past=summary.past,
            cancelled=summary.cancelled,
            total=summary.total,
        )
