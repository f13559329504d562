"""
Admin endpoints for booking oversight and the room kill switch.

Every route requires an admin principal; the services check the role again.
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from hotel_booking.db.readers.bookings import BookingFilters
from hotel_booking.dependencies import get_booking_service, require_admin
from hotel_booking.domain.enums import BookingStatus
from hotel_booking.domain.records import Principal
from hotel_booking.schemas.bookings import (
    BookingOut,
    BookingStatusPayload,
    PaymentStatusPayload,
    RoomAvailabilityPayload,
    RoomOut,
)
from hotel_booking.services.bookings import BookingService

router = APIRouter()


@router.get("/bookings")
def list_bookings(
    status: Optional[BookingStatus] = Query(None, description="Filter by booking status"),
    from_date: Optional[date] = Query(None, description="Check-in on or after"),
    to_date: Optional[date] = Query(None, description="Check-out on or before"),
    user_id: Optional[UUID] = Query(None, description="Filter by owner"),
    room_id: Optional[UUID] = Query(None, description="Filter by room"),
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(10, description="Page size, clamped to [5, 50]"),
    principal: Principal = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    List all bookings, newest first.

    Returns:
        dict: The page of bookings plus pagination info
    """
    filters = BookingFilters(
        status=status, from_date=from_date, to_date=to_date, user_id=user_id, room_id=room_id
    )
    result = bookings.list_bookings(principal, filters, page=page, limit=limit)
    return {
        "success": True,
        "bookings": [BookingOut.from_record(b).model_dump(mode="json") for b in result.items],
        "pagination": {
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
            "pages": result.pages,
        },
    }


@router.put("/bookings/{booking_id}/status")
def set_booking_status(
    booking_id: UUID,
    payload: BookingStatusPayload,
    principal: Principal = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    booking = bookings.set_status(booking_id, payload.status, principal)
    return {
        "success": True,
        "message": f"Booking status updated to {booking.status.value}",
        "booking": BookingOut.from_record(booking).model_dump(mode="json"),
    }


@router.put("/bookings/{booking_id}/payment-status")
def set_payment_status(
    booking_id: UUID,
    payload: PaymentStatusPayload,
    principal: Principal = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    booking = bookings.set_payment_status(booking_id, payload.payment_status, principal)
    return {
        "success": True,
        "message": f"Payment status updated to {booking.payment_status.value}",
        "booking": BookingOut.from_record(booking).model_dump(mode="json"),
    }


@router.put("/rooms/{room_id}/availability")
def set_room_availability(
    room_id: UUID,
    payload: RoomAvailabilityPayload,
    principal: Principal = Depends(require_admin),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    room = bookings.set_room_availability(room_id, payload.is_available, principal)
    return {"success": True, "room": RoomOut.from_record(room).model_dump(mode="json")}
