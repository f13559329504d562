from datetime import date
from typing import Any, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status

from hotel_booking.dependencies import (
    get_booking_service,
    get_current_principal,
    get_optional_principal,
)
from hotel_booking.domain.records import BookingRecord, Principal
from hotel_booking.errors import ConflictError
from hotel_booking.schemas.bookings import (
    BookingCreatePayload,
    BookingOut,
    BookingStatsOut,
    BookingSummaryOut,
    BookingUpdatePayload,
)
from hotel_booking.services.bookings import BookingChanges, BookingRequest, BookingService

logger = structlog.get_logger(__name__)
router = APIRouter()


def _booking_body(booking: BookingRecord, message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": True,
        "booking": BookingOut.from_record(booking).model_dump(mode="json"),
    }
    if message:
        body["message"] = message
    return body


@router.get("/availability")
def check_availability(
    room_id: UUID = Query(..., description="Room to check"),
    check_in: date = Query(..., description="Arrival date"),
    check_out: date = Query(..., description="Departure date"),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Public availability lookup; no authentication required.

    Example:
        >>> GET /bookings/availability?room_id=...&check_in=2025-06-01&check_out=2025-06-05
        {"success": true, "available": true}
    """
    available = bookings.check_availability(room_id, check_in, check_out)
    return {
        "success": True,
        "available": available,
        "room_id": str(room_id),
        "check_in": check_in.isoformat(),
        "check_out": check_out.isoformat(),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreatePayload,
    principal: Optional[Principal] = Depends(get_optional_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Create a booking for the caller (or a guest, when guest bookings are enabled).

    A store-level conflict from a concurrent writer is retried once; the retry either
    succeeds or reports the room as unavailable.
    """
    request = BookingRequest(**payload.model_dump())
    try:
        booking = bookings.create_booking(request, principal)
    except ConflictError:
        logger.warning("booking_conflict_retry", room_id=str(payload.room_id))
        booking = bookings.create_booking(request, principal)
    return _booking_body(booking, "Booking created successfully")


@router.get("")
def list_my_bookings(
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    items = bookings.list_my_bookings(principal)
    return {
        "success": True,
        "count": len(items),
        "bookings": [BookingOut.from_record(b).model_dump(mode="json") for b in items],
    }


@router.get("/history")
def booking_history(
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    The caller's bookings with spending statistics over the non-cancelled ones.

    Example:
        >>> GET /bookings/history
        {"success": true, "history": {"bookings": [...], "stats": {"total_spent": "330.00",
         "average_per_booking": "330.00", "most_visited_category": "suite",
         "total_bookings": 1}}}
    """
    history = bookings.booking_history(principal)
    return {
        "success": True,
        "history": {
            "bookings": [
                BookingOut.from_record(b).model_dump(mode="json") for b in history.bookings
            ],
            "stats": BookingStatsOut.from_stats(history.stats).model_dump(mode="json"),
        },
    }


@router.get("/summary")
def booking_summary(
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    summary = bookings.booking_summary(principal)
    return {
        "success": True,
        "summary": BookingSummaryOut.from_summary(summary).model_dump(mode="json"),
    }


@router.get("/history/{email}")
def user_booking_history(
    email: str,
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """Admin only: the bookings of the user registered under ``email``."""
    items = bookings.user_booking_history(email, principal)
    return {
        "success": True,
        "email": email,
        "bookings": [BookingOut.from_record(b).model_dump(mode="json") for b in items],
    }


@router.get("/{booking_id}")
def get_booking(
    booking_id: UUID,
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    return _booking_body(bookings.get_booking(booking_id, principal))


@router.put("/{booking_id}")
def update_booking(
    booking_id: UUID,
    payload: BookingUpdatePayload,
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    """
    Change dates, guest counts or special requests of a booking.

    Only the owner or an admin may update; cancelled and completed bookings are frozen.
    """
    changes = BookingChanges(**payload.model_dump())
    booking = bookings.update_booking(booking_id, principal, changes)
    return _booking_body(booking, "Booking updated successfully")


@router.put("/{booking_id}/cancel")
def cancel_booking(
    booking_id: UUID,
    principal: Principal = Depends(get_current_principal),
    bookings: BookingService = Depends(get_booking_service),
) -> dict[str, Any]:
    booking = bookings.cancel_booking(booking_id, principal)
    return _booking_body(booking, "Booking cancelled successfully")
