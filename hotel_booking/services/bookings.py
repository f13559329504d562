"""
Booking lifecycle.

Every write follows the same shape: validate the request and the caller before any
transaction opens, then lock the room (and/or the booking), re-read what the decision
depends on, and write inside that one transaction. Concurrent creators for the same room
queue on the room lock, so whoever goes second sees the first booking and gets
``RoomUnavailableError``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Connection

from hotel_booking.auth.gate import ensure_owner_or_admin, is_owner_or_admin, require_role
from hotel_booking.config import Settings
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.bookings import (
    BookingFilters,
    get_booking,
    list_booking_history_for_user,
    list_bookings,
    list_bookings_for_user,
)
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.db.readers.users import get_user_by_email
from hotel_booking.db.writers.bookings import (
    insert_booking,
    update_booking,
    update_booking_status,
    update_payment_status,
)
from hotel_booking.db.writers.rooms import set_room_availability
from hotel_booking.domain.enums import BookingStatus, PaymentMethod, PaymentStatus, Role
from hotel_booking.domain.pricing import CENTS, quote_stay
from hotel_booking.domain.records import BookingRecord, Principal, RoomRecord
from hotel_booking.domain.transitions import (
    TERMINAL_STATUSES,
    ensure_payment_transition,
    ensure_transition,
)
from hotel_booking.errors import (
    AlreadyCancelledError,
    ConflictError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    RoomUnavailableError,
    UnauthenticatedError,
    ValidationError,
)
from hotel_booking.metrics import booking_transitions, bookings_total
from hotel_booking.services.availability import (
    is_available,
    is_room_free,
    load_bookable_room,
    validate_stay,
)
from hotel_booking.utils.datetime import Clock, SystemClock
from hotel_booking.utils.ids import new_booking_code

logger = structlog.get_logger(__name__)

MAX_SPECIAL_REQUESTS_LENGTH = 500
MIN_PAGE_SIZE = 5
MAX_PAGE_SIZE = 50


@dataclass(frozen=True)
class BookingRequest:
    """Input for :meth:`BookingService.create_booking`."""

    room_id: UUID
    check_in: date
    check_out: date
    adults: int = 1
    children: int = 0
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    special_requests: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class BookingChanges:
    """Partial update; None means "leave unchanged"."""

    check_in: Optional[date] = None
    check_out: Optional[date] = None
    adults: Optional[int] = None
    children: Optional[int] = None
    special_requests: Optional[str] = None

    @property
    def changes_dates(self) -> bool:
        return self.check_in is not None or self.check_out is not None


@dataclass(frozen=True)
class BookingPage:
    items: list[BookingRecord]
    total: int
    page: int
    limit: int
    pages: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pages", math.ceil(self.total / self.limit) if self.total else 0)


@dataclass(frozen=True)
class BookingStats:
    total_spent: Decimal
    average_per_booking: Decimal
    most_visited_category: Optional[str]
    total_bookings: int


@dataclass(frozen=True)
class BookingHistory:
    bookings: list[BookingRecord]
    stats: BookingStats


@dataclass(frozen=True)
class BookingSummary:
    upcoming: int
    past: int
    cancelled: int

    @property
    def total(self) -> int:
        return self.upcoming + self.past + self.cancelled


def compute_booking_stats(history: list[tuple[BookingRecord, Optional[str]]]) -> BookingStats:
    """
    Spending statistics over a user's bookings.

    Cancelled bookings count towards ``total_bookings`` only. On a tie for the most
    visited category, the one met first in ``history`` order wins.
    """
    kept = [(b, category) for b, category in history if b.status != BookingStatus.CANCELLED]
    total_spent = sum((b.total_price for b, _ in kept), Decimal("0")).quantize(CENTS)
    average = (
        (total_spent / len(kept)).quantize(CENTS, rounding=ROUND_HALF_UP)
        if kept
        else Decimal("0.00")
    )

    visits: dict[str, int] = {}
    for _, category in kept:
        if category:
            visits[category] = visits.get(category, 0) + 1
    most_visited = max(visits, key=visits.__getitem__) if visits else None

    return BookingStats(
        total_spent=total_spent,
        average_per_booking=average,
        most_visited_category=most_visited,
        total_bookings=len(history),
    )


def _validate_guests(adults: Optional[int], children: Optional[int]) -> None:
    if adults is not None and adults < 1:
        raise ValidationError("At least one adult is required", details={"adults": adults})
    if children is not None and children < 0:
        raise ValidationError("Children cannot be negative", details={"children": children})


def _validate_special_requests(special_requests: Optional[str]) -> None:
    if special_requests is not None and len(special_requests) > MAX_SPECIAL_REQUESTS_LENGTH:
        raise ValidationError(
            f"Special requests cannot exceed {MAX_SPECIAL_REQUESTS_LENGTH} characters"
        )


def _split_name(name: str) -> tuple[str, str]:
    first, _, last = name.strip().partition(" ")
    return first, last.strip()


class BookingService:
    """
    Creates bookings and drives them through the status state machine.

    Args:
        db: Persistence gateway
        settings: Application settings (fee rate, auto-confirm, guest policy)
        clock: Source of "today" for past-date validation
    """

    def __init__(self, db: Database, settings: Settings, clock: Optional[Clock] = None):
        self.db = db
        self.settings = settings
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def check_availability(self, room_id: UUID, check_in: date, check_out: date) -> bool:
        """Public availability lookup; no authentication required."""
        with self.db.connect() as conn:
            return is_available(conn, room_id, check_in, check_out)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _validate_new_stay(self, check_in: date, check_out: date) -> None:
        validate_stay(check_in, check_out)
        if check_in < self.clock.today():
            raise ValidationError(
                "Check-in date cannot be in the past",
                details={"check_in": check_in.isoformat()},
            )

    def _contact_for(self, request: BookingRequest, actor: Optional[Principal]) -> dict:
        if actor is None:
            if not self.settings.allow_guest_bookings:
                raise UnauthenticatedError("Please log in to make a booking")
            missing = [
                name
                for name in ("first_name", "last_name", "email")
                if not getattr(request, name)
            ]
            if missing:
                raise ValidationError(
                    "Guest bookings require contact details", details={"missing": missing}
                )
            return {
                "user_id": None,
                "first_name": request.first_name,
                "last_name": request.last_name,
                "email": request.email,
                "phone": request.phone,
            }

        default_first, default_last = _split_name(actor.name)
        return {
            "user_id": actor.user_id,
            "first_name": request.first_name or default_first,
            "last_name": request.last_name or default_last,
            "email": request.email or actor.email,
            "phone": request.phone,
        }

    def create_booking(
        self, request: BookingRequest, actor: Optional[Principal] = None
    ) -> BookingRecord:
        """
        Create a booking for ``actor`` (or a guest, if enabled).

        Raises:
            ValidationError: Malformed dates, guests, payment method or requests
            UnauthenticatedError: No actor and guest bookings are disabled
            NotFoundError: Room missing or switched off
            RoomUnavailableError: The stay overlaps an existing booking
            ConflictError: The store rejected the write because of a concurrent change
        """
        try:
            booking = self._create_booking(request, actor)
        except DomainError as e:
            bookings_total.labels(outcome=e.code).inc()
            raise

        bookings_total.labels(outcome="created").inc()
        logger.info(
            "booking_created",
            booking_id=str(booking.id),
            booking_code=booking.booking_code,
            room_id=str(booking.room_id),
            user_id=str(booking.user_id) if booking.user_id else None,
            check_in=booking.check_in.isoformat(),
            check_out=booking.check_out.isoformat(),
            total_price=str(booking.total_price),
            status=booking.status.value,
        )
        return booking

    def _create_booking(
        self, request: BookingRequest, actor: Optional[Principal]
    ) -> BookingRecord:
        self._validate_new_stay(request.check_in, request.check_out)
        _validate_guests(request.adults, request.children)
        _validate_special_requests(request.special_requests)
        try:
            payment_method = PaymentMethod(request.payment_method)
        except ValueError:
            raise ValidationError(
                "Invalid payment method",
                details={"allowed": [m.value for m in PaymentMethod]},
            )
        contact = self._contact_for(request, actor)

        initial_status = (
            BookingStatus.CONFIRMED if self.settings.booking_auto_confirm else BookingStatus.PENDING
        )

        with self.db.transaction() as conn:
            room = load_bookable_room(conn, request.room_id, for_update=True)
            if not is_room_free(conn, room.id, request.check_in, request.check_out):
                raise RoomUnavailableError(
                    "Room is not available for the selected dates",
                    details={
                        "room_id": str(room.id),
                        "check_in": request.check_in.isoformat(),
                        "check_out": request.check_out.isoformat(),
                    },
                )

            quote = quote_stay(
                room.price, request.check_in, request.check_out, self.settings.booking_fee_rate
            )
            booking_id = insert_booking(
                conn,
                {
                    **contact,
                    "booking_code": new_booking_code(self.clock.today()),
                    "room_id": room.id,
                    "check_in": request.check_in,
                    "check_out": request.check_out,
                    "nights": quote.nights,
                    "adults": request.adults,
                    "children": request.children,
                    "nightly_rate": room.price,
                    "base_price": quote.base_price,
                    "tax_and_fees": quote.tax_and_fees,
                    "total_price": quote.total_price,
                    "status": initial_status.value,
                    "payment_status": PaymentStatus.PENDING.value,
                    "payment_method": payment_method.value,
                    "special_requests": request.special_requests,
                },
            )
            return self._reload(conn, booking_id)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_booking(
        self, booking_id: UUID, actor: Principal, changes: BookingChanges
    ) -> BookingRecord:
        """
        Change dates, guest counts, or special requests.

        If either date changes, the room is locked and the new stay is re-checked against
        every other booking of the room; nights and prices are recomputed from the nightly
        rate captured when the booking was created.

        Raises:
            ValidationError: Malformed input
            NotFoundError: Booking (or, for date changes, its room) does not exist
            ForbiddenError: Actor is neither the owner nor an admin
            InvalidTransitionError: Booking is cancelled or completed
            RoomUnavailableError: New dates overlap another booking
        """
        _validate_guests(changes.adults, changes.children)
        _validate_special_requests(changes.special_requests)
        if changes.check_in is not None and changes.check_out is not None:
            validate_stay(changes.check_in, changes.check_out)

        with self.db.transaction() as conn:
            current = self._require_booking(conn, booking_id)
            ensure_owner_or_admin(actor, current)
            self._ensure_modifiable(current)

            patch: dict = {}
            if changes.changes_dates:
                if current.room_id is None:
                    raise NotFoundError("The booked room no longer exists")

                # Room before booking, the same order creation uses
                room = load_bookable_room(conn, current.room_id, for_update=True)
                current = self._require_booking(conn, booking_id, for_update=True)
                self._ensure_modifiable(current)

                check_in = changes.check_in or current.check_in
                check_out = changes.check_out or current.check_out
                validate_stay(check_in, check_out)
                if check_in != current.check_in and check_in < self.clock.today():
                    raise ValidationError("Check-in date cannot be in the past")

                if not is_room_free(
                    conn, room.id, check_in, check_out, exclude_booking_id=current.id
                ):
                    raise RoomUnavailableError(
                        "Room is not available for the selected dates",
                        details={
                            "room_id": str(room.id),
                            "check_in": check_in.isoformat(),
                            "check_out": check_out.isoformat(),
                        },
                    )

                quote = quote_stay(
                    current.nightly_rate, check_in, check_out, self.settings.booking_fee_rate
                )
                patch.update(
                    check_in=check_in,
                    check_out=check_out,
                    nights=quote.nights,
                    base_price=quote.base_price,
                    tax_and_fees=quote.tax_and_fees,
                    total_price=quote.total_price,
                )
            else:
                current = self._require_booking(conn, booking_id, for_update=True)
                self._ensure_modifiable(current)

            if changes.adults is not None:
                patch["adults"] = changes.adults
            if changes.children is not None:
                patch["children"] = changes.children
            if changes.special_requests is not None:
                patch["special_requests"] = changes.special_requests

            if patch:
                update_booking(conn, current.id, patch)
            updated = self._reload(conn, current.id)

        logger.info(
            "booking_updated",
            booking_id=str(updated.id),
            actor_id=str(actor.user_id),
            fields=sorted(patch),
        )
        return updated

    def cancel_booking(self, booking_id: UUID, actor: Principal) -> BookingRecord:
        """
        Cancel a booking.

        Raises:
            NotFoundError: Booking does not exist
            ForbiddenError: Actor is neither the owner nor an admin
            AlreadyCancelledError: Booking was already cancelled
            InvalidTransitionError: Booking is completed
            ConflictError: Status changed concurrently
        """
        with self.db.transaction() as conn:
            booking = self._require_booking(conn, booking_id, for_update=True)
            ensure_owner_or_admin(actor, booking)
            if booking.status is BookingStatus.CANCELLED:
                raise AlreadyCancelledError(
                    "Booking is already cancelled", details={"booking_id": str(booking_id)}
                )
            updated = self._apply_transition(conn, booking, BookingStatus.CANCELLED)

        logger.info(
            "booking_cancelled",
            booking_id=str(booking_id),
            actor_id=str(actor.user_id),
            previous_status=booking.status.value,
        )
        return updated

    def set_status(
        self, booking_id: UUID, new_status: BookingStatus, actor: Principal
    ) -> BookingRecord:
        """
        Admin status override along the transition table.

        Raises:
            ForbiddenError: Actor is not an admin
            NotFoundError: Booking does not exist
            InvalidTransitionError: Transition not allowed
            ConflictError: Status changed concurrently
        """
        require_role(actor, Role.ADMIN)
        target = BookingStatus(new_status)

        with self.db.transaction() as conn:
            booking = self._require_booking(conn, booking_id, for_update=True)
            updated = self._apply_transition(conn, booking, target)

        logger.info(
            "booking_status_set",
            booking_id=str(booking_id),
            admin_id=str(actor.user_id),
            from_status=booking.status.value,
            to_status=target.value,
        )
        return updated

    def set_payment_status(
        self, booking_id: UUID, new_status: PaymentStatus, actor: Principal
    ) -> BookingRecord:
        require_role(actor, Role.ADMIN)
        target = PaymentStatus(new_status)

        with self.db.transaction() as conn:
            booking = self._require_booking(conn, booking_id, for_update=True)
            ensure_payment_transition(booking.payment_status, target)
            if not update_payment_status(conn, booking.id, booking.payment_status, target):
                raise ConflictError("Payment status was changed by another request")
            updated = self._reload(conn, booking.id)

        logger.info(
            "booking_payment_status_set",
            booking_id=str(booking_id),
            admin_id=str(actor.user_id),
            from_status=booking.payment_status.value,
            to_status=target.value,
        )
        return updated

    def set_room_availability(
        self, room_id: UUID, is_available: bool, actor: Principal
    ) -> RoomRecord:
        """Toggle the operator kill switch of a room. Existing bookings are untouched."""
        require_role(actor, Role.ADMIN)

        with self.db.transaction() as conn:
            if not set_room_availability(conn, room_id, is_available):
                raise NotFoundError("Room not found", details={"room_id": str(room_id)})
            room = get_room(conn, room_id)

        logger.info(
            "room_availability_set",
            room_id=str(room_id),
            is_available=is_available,
            admin_id=str(actor.user_id),
        )
        return room

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: UUID, actor: Principal) -> BookingRecord:
        """
        Fetch one booking.

        Non-owners get NotFoundError rather than ForbiddenError so booking ids cannot be
        guessed.
        """
        with self.db.connect() as conn:
            booking = get_booking(conn, booking_id)
        if booking is None or not is_owner_or_admin(actor, booking):
            raise NotFoundError("Booking not found", details={"booking_id": str(booking_id)})
        return booking

    def list_my_bookings(self, actor: Principal) -> list[BookingRecord]:
        with self.db.connect() as conn:
            return list_bookings_for_user(conn, actor.user_id)

    def booking_history(self, actor: Principal) -> BookingHistory:
        """The caller's bookings, newest first, with spending statistics."""
        with self.db.connect() as conn:
            history = list_booking_history_for_user(conn, actor.user_id)
        return BookingHistory(
            bookings=[booking for booking, _ in history], stats=compute_booking_stats(history)
        )

    def booking_summary(self, actor: Principal) -> BookingSummary:
        """
        Count the caller's upcoming, past and cancelled bookings.

        A stay in progress (checked in before today, leaving today or later) is neither
        upcoming nor past.
        """
        today = self.clock.today()
        with self.db.connect() as conn:
            items = list_bookings_for_user(conn, actor.user_id)

        live = [b for b in items if b.status != BookingStatus.CANCELLED]
        return BookingSummary(
            upcoming=sum(1 for b in live if b.check_in >= today),
            past=sum(1 for b in live if b.check_out < today),
            cancelled=len(items) - len(live),
        )

    def user_booking_history(self, email: str, actor: Principal) -> list[BookingRecord]:
        """
        Admin lookup of another user's bookings by email, newest first.

        Raises:
            ForbiddenError: Caller is not an admin
            NotFoundError: No user has that email
        """
        require_role(actor, Role.ADMIN)
        with self.db.connect() as conn:
            user = get_user_by_email(conn, email)
            if user is None:
                raise NotFoundError("User not found", details={"email": email})
            return list_bookings_for_user(conn, user.id)

    def list_bookings(
        self,
        actor: Principal,
        filters: Optional[BookingFilters] = None,
        page: int = 1,
        limit: int = 10,
    ) -> BookingPage:
        """
        Admin listing with filters and pagination.

        ``limit`` is clamped to [5, 50] and ``page`` to at least 1.
        """
        require_role(actor, Role.ADMIN)
        page = max(1, page)
        limit = min(max(limit, MIN_PAGE_SIZE), MAX_PAGE_SIZE)

        with self.db.connect() as conn:
            items, total = list_bookings(
                conn, filters or BookingFilters(), limit=limit, offset=(page - 1) * limit
            )
        return BookingPage(items=items, total=total, page=page, limit=limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_booking(
        conn: Connection, booking_id: UUID, for_update: bool = False
    ) -> BookingRecord:
        booking = get_booking(conn, booking_id, for_update=for_update)
        if booking is None:
            raise NotFoundError("Booking not found", details={"booking_id": str(booking_id)})
        return booking

    @staticmethod
    def _reload(conn: Connection, booking_id: UUID) -> BookingRecord:
        booking = get_booking(conn, booking_id)
        if booking is None:
            # Written in this same transaction, so this only happens if the row vanished
            raise ConflictError("Booking was removed by a concurrent change")
        return booking

    @staticmethod
    def _ensure_modifiable(booking: BookingRecord) -> None:
        if booking.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Cannot modify a {booking.status.value} booking",
                details={"status": booking.status.value},
            )

    @staticmethod
    def _apply_transition(
        conn: Connection, booking: BookingRecord, target: BookingStatus
    ) -> BookingRecord:
        ensure_transition(booking.status, target)
        if not update_booking_status(conn, booking.id, booking.status, target):
            raise ConflictError("Booking status was changed by another request")
        booking_transitions.labels(from_status=booking.status.value, to_status=target.value).inc()
        return BookingService._reload(conn, booking.id)
