"""
Immutable records returned by the persistence readers.

Services work with these instead of raw row mappings so that column names stay
confined to the db package.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional
from uuid import UUID

from hotel_booking.domain.enums import BookingStatus, PaymentMethod, PaymentStatus, Role
from hotel_booking.utils.datetime import ensure_utc


def _optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    name: str
    email: str
    password_hash: str
    role: Role
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> UserRecord:
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            created_at=_optional_utc(row.get("created_at")),
        )


@dataclass(frozen=True)
class RoomRecord:
    id: UUID
    title: str
    category: str
    price: Decimal
    is_available: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> RoomRecord:
        return cls(
            id=row["id"],
            title=row["title"],
            category=row["category"],
            price=Decimal(row["price"]),
            is_available=bool(row["is_available"]),
        )


@dataclass(frozen=True)
class BookingRecord:
    id: UUID
    booking_code: str
    user_id: Optional[UUID]
    room_id: Optional[UUID]
    check_in: date
    check_out: date
    nights: int
    adults: int
    children: int
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
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def guests(self) -> int:
        return self.adults + self.children

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BookingRecord:
        return cls(
            id=row["id"],
            booking_code=row["booking_code"],
            user_id=row["user_id"],
            room_id=row["room_id"],
            check_in=row["check_in"],
            check_out=row["check_out"],
            nights=row["nights"],
            adults=row["adults"],
            children=row["children"],
            nightly_rate=Decimal(row["nightly_rate"]),
            base_price=Decimal(row["base_price"]),
            tax_and_fees=Decimal(row["tax_and_fees"]),
            total_price=Decimal(row["total_price"]),
            status=BookingStatus(row["status"]),
            payment_status=PaymentStatus(row["payment_status"]),
            payment_method=PaymentMethod(row["payment_method"]),
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            phone=row["phone"],
            special_requests=row["special_requests"],
            created_at=_optional_utc(row.get("created_at")),
            updated_at=_optional_utc(row.get("updated_at")),
        )


@dataclass(frozen=True)
class RefreshTokenRecord:
    id: UUID
    user_id: UUID
    token_hash: str
    expires_at: datetime
    is_revoked: bool
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> RefreshTokenRecord:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=row["token_hash"],
            expires_at=ensure_utc(row["expires_at"]),
            is_revoked=bool(row["is_revoked"]),
            user_agent=row.get("user_agent"),
            ip_address=row.get("ip_address"),
        )


@dataclass(frozen=True)
class PasswordResetRecord:
    id: UUID
    user_id: UUID
    token_hash: str
    expires_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> PasswordResetRecord:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            token_hash=row["token_hash"],
            expires_at=ensure_utc(row["expires_at"]),
        )


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as resolved by the authorization gate."""

    user_id: UUID
    role: Role
    name: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
