from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import UserRecord


class RegisterPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="Display name")
    email: str = Field(..., min_length=3, max_length=254, description="Login email")
    password: str = Field(..., description="Plain password, at least 6 characters")


class LoginPayload(BaseModel):
    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Plain password")


class RefreshTokenPayload(BaseModel):
    """
    Body variant of the refresh flow. The ``refreshToken`` cookie takes precedence.
    """

    refresh_token: Optional[str] = Field(None, description="Opaque refresh token")


class ForgotPasswordPayload(BaseModel):
    email: str = Field(..., description="Email of the account to reset")


class ResetPasswordPayload(BaseModel):
    token: str = Field(..., description="Password reset token")
    password: str = Field(..., description="New password")


class ChangePasswordPayload(BaseModel):
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")


class UserOut(BaseModel):
    id: UUID
    name: str
    email: str
    role: Role
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        )
