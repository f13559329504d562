"""Password hashing with bcrypt through passlib."""

from __future__ import annotations

from typing import Optional

import structlog
from passlib.context import CryptContext

from hotel_booking.errors import ValidationError

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6

# Verified against when the account does not exist, so unknown emails cost as much as
# wrong passwords
_dummy_hash: Optional[str] = None


def validate_password(password: str) -> None:
    """
    Raises:
        ValidationError: If the password is shorter than ``MIN_PASSWORD_LENGTH``
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    return str(pwd_context.hash(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a stored hash.

    Args:
        plain_password: The plain text password
        hashed_password: The stored bcrypt hash

    Returns:
        bool: True if the password matches; False on mismatch or a malformed hash
    """
    try:
        return bool(pwd_context.verify(plain_password, hashed_password))
    except ValueError as e:
        logger.error("password_hash_unreadable", error=str(e))
        return False


def burn_verification(plain_password: str) -> None:
    """Spend one bcrypt verification on a throwaway hash."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("timing-equalizer")
    pwd_context.verify(plain_password, _dummy_hash)
