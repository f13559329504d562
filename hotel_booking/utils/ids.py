"""Identifier and opaque token generation."""

from __future__ import annotations

import hashlib
import secrets
from datetime import date

# No 0/O or 1/I so codes survive being read over the phone
BOOKING_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def new_booking_code(today: date) -> str:
    """
    Generate a human-facing booking code such as ``BK-250601-7KQ2MX``.

    Uniqueness is enforced by the store; the random part makes collisions negligible.
    """
    suffix = "".join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(6))
    return f"BK-{today:%y%m%d}-{suffix}"


def new_opaque_token() -> str:
    """Return a URL-safe random token for refresh and password-reset flows."""
    return secrets.token_urlsafe(48)


def hash_token(token: str) -> str:
    """SHA-256 digest under which opaque tokens are stored and looked up."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
