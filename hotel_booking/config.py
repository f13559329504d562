"""
Runtime configuration.

Settings are read from the environment (and a local .env file, if present) exactly once
at startup and handed to the application factory. Nothing else in the package reads the
environment directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """
    Immutable application settings.

    Attributes:
        database_url: SQLAlchemy URL of the relational store
        jwt_secret: HMAC secret used to sign access tokens
        access_token_ttl: Lifetime of a signed access token
        refresh_token_ttl: Lifetime of a stored refresh token
        token_refresh_threshold: Remaining access-token lifetime below which the
            refresh middleware rotates proactively
        booking_fee_rate: Tax and fees as a fraction of the base price
        booking_auto_confirm: Create bookings directly in the confirmed state
        allow_guest_bookings: Accept booking creation without an authenticated caller
    """

    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(hours=24)
    refresh_token_ttl: timedelta = timedelta(days=7)
    password_reset_ttl: timedelta = timedelta(hours=1)
    token_refresh_threshold: timedelta = timedelta(hours=1)
    booking_fee_rate: Decimal = Decimal("0.10")
    booking_auto_confirm: bool = False
    allow_guest_bookings: bool = False
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    cookie_secure: bool = False
    log_level: str = "INFO"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout_seconds: int = 10
    db_statement_timeout_ms: int = 5000

    @property
    def debug(self) -> bool:
        return self.log_level == "DEBUG"

    @classmethod
    def from_env(cls) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ValueError: If a required variable is missing or malformed
        """
        load_dotenv()

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL must be set in the environment")

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise ValueError("JWT_SECRET must be set in the environment")

        origins_raw = os.getenv("ALLOWED_ORIGINS", "*")
        allowed_origins = [origin.strip() for origin in origins_raw.split(",") if origin.strip()]

        fee_rate_raw = os.getenv("BOOKING_FEE_RATE", "0.10")
        try:
            fee_rate = Decimal(fee_rate_raw)
        except ArithmeticError as e:
            raise ValueError(f"BOOKING_FEE_RATE must be a decimal, got {fee_rate_raw!r}") from e
        if fee_rate < 0:
            raise ValueError("BOOKING_FEE_RATE must not be negative")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_ttl=timedelta(minutes=_env_int("ACCESS_TOKEN_TTL_MINUTES", 24 * 60)),
            refresh_token_ttl=timedelta(days=_env_int("REFRESH_TOKEN_TTL_DAYS", 7)),
            password_reset_ttl=timedelta(minutes=_env_int("PASSWORD_RESET_TTL_MINUTES", 60)),
            token_refresh_threshold=timedelta(
                minutes=_env_int("TOKEN_REFRESH_THRESHOLD_MINUTES", 60)
            ),
            booking_fee_rate=fee_rate,
            booking_auto_confirm=_env_bool("BOOKING_AUTO_CONFIRM", False),
            allow_guest_bookings=_env_bool("ALLOW_GUEST_BOOKINGS", False),
            allowed_origins=allowed_origins or ["*"],
            cookie_secure=_env_bool("COOKIE_SECURE", False),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            db_pool_size=_env_int("DB_POOL_SIZE", 10),
            db_max_overflow=_env_int("DB_MAX_OVERFLOW", 20),
            db_pool_timeout_seconds=_env_int("DB_POOL_TIMEOUT_SECONDS", 10),
            db_statement_timeout_ms=_env_int("DB_STATEMENT_TIMEOUT_MS", 5000),
        )
