"""
Persistence gateway.

``Database`` owns the engine and is the only way services reach the store. It opens
transactions, hands the connection to the reader/writer functions, and translates
driver-level failures into the domain error taxonomy so that nothing above this module
ever sees a SQLAlchemy exception or store error text.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from hotel_booking.errors import (
    ConflictError,
    DomainError,
    InternalError,
    StoreUnavailableError,
)
from hotel_booking.metrics import db_errors, db_transaction_duration

logger = structlog.get_logger(__name__)

# PostgreSQL SQLSTATE codes
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
QUERY_CANCELED = "57014"
LOCK_NOT_AVAILABLE = "55P03"

# OperationalError messages that mean the store is unreachable rather than the SQL is wrong
CONNECTIVITY_MARKERS = (
    "could not connect",
    "connection refused",
    "connection timed out",
    "server closed the connection",
    "terminating connection",
    "unable to open database file",
    "disk i/o error",
)


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_db_error(exc: SQLAlchemyError) -> DomainError:
    """
    Map a SQLAlchemy exception onto the domain error taxonomy.

    Args:
        exc: Exception raised by the engine or a statement

    Returns:
        DomainError: ConflictError for lost races, StoreUnavailableError for timeouts
        and connectivity loss, InternalError for everything else
    """
    if isinstance(exc, PoolTimeoutError):
        return StoreUnavailableError("Database is busy, please retry")

    if isinstance(exc, IntegrityError):
        return ConflictError("The request conflicts with a concurrent change")

    if isinstance(exc, DBAPIError):
        state = _sqlstate(exc)
        if state in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED, LOCK_NOT_AVAILABLE):
            return ConflictError("The request conflicts with a concurrent change")
        if state == QUERY_CANCELED:
            return StoreUnavailableError("Database timed out, please retry")
        if exc.connection_invalidated:
            return StoreUnavailableError("Database is unavailable, please retry")
        if isinstance(exc, OperationalError):
            reason = str(exc.orig).lower()
            if "database is locked" in reason:
                return ConflictError("The request conflicts with a concurrent change")
            if any(marker in reason for marker in CONNECTIVITY_MARKERS):
                return StoreUnavailableError("Database is unavailable, please retry")

    return InternalError("An unexpected error occurred")


class Database:
    """
    Explicitly constructed persistence gateway.

    Example:
        >>> db = Database(create_db_engine(settings))
        >>> with db.transaction() as conn:
        ...     room = get_room(conn, room_id, for_update=True)
        ...     insert_booking(conn, {...})
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Run a block atomically.

        Commits when the block exits normally and rolls back on any exception. Domain
        errors raised inside the block propagate unchanged; store errors are translated.
        """
        start = time.perf_counter()
        try:
            with self.engine.begin() as conn:
                yield conn
        except DomainError:
            raise
        except SQLAlchemyError as e:
            error = translate_db_error(e)
            db_errors.labels(kind=error.code).inc()
            if isinstance(error, InternalError):
                logger.exception("db_transaction_failed", error=str(e))
            else:
                logger.warning("db_transaction_rejected", kind=error.code, error=str(e))
            raise error from e
        finally:
            db_transaction_duration.observe(time.perf_counter() - start)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Open a connection for reads; nothing is committed."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except DomainError:
            raise
        except SQLAlchemyError as e:
            error = translate_db_error(e)
            db_errors.labels(kind=error.code).inc()
            if isinstance(error, InternalError):
                logger.exception("db_read_failed", error=str(e))
            raise error from e

    def check_health(self) -> bool:
        """
        Check if the store is reachable.

        Used by the /ready endpoint before allowing traffic to the service.

        Returns:
            bool: True if a trivial query succeeds, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("db_health_check_failed")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
