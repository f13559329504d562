"""
SQLAlchemy engine factory with production-ready connection pooling.

The engine is built once by the application factory from ``Settings`` and shared through
``Database``. Pool checkout and statement execution are both bounded so that a stuck
store surfaces as an error instead of a hung request.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from hotel_booking.config import Settings


def _enable_sqlite_write_serialization(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two connections both read
    "available" before either writes. ``BEGIN IMMEDIATE`` serializes the whole
    check-then-write sequence, the SQLite counterpart of the row lock used on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Hand transaction control to SQLAlchemy's "begin" event below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(settings: Settings) -> Engine:
    """
    Create the engine for ``settings.database_url``.

    Args:
        settings: Application settings

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    url = make_url(settings.database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_engine(
            url,
            connect_args={
                "timeout": settings.db_pool_timeout_seconds,
                "check_same_thread": False,
            },
            echo=False,
        )
        _enable_sqlite_write_serialization(engine)
        return engine

    connect_args: dict[str, Any] = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {
            "connect_timeout": settings.db_pool_timeout_seconds,
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        }

    return create_engine(
        url,
        # Connection pool settings
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout_seconds,
        pool_pre_ping=True,  # Verify connections before using (detect stale connections)
        pool_recycle=3600,  # Recycle connections after 1 hour (prevents stale connections)
        connect_args=connect_args,
        echo=False,
    )
