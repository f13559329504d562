import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse

import structlog

from hotel_booking.auth.passwords import hash_password, validate_password
from hotel_booking.config import Settings
from hotel_booking.db.engine import create_db_engine
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.users import get_user_by_email
from hotel_booking.db.writers.users import insert_user, update_user_password, update_user_role
from hotel_booking.domain.enums import Role
from hotel_booking.logging_config import setup_logging

logger = structlog.get_logger(__name__)


def seed_admin(db: Database, name: str, email: str, password: str) -> None:
    """
    Create an admin account, or promote an existing account and reset its password.
    """
    validate_password(password)
    password_hash = hash_password(password)

    with db.transaction() as conn:
        existing = get_user_by_email(conn, email)
        if existing is None:
            user_id = insert_user(conn, name, email, password_hash, role=Role.ADMIN)
            logger.info("admin_created", user_id=str(user_id), email=email)
            return

        update_user_password(conn, existing.id, password_hash)
        if existing.role is not Role.ADMIN:
            update_user_role(conn, existing.id, Role.ADMIN)
        logger.info("admin_updated", user_id=str(existing.id), email=email)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Admin User")
    args = parser.parse_args()

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    db = Database(create_db_engine(settings))

    try:
        seed_admin(db, args.name, args.email, args.password)
    except Exception:
        logger.exception("admin_seed_failed", email=args.email)
        raise
    finally:
        db.dispose()


if __name__ == "__main__":
    main()
