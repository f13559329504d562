"""
Integration tests for refresh-token issuance, rotation, and revocation.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from hotel_booking.auth.tokens import TokenService
from hotel_booking.db.gateway import Database
from hotel_booking.db.readers.tokens import get_refresh_token
from hotel_booking.db.writers.users import delete_user
from hotel_booking.domain.records import UserRecord
from hotel_booking.errors import InvalidTokenError, TokenExpiredError, TokenRevokedError
from hotel_booking.utils.ids import hash_token


@pytest.mark.integration
def test_issue_session_stores_only_digest(
    db: Database, token_service: TokenService, owner_user: UserRecord, clock
) -> None:
    pair = token_service.issue_session(owner_user, user_agent="pytest", ip_address="10.0.0.1")

    with db.connect() as conn:
        stored = get_refresh_token(conn, hash_token(pair.refresh_token))

    assert stored is not None
    assert stored.token_hash != pair.refresh_token
    assert stored.user_id == owner_user.id
    assert stored.user_agent == "pytest"
    assert stored.ip_address == "10.0.0.1"
    assert stored.expires_at == clock.now() + timedelta(days=7)
    assert token_service.verify_access_token(pair.access_token).user_id == owner_user.id


@pytest.mark.integration
def test_rotation_issues_new_pair_and_revokes_old(
    db: Database, token_service: TokenService, owner_user: UserRecord
) -> None:
    pair = token_service.issue_session(owner_user)

    session = token_service.rotate_refresh_token(pair.refresh_token)

    assert session.user.id == owner_user.id
    assert session.tokens.refresh_token != pair.refresh_token
    with db.connect() as conn:
        assert get_refresh_token(conn, hash_token(pair.refresh_token)).is_revoked
        assert not get_refresh_token(conn, hash_token(session.tokens.refresh_token)).is_revoked


@pytest.mark.integration
def test_rotation_for_another_users_session_leaves_token_alone(
    db: Database, token_service: TokenService, owner_user: UserRecord, other_user: UserRecord
) -> None:
    pair = token_service.issue_session(other_user)

    with pytest.raises(InvalidTokenError):
        token_service.rotate_refresh_token(pair.refresh_token, expected_user_id=owner_user.id)

    with db.connect() as conn:
        assert not get_refresh_token(conn, hash_token(pair.refresh_token)).is_revoked
    session = token_service.rotate_refresh_token(
        pair.refresh_token, expected_user_id=other_user.id
    )
    assert session.user.id == other_user.id


@pytest.mark.integration
def test_rotating_same_token_twice_is_rejected(
    token_service: TokenService, owner_user: UserRecord
) -> None:
    pair = token_service.issue_session(owner_user)
    token_service.rotate_refresh_token(pair.refresh_token)

    with pytest.raises(TokenRevokedError):
        token_service.rotate_refresh_token(pair.refresh_token)


@pytest.mark.integration
def test_rotating_expired_token_is_rejected(
    token_service: TokenService, owner_user: UserRecord, clock
) -> None:
    pair = token_service.issue_session(owner_user)

    clock.advance(timedelta(days=7))

    with pytest.raises(TokenExpiredError):
        token_service.rotate_refresh_token(pair.refresh_token)


@pytest.mark.integration
def test_revoked_is_reported_before_expired(
    token_service: TokenService, owner_user: UserRecord, clock
) -> None:
    pair = token_service.issue_session(owner_user)
    token_service.revoke(pair.refresh_token)

    clock.advance(timedelta(days=8))

    with pytest.raises(TokenRevokedError):
        token_service.rotate_refresh_token(pair.refresh_token)


@pytest.mark.integration
@pytest.mark.parametrize("presented", ["", "not-a-real-token"])
def test_rotating_unknown_token_is_invalid(
    token_service: TokenService, presented: str
) -> None:
    with pytest.raises(InvalidTokenError):
        token_service.rotate_refresh_token(presented)


@pytest.mark.integration
def test_rotation_for_deleted_user_is_invalid(
    db: Database, token_service: TokenService, owner_user: UserRecord
) -> None:
    pair = token_service.issue_session(owner_user)
    with db.transaction() as conn:
        delete_user(conn, owner_user.id)

    with pytest.raises(InvalidTokenError):
        token_service.rotate_refresh_token(pair.refresh_token)


@pytest.mark.integration
def test_revoke_is_idempotent(
    db: Database, token_service: TokenService, owner_user: UserRecord
) -> None:
    pair = token_service.issue_session(owner_user)

    token_service.revoke(pair.refresh_token)
    token_service.revoke(pair.refresh_token)
    token_service.revoke("unknown-token")
    token_service.revoke(None)

    with db.connect() as conn:
        assert get_refresh_token(conn, hash_token(pair.refresh_token)).is_revoked
