"""
Unit tests for middleware components.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from hotel_booking.auth.tokens import AccessClaims, IssuedSession, TokenPair
from hotel_booking.config import Settings
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import UserRecord
from hotel_booking.errors import TokenExpiredError, TokenRevokedError
from hotel_booking.middleware import RequestIDMiddleware, TokenRefreshMiddleware


@pytest.fixture
def app_with_middleware() -> FastAPI:
    """Create FastAPI app with RequestIDMiddleware for testing."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request) -> dict[str, str]:
        """Test endpoint that returns the request ID."""
        return {"request_id": request.state.request_id}

    @app.get("/context")
    async def context_endpoint() -> dict[str, str]:
        return {"bound": structlog.contextvars.get_contextvars().get("request_id", "")}

    return app


@pytest.fixture
def client(app_with_middleware: FastAPI) -> TestClient:
    """FastAPI test client with middleware."""
    return TestClient(app_with_middleware)


@pytest.mark.unit
def test_request_id_middleware_adds_header(client: TestClient) -> None:
    """Test that RequestIDMiddleware adds X-Request-ID header to response."""
    response = client.get("/test")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) == 36  # UUID length


@pytest.mark.unit
def test_request_id_middleware_matches_header_and_state(client: TestClient) -> None:
    """Test that request ID in header matches request ID in state."""
    response = client.get("/test")

    assert response.headers["X-Request-ID"] == response.json()["request_id"]


@pytest.mark.unit
def test_request_id_middleware_unique_per_request(client: TestClient) -> None:
    """Test that each request gets a unique request ID."""
    response1 = client.get("/test")
    response2 = client.get("/test")

    assert response1.headers["X-Request-ID"] != response2.headers["X-Request-ID"]


@pytest.mark.unit
def test_request_id_middleware_reuses_incoming_id(client: TestClient) -> None:
    response = client.get("/test", headers={"X-Request-ID": "upstream-id-123"})

    assert response.headers["X-Request-ID"] == "upstream-id-123"
    assert response.json()["request_id"] == "upstream-id-123"


@pytest.mark.unit
def test_request_id_is_bound_into_log_context(client: TestClient) -> None:
    response = client.get("/context")

    assert response.json()["bound"] == response.headers["X-Request-ID"]


# ---------------------------------------------------------------------------
# TokenRefreshMiddleware
# ---------------------------------------------------------------------------


def _session(clock) -> IssuedSession:
    user = UserRecord(
        id=uuid4(), name="Jane", email="jane@example.com", password_hash="x", role=Role.USER
    )
    return IssuedSession(
        user=user,
        tokens=TokenPair(
            access_token="new-access",
            access_expires_at=clock.now() + timedelta(hours=24),
            refresh_token="new-refresh",
            refresh_expires_at=clock.now() + timedelta(days=7),
        ),
    )


@pytest.fixture
def token_mock(clock) -> Mock:
    tokens = Mock()
    tokens.clock = clock
    return tokens


@pytest.fixture
def refresh_client(settings: Settings, token_mock: Mock) -> TestClient:
    app = FastAPI()
    app.state.settings = settings
    app.state.tokens = token_mock
    app.add_middleware(TokenRefreshMiddleware)

    @app.get("/bookings")
    def bookings() -> dict[str, bool]:
        return {"ok": True}

    client = TestClient(app)
    client.cookies.set("token", "old-access")
    client.cookies.set("refreshToken", "old-refresh")
    return client


def _claims(clock, remaining: timedelta) -> AccessClaims:
    return AccessClaims(
        user_id=uuid4(),
        role=Role.USER,
        issued_at=clock.now() - timedelta(hours=23),
        expires_at=clock.now() + remaining,
    )


@pytest.mark.unit
def test_refresh_rotates_when_token_near_expiry(
    refresh_client: TestClient, token_mock: Mock, clock
) -> None:
    claims = _claims(clock, timedelta(minutes=30))
    token_mock.verify_access_token.return_value = claims
    token_mock.rotate_refresh_token.return_value = _session(clock)

    response = refresh_client.get("/bookings")

    assert response.status_code == 200
    token_mock.rotate_refresh_token.assert_called_once()
    assert token_mock.rotate_refresh_token.call_args.args[0] == "old-refresh"
    assert token_mock.rotate_refresh_token.call_args.kwargs["expected_user_id"] == claims.user_id
    set_cookie = response.headers.get_list("set-cookie")
    assert any(c.startswith("token=new-access") for c in set_cookie)
    assert any(c.startswith("refreshToken=new-refresh") for c in set_cookie)


@pytest.mark.unit
def test_refresh_skipped_when_token_has_time_left(
    refresh_client: TestClient, token_mock: Mock, clock
) -> None:
    token_mock.verify_access_token.return_value = _claims(clock, timedelta(hours=5))

    response = refresh_client.get("/bookings")

    assert response.status_code == 200
    token_mock.rotate_refresh_token.assert_not_called()
    assert "set-cookie" not in response.headers


@pytest.mark.unit
def test_refresh_failure_does_not_fail_request(
    refresh_client: TestClient, token_mock: Mock, clock
) -> None:
    token_mock.verify_access_token.return_value = _claims(clock, timedelta(minutes=5))
    token_mock.rotate_refresh_token.side_effect = TokenRevokedError("revoked")

    response = refresh_client.get("/bookings")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "set-cookie" not in response.headers


@pytest.mark.unit
def test_refresh_ignores_invalid_access_token(
    refresh_client: TestClient, token_mock: Mock
) -> None:
    token_mock.verify_access_token.side_effect = TokenExpiredError("expired")

    response = refresh_client.get("/bookings")

    assert response.status_code == 200
    token_mock.rotate_refresh_token.assert_not_called()
