"""
Unit tests for FastAPI dependency injection.
"""

from __future__ import annotations

from typing import Optional
from unittest.mock import Mock
from uuid import uuid4

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from hotel_booking.dependencies import (
    get_current_principal,
    get_optional_principal,
    require_admin,
)
from hotel_booking.domain.enums import Role
from hotel_booking.domain.records import Principal
from hotel_booking.errors import UnauthenticatedError
from hotel_booking.main import _register_exception_handlers


@pytest.fixture
def gate() -> Mock:
    return Mock()


@pytest.fixture
def client(gate: Mock) -> TestClient:
    app = FastAPI()
    app.state.gate = gate
    _register_exception_handlers(app)

    @app.get("/me")
    def me(principal: Principal = Depends(get_current_principal)) -> dict[str, str]:
        return {"user_id": str(principal.user_id)}

    @app.get("/maybe")
    def maybe(principal: Optional[Principal] = Depends(get_optional_principal)) -> dict:
        return {"anonymous": principal is None}

    @app.get("/admin-only")
    def admin_only(principal: Principal = Depends(require_admin)) -> dict[str, bool]:
        return {"ok": True}

    return TestClient(app)


@pytest.mark.unit
def test_current_principal_passes_header_and_cookies_to_gate(
    client: TestClient, gate: Mock
) -> None:
    principal = Principal(user_id=uuid4(), role=Role.USER)
    gate.authenticate_request.return_value = principal

    response = client.get("/me", headers={"Authorization": "Bearer abc"})

    assert response.status_code == 200
    assert response.json() == {"user_id": str(principal.user_id)}
    authorization, _cookies = gate.authenticate_request.call_args.args
    assert authorization == "Bearer abc"


@pytest.mark.unit
def test_unauthenticated_maps_to_401(client: TestClient, gate: Mock) -> None:
    gate.authenticate_request.side_effect = UnauthenticatedError("Not authorized")

    response = client.get("/me")

    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"


@pytest.mark.unit
def test_optional_principal_is_none_without_credentials(client: TestClient, gate: Mock) -> None:
    response = client.get("/maybe")

    assert response.json() == {"anonymous": True}
    gate.authenticate.assert_not_called()


@pytest.mark.unit
def test_optional_principal_treats_stale_token_as_anonymous(
    client: TestClient, gate: Mock
) -> None:
    gate.authenticate.side_effect = UnauthenticatedError("Invalid or expired token")

    response = client.get("/maybe", headers={"Authorization": "Bearer expired"})

    assert response.status_code == 200
    assert response.json() == {"anonymous": True}
    gate.authenticate.assert_called_once_with("expired")


@pytest.mark.unit
def test_optional_principal_resolves_valid_token(client: TestClient, gate: Mock) -> None:
    gate.authenticate.return_value = Principal(user_id=uuid4(), role=Role.USER)

    response = client.get("/maybe", headers={"Authorization": "Bearer good"})

    assert response.json() == {"anonymous": False}


@pytest.mark.unit
def test_require_admin_forbids_regular_users(client: TestClient, gate: Mock) -> None:
    gate.authenticate_request.return_value = Principal(user_id=uuid4(), role=Role.USER)

    response = client.get("/admin-only")

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.unit
def test_require_admin_allows_admins(client: TestClient, gate: Mock) -> None:
    gate.authenticate_request.return_value = Principal(user_id=uuid4(), role=Role.ADMIN)

    assert client.get("/admin-only").json() == {"ok": True}
