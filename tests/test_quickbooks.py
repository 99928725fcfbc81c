"""
QuickBooks connection tests with a fake intuit-oauth client.
"""

import base64
import json
import time

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.services import quickbooks
from app.services.quickbooks import decode_state, encode_state


class FakeAuthClient:
    revoked: list[str] = []

    def __init__(self, client_id, client_secret, redirect_uri, environment):
        self.environment = environment
        self.access_token = None
        self.refresh_token = None
        self.expires_in = None

    def get_authorization_url(self, scopes, state_token=None):
        return f"https://appcenter.intuit.test/connect/oauth2?state={state_token}"

    def get_bearer_token(self, auth_code, realm_id=None):
        self.access_token = f"access-{auth_code}"
        self.refresh_token = f"refresh-{auth_code}"
        self.expires_in = 3600

    def revoke(self, token=None):
        FakeAuthClient.revoked.append(token)
        return True


@pytest.fixture
def quickbooks_configured(monkeypatch):
    monkeypatch.setattr(settings, "QUICKBOOKS_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "QUICKBOOKS_CLIENT_SECRET", "client-secret")
    monkeypatch.setattr(quickbooks, "AuthClient", FakeAuthClient)
    FakeAuthClient.revoked = []


@pytest.mark.asyncio
async def test_status_when_not_configured(auth_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "QUICKBOOKS_CLIENT_ID", None)

    status = await auth_client.get("/api/v1/quickbooks/status")
    auth_url = await auth_client.get("/api/v1/quickbooks/auth-url")

    assert status.json() == {
        "configured": False,
        "connected": False,
        "company_name": None,
        "realm_id": None,
        "environment": None,
        "last_sync_at": None,
    }
    assert auth_url.status_code == 400


@pytest.mark.asyncio
async def test_connect_and_disconnect(auth_client: AsyncClient, quickbooks_configured):
    auth_url = (await auth_client.get("/api/v1/quickbooks/auth-url")).json()
    assert auth_url["state"] in auth_url["url"]

    connected = await auth_client.post(
        "/api/v1/quickbooks/callback",
        json={"code": "abc", "realm_id": "9130", "state": auth_url["state"]},
    )

    assert connected.status_code == 200
    assert connected.json()["connected"] is True
    assert connected.json()["realm_id"] == "9130"

    disconnected = await auth_client.post("/api/v1/quickbooks/disconnect")

    assert disconnected.status_code == 200
    assert FakeAuthClient.revoked == ["refresh-abc"]
    status = await auth_client.get("/api/v1/quickbooks/status")
    assert status.json()["connected"] is False


@pytest.mark.asyncio
async def test_callback_with_malformed_state(auth_client: AsyncClient, quickbooks_configured):
    response = await auth_client.post(
        "/api/v1/quickbooks/callback",
        json={"code": "abc", "realm_id": "9130", "state": "not base64!"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_callback_with_another_users_state(auth_client: AsyncClient, quickbooks_configured, test_user):
    response = await auth_client.post(
        "/api/v1/quickbooks/callback",
        json={"code": "abc", "realm_id": "9130", "state": encode_state(test_user.id + 1)},
    )

    assert response.status_code == 400
    assert "does not match" in response.json()["detail"]


@pytest.mark.asyncio
async def test_callback_with_expired_state(auth_client: AsyncClient, quickbooks_configured, test_user):
    stale = encode_state(test_user.id, timestamp=time.time() - 11 * 60)

    response = await auth_client.post(
        "/api/v1/quickbooks/callback",
        json={"code": "abc", "realm_id": "9130", "state": stale},
    )

    assert response.status_code == 400
    assert "expired" in response.json()["detail"]


@pytest.mark.asyncio
async def test_disconnect_without_connection(auth_client: AsyncClient, quickbooks_configured):
    response = await auth_client.post("/api/v1/quickbooks/disconnect")

    assert response.status_code == 404


def raw_state(payload: dict) -> str:
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


@pytest.mark.parametrize("payload", [
    {"user_id": 1, "timestamp": "x"},
    {"user_id": "1", "timestamp": 1700000000000},
    {"user_id": 1, "timestamp": None},
    {"user_id": 1},
])
def test_decode_state_rejects_wrong_types(payload):
    with pytest.raises(ValueError):
        decode_state(raw_state(payload))


def test_decode_state_round_trip():
    payload = decode_state(encode_state(7, timestamp=1700000000))

    assert payload == {"user_id": 7, "timestamp": 1700000000000}


@pytest.mark.asyncio
async def test_callback_with_non_numeric_timestamp(auth_client: AsyncClient, quickbooks_configured, test_user):
    response = await auth_client.post(
        "/api/v1/quickbooks/callback",
        json={"code": "abc", "realm_id": "9130", "state": raw_state({"user_id": test_user.id, "timestamp": "x"})},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Malformed OAuth state"
