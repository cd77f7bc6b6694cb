import httpx
import pytest
from fastapi.testclient import TestClient

from codex_profiles import CodexProfileManager, RefreshAuditLog
from codex_profiles.token_refresher import REFRESH_TOKEN_EXPIRED_MESSAGE
from profile_app.main import create_app

from conftest import TOKEN_URL

USAGE_PAYLOAD = {
    "plan_type": "plus",
    "rate_limit": {
        "primary_window": {"used_percent": 42, "limit_window_seconds": 300, "reset_at": 1_700_000_300}
    },
    "credits": {"has_credits": False, "unlimited": True, "balance": None},
}


class ProviderStub:
    """Stands in for the token endpoint and the usage endpoint."""

    def __init__(self):
        self.token_status = 200
        self.token_body = {"refresh_token": "r2", "access_token": "new.access.token"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            return httpx.Response(self.token_status, json=self.token_body)
        return httpx.Response(200, json=USAGE_PAYLOAD)


@pytest.fixture()
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture()
def client(settings, provider, write_auth_file, auth_record):
    write_auth_file("p1", auth_record)
    manager = CodexProfileManager(
        settings,
        transport=httpx.MockTransport(provider),
        audit=RefreshAuditLog(settings.audit_dir),
    )
    with TestClient(create_app(manager)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_profiles_uses_camel_case(client):
    response = client.get("/api/auth")

    assert response.status_code == 200
    [profile] = response.json()
    assert profile["id"] == "p1"
    assert profile["hasApiKey"] is False
    assert profile["email"] == "alice@example.com"
    assert profile["planType"] == "plus"
    assert profile["expiresAt"] == "2023-11-14T22:13:20.000Z"
    assert profile["accountId"] == "acct-123"
    assert profile["openaiUserType"] == "google-oauth2"


def test_activate_and_read_current(client):
    assert client.get("/api/auth/current").json() == {"id": None}

    response = client.post("/api/auth/activate/p1")
    assert response.status_code == 200
    assert response.json() == {"id": "p1"}

    assert client.get("/api/auth/current").json() == {"id": "p1"}


def test_activate_unknown_profile_is_404(client):
    response = client.post("/api/auth/activate/ghost")

    assert response.status_code == 404
    body = response.json()
    assert body["statusCode"] == 404
    assert "ghost" in body["message"]
    assert body["error"] == "ProfileNotFoundError"


@pytest.mark.parametrize("path", ["/api/auth/refresh/p1", "/api/refresh-token/p1"])
def test_refresh_routes_return_summary(client, path):
    response = client.post(path)

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "p1"
    assert body["accessTokenLast4"] == "oken"
    assert body["lastRefresh"] is not None


def test_rejected_refresh_is_401_with_reason(client, provider):
    provider.token_status = 401
    provider.token_body = {"error": {"code": "refresh_token_expired"}}

    response = client.post("/api/auth/refresh/p1")

    assert response.status_code == 401
    assert response.json() == {
        "statusCode": 401,
        "message": REFRESH_TOKEN_EXPIRED_MESSAGE,
        "error": "TokenRejectedError",
        "reason": "expired",
    }


def test_provider_failure_is_502(client, provider):
    provider.token_status = 503
    provider.token_body = {"detail": "down"}

    response = client.post("/api/auth/refresh/p1")

    assert response.status_code == 502
    assert response.json()["error"] == "ProviderUnavailableError"


def test_limits(client):
    response = client.get("/api/auth/p1/limits")

    assert response.status_code == 200
    assert response.json() == {
        "planType": "plus",
        "primary": {"usedPercent": 42, "windowMinutes": 5, "resetsAt": 1_700_000_300},
        "secondary": None,
        "credits": {"hasCredits": False, "unlimited": True, "balance": None},
    }


def test_limits_for_unknown_profile_is_404(client):
    assert client.get("/api/auth/ghost/limits").status_code == 404


def test_dashboard(client):
    client.post("/api/auth/activate/p1")

    response = client.get("/api/auth/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["currentId"] == "p1"
    assert [p["id"] for p in body["profiles"]] == ["p1"]
    assert body["limits"]["p1"]["primary"]["usedPercent"] == 42
    assert body["summary"] == {
        "accountCount": 0,
        "usageSum": 0,
        "usageAverage": 0,
        "elapsedSum": 0,
        "elapsedAverage": 0,
    }
