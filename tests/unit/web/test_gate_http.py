"""End-to-end gate behavior over HTTP."""

from datetime import datetime, timedelta

import pytest
from conftest import login
from fastapi.testclient import TestClient

from sessiongate.app import App
from sessiongate.core.modules.user.store import MemoryUserStore
from sessiongate.errors import StorageError
from sessiongate.web.server import create_fastapi_app


def test_login_then_access_then_idle_expiry(client, alice_headers, clock):
    response = client.get("/api/profile", headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "alice"
    expires = datetime.fromisoformat(response.headers["x-session-expires"])
    assert expires == clock() + timedelta(seconds=30)

    clock.advance(31)
    response = client.get("/api/profile", headers=alice_headers)
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "SESSION_EXPIRED"
    assert body["message"]


def test_activity_keeps_session_alive(client, alice_headers, clock):
    for _ in range(5):
        clock.advance(20)
        assert client.get("/api/profile", headers=alice_headers).status_code == 200


def test_second_login_replaces_first(client, alice_headers):
    second_headers = login(client, "alice", "wonderland")

    response = client.get("/api/profile", headers=alice_headers)
    assert response.status_code == 401
    assert response.json()["code"] == "SESSION_REPLACED"
    assert "elsewhere" in response.json()["message"]

    assert client.get("/api/profile", headers=second_headers).status_code == 200


def test_missing_token_header(client, alice_headers):
    response = client.get("/api/profile", headers={"x-username": "alice"})
    assert response.status_code == 401
    assert response.json()["code"] == "NO_SESSION_TOKEN"


def test_missing_both_headers(client):
    response = client.get("/api/profile")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    assert response.json()["path"] == "/api/profile"


def test_unknown_route_under_prefix_is_gated(client):
    assert client.get("/api/does-not-exist").status_code == 401


def test_identity_header_accepts_user_id(client, alice_headers):
    alice_id = client.get("/api/profile", headers=alice_headers).json()["data"]["id"]
    headers = {"x-username": alice_id, "x-session-token": alice_headers["x-session-token"]}
    assert client.get("/api/profile", headers=headers).status_code == 200


@pytest.mark.parametrize("path", ["/api/profile", "/api/users", "/api/auth/login", "/anything"])
def test_preflight_always_allowed(client, path):
    response = client.options(path, headers={"x-username": "ghost", "x-session-token": "bogus"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "OPTIONS" in response.headers["access-control-allow-methods"]
    assert "x-session-token" in response.headers["access-control-allow-headers"]


def test_preflight_does_not_touch_session(client, alice_headers, clock):
    clock.advance(20)
    client.options("/api/profile", headers=alice_headers)
    clock.advance(11)
    assert client.get("/api/profile", headers=alice_headers).json()["code"] == "SESSION_EXPIRED"


def test_forwarded_response_is_decorated(client, alice_headers):
    response = client.get("/api/profile", headers=alice_headers)
    assert response.headers["x-gate-processed"] == "true"
    assert response.headers["x-gate-username"] == "alice"
    assert "x-gate-timestamp" in response.headers
    assert response.headers["access-control-allow-origin"] == "*"


def test_rejections_carry_cors_headers(client):
    response = client.get("/api/profile")
    assert response.headers["access-control-allow-origin"] == "*"


def test_public_routes_pass_without_credentials(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert "x-gate-processed" not in response.headers


def test_configured_origins_are_echoed(config, store, clock):
    config.cors_origins = ["https://app.example"]
    app = App(config, store=store, clock=clock)
    with TestClient(create_fastapi_app(app)) as client:
        allowed = client.options("/api/profile", headers={"origin": "https://app.example"})
        other = client.options("/api/profile", headers={"origin": "https://evil.example"})

    assert allowed.headers["access-control-allow-origin"] == "https://app.example"
    assert "access-control-allow-origin" not in other.headers


class FlakyStore(MemoryUserStore):
    def __init__(self) -> None:
        super().__init__()
        self.broken = False
        self.list_all_broken = False

    async def get_by_name(self, username):
        if self.broken:
            raise StorageError("connection refused")
        return await super().get_by_name(username)

    async def list_all(self):
        if self.list_all_broken:
            raise StorageError("connection refused")
        return await super().list_all()


def test_store_failure_is_a_generic_server_error(config, clock):
    store = FlakyStore()
    app = App(config, store=store, clock=clock)
    with TestClient(create_fastapi_app(app)) as client:
        headers = login(client, "admin", "admin-secret")
        store.broken = True
        response = client.get("/api/profile", headers=headers)

    assert response.status_code == 500
    body = response.json()
    assert body == {"success": False, "message": "An unexpected error occurred.", "code": "SERVER_ERROR"}


def test_store_failure_inside_handler(config, clock):
    store = FlakyStore()
    app = App(config, store=store, clock=clock)
    with TestClient(create_fastapi_app(app), raise_server_exceptions=False) as client:
        store.broken = True
        response = client.post("/api/auth/login", json={"username": "admin", "password": "admin-secret"})

    assert response.status_code == 500
    assert response.json()["code"] == "SERVER_ERROR"
    assert "connection refused" not in response.text
    assert response.headers["access-control-allow-origin"] == "*"


def test_store_failure_inside_protected_handler(config, clock):
    store = FlakyStore()
    app = App(config, store=store, clock=clock)
    with TestClient(create_fastapi_app(app)) as client:
        headers = login(client, "admin", "admin-secret")
        store.list_all_broken = True
        response = client.get("/api/users", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "An unexpected error occurred.", "code": "SERVER_ERROR"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["x-gate-processed"] == "true"


def test_profile_reports_refreshed_expiry(client, alice_headers, clock):
    clock.advance(10)
    response = client.get("/api/profile", headers=alice_headers)

    expires = datetime.fromisoformat(response.json()["data"]["expiresAt"])
    assert expires == clock() + timedelta(seconds=30)
    assert expires == datetime.fromisoformat(response.headers["x-session-expires"])
