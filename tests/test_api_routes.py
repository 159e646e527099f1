"""
tests/test_api_routes.py -- Integration tests for the account and session routes.

These tests exercise the full stack: FastAPI routing -> auth dependency
injection -> SessionManager -> AuthStore (shared-memory SQLite) -> response
model serialization.

Coverage:
  - POST /users: 201, 400 on password mismatch, 409 on duplicate, 422 on bad email
    or a password over 72 UTF-8 bytes; password whitespace is preserved
  - POST /sessions: 200 with token pair, 401 with one body for every cause
  - POST /sessions/refresh: 200, 401 after logout / for garbage
  - GET /me, GET /sessions, DELETE /sessions with Bearer auth
  - Silent re-issue of an expired access token via the x-refresh header

Fixtures used (from conftest.py):
  - api_client: (client, store, jane) -- jane.doe@example.com / Password123 is seeded
  - keys: the TokenKeys the app signs with
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from auth.tokens import JWTCodec, TokenType

JANE = {"email": "jane.doe@example.com", "password": "Password123"}


def _login(client: TestClient, agent: str = "pytest-agent") -> dict:
    resp = client.post("/api/v1/sessions", json=JANE, headers={"User-Agent": agent})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRegistration:
    def test_create_account(self, api_client) -> None:
        client, store, _jane = api_client
        body = {
            "email": "AnyEmail@example.com",
            "name": "Jane Doe",
            "password": "Password123",
            "password_confirmation": "Password123",
        }
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["email"] == "anyemail@example.com"
        assert "password" not in data and "password_hash" not in data
        assert store.get_by_email("anyemail@example.com").password_hash != "Password123"

    def test_password_mismatch_is_400(self, api_client) -> None:
        client, store, _jane = api_client
        body = {
            "email": "mismatch@example.com",
            "name": "Jane Doe",
            "password": "Password123",
            "password_confirmation": "doesnotmatch",
        }
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "password_mismatch"
        assert store.get_by_email("mismatch@example.com") is None

    def test_duplicate_email_is_409(self, api_client) -> None:
        client, _store, _jane = api_client
        body = {
            "email": "JANE.DOE@example.com",
            "name": "Another Jane",
            "password": "Password123",
            "password_confirmation": "Password123",
        }
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 409

    def test_invalid_email_is_422(self, api_client) -> None:
        client, _store, _jane = api_client
        body = {"email": "not-an-email", "name": "X", "password": "Password123", "password_confirmation": "Password123"}
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_password_whitespace_is_kept(self, api_client) -> None:
        client, store, _jane = api_client
        password = "  Password123  "
        body = {
            "email": "  spaces@example.com ",
            "name": " Space Cadet ",
            "password": password,
            "password_confirmation": password,
        }
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 201, resp.text
        assert resp.json()["email"] == "spaces@example.com"
        assert resp.json()["name"] == "Space Cadet"

        login = client.post("/api/v1/sessions", json={"email": "spaces@example.com", "password": password})
        assert login.status_code == 200, login.text
        stripped = client.post("/api/v1/sessions", json={"email": "spaces@example.com", "password": password.strip()})
        assert stripped.status_code == 401

    def test_password_over_72_bytes_is_422(self, api_client) -> None:
        client, store, _jane = api_client
        password = "é" * 40  # 40 characters, 80 bytes
        body = {
            "email": "accents@example.com",
            "name": "Jane Doe",
            "password": password,
            "password_confirmation": password,
        }
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert store.get_by_email("accents@example.com") is None

    def test_multibyte_password_within_72_bytes(self, api_client) -> None:
        client, _store, _jane = api_client
        password = "é" * 36  # exactly 72 bytes
        body = {
            "email": "accents@example.com",
            "name": "Jane Doe",
            "password": password,
            "password_confirmation": password,
        }
        assert client.post("/api/v1/users", json=body).status_code == 201
        login = client.post("/api/v1/sessions", json={"email": "accents@example.com", "password": password})
        assert login.status_code == 200


class TestLogin:
    def test_login_returns_token_pair(self, api_client, keys) -> None:
        client, _store, jane = api_client
        resp = client.post("/api/v1/sessions", json=JANE)
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        data = resp.json()
        assert isinstance(data["access_token"], str)
        assert isinstance(data["refresh_token"], str)

        codec = JWTCodec(keys)
        assert codec.verify(data["access_token"], TokenType.ACCESS)["email"] == "jane.doe@example.com"
        assert codec.verify(data["refresh_token"], TokenType.REFRESH)["session"]

    def test_records_user_agent(self, api_client) -> None:
        client, store, jane = api_client
        _login(client, agent="PostmanRuntime/7.28.4")
        [session] = store.list_sessions(jane.id)
        assert session.user_agent == "PostmanRuntime/7.28.4"

    def test_failures_are_indistinguishable(self, api_client) -> None:
        client, store, jane = api_client
        wrong_password = client.post("/api/v1/sessions", json={**JANE, "password": "nope"})
        unknown_email = client.post("/api/v1/sessions", json={"email": "nobody@example.com", "password": "Password123"})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.headers["cache-control"] == "no-store"
        assert store.list_sessions(jane.id, valid_only=False) == []

    def test_overlong_password_is_bad_credentials(self, api_client) -> None:
        client, store, jane = api_client
        wrong_password = client.post("/api/v1/sessions", json={**JANE, "password": "nope"})
        overlong = client.post("/api/v1/sessions", json={**JANE, "password": "x" * 100})
        overlong_unknown = client.post("/api/v1/sessions", json={"email": "nobody@example.com", "password": "é" * 40})

        assert overlong.status_code == overlong_unknown.status_code == 401
        assert overlong.json() == overlong_unknown.json() == wrong_password.json()
        assert store.list_sessions(jane.id, valid_only=False) == []


class TestRefreshAndLogout:
    def test_refresh(self, api_client) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        resp = client.post("/api/v1/sessions/refresh", json={"refresh_token": pair["refresh_token"]})
        assert resp.status_code == 200
        new_access = resp.json()["access_token"]
        assert new_access != pair["access_token"]
        assert client.get("/api/v1/me", headers=_bearer(new_access)).status_code == 200

    def test_refresh_garbage_is_401(self, api_client) -> None:
        client, _store, _jane = api_client
        resp = client.post("/api/v1/sessions/refresh", json={"refresh_token": "garbage"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_refresh_with_access_token_is_401(self, api_client) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        resp = client.post("/api/v1/sessions/refresh", json={"refresh_token": pair["access_token"]})
        assert resp.status_code == 401

    def test_logout_revokes_refresh(self, api_client) -> None:
        client, store, jane = api_client
        pair = _login(client)

        resp = client.delete("/api/v1/sessions", headers=_bearer(pair["access_token"]))
        assert resp.status_code == 200
        assert resp.json() == {"access_token": None, "refresh_token": None}
        assert store.list_sessions(jane.id) == []

        garbage = client.post("/api/v1/sessions/refresh", json={"refresh_token": "garbage"})
        revoked = client.post("/api/v1/sessions/refresh", json={"refresh_token": pair["refresh_token"]})
        assert revoked.status_code == 401
        assert revoked.json() == garbage.json()

    def test_logout_twice(self, api_client) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        for _ in range(2):
            resp = client.delete("/api/v1/sessions", headers=_bearer(pair["access_token"]))
            assert resp.status_code == 200

    def test_logout_requires_auth(self, api_client) -> None:
        client, _store, _jane = api_client
        assert client.delete("/api/v1/sessions").status_code == 401


class TestAuthenticatedRoutes:
    def test_me(self, api_client) -> None:
        client, _store, jane = api_client
        pair = _login(client)
        resp = client.get("/api/v1/me", headers=_bearer(pair["access_token"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == jane.id
        assert data["email"] == "jane.doe@example.com"
        assert data["name"] == "Jane Doe"
        assert data["expires_at"] > data["issued_at"]

    def test_me_unauthenticated(self, api_client) -> None:
        client, _store, _jane = api_client
        assert client.get("/api/v1/me").status_code == 401
        assert client.get("/api/v1/me", headers=_bearer("garbage")).status_code == 401

    def test_refresh_token_is_not_a_bearer_token(self, api_client) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        assert client.get("/api/v1/me", headers=_bearer(pair["refresh_token"])).status_code == 401

    def test_list_sessions(self, api_client) -> None:
        client, _store, _jane = api_client
        first = _login(client, agent="phone")
        _login(client, agent="laptop")
        client.delete("/api/v1/sessions", headers=_bearer(first["access_token"]))

        second = _login(client, agent="tablet")
        resp = client.get("/api/v1/sessions", headers=_bearer(second["access_token"]))
        assert resp.status_code == 200
        agents = {s["user_agent"] for s in resp.json()}
        assert agents == {"laptop", "tablet"}
        assert all(s["valid"] for s in resp.json())


class TestSilentReissue:
    """An expired access token plus a valid x-refresh header still authenticates."""

    def _expired_access(self, keys, claims: dict) -> str:
        an_hour_ago = JWTCodec(keys, clock=lambda: time.time() - 3600)
        return an_hour_ago.sign(claims, keys.access_ttl, TokenType.ACCESS)

    def test_reissues_access_token(self, api_client, keys) -> None:
        client, _store, jane = api_client
        pair = _login(client)
        claims = JWTCodec(keys).verify(pair["access_token"], TokenType.ACCESS)
        expired = self._expired_access(keys, claims)

        resp = client.get("/api/v1/me", headers={**_bearer(expired), "x-refresh": pair["refresh_token"]})
        assert resp.status_code == 200
        assert resp.json()["id"] == jane.id
        reissued = resp.headers["x-access-token"]
        assert JWTCodec(keys).verify(reissued, TokenType.ACCESS)["sub"] == jane.id

    def test_expired_without_refresh_header(self, api_client, keys) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        claims = JWTCodec(keys).verify(pair["access_token"], TokenType.ACCESS)
        resp = client.get("/api/v1/me", headers=_bearer(self._expired_access(keys, claims)))
        assert resp.status_code == 401
        assert "x-access-token" not in resp.headers

    def test_revoked_session_is_not_reissued(self, api_client, keys) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        claims = JWTCodec(keys).verify(pair["access_token"], TokenType.ACCESS)
        client.delete("/api/v1/sessions", headers=_bearer(pair["access_token"]))

        resp = client.get(
            "/api/v1/me",
            headers={**_bearer(self._expired_access(keys, claims)), "x-refresh": pair["refresh_token"]},
        )
        assert resp.status_code == 401
        assert "x-access-token" not in resp.headers

    def test_valid_access_token_is_not_reissued(self, api_client) -> None:
        client, _store, _jane = api_client
        pair = _login(client)
        resp = client.get("/api/v1/me", headers={**_bearer(pair["access_token"]), "x-refresh": pair["refresh_token"]})
        assert resp.status_code == 200
        assert "x-access-token" not in resp.headers
