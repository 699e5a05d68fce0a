# =============================================================================
# tests/test_auth.py - Auth & Session Cookie Tests
# =============================================================================
# Tokens are signed locally with the HS256 test secret from conftest.
#
# Run with: pytest tests/test_auth.py -v
# =============================================================================

import time
from unittest.mock import MagicMock, patch

import httpx
import pytest
from fastapi import HTTPException
from jose import jwt

import app.auth.dependencies as auth_deps
from app.auth import decode_access_token
from app.auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE
from core.services.subscription_service import TABLE
from tests.conftest import AGENCY_ID

SECRET = "test-jwt-secret"


def make_token(sub=AGENCY_ID, expires_in=3600, secret=SECRET, **claims):
    payload = {
        "sub": sub,
        "email": "ops@agency.example",
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def set_cookie_headers(response):
    return [h.lower() for h in response.headers.get_list("set-cookie")]


class TestDecodeAccessToken:

    def test_valid_token(self):
        token = make_token()
        user = decode_access_token(token)
        assert str(user.id) == AGENCY_ID
        assert user.email == "ops@agency.example"
        assert user.access_token == token

    def test_token_not_in_dumps(self):
        user = decode_access_token(make_token())
        assert "access_token" not in user.model_dump()

    @pytest.mark.parametrize("token", [
        make_token(expires_in=-60),
        make_token(secret="wrong-secret"),
        make_token(aud="anon"),
        make_token(sub="not-a-uuid"),
        "garbage",
    ])
    def test_rejected_tokens(self, token):
        with pytest.raises(HTTPException) as exc:
            decode_access_token(token)
        assert exc.value.status_code == 401


class TestSetSession:

    URL = "/api/v1/auth/set-session"

    def test_sets_http_only_cookies(self, make_client):
        token = make_token()

        response = make_client().post(self.URL, json={"access_token": token, "refresh_token": "r-1"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        headers = set_cookie_headers(response)
        access = next(h for h in headers if h.startswith(f"{ACCESS_COOKIE}="))
        refresh = next(h for h in headers if h.startswith(f"{REFRESH_COOKIE}="))
        for header in (access, refresh):
            assert "httponly" in header
            assert "samesite=lax" in header
            assert "path=/" in header
        assert "max-age=2592000" in refresh

    @pytest.mark.parametrize("body", [
        {},
        {"access_token": "x"},
        {"refresh_token": "r-1"},
        {"access_token": "", "refresh_token": "r-1"},
    ])
    def test_missing_tokens(self, make_client, body):
        response = make_client().post(self.URL, json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing tokens"

    def test_invalid_token_sets_nothing(self, make_client):
        response = make_client().post(
            self.URL, json={"access_token": make_token(secret="nope"), "refresh_token": "r-1"}
        )
        assert response.status_code == 401
        assert set_cookie_headers(response) == []


class TestCurrentUser:

    def test_bearer_header(self, make_client):
        response = make_client().get(
            "/api/v1/auth/verify", headers={"Authorization": f"Bearer {make_token()}"}
        )
        assert response.status_code == 200
        assert response.json()["user_id"] == AGENCY_ID

    def test_session_cookie(self, make_client):
        response = make_client().get(
            "/api/v1/auth/verify", headers={"Cookie": f"{ACCESS_COOKIE}={make_token()}"}
        )

        assert response.status_code == 200
        assert response.json()["email"] == "ops@agency.example"

    def test_no_token(self, make_client):
        assert make_client().get("/api/v1/auth/verify").status_code == 401

    def test_me_reports_subscription(self, make_client, fake_db, fake_clients):
        fake_db.seed(TABLE, {
            "id": 1, "agency_user_id": AGENCY_ID, "status": "active",
            "subscribed_continents": ["Europe"], "updated_at": "2024-05-01T00:00:00+00:00",
        })
        token = make_token()

        response = make_client().get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        body = response.json()
        assert body["has_active_subscription"] is True
        assert body["is_ambassador"] is False
        assert fake_clients.user_tokens == [token]


class TestSessionRefresh:
    """Cookie sessions renew themselves from the refresh cookie."""

    def cookies(self, **values):
        return {"Cookie": "; ".join(f"{name}={value}" for name, value in values.items())}

    def test_expired_access_cookie_is_refreshed(self, make_client, fake_clients):
        fresh = make_token()
        fake_clients.sessions["r-1"] = (fresh, "r-2")
        headers = self.cookies(**{ACCESS_COOKIE: make_token(expires_in=-60), REFRESH_COOKIE: "r-1"})

        response = make_client().get("/api/v1/auth/verify", headers=headers)

        assert response.status_code == 200
        assert response.json()["user_id"] == AGENCY_ID
        assert fake_clients.refreshed == ["r-1"]
        cookies = set_cookie_headers(response)
        assert any(h.startswith(f"{ACCESS_COOKIE}={fresh.lower()}") for h in cookies)
        assert any(h.startswith(f"{REFRESH_COOKIE}=r-2") for h in cookies)

    def test_missing_access_cookie_is_refreshed(self, make_client, fake_clients):
        fake_clients.sessions["r-1"] = (make_token(), "r-2")

        response = make_client().get("/api/v1/auth/verify", headers=self.cookies(**{REFRESH_COOKIE: "r-1"}))

        assert response.status_code == 200

    def test_rejected_refresh_token(self, make_client, fake_clients):
        headers = self.cookies(**{ACCESS_COOKIE: make_token(expires_in=-60), REFRESH_COOKIE: "revoked"})

        response = make_client().get("/api/v1/auth/verify", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired"

    def test_expired_cookie_without_refresh(self, make_client, fake_clients):
        response = make_client().get(
            "/api/v1/auth/verify", headers=self.cookies(**{ACCESS_COOKIE: make_token(expires_in=-60)})
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"
        assert fake_clients.refreshed == []

    def test_bearer_token_is_never_refreshed(self, make_client, fake_clients):
        fake_clients.sessions["r-1"] = (make_token(), "r-2")

        response = make_client().get("/api/v1/auth/verify", headers={
            "Authorization": f"Bearer {make_token(expires_in=-60)}",
            **self.cookies(**{REFRESH_COOKIE: "r-1"}),
        })

        assert response.status_code == 401
        assert fake_clients.refreshed == []


class TestJwks:
    """ES256 signing keys come from the project's JWKS endpoint."""

    @pytest.fixture(autouse=True)
    def empty_cache(self, monkeypatch):
        monkeypatch.setattr(auth_deps, "_jwks_cache", {})
        monkeypatch.setattr(auth_deps, "_jwks_cache_time", 0)

    def test_fetched_once_then_cached(self):
        response = MagicMock()
        response.json.return_value = {"keys": [{"kid": "k1"}]}

        with patch("app.auth.dependencies.httpx.get", return_value=response) as get:
            assert auth_deps._fetch_jwks() == {"keys": [{"kid": "k1"}]}
            auth_deps._fetch_jwks()

        assert get.call_count == 1
        assert get.call_args[0][0] == "https://test-project.supabase.co/auth/v1/.well-known/jwks.json"

    def test_fetch_failure_yields_no_keys(self):
        with patch("app.auth.dependencies.httpx.get", side_effect=httpx.ConnectError("down")):
            assert auth_deps._fetch_jwks() == {"keys": []}
