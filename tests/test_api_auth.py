"""HTTP-level tests for the /auth endpoints, health check and response headers."""

import pytest

AUTH = "/api/v1/auth"
USER = {"email": "alice@example.com", "password": "pw12345678", "name": "Alice"}


def _register(client, **overrides):
    return client.post(f"{AUTH}/register", json={**USER, **overrides})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def registered(client):
    response = _register(client)
    assert response.status_code == 201
    return response.json()


class TestRegisterEndpoint:

    def test_register_returns_201_with_token_pair(self, client):
        response = _register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 300
        assert body["access_token"]
        assert body["refresh_token"]
        assert body["user"]["email"] == USER["email"]
        assert "password_hash" not in body["user"]

    def test_duplicate_email_returns_409(self, client, registered):
        response = _register(client, name="Impostor")

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"password": "short"},
            {"name": "   "},
        ],
    )
    def test_invalid_payload_returns_422(self, client, overrides):
        response = _register(client, **overrides)

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestLoginEndpoint:

    def test_login_succeeds(self, client, registered):
        response = client.post(f"{AUTH}/login", json={"email": USER["email"], "password": USER["password"]})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered["user"]["id"]

    def test_wrong_password_returns_401_with_challenge(self, client, registered):
        response = client.post(f"{AUTH}/login", json={"email": USER["email"], "password": "wrong-password"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "UNAUTHORIZED"
        assert body["path"] == f"{AUTH}/login"

    def test_unknown_email_gets_same_body_as_wrong_password(self, client, registered):
        unknown = client.post(f"{AUTH}/login", json={"email": "nobody@example.com", "password": "whatever123"})
        wrong = client.post(f"{AUTH}/login", json={"email": USER["email"], "password": "whatever123"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json()["message"] == wrong.json()["message"]


class TestRefreshAndLogout:

    def test_refresh_returns_new_access_token(self, client, registered):
        response = client.post(f"{AUTH}/refresh", json={"refresh_token": registered["refresh_token"]})

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"]
        assert body["refresh_token"] is None

    def test_refresh_with_garbage_returns_401(self, client):
        response = client.post(f"{AUTH}/refresh", json={"refresh_token": "garbage"})

        assert response.status_code == 401

    def test_logout_requires_bearer_token(self, client):
        response = client.post(f"{AUTH}/logout")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_logout_then_refresh_is_rejected(self, client, registered):
        response = client.post(f"{AUTH}/logout", headers=_bearer(registered["access_token"]))
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = client.post(f"{AUTH}/refresh", json={"refresh_token": registered["refresh_token"]})
        assert response.status_code == 401

    def test_logout_twice_succeeds(self, client, registered):
        headers = _bearer(registered["access_token"])

        assert client.post(f"{AUTH}/logout", headers=headers).status_code == 200
        assert client.post(f"{AUTH}/logout", headers=headers).status_code == 200


class TestProfileEndpoints:

    def test_me_reports_active_sessions(self, client, registered):
        client.post(f"{AUTH}/login", json={"email": USER["email"], "password": USER["password"]})

        response = client.get(f"{AUTH}/me", headers=_bearer(registered["access_token"]))

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == USER["email"]
        assert body["is_active"] is True
        assert body["active_sessions"] == 2

    def test_me_rejects_malformed_token(self, client):
        response = client.get(f"{AUTH}/me", headers=_bearer("not.a.token"))

        assert response.status_code == 401

    def test_sessions_lists_client_metadata(self, client, registered):
        response = client.get(f"{AUTH}/sessions", headers=_bearer(registered["access_token"]))

        assert response.status_code == 200
        sessions = response.json()
        assert len(sessions) == 1
        assert sessions[0]["user_agent"] == "testclient"
        assert "refresh_token" not in sessions[0]

    def test_sessions_empty_after_logout(self, client, registered):
        headers = _bearer(registered["access_token"])
        client.post(f"{AUTH}/logout", headers=headers)

        response = client.get(f"{AUTH}/sessions", headers=headers)

        assert response.status_code == 200
        assert response.json() == []


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["environment"] == "testing"


def test_security_headers_present(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert "no-store" in response.headers["Cache-Control"]
    assert "Strict-Transport-Security" not in response.headers


class TestRefreshTokenAsBearer:

    def test_refresh_token_cannot_open_profile(self, client, registered):
        response = client.get(f"{AUTH}/me", headers=_bearer(registered["refresh_token"]))

        assert response.status_code == 401

    def test_refresh_token_cannot_open_profile_after_logout(self, client, registered):
        logout = client.post(f"{AUTH}/logout", headers=_bearer(registered["access_token"]))
        assert logout.status_code == 200

        for method, path in (("get", "/me"), ("get", "/sessions"), ("post", "/logout")):
            response = getattr(client, method)(f"{AUTH}{path}", headers=_bearer(registered["refresh_token"]))
            assert response.status_code == 401
