"""HTTP tests for the GitHub connection routes."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from repo_console.api import deps
from repo_console.config import settings
from repo_console.main import app
from repo_console.services.auth import create_access_token
from repo_console.services.github_connection import (
    ConnectionStateRegistry,
    get_connection_registry,
)

OWNER = "owner-1"
STATE_COOKIE = "github_oauth_state"


@pytest.fixture
def registry():
    return ConnectionStateRegistry()


@pytest.fixture
def client(monkeypatch, registry, exchanger, verifier, identities, github):
    monkeypatch.setattr(settings, "GITHUB_CLIENT_ID", "abc")
    monkeypatch.setattr(settings, "FRONTEND_BASE_URL", "http://frontend.test")
    app.dependency_overrides[get_connection_registry] = lambda: registry
    app.dependency_overrides[deps.get_exchanger] = lambda: exchanger
    app.dependency_overrides[deps.get_verifier] = lambda: verifier
    app.dependency_overrides[deps.get_identity_gateway] = lambda: identities
    app.dependency_overrides[deps.get_client_factory] = lambda: github
    yield TestClient(app, base_url="https://testserver")
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in(client):
    client.cookies.set("access_token", create_access_token(OWNER))
    return client


def _connect(client) -> str:
    response = client.get("/api/github/connect", follow_redirects=False)
    assert response.status_code == 307
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


def _redirect_query(response) -> dict:
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == "http://frontend.test/github"
    return {k: v[0] for k, v in parse_qs(location.query).items()}


class TestConnectRoute:
    def test_requires_local_session(self, client):
        response = client.get("/api/github/connect", follow_redirects=False)

        assert response.status_code == 401
        assert response.json()["error"]["message"] == (
            "Please sign in before connecting your GitHub account"
        )
        assert STATE_COOKIE not in response.cookies

    def test_redirects_to_provider_and_sets_session_cookie(self, signed_in):
        response = signed_in.get("/api/github/connect", follow_redirects=False)

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        assert location.netloc == "github.com"
        assert query["client_id"] == ["abc"]
        assert query["scope"] == ["repo,user"]
        assert query["state"] == [response.cookies[STATE_COOKIE]]
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "secure" in set_cookie
        assert "max-age" not in set_cookie

    def test_post_variant_returns_url(self, signed_in):
        response = signed_in.post("/api/github/connect")

        assert response.status_code == 200
        body = response.json()
        assert f"state={body['state']}" in body["authorize_url"]

    def test_missing_client_id_fails_before_redirect(self, signed_in, monkeypatch):
        monkeypatch.setattr(settings, "GITHUB_CLIENT_ID", None)

        response = signed_in.get("/api/github/connect", follow_redirects=False)

        assert response.status_code == 500
        assert "location" not in response.headers


class TestCallbackRoute:
    def test_happy_path_redirects_with_success_and_clears_cookie(self, signed_in, identities, registry):
        state = _connect(signed_in)

        response = signed_in.get(
            "/api/github/callback",
            params={"code": "c1", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert _redirect_query(response) == {
            "success": "true",
            "message": "Successfully connected to GitHub",
        }
        assert STATE_COOKIE not in signed_in.cookies
        assert identities.records[OWNER].external_handle == "alice"
        assert registry.get(OWNER).is_connected is True

    def test_forged_state(self, signed_in, exchanger):
        _connect(signed_in)

        response = signed_in.get(
            "/api/github/callback",
            params={"code": "c1", "state": "forged"},
            follow_redirects=False,
        )

        assert _redirect_query(response)["error"] == "invalid_state"
        assert exchanger.codes == []
        assert STATE_COOKIE not in signed_in.cookies

    def test_provider_error(self, signed_in):
        response = signed_in.get(
            "/api/github/callback",
            params={"error": "access_denied", "error_description": "User said no"},
            follow_redirects=False,
        )

        assert _redirect_query(response) == {"error": "oauth_error", "message": "User said no"}

    def test_missing_code(self, signed_in):
        response = signed_in.get("/api/github/callback", follow_redirects=False)

        assert _redirect_query(response)["error"] == "no_code"

    def test_session_lost_between_connect_and_callback(self, signed_in):
        state = _connect(signed_in)
        signed_in.cookies.delete("access_token")

        response = signed_in.get(
            "/api/github/callback",
            params={"code": "c1", "state": state},
            follow_redirects=False,
        )

        assert _redirect_query(response)["error"] == "not_signed_in"


class TestStatusRoute:
    def test_requires_local_session(self, client):
        assert client.get("/api/github/status").status_code == 401

    def test_connected_state_never_exposes_token(self, signed_in, identities):
        state = _connect(signed_in)
        signed_in.get(
            "/api/github/callback",
            params={"code": "c1", "state": state},
            follow_redirects=False,
        )

        response = signed_in.get(
            "/api/github/status", params={"success": "true", "message": "Connected"}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["notice"] == {"level": "success", "message": "Connected"}
        assert body["clean_path"] == "/github"
        assert body["state"]["is_connected"] is True
        assert body["state"]["user"]["login"] == "alice"
        assert len(body["state"]["repositories"]) == 2
        assert "tok1" not in response.text
        assert "access_token" not in body["state"]

    def test_error_signal(self, signed_in):
        response = signed_in.get(
            "/api/github/status", params={"error": "auth_failed", "message": "Nope"}
        )

        body = response.json()
        assert body["notice"] == {"level": "error", "message": "Nope"}
        assert body["state"]["is_connected"] is False


class TestConnectedRoutes:
    @pytest.fixture
    def connected(self, signed_in):
        state = _connect(signed_in)
        signed_in.get(
            "/api/github/callback",
            params={"code": "c1", "state": state},
            follow_redirects=False,
        )
        signed_in.get("/api/github/status")
        return signed_in

    def test_browse_requires_connection(self, signed_in):
        response = signed_in.get("/api/github/repositories")

        assert response.status_code == 409

    def test_browse_and_filter(self, connected):
        response = connected.get("/api/github/repositories", params={"q": "web"})

        assert response.status_code == 200
        assert [r["name"] for r in response.json()["items"]] == ["web"]

    def test_invalid_sort_is_validation_error(self, connected):
        response = connected.get("/api/github/repositories", params={"sort": "size"})

        assert response.status_code == 422

    def test_stats(self, connected):
        body = connected.get("/api/github/repositories/stats").json()

        assert body["total_repos"] == 2
        assert body["languages"] == {"Python": 2}

    def test_detail(self, connected):
        body = connected.get("/api/github/repositories/alice/api").json()

        assert body["repository"]["full_name"] == "alice/api"
        assert body["languages"] == {"Python": 1200}

    def test_detail_of_unknown_repository_is_404(self, connected):
        response = connected.get("/api/github/repositories/alice/nope")

        assert response.status_code == 404

    def test_missing_prd(self, connected):
        body = connected.get("/api/github/repositories/alice/api/prd").json()

        assert body == {"path": "docs/prd.md", "exists": False, "content": None}

    def test_rate_limit(self, connected):
        body = connected.get("/api/github/rate-limit").json()

        assert body["remaining"] == 4999

    def test_refresh(self, connected, github):
        github.repos = github.repos[:1]

        body = connected.post("/api/github/repositories/refresh").json()

        assert body["notice"]["level"] == "success"
        assert len(body["state"]["repositories"]) == 1

    def test_disconnect(self, connected, identities, registry):
        response = connected.post("/api/github/disconnect")

        body = response.json()
        assert body["notice"]["level"] == "success"
        assert body["state"]["is_connected"] is False
        assert identities.find_by_owner(OWNER) is None
        assert registry.get(OWNER).access_token is None
