"""Tests for connect / callback / reconcile / disconnect orchestration."""

from urllib.parse import parse_qs, urlparse

import pytest

from factories import make_repo
from repo_console.entities.linked_identity import LinkedIdentity
from repo_console.services.github.exceptions import (
    GithubApiError,
    GithubConfigurationError,
    GithubOAuthError,
    NotConnectedError,
    NotSignedInError,
)
from repo_console.services.github_connection import (
    ConnectionState,
    ConnectionStateRegistry,
)

OWNER = "owner-1"


def _linked(token: str, owner_id: str = OWNER) -> LinkedIdentity:
    return LinkedIdentity(
        owner_id=owner_id,
        external_id=42,
        external_handle="alice",
        access_token=token,
        scope="repo,user",
    )


async def _connect(service) -> str:
    url = service.connect(OWNER)
    state = parse_qs(urlparse(url).query)["state"][0]
    outcome = await service.handle_callback(OWNER, code="c1", state=state)
    assert outcome.success, outcome.message
    return state


class TestConnect:
    def test_anonymous_caller_is_turned_away_before_state_is_created(self, service, session_slot):
        with pytest.raises(NotSignedInError):
            service.connect(None)

        assert session_slot == {}

    def test_authorize_url_has_client_redirect_scope_and_fresh_state(self, service, session_slot):
        url = service.connect(OWNER)
        query = parse_qs(urlparse(url).query)

        assert set(query) == {"client_id", "redirect_uri", "scope", "state"}
        assert query["client_id"] == ["abc"]
        assert query["redirect_uri"] == ["https://app/cb"]
        assert query["scope"] == ["repo,user"]
        assert query["state"] == [session_slot["github_oauth_state"]]

    def test_missing_client_id_aborts_without_pending_state(self, service, session_slot, monkeypatch):
        from repo_console.config import settings

        monkeypatch.setattr(settings, "GITHUB_CLIENT_ID", None)
        service._client_id = None

        with pytest.raises(GithubConfigurationError):
            service.connect(OWNER)
        assert session_slot == {}


class TestHandleCallback:
    @pytest.mark.asyncio
    async def test_happy_path(self, service, identities, exchanger):
        await _connect(service)

        assert service.state.is_connected is True
        assert service.state.access_token == "tok1"
        assert service.state.user.login == "alice"
        assert exchanger.codes == ["c1"]
        assert list(identities.records) == [OWNER]
        assert identities.records[OWNER].external_handle == "alice"
        assert identities.records[OWNER].external_id == 42

    @pytest.mark.asyncio
    async def test_provider_error_is_surfaced_with_description(self, service, exchanger):
        service.connect(OWNER)
        outcome = await service.handle_callback(
            OWNER, error="access_denied", error_description="The user denied access"
        )

        assert outcome.query == {"error": "oauth_error", "message": "The user denied access"}
        assert exchanger.codes == []

    @pytest.mark.asyncio
    async def test_missing_code(self, service, session_slot):
        service.connect(OWNER)
        outcome = await service.handle_callback(OWNER, state="s")

        assert outcome.error_kind == "no_code"
        assert session_slot == {}

    @pytest.mark.asyncio
    async def test_invalid_state_never_reaches_exchange(self, service, exchanger):
        service.connect(OWNER)
        outcome = await service.handle_callback(OWNER, code="c1", state="forged")

        assert outcome.error_kind == "invalid_state"
        assert exchanger.codes == []
        assert service.state.is_connected is False

    @pytest.mark.asyncio
    async def test_no_pending_state_is_rejected(self, service, exchanger):
        outcome = await service.handle_callback(OWNER, code="c1", state="anything")

        assert outcome.error_kind == "invalid_state"
        assert exchanger.codes == []

    @pytest.mark.asyncio
    async def test_lost_session_is_rejected_after_state_check(self, service, exchanger):
        url = service.connect(OWNER)
        state = parse_qs(urlparse(url).query)["state"][0]

        outcome = await service.handle_callback(None, code="c1", state=state)

        assert outcome.error_kind == "not_signed_in"
        assert exchanger.codes == []

    @pytest.mark.asyncio
    async def test_exchange_rejection_clears_partial_token(self, service, exchanger, identities):
        exchanger.error = GithubOAuthError("bad_verification_code", "The code is expired")
        url = service.connect(OWNER)
        state = parse_qs(urlparse(url).query)["state"][0]

        outcome = await service.handle_callback(OWNER, code="c1", state=state)

        assert outcome.query == {"error": "auth_failed", "message": "The code is expired"}
        assert service.state.access_token is None
        assert identities.records == {}

    @pytest.mark.asyncio
    async def test_unverified_token_is_not_kept(self, service, verifier, identities):
        verifier.valid_tokens.clear()
        url = service.connect(OWNER)
        state = parse_qs(urlparse(url).query)["state"][0]

        outcome = await service.handle_callback(OWNER, code="c1", state=state)

        assert outcome.error_kind == "auth_failed"
        assert service.state.access_token is None
        assert service.state.is_connected is False
        assert identities.records == {}

    @pytest.mark.asyncio
    async def test_profile_fetch_failure_clears_partial_token(self, service, github):
        async def boom():
            raise GithubApiError("Bad credentials", status_code=401)

        original = github.__call__

        def factory(token):
            client = original(token)
            client.get_authenticated_user = boom
            return client

        service._client_factory = factory
        url = service.connect(OWNER)
        state = parse_qs(urlparse(url).query)["state"][0]

        outcome = await service.handle_callback(OWNER, code="c1", state=state)

        assert outcome.error_kind == "auth_failed"
        assert service.state.access_token is None

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_session_connected(self, service, identities):
        identities.fail_upsert = True

        await _connect(service)

        assert service.state.is_connected is True
        assert service.state.access_token == "tok1"
        assert identities.records == {}

    @pytest.mark.asyncio
    async def test_relinking_another_account_replaces_repositories(
        self, service, github, exchanger, verifier, identities
    ):
        await _connect(service)
        await service.reconcile(OWNER)
        assert [r.full_name for r in service.state.repositories] == ["alice/api", "alice/web"]

        github.user = {"id": 7, "login": "bob"}
        github.repos = [make_repo(3, "bobs", owner="bob")]
        exchanger.token = "tok2"
        verifier.valid_tokens.add("tok2")
        await _connect(service)

        assert service.state.user.login == "bob"
        assert service.state.access_token == "tok2"
        assert [r.full_name for r in service.state.repositories] == ["bob/bobs"]
        assert identities.records[OWNER].external_handle == "bob"

    @pytest.mark.asyncio
    async def test_repository_listing_failure_still_connects_with_empty_list(
        self, service, github
    ):
        github.repository_error = GithubApiError("Server Error", status_code=500)

        await _connect(service)

        assert service.state.is_connected is True
        assert service.state.repositories == []


class TestReconcile:
    @pytest.mark.asyncio
    async def test_error_signal_skips_reconciliation(self, service, identities, verifier):
        identities.upsert(_linked("tok1"))

        result = await service.reconcile(OWNER, error="auth_failed", message="Nope")

        assert result.notice.level == "error"
        assert result.notice.message == "Nope"
        assert result.clean_path == "/github"
        assert verifier.calls == []
        assert service.state.is_connected is False

    @pytest.mark.asyncio
    async def test_success_signal_still_hydrates(self, service, identities):
        identities.upsert(_linked("tok1"))

        result = await service.reconcile(OWNER, success="true", message="Connected")

        assert result.notice.level == "success"
        assert result.notice.message == "Connected"
        assert service.state.is_connected is True
        assert [r.full_name for r in service.state.repositories] == ["alice/api", "alice/web"]

    @pytest.mark.asyncio
    async def test_valid_stored_token_connects(self, service, identities):
        identities.upsert(_linked("tok1"))

        result = await service.reconcile(OWNER)

        assert result.notice is None
        assert service.state.is_connected is True
        assert service.state.access_token == "tok1"
        assert service.state.user.login == "alice"
        assert service.state.is_loading is False

    @pytest.mark.asyncio
    async def test_invalid_stored_token_is_evicted(self, service, identities):
        identities.upsert(_linked("expired"))

        await service.reconcile(OWNER)

        assert service.state.is_connected is False
        assert identities.find_by_owner(OWNER) is None

    @pytest.mark.asyncio
    async def test_absent_record_leaves_default_shape(self, service):
        result = await service.reconcile(OWNER)

        assert result.notice is None
        assert service.state == ConnectionState()

    @pytest.mark.asyncio
    async def test_in_memory_token_survives_failed_persistence(self, service, identities):
        identities.fail_upsert = True
        await _connect(service)

        await service.reconcile(OWNER)

        assert service.state.is_connected is True
        assert service.state.access_token == "tok1"

    @pytest.mark.asyncio
    async def test_evicted_token_is_not_revived_from_memory(self, service, identities, verifier):
        await _connect(service)
        verifier.valid_tokens.clear()

        await service.reconcile(OWNER)

        assert service.state.is_connected is False
        assert service.state.access_token is None
        assert identities.records == {}
        assert verifier.calls.count("tok1") == 2  # callback + durable check

    @pytest.mark.asyncio
    async def test_storage_read_failure_falls_through(self, service, identities):
        identities.fail_find = True

        await service.reconcile(OWNER)

        assert service.state.is_connected is False

    @pytest.mark.asyncio
    async def test_hydration_failure_reports_error(self, service, identities, github):
        identities.upsert(_linked("tok1"))
        github.repository_error = GithubApiError("Server Error", status_code=500)

        result = await service.reconcile(OWNER)

        assert result.notice.level == "error"
        assert service.state.is_connected is False
        assert service.state.error == "Server Error"
        assert service.state.is_loading is False


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_clears_everything(self, service, identities, session_slot):
        await _connect(service)
        session_slot["github_oauth_state"] = "lingering"

        notice = service.disconnect(OWNER)

        assert notice.level == "success"
        assert service.state == ConnectionState()
        assert identities.find_by_owner(OWNER) is None
        assert session_slot == {}

    @pytest.mark.asyncio
    async def test_storage_failure_still_clears_local_state(self, service, identities):
        await _connect(service)
        identities.fail_delete = True

        service.disconnect(OWNER)

        assert service.state.is_connected is False
        assert service.state.access_token is None


class TestRefreshRepositories:
    @pytest.mark.asyncio
    async def test_requires_connection(self, service):
        with pytest.raises(NotConnectedError):
            await service.refresh_repositories()

    @pytest.mark.asyncio
    async def test_replaces_cached_list(self, service, github):
        await _connect(service)
        github.repos = github.repos[:1]

        notice = await service.refresh_repositories()

        assert notice.level == "success"
        assert [r.name for r in service.state.repositories] == ["api"]

    @pytest.mark.asyncio
    async def test_failure_keeps_stale_list(self, service, identities, github):
        identities.upsert(_linked("tok1"))
        await service.reconcile(OWNER)
        github.repository_error = GithubApiError("Server Error", status_code=500)

        notice = await service.refresh_repositories()

        assert notice.level == "error"
        assert len(service.state.repositories) == 2
        assert service.state.is_connected is True
        assert service.state.is_loading is False


class TestConnectionStateRegistry:
    def test_one_state_per_owner(self):
        registry = ConnectionStateRegistry()

        assert registry.get("a") is registry.get("a")
        assert registry.get("a") is not registry.get("b")

    def test_discard(self):
        registry = ConnectionStateRegistry()
        first = registry.get("a")
        registry.discard("a")

        assert registry.get("a") is not first

    def test_public_projection_hides_token(self):
        state = ConnectionState(is_connected=True, access_token="tok1")

        assert "access_token" not in state.to_public().model_dump()
