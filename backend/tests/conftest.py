"""Shared fakes for the GitHub connection flow."""

from typing import Any, Dict, List, Optional

import pytest

from factories import make_repo
from repo_console.entities.base import utc_now
from repo_console.entities.linked_identity import LinkedIdentity
from repo_console.services.github.exceptions import GithubApiError
from repo_console.services.github.github_oauth import TokenGrant
from repo_console.services.github.oauth_state import OAuthStateManager
from repo_console.services.github_connection import (
    ConnectionState,
    GithubConnectionService,
)


class InMemoryIdentities:
    """Linked-identity gateway keyed by owner id, like the unique Mongo index."""

    def __init__(self) -> None:
        self.records: Dict[str, LinkedIdentity] = {}
        self.fail_upsert = False
        self.fail_delete = False
        self.fail_find = False

    def upsert(self, record: LinkedIdentity) -> LinkedIdentity:
        if self.fail_upsert:
            raise RuntimeError("storage unavailable")
        existing = self.records.get(record.owner_id)
        stored = record.model_copy(
            update={
                "created_at": existing.created_at if existing else record.created_at,
                "updated_at": utc_now(),
            }
        )
        self.records[record.owner_id] = stored
        return stored

    def find_by_owner(self, owner_id: str) -> Optional[LinkedIdentity]:
        if self.fail_find:
            raise RuntimeError("storage unavailable")
        return self.records.get(owner_id)

    def delete_by_owner(self, owner_id: str) -> bool:
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        return self.records.pop(owner_id, None) is not None


class FakeExchanger:
    def __init__(self, token: str = "tok1", scope: str = "repo,user", error: Exception | None = None):
        self.token = token
        self.scope = scope
        self.error = error
        self.codes: List[str] = []

    async def exchange(self, code: str) -> TokenGrant:
        self.codes.append(code)
        if self.error:
            raise self.error
        return TokenGrant(access_token=self.token, scope=self.scope, token_type="bearer")


class FakeVerifier:
    def __init__(self, valid_tokens: Optional[set] = None):
        self.valid_tokens = set(valid_tokens or ())
        self.calls: List[Optional[str]] = []

    async def verify(self, access_token: Optional[str]) -> bool:
        self.calls.append(access_token)
        return access_token in self.valid_tokens


class FakeGitHub:
    """Stands in for GitHubClient; one shared dataset for every token."""

    def __init__(self) -> None:
        self.user: Dict[str, Any] = {"id": 42, "login": "alice"}
        self.repos: List[Dict[str, Any]] = [make_repo(1, "api"), make_repo(2, "web")]
        self.repository_error: Exception | None = None
        self.tokens: List[str] = []

    def __call__(self, token: str) -> "FakeGitHubClient":
        self.tokens.append(token)
        return FakeGitHubClient(self)


class FakeGitHubClient:
    def __init__(self, data: FakeGitHub):
        self._data = data

    async def __aenter__(self) -> "FakeGitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def get_authenticated_user(self) -> Dict[str, Any]:
        return dict(self._data.user)

    async def list_all_user_repositories(self, sort: str = "updated", type: str = "all"):
        if self._data.repository_error:
            raise self._data.repository_error
        return [dict(r) for r in self._data.repos]

    async def get_repository(self, full_name: str) -> Dict[str, Any]:
        for repo in self._data.repos:
            if repo["full_name"] == full_name:
                return dict(repo)
        raise GithubApiError("Not Found", status_code=404)

    async def list_languages(self, full_name: str) -> Dict[str, int]:
        return {"Python": 1200}

    async def get_file_content(self, full_name: str, path: str) -> Optional[str]:
        return None

    async def get_rate_limit(self) -> Dict[str, Any]:
        return {"remaining": 4999, "limit": 5000, "reset": 1700000000}


@pytest.fixture
def identities() -> InMemoryIdentities:
    return InMemoryIdentities()


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def exchanger() -> FakeExchanger:
    return FakeExchanger()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier(valid_tokens={"tok1"})


@pytest.fixture
def session_slot() -> Dict[str, str]:
    return {}


@pytest.fixture
def service(session_slot, exchanger, verifier, identities, github) -> GithubConnectionService:
    return GithubConnectionService(
        state=ConnectionState(),
        oauth_states=OAuthStateManager(session_slot, key="github_oauth_state"),
        exchanger=exchanger,
        verifier=verifier,
        identities=identities,
        client_factory=github,
        client_id="abc",
        redirect_uri="https://app/cb",
        scope="repo,user",
    )
