"""GitHub connection orchestration.

Drives the connect / callback / reconcile / disconnect flow for one local
account and keeps its in-memory :class:`ConnectionState` consistent with the
durable linked-identity record and the provider's view of the token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from repo_console.config import settings
from repo_console.dtos.github import (
    ConnectionStateResponse,
    Notice,
    RemoteProfile,
    RemoteRepository,
)
from repo_console.entities.linked_identity import LinkedIdentity
from repo_console.services.github.exceptions import (
    GithubConfigurationError,
    GithubError,
    GithubOAuthError,
    NotConnectedError,
    NotSignedInError,
)
from repo_console.services.github.github_client import GitHubClient
from repo_console.services.github.github_oauth import TokenGrant, build_authorize_url
from repo_console.services.github.oauth_state import OAuthStateManager

logger = logging.getLogger(__name__)

SIGN_IN_FIRST_MESSAGE = "Please sign in before connecting your GitHub account"


class TokenExchanger(Protocol):
    async def exchange(self, code: str) -> TokenGrant: ...


class TokenVerifier(Protocol):
    async def verify(self, access_token: Optional[str]) -> bool: ...


class LinkedIdentityGateway(Protocol):
    def upsert(self, record: LinkedIdentity) -> LinkedIdentity: ...

    def find_by_owner(self, owner_id: str) -> Optional[LinkedIdentity]: ...

    def delete_by_owner(self, owner_id: str) -> bool: ...


class ConnectionState(BaseModel):
    """In-memory connection status of one local account.

    ``is_connected`` implies ``access_token``; ``repositories`` is only
    meaningful while connected.
    """

    is_connected: bool = False
    user: Optional[RemoteProfile] = None
    access_token: Optional[str] = None
    repositories: List[RemoteRepository] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None

    def reset(self, error: Optional[str] = None) -> None:
        """Return to the default disconnected shape, in place."""
        self.is_connected = False
        self.user = None
        self.access_token = None
        self.repositories = []
        self.is_loading = False
        self.error = error

    def mark_connected(
        self,
        access_token: str,
        user: RemoteProfile,
        repositories: List[RemoteRepository],
    ) -> None:
        self.access_token = access_token
        self.user = user
        self.repositories = repositories
        self.is_connected = True
        self.error = None

    def to_public(self) -> ConnectionStateResponse:
        return ConnectionStateResponse(
            is_connected=self.is_connected,
            user=self.user,
            repositories=self.repositories,
            is_loading=self.is_loading,
            error=self.error,
        )


class ConnectionStateRegistry:
    """Process-local connection states, one per local account."""

    def __init__(self) -> None:
        self._states: Dict[str, ConnectionState] = {}

    def get(self, owner_id: str) -> ConnectionState:
        state = self._states.get(owner_id)
        if state is None:
            state = ConnectionState()
            self._states[owner_id] = state
        return state

    def discard(self, owner_id: str) -> None:
        self._states.pop(owner_id, None)


connection_registry = ConnectionStateRegistry()


def get_connection_registry() -> ConnectionStateRegistry:
    return connection_registry


@dataclass
class CallbackOutcome:
    """Terminal result of the callback handler, rendered as redirect signals."""

    success: bool
    message: str
    error_kind: Optional[str] = None
    query: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str) -> "CallbackOutcome":
        return cls(True, message, query={"success": "true", "message": message})

    @classmethod
    def failed(cls, kind: str, message: str) -> "CallbackOutcome":
        return cls(False, message, kind, query={"error": kind, "message": message})


@dataclass
class ReconcileResult:
    state: ConnectionState
    notice: Optional[Notice] = None
    clean_path: str = field(default_factory=lambda: settings.FRONTEND_GITHUB_PATH)


class GithubConnectionService:
    """Orchestrates GitHub linkage for one local account."""

    def __init__(
        self,
        state: ConnectionState,
        oauth_states: OAuthStateManager,
        exchanger: TokenExchanger,
        verifier: TokenVerifier,
        identities: LinkedIdentityGateway,
        client_factory: Callable[[str], GitHubClient] = GitHubClient,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> None:
        self.state = state
        self._oauth_states = oauth_states
        self._exchanger = exchanger
        self._verifier = verifier
        self._identities = identities
        self._client_factory = client_factory
        self._client_id = client_id
        self._redirect_uri = redirect_uri
        self._scope = scope

    # ------------------------------------------------------------------
    # connect
    # ------------------------------------------------------------------

    def connect(self, owner_id: Optional[str]) -> str:
        """Start an authorization attempt and return the provider URL.

        GitHub linkage is secondary to the local session and never a login
        by itself, so an anonymous caller is turned away before any state
        is generated.
        """
        if not owner_id:
            raise NotSignedInError(SIGN_IN_FIRST_MESSAGE)

        state = self._oauth_states.generate()
        try:
            url = build_authorize_url(
                state,
                client_id=self._client_id,
                redirect_uri=self._redirect_uri,
                scope=self._scope,
            )
        except GithubConfigurationError:
            self._oauth_states.clear()
            raise

        self.state.error = None
        logger.info("GitHub authorization started for owner=%s", owner_id)
        return url

    # ------------------------------------------------------------------
    # callback
    # ------------------------------------------------------------------

    async def handle_callback(
        self,
        owner_id: Optional[str],
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
    ) -> CallbackOutcome:
        """Complete an authorization attempt.

        Steps run strictly in order; the first failure ends the attempt and
        leaves no partially-set token behind.
        """
        if error:
            logger.warning("GitHub authorization rejected: %s", error)
            self._oauth_states.clear()
            return CallbackOutcome.failed(
                "oauth_error", error_description or "Authorization failed"
            )

        if not code:
            self._oauth_states.clear()
            return CallbackOutcome.failed("no_code", "No authorization code received")

        if not self._oauth_states.validate(state):
            return CallbackOutcome.failed(
                "invalid_state",
                "Invalid OAuth state, possible CSRF attempt. Please connect again.",
            )

        if not owner_id:
            return CallbackOutcome.failed("not_signed_in", SIGN_IN_FIRST_MESSAGE)

        try:
            grant = await self._exchanger.exchange(code)
            self.state.access_token = grant.access_token

            if not await self._verifier.verify(grant.access_token):
                raise GithubOAuthError("token_invalid", "Failed to connect to GitHub")

            async with self._client_factory(grant.access_token) as client:
                profile = RemoteProfile.model_validate(
                    await client.get_authenticated_user()
                )
                repositories = await self._load_repositories(client)

            self._persist(owner_id, profile, grant)
            self.state.mark_connected(grant.access_token, profile, repositories)
        except GithubOAuthError as exc:
            self.state.reset()
            logger.warning("GitHub callback failed for owner=%s: %s", owner_id, exc.error)
            return CallbackOutcome.failed("auth_failed", exc.description or exc.error)
        except GithubError as exc:
            self.state.reset()
            logger.warning("GitHub callback failed for owner=%s: %s", owner_id, exc)
            return CallbackOutcome.failed("auth_failed", str(exc))
        except Exception:
            self.state.reset()
            logger.exception("Unexpected error in GitHub callback for owner=%s", owner_id)
            return CallbackOutcome.failed(
                "auth_failed", "Failed to authenticate with GitHub"
            )

        logger.info("GitHub connected for owner=%s login=%s", owner_id, profile.login)
        return CallbackOutcome.ok("Successfully connected to GitHub")

    async def _load_repositories(self, client: GitHubClient) -> List[RemoteRepository]:
        """Repositories of the newly linked account; empty if the listing fails."""
        try:
            repo_data = await client.list_all_user_repositories()
        except GithubError as exc:
            logger.warning("Failed to load repositories after connect: %s", exc)
            return []
        return [RemoteRepository.model_validate(r) for r in repo_data]

    def _persist(self, owner_id: str, profile: RemoteProfile, grant: TokenGrant) -> None:
        """Store the linkage. A storage failure keeps the session connected."""
        record = LinkedIdentity(
            owner_id=owner_id,
            external_id=profile.id,
            external_handle=profile.login,
            access_token=grant.access_token,
            scope=grant.scope,
            avatar_url=profile.avatar_url,
            name=profile.name,
            email=profile.email,
        )
        try:
            self._identities.upsert(record)
        except Exception as exc:
            logger.warning(
                "Failed to persist GitHub linkage for owner=%s, continuing in-memory: %s",
                owner_id,
                exc,
            )

    # ------------------------------------------------------------------
    # reconcile
    # ------------------------------------------------------------------

    async def reconcile(
        self,
        owner_id: str,
        success: Optional[str] = None,
        error: Optional[str] = None,
        message: Optional[str] = None,
    ) -> ReconcileResult:
        """Decide the connection status on page load.

        Precedence: an error signal ends the pass; a success signal adds a
        notice and continues; then the durable record, then a token still
        held in memory; otherwise disconnected.
        """
        if error:
            return ReconcileResult(
                state=self.state,
                notice=Notice(level="error", message=message or "Failed to connect to GitHub"),
            )

        notice = None
        if success in ("true", "1"):
            notice = Notice(
                level="success", message=message or "Successfully connected to GitHub!"
            )

        self.state.is_loading = True
        try:
            token = await self._resolve_token(owner_id)
            if token is None:
                self.state.reset()
            elif not await self._hydrate(token):
                notice = Notice(level="error", message="Failed to load GitHub data")
        finally:
            self.state.is_loading = False

        return ReconcileResult(state=self.state, notice=notice)

    async def _resolve_token(self, owner_id: str) -> Optional[str]:
        """Return a verified token for the owner, evicting stale ones."""
        try:
            record = self._identities.find_by_owner(owner_id)
        except Exception as exc:
            logger.warning("Failed to load linked identity for owner=%s: %s", owner_id, exc)
            record = None

        stale = None
        if record is not None:
            if await self._verifier.verify(record.access_token):
                return record.access_token
            logger.info("Stored GitHub token for owner=%s is no longer valid, evicting", owner_id)
            self._evict(owner_id)
            stale = record.access_token

        # A session whose persistence failed still holds its token in memory
        if self.state.access_token and self.state.access_token != stale:
            if await self._verifier.verify(self.state.access_token):
                return self.state.access_token
        return None

    def _evict(self, owner_id: str) -> None:
        try:
            self._identities.delete_by_owner(owner_id)
        except Exception as exc:
            logger.warning("Failed to evict linked identity for owner=%s: %s", owner_id, exc)

    async def _hydrate(self, access_token: str) -> bool:
        """Load profile and repositories in one batch."""
        try:
            async with self._client_factory(access_token) as client:
                user_data, repo_data = await asyncio.gather(
                    client.get_authenticated_user(),
                    client.list_all_user_repositories(),
                )
            user = RemoteProfile.model_validate(user_data)
            repositories = [RemoteRepository.model_validate(r) for r in repo_data]
        except GithubError as exc:
            logger.error(f"Failed to load GitHub data: {exc}")
            self.state.reset(error=str(exc) or "Failed to load GitHub data")
            return False

        self.state.mark_connected(access_token, user, repositories)
        return True

    # ------------------------------------------------------------------
    # disconnect / refresh
    # ------------------------------------------------------------------

    def disconnect(self, owner_id: str) -> Notice:
        """Local-first disconnect: in-memory state is cleared regardless."""
        try:
            self._identities.delete_by_owner(owner_id)
        except Exception as exc:
            logger.warning("Failed to delete linked identity for owner=%s: %s", owner_id, exc)
        self._oauth_states.clear()
        self.state.reset()
        logger.info("GitHub disconnected for owner=%s", owner_id)
        return Notice(level="success", message="Disconnected from GitHub")

    async def refresh_repositories(self) -> Notice:
        """Re-fetch the repository list; on failure the cached list stays."""
        if not self.state.is_connected:
            raise NotConnectedError("Please connect to GitHub first")

        self.state.is_loading = True
        try:
            async with self.client() as client:
                repo_data = await client.list_all_user_repositories()
            repositories = [RemoteRepository.model_validate(r) for r in repo_data]
        except GithubError as exc:
            logger.error(f"Failed to refresh repositories: {exc}")
            self.state.error = str(exc) or "Failed to refresh repositories"
            return Notice(level="error", message="Failed to refresh repositories")
        finally:
            self.state.is_loading = False

        self.state.repositories = repositories
        self.state.error = None
        return Notice(level="success", message="Repositories refreshed successfully")

    def client(self) -> GitHubClient:
        """GitHub client bound to the connected token."""
        if not self.state.is_connected or not self.state.access_token:
            raise NotConnectedError("Please connect to GitHub first")
        return self._client_factory(self.state.access_token)
