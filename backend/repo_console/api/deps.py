"""Request-scoped wiring of the GitHub connection service."""

from typing import Callable, Optional

from fastapi import Depends, Request
from pymongo.database import Database

from repo_console.database.mongo import get_db
from repo_console.middleware.auth import get_current_user_id_optional
from repo_console.repositories.linked_identity import LinkedIdentityRepository
from repo_console.services.github.github_client import GitHubClient
from repo_console.services.github.github_oauth import (
    GithubTokenVerifier,
    get_token_exchanger,
)
from repo_console.services.github.oauth_state import CookieSessionSlot, OAuthStateManager
from repo_console.services.github_connection import (
    ConnectionState,
    ConnectionStateRegistry,
    GithubConnectionService,
    LinkedIdentityGateway,
    TokenExchanger,
    TokenVerifier,
    get_connection_registry,
)


def get_oauth_slot(request: Request) -> CookieSessionSlot:
    return CookieSessionSlot(request.cookies)


def get_exchanger() -> TokenExchanger:
    return get_token_exchanger()


def get_verifier() -> TokenVerifier:
    return GithubTokenVerifier()


def get_identity_gateway(db: Database = Depends(get_db)) -> LinkedIdentityGateway:
    return LinkedIdentityRepository(db)


def get_client_factory() -> Callable[[str], GitHubClient]:
    return GitHubClient


def get_connection_service(
    owner_id: Optional[str] = Depends(get_current_user_id_optional),
    slot: CookieSessionSlot = Depends(get_oauth_slot),
    registry: ConnectionStateRegistry = Depends(get_connection_registry),
    exchanger: TokenExchanger = Depends(get_exchanger),
    verifier: TokenVerifier = Depends(get_verifier),
    identities: LinkedIdentityGateway = Depends(get_identity_gateway),
    client_factory: Callable[[str], GitHubClient] = Depends(get_client_factory),
) -> GithubConnectionService:
    # Anonymous callers get a fresh state per request
    state = registry.get(owner_id) if owner_id else ConnectionState()
    return GithubConnectionService(
        state=state,
        oauth_states=OAuthStateManager(slot),
        exchanger=exchanger,
        verifier=verifier,
        identities=identities,
        client_factory=client_factory,
    )
