from .github_client import GitHubClient
from .github_oauth import (
    GithubTokenExchanger,
    GithubTokenVerifier,
    IntermediaryTokenExchanger,
    TokenGrant,
    build_authorize_url,
    get_token_exchanger,
)
from .oauth_state import CookieSessionSlot, OAuthStateManager

__all__ = [
    "GitHubClient",
    "GithubTokenExchanger",
    "GithubTokenVerifier",
    "IntermediaryTokenExchanger",
    "TokenGrant",
    "build_authorize_url",
    "get_token_exchanger",
    "CookieSessionSlot",
    "OAuthStateManager",
]
