"""GitHub OAuth helpers: authorization URL, code exchange, token verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx

from repo_console.config import settings
from repo_console.services.github.exceptions import (
    GithubConfigurationError,
    GithubExchangeError,
    GithubOAuthError,
    GithubTimeoutError,
    GithubTokenMissingError,
)

logger = logging.getLogger(__name__)


@dataclass
class TokenGrant:
    access_token: str
    scope: Optional[str] = None
    token_type: Optional[str] = None


def mask_token(token: str) -> str:
    """Mask token to show only last 4 characters."""
    if len(token) <= 4:
        return "****"
    return f"****{token[-4:]}"


def build_authorize_url(
    state: str,
    client_id: str | None = None,
    redirect_uri: str | None = None,
    scope: str | None = None,
) -> str:
    """Build the provider authorization URL for a full-page redirect."""
    client_id = client_id or settings.GITHUB_CLIENT_ID
    if not client_id:
        raise GithubConfigurationError(
            "GitHub OAuth is not configured. Set GITHUB_CLIENT_ID."
        )
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri or settings.redirect_uri,
        "scope": scope if scope is not None else ",".join(settings.GITHUB_SCOPES),
        "state": state,
    }
    return f"{settings.GITHUB_AUTHORIZE_URL}?{urlencode(params)}"


def parse_token_response(response: httpx.Response) -> TokenGrant:
    """Validate an exchange answer by payload shape, not by status code alone.

    An ``error`` field fails the exchange even on a 200; so does a missing
    ``access_token``.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and data.get("error"):
        description = data.get("error_description") or data.get("message")
        logger.warning(
            "GitHub token exchange rejected: error=%s status=%s",
            data.get("error"),
            response.status_code,
        )
        raise GithubOAuthError(str(data["error"]), description)

    if response.is_error:
        raise GithubExchangeError(
            f"Token exchange failed with status {response.status_code}"
        )

    access_token = data.get("access_token") if isinstance(data, dict) else None
    if not access_token:
        raise GithubTokenMissingError("No access token received from GitHub")

    return TokenGrant(
        access_token=access_token,
        scope=data.get("scope"),
        token_type=data.get("token_type"),
    )


class GithubTokenExchanger:
    """Swaps an authorization code for a token directly at GitHub.

    Holds the client secret, so it only ever runs on the trusted backend.
    No retries: a failed exchange is surfaced and the user restarts the flow.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id or settings.GITHUB_CLIENT_ID
        self._client_secret = client_secret or settings.GITHUB_CLIENT_SECRET
        self._token_url = token_url or settings.GITHUB_TOKEN_URL
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def exchange(self, code: str) -> TokenGrant:
        if not self.configured:
            raise GithubConfigurationError(
                "GitHub OAuth credentials are not configured. Set GITHUB_CLIENT_ID/SECRET."
            )

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._token_url,
                    headers={
                        "Accept": "application/json",
                        "Content-Type": "application/json",
                    },
                    json={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "code": code,
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("GitHub token exchange timed out after %ss", self._timeout)
            raise GithubTimeoutError("GitHub token exchange timed out") from exc
        except httpx.HTTPError as exc:
            logger.error(f"GitHub token exchange failed: {exc}")
            raise GithubExchangeError("Failed to exchange code for token") from exc

        grant = parse_token_response(response)
        logger.info(
            "GitHub token exchanged token=%s scope=%s",
            mask_token(grant.access_token),
            grant.scope,
        )
        return grant


class IntermediaryTokenExchanger:
    """Swaps an authorization code through a remote trusted intermediary.

    Talks to a ``POST /oauth/exchange`` surface that holds the client secret;
    this side only ever sends the code.
    """

    def __init__(
        self,
        exchange_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._exchange_url = exchange_url or settings.OAUTH_EXCHANGE_URL
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport
        if not self._exchange_url:
            raise GithubConfigurationError("OAUTH_EXCHANGE_URL is not configured")

    async def exchange(self, code: str) -> TokenGrant:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._exchange_url,
                    headers={"Content-Type": "application/json"},
                    json={"code": code},
                )
        except httpx.TimeoutException as exc:
            logger.error("Intermediary token exchange timed out after %ss", self._timeout)
            raise GithubTimeoutError("GitHub token exchange timed out") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Intermediary token exchange failed: {exc}")
            raise GithubExchangeError("Failed to exchange code for token") from exc

        return parse_token_response(response)


def get_token_exchanger():
    """Exchange through the remote intermediary when one is configured."""
    if settings.OAUTH_EXCHANGE_URL:
        return IntermediaryTokenExchanger()
    return GithubTokenExchanger()


class GithubTokenVerifier:
    """Confirms a token with one authenticated ``GET /user`` call."""

    def __init__(
        self,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    async def verify(self, access_token: str | None) -> bool:
        """Verify if a GitHub access token is still valid.

        Expired, revoked and unreachable all collapse to ``False``.
        """
        if not access_token:
            return False

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    f"{self._api_url}/user",
                    headers={
                        "Accept": "application/vnd.github+json",
                        "Authorization": f"Bearer {access_token}",
                    },
                )
                return response.status_code == 200
        except httpx.HTTPError as exc:
            logger.warning(f"GitHub token verification failed: {exc}")
            return False
