from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from repo_console.config import settings
from repo_console.services.github.exceptions import (
    GithubApiError,
    GithubConfigurationError,
    GithubExchangeError,
    GithubTimeoutError,
)

API_PREVIEW_HEADERS = {
    "Accept": "application/vnd.github+json",
}

logger = logging.getLogger(__name__)


class GitHubClient:
    """Async GitHub REST client authenticated with a user's OAuth token."""

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize GitHubClient.

        Args:
            token: Raw GitHub token for authentication
            api_url: GitHub API URL (defaults to api.github.com)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        if not token:
            raise GithubConfigurationError("GitHub token is required to call the API")

        self._token = token
        self._api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self._rest = httpx.AsyncClient(
            base_url=self._api_url,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._rest.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        headers.update(API_PREVIEW_HEADERS)
        return headers

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        if response.is_error:
            message = response.reason_phrase or "GitHub API error"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("message"):
                    message = body["message"]
            except ValueError:
                pass
            logger.warning(
                "GitHub API %s %s failed: status=%s message=%s",
                response.request.method,
                response.request.url.path,
                response.status_code,
                message,
            )
            raise GithubApiError(message, status_code=response.status_code)
        return response

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._rest.request(
                method, path, headers=self._headers(), **kwargs
            )
        except httpx.TimeoutException as exc:
            raise GithubTimeoutError(f"GitHub request timed out: {path}") from exc
        except httpx.HTTPError as exc:
            raise GithubExchangeError(f"GitHub request failed: {exc}") from exc
        return self._handle_response(response)

    async def _rest_request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._send(method, path, **kwargs)
        return response.json()

    async def _paginate(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        url: Optional[str] = path
        query = params or {}
        while url:
            response = await self._send("GET", url, params=query)
            items = response.json()
            if isinstance(items, list):
                for item in items:
                    yield item
            else:
                yield items
                break
            url = None
            link_header = response.headers.get("Link")
            if link_header:
                for part in link_header.split(","):
                    segment = part.strip()
                    if segment.endswith('rel="next"'):
                        url = segment[segment.find("<") + 1 : segment.find(">")]
                        query = None  # GitHub link already contains query params
                        break

    async def get_authenticated_user(self) -> Dict[str, Any]:
        return await self._rest_request("GET", "/user")

    async def list_user_repositories(
        self,
        sort: str = "updated",
        direction: str = "desc",
        per_page: int = 100,
        page: int = 1,
        type: str = "all",
    ) -> List[Dict[str, Any]]:
        """One page of repositories the authenticated user can access."""
        return await self._rest_request(
            "GET",
            "/user/repos",
            params={
                "sort": sort,
                "direction": direction,
                "per_page": per_page,
                "page": page,
                "type": type,
            },
        )

    async def list_all_user_repositories(
        self, sort: str = "updated", type: str = "all"
    ) -> List[Dict[str, Any]]:
        """Every accessible repository, following ``Link`` pagination."""
        params = {"sort": sort, "direction": "desc", "per_page": 100, "type": type}
        return [repo async for repo in self._paginate("/user/repos", params)]

    async def get_repository(self, full_name: str) -> Dict[str, Any]:
        return await self._rest_request("GET", f"/repos/{full_name}")

    async def list_languages(self, full_name: str) -> Dict[str, int]:
        """Return language usage statistics for a repository (bytes of code per language)."""
        return await self._rest_request("GET", f"/repos/{full_name}/languages")

    async def list_commits(
        self,
        full_name: str,
        sha: str | None = None,
        path: str | None = None,
        per_page: int = 30,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"per_page": per_page, "page": page}
        if sha:
            params["sha"] = sha
        if path:
            params["path"] = path
        return await self._rest_request("GET", f"/repos/{full_name}/commits", params=params)

    async def list_issues(
        self,
        full_name: str,
        state: str = "open",
        labels: str | None = None,
        sort: str = "created",
        direction: str = "desc",
        per_page: int = 30,
        page: int = 1,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "state": state,
            "sort": sort,
            "direction": direction,
            "per_page": per_page,
            "page": page,
        }
        if labels:
            params["labels"] = labels
        return await self._rest_request("GET", f"/repos/{full_name}/issues", params=params)

    async def get_file_content(self, full_name: str, path: str) -> Optional[str]:
        """
        Fetch a text file from the default branch.

        Returns:
            Decoded file text, or None when the file does not exist
        """
        try:
            data = await self._rest_request("GET", f"/repos/{full_name}/contents/{path}")
        except GithubApiError as exc:
            if exc.status_code == 404:
                return None
            raise

        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            try:
                return base64.b64decode(content).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise GithubApiError(f"Could not decode {path}: {exc}") from exc
        return content

    async def get_rate_limit(self) -> Dict[str, Any]:
        data = await self._rest_request("GET", "/rate_limit")
        core = data.get("resources", {}).get("core", {})
        return {
            "remaining": core.get("remaining", 0),
            "limit": core.get("limit", 5000),
            "reset": core.get("reset"),
        }
