from typing import Literal, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import JSONResponse, RedirectResponse

from repo_console.api.deps import get_connection_service, get_oauth_slot
from repo_console.config import settings
from repo_console.dtos.github import (
    ConnectionActionResponse,
    GithubAuthorizeResponse,
    RateLimitResponse,
    ReconcileResponse,
    RemoteRepository,
    RepositoryDetailResponse,
    RepositoryDocumentResponse,
    RepositoryListResponse,
    RepositoryStatsResponse,
)
from repo_console.middleware.auth import get_current_user_id, get_current_user_id_optional
from repo_console.services.github.exceptions import NotConnectedError
from repo_console.services.github.oauth_state import CookieSessionSlot
from repo_console.services.github_connection import GithubConnectionService
from repo_console.services.repository_browser import (
    filter_repositories,
    repository_stats,
)

router = APIRouter(prefix="/github", tags=["GitHub"])

PRD_PATH = "docs/prd.md"

OWNER_PATTERN = r"^[A-Za-z0-9_.-]+$"


def _frontend_redirect(query: dict) -> str:
    base = f"{settings.FRONTEND_BASE_URL.rstrip('/')}{settings.FRONTEND_GITHUB_PATH}"
    return f"{base}?{urlencode(query)}"


def _require_connected(service: GithubConnectionService) -> None:
    if not service.state.is_connected:
        raise NotConnectedError("Please connect to GitHub first")


@router.get("/connect")
def connect_github(
    owner_id: Optional[str] = Depends(get_current_user_id_optional),
    service: GithubConnectionService = Depends(get_connection_service),
    slot: CookieSessionSlot = Depends(get_oauth_slot),
):
    """Start GitHub linkage with a full-page redirect to the provider."""
    authorize_url = service.connect(owner_id)
    response = RedirectResponse(
        url=authorize_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
    return slot.apply(response)


@router.post("/connect", response_model=GithubAuthorizeResponse)
def create_github_authorization(
    owner_id: Optional[str] = Depends(get_current_user_id_optional),
    service: GithubConnectionService = Depends(get_connection_service),
    slot: CookieSessionSlot = Depends(get_oauth_slot),
):
    """Same as ``GET /connect`` but returns the URL for client-side navigation."""
    authorize_url = service.connect(owner_id)
    payload = GithubAuthorizeResponse(
        authorize_url=authorize_url, state=slot[settings.OAUTH_STATE_COOKIE]
    )
    return slot.apply(JSONResponse(content=payload.model_dump()))


@router.get("/callback")
async def github_oauth_callback(
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    error_description: Optional[str] = Query(default=None),
    owner_id: Optional[str] = Depends(get_current_user_id_optional),
    service: GithubConnectionService = Depends(get_connection_service),
    slot: CookieSessionSlot = Depends(get_oauth_slot),
):
    """Handle the provider redirect and bounce to the GitHub page with the outcome."""
    outcome = await service.handle_callback(
        owner_id,
        code=code,
        state=state,
        error=error,
        error_description=error_description,
    )
    response = RedirectResponse(
        url=_frontend_redirect(outcome.query),
        status_code=status.HTTP_303_SEE_OTHER,
    )
    slot.pop(settings.OAUTH_STATE_COOKIE, None)
    return slot.apply(response)


@router.get("/status", response_model=ReconcileResponse)
async def github_status(
    success: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    message: Optional[str] = Query(default=None),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    """Reconcile the connection status; the frontend replaces its URL with ``clean_path``."""
    result = await service.reconcile(
        owner_id, success=success, error=error, message=message
    )
    return ReconcileResponse(
        notice=result.notice,
        clean_path=result.clean_path,
        state=result.state.to_public(),
    )


@router.post("/disconnect", response_model=ConnectionActionResponse)
def disconnect_github(
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
    slot: CookieSessionSlot = Depends(get_oauth_slot),
):
    notice = service.disconnect(owner_id)
    payload = ConnectionActionResponse(notice=notice, state=service.state.to_public())
    return slot.apply(JSONResponse(content=payload.model_dump(mode="json")))


@router.post("/repositories/refresh", response_model=ConnectionActionResponse)
async def refresh_repositories(
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    notice = await service.refresh_repositories()
    return ConnectionActionResponse(notice=notice, state=service.state.to_public())


@router.get("/repositories", response_model=RepositoryListResponse)
def list_repositories(
    q: Optional[str] = Query(default=None, description="Search name, full name or description"),
    visibility: Literal["all", "public", "private", "fork", "source"] = Query(default="all"),
    language: Optional[str] = Query(default=None),
    sort: Literal["name", "stars", "updated", "created"] = Query(default="updated"),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    """Browse the cached repository list."""
    _require_connected(service)
    items = filter_repositories(
        service.state.repositories,
        search=q,
        visibility=visibility,
        language=language,
        sort=sort,
    )
    return RepositoryListResponse(items=items, total=len(items))


@router.get("/repositories/stats", response_model=RepositoryStatsResponse)
def get_repository_stats(
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    _require_connected(service)
    return repository_stats(service.state.repositories)


@router.get("/rate-limit", response_model=RateLimitResponse)
async def get_rate_limit(
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    async with service.client() as client:
        return await client.get_rate_limit()


@router.get("/repositories/{owner}/{repo}", response_model=RepositoryDetailResponse)
async def get_repository_detail(
    owner: str = Path(..., pattern=OWNER_PATTERN),
    repo: str = Path(..., pattern=OWNER_PATTERN),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    full_name = f"{owner}/{repo}"
    async with service.client() as client:
        data = await client.get_repository(full_name)
        languages = await client.list_languages(full_name)
    return RepositoryDetailResponse(
        repository=RemoteRepository.model_validate(data), languages=languages
    )


@router.get("/repositories/{owner}/{repo}/commits")
async def list_repository_commits(
    owner: str = Path(..., pattern=OWNER_PATTERN),
    repo: str = Path(..., pattern=OWNER_PATTERN),
    sha: Optional[str] = Query(default=None, description="Branch or commit SHA"),
    per_page: int = Query(default=30, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    async with service.client() as client:
        return await client.list_commits(
            f"{owner}/{repo}", sha=sha, per_page=per_page, page=page
        )


@router.get("/repositories/{owner}/{repo}/issues")
async def list_repository_issues(
    owner: str = Path(..., pattern=OWNER_PATTERN),
    repo: str = Path(..., pattern=OWNER_PATTERN),
    state: Literal["open", "closed", "all"] = Query(default="open"),
    labels: Optional[str] = Query(default=None),
    per_page: int = Query(default=30, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    async with service.client() as client:
        return await client.list_issues(
            f"{owner}/{repo}", state=state, labels=labels, per_page=per_page, page=page
        )


@router.get("/repositories/{owner}/{repo}/prd", response_model=RepositoryDocumentResponse)
async def get_repository_prd(
    owner: str = Path(..., pattern=OWNER_PATTERN),
    repo: str = Path(..., pattern=OWNER_PATTERN),
    owner_id: str = Depends(get_current_user_id),
    service: GithubConnectionService = Depends(get_connection_service),
):
    """Fetch the repository's markdown PRD/info file, if it has one."""
    async with service.client() as client:
        content = await client.get_file_content(f"{owner}/{repo}", PRD_PATH)
    return RepositoryDocumentResponse(
        path=PRD_PATH, exists=content is not None, content=content
    )
