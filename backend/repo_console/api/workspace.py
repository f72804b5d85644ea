from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status
from pymongo.database import Database

from repo_console.api.deps import get_connection_service
from repo_console.database.mongo import get_db
from repo_console.dtos.repository import (
    SaveRepositoryRequest,
    SavedRepositoryListResponse,
    SavedRepositoryResponse,
    SavedRepositoryUpdateRequest,
    WorkspaceStatsResponse,
)
from repo_console.entities.saved_repository import SavedRepositoryStatus
from repo_console.middleware.auth import get_current_user_id
from repo_console.services.github_connection import GithubConnectionService
from repo_console.services.workspace_service import SavedRepositoryService

router = APIRouter(prefix="/workspace", tags=["Workspace"])

NAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


@router.post(
    "/repositories",
    response_model=SavedRepositoryResponse,
    response_model_by_alias=False,
    status_code=status.HTTP_201_CREATED,
)
async def save_repository(
    payload: SaveRepositoryRequest,
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
    connection: GithubConnectionService = Depends(get_connection_service),
):
    """Save a GitHub repository into the workspace (re-saving refreshes it)."""
    service = SavedRepositoryService(db)
    return await service.save(owner_id, payload.full_name, connection)


@router.get(
    "/repositories",
    response_model=SavedRepositoryListResponse,
    response_model_by_alias=False,
)
def list_saved_repositories(
    status_filter: Optional[SavedRepositoryStatus] = Query(default=None, alias="status"),
    language: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, description="Search by name or description"),
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    service = SavedRepositoryService(db)
    return service.list(owner_id, status_filter=status_filter, language=language, search=q)


@router.get("/repositories/stats", response_model=WorkspaceStatsResponse)
def get_workspace_stats(
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    service = SavedRepositoryService(db)
    return service.stats(owner_id)


@router.get(
    "/repositories/{owner}/{repo}",
    response_model=SavedRepositoryResponse,
    response_model_by_alias=False,
)
def get_saved_repository(
    owner: str = Path(..., pattern=NAME_PATTERN),
    repo: str = Path(..., pattern=NAME_PATTERN),
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    service = SavedRepositoryService(db)
    return service.get(owner_id, f"{owner}/{repo}")


@router.patch(
    "/repositories/{owner}/{repo}/status",
    response_model=SavedRepositoryResponse,
    response_model_by_alias=False,
)
def update_saved_repository_status(
    owner: str = Path(..., pattern=NAME_PATTERN),
    repo: str = Path(..., pattern=NAME_PATTERN),
    new_status: SavedRepositoryStatus = Body(..., embed=True, alias="status"),
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    service = SavedRepositoryService(db)
    return service.update_status(owner_id, f"{owner}/{repo}", new_status)


@router.patch(
    "/repositories/{owner}/{repo}",
    response_model=SavedRepositoryResponse,
    response_model_by_alias=False,
)
def update_saved_repository(
    payload: SavedRepositoryUpdateRequest,
    owner: str = Path(..., pattern=NAME_PATTERN),
    repo: str = Path(..., pattern=NAME_PATTERN),
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    """Update category, priority, notes (and optionally status) of a saved repository."""
    service = SavedRepositoryService(db)
    return service.update_metadata(owner_id, f"{owner}/{repo}", payload)


@router.delete(
    "/repositories/{owner}/{repo}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_saved_repository(
    owner: str = Path(..., pattern=NAME_PATTERN),
    repo: str = Path(..., pattern=NAME_PATTERN),
    db: Database = Depends(get_db),
    owner_id: str = Depends(get_current_user_id),
):
    service = SavedRepositoryService(db)
    service.delete(owner_id, f"{owner}/{repo}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
