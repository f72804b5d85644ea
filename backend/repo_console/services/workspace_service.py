"""Saved workspace: GitHub repositories bookmarked by a local account."""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pymongo.database import Database

from repo_console.dtos.github import RemoteRepository
from repo_console.dtos.repository import (
    SavedRepositoryListResponse,
    SavedRepositoryResponse,
    SavedRepositoryUpdateRequest,
    WorkspaceStatsResponse,
)
from repo_console.entities.saved_repository import SavedRepository, SavedRepositoryStatus
from repo_console.repositories.saved_repository import SavedRepositoryRepository
from repo_console.services.github_connection import GithubConnectionService

logger = logging.getLogger(__name__)


def snapshot_from_remote(repo: RemoteRepository) -> Dict[str, Any]:
    """Project a GitHub repository onto the stored snapshot fields."""
    return {
        "name": repo.name,
        "full_name": repo.full_name,
        "description": repo.description,
        "url": repo.html_url,
        "clone_url": repo.clone_url,
        "ssh_url": repo.ssh_url,
        "html_url": repo.html_url,
        "language": repo.language,
        "stars": repo.stargazers_count,
        "forks": repo.forks_count,
        "watchers": repo.watchers_count,
        "size_kb": repo.size,
        "is_private": repo.private,
        "is_fork": repo.fork,
        "has_issues": repo.has_issues,
        "has_projects": repo.has_projects,
        "has_wiki": repo.has_wiki,
        "default_branch": repo.default_branch or "main",
        "owner_login": repo.owner.login if repo.owner else None,
        "owner_avatar_url": repo.owner.avatar_url if repo.owner else None,
        "topics": list(repo.topics),
        "license_name": repo.license.name if repo.license else None,
        "github_created_at": repo.created_at,
        "github_updated_at": repo.updated_at,
        "github_pushed_at": repo.pushed_at,
    }


def _serialize(record: SavedRepository) -> SavedRepositoryResponse:
    return SavedRepositoryResponse.model_validate(record.model_dump(by_alias=True))


class SavedRepositoryService:
    def __init__(self, db: Database):
        self.repo = SavedRepositoryRepository(db)

    def _get_or_404(self, owner_id: str, full_name: str) -> SavedRepository:
        return self._found_or_404(self.repo.find_by_full_name(owner_id, full_name), full_name)

    @staticmethod
    def _found_or_404(record: Optional[SavedRepository], full_name: str) -> SavedRepository:
        if not record:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Repository {full_name} is not in your workspace",
            )
        return record

    async def save(
        self, owner_id: str, full_name: str, connection: GithubConnectionService
    ) -> SavedRepositoryResponse:
        """
        Bookmark a repository, refreshing its snapshot from GitHub.

        Re-saving an existing entry keeps its status, category, priority and
        notes.
        """
        async with connection.client() as client:
            data = await client.get_repository(full_name)
        remote = RemoteRepository.model_validate(data)

        record = self.repo.upsert_snapshot(owner_id, snapshot_from_remote(remote))
        logger.info("Saved repository %s for owner=%s", remote.full_name, owner_id)
        return _serialize(record)

    def list(
        self,
        owner_id: str,
        status_filter: Optional[SavedRepositoryStatus] = None,
        language: Optional[str] = None,
        search: Optional[str] = None,
    ) -> SavedRepositoryListResponse:
        records = self.repo.list_for_owner(
            owner_id,
            status=status_filter.value if status_filter else None,
            language=language,
            search=search,
        )
        items = [_serialize(r) for r in records]
        return SavedRepositoryListResponse(items=items, total=len(items))

    def get(self, owner_id: str, full_name: str) -> SavedRepositoryResponse:
        return _serialize(self._get_or_404(owner_id, full_name))

    def update_status(
        self, owner_id: str, full_name: str, new_status: SavedRepositoryStatus
    ) -> SavedRepositoryResponse:
        record = self._found_or_404(
            self.repo.update_overlay(owner_id, full_name, {"status": new_status.value}),
            full_name,
        )
        logger.info(
            "Repository %s status -> %s for owner=%s", full_name, new_status.value, owner_id
        )
        return _serialize(record)

    def update_metadata(
        self, owner_id: str, full_name: str, payload: SavedRepositoryUpdateRequest
    ) -> SavedRepositoryResponse:
        """Apply only the overlay fields present in the request."""
        updates = payload.model_dump(exclude_unset=True, mode="json")
        record = self._get_or_404(owner_id, full_name)
        if not updates:
            return _serialize(record)
        return _serialize(
            self._found_or_404(
                self.repo.update_overlay(owner_id, full_name, updates), full_name
            )
        )

    def delete(self, owner_id: str, full_name: str) -> None:
        if not self.repo.delete_by_full_name(owner_id, full_name):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Repository {full_name} is not in your workspace",
            )
        logger.info("Removed repository %s for owner=%s", full_name, owner_id)

    def stats(self, owner_id: str) -> WorkspaceStatsResponse:
        by_status = self.repo.count_by_field(owner_id, "status")
        return WorkspaceStatsResponse(
            total=sum(by_status.values()),
            by_status=by_status,
            languages=self.repo.count_by_field(owner_id, "language"),
        )
