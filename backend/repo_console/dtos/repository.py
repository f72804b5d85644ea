"""Saved workspace repository DTOs"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from repo_console.entities.base import PyObjectId
from repo_console.entities.saved_repository import SavedRepositoryStatus


class SaveRepositoryRequest(BaseModel):
    full_name: str = Field(..., pattern=r"^[^/\s]+/[^/\s]+$")


class SavedRepositoryUpdateRequest(BaseModel):
    status: Optional[SavedRepositoryStatus] = None
    category: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class SavedRepositoryResponse(BaseModel):
    id: PyObjectId = Field(..., alias="_id")
    name: str
    full_name: str
    description: Optional[str] = None
    url: str
    html_url: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    is_private: bool = False
    is_fork: bool = False
    default_branch: str = "main"
    owner_login: Optional[str] = None
    owner_avatar_url: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    license_name: Optional[str] = None
    github_pushed_at: Optional[datetime] = None
    status: str
    category: Optional[str] = None
    priority: int = 0
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)


class SavedRepositoryListResponse(BaseModel):
    items: List[SavedRepositoryResponse]
    total: int


class WorkspaceStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    languages: Dict[str, int]
