"""GitHub integration DTOs"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RemoteOwner(BaseModel):
    login: str
    avatar_url: Optional[str] = None


class RemoteLicense(BaseModel):
    key: Optional[str] = None
    name: Optional[str] = None


class RemoteProfile(BaseModel):
    """Authenticated GitHub user as returned by ``GET /user``."""

    id: int
    login: str
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    followers: int = 0
    following: int = 0
    public_repos: int = 0


class RemoteRepository(BaseModel):
    id: int
    name: str
    full_name: str
    owner: Optional[RemoteOwner] = None
    private: bool = False
    fork: bool = False
    archived: bool = False
    html_url: str
    clone_url: Optional[str] = None
    ssh_url: Optional[str] = None
    description: Optional[str] = None
    homepage: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    open_issues_count: int = 0
    size: int = 0
    topics: List[str] = Field(default_factory=list)
    license: Optional[RemoteLicense] = None
    default_branch: Optional[str] = None
    has_issues: bool = False
    has_projects: bool = False
    has_wiki: bool = False
    visibility: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None


class GithubAuthorizeResponse(BaseModel):
    authorize_url: str
    state: str


class ConnectionStateResponse(BaseModel):
    """Public projection of the connection state; never carries the token."""

    is_connected: bool
    user: Optional[RemoteProfile] = None
    repositories: List[RemoteRepository] = Field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None


class Notice(BaseModel):
    level: Literal["success", "error", "info"]
    message: str


class ReconcileResponse(BaseModel):
    notice: Optional[Notice] = None
    clean_path: str
    state: ConnectionStateResponse


class ConnectionActionResponse(BaseModel):
    notice: Notice
    state: ConnectionStateResponse


class RepositoryListResponse(BaseModel):
    items: List[RemoteRepository]
    total: int


class RepositoryStatsResponse(BaseModel):
    total_repos: int
    total_stars: int
    total_forks: int
    languages: Dict[str, int]


class RepositoryDetailResponse(BaseModel):
    repository: RemoteRepository
    languages: Dict[str, int] = Field(default_factory=dict)


class RepositoryDocumentResponse(BaseModel):
    path: str
    exists: bool
    content: Optional[str] = None


class RateLimitResponse(BaseModel):
    remaining: int
    limit: int
    reset: Optional[int] = None


# Trusted intermediary surface


class TokenExchangeRequest(BaseModel):
    code: Optional[str] = None


class TokenExchangeResponse(BaseModel):
    access_token: str
    scope: Optional[str] = None
    token_type: Optional[str] = None


class ProfileSaveRequest(BaseModel):
    owner_id: Optional[str] = None
    external_id: Optional[int] = None
    external_handle: Optional[str] = None
    access_token: Optional[str] = None
    scope: Optional[str] = None
    avatar_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


class LinkedProfileResponse(BaseModel):
    owner_id: str
    external_id: int
    external_handle: str
    scope: Optional[str] = None
    avatar_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileSaveResponse(BaseModel):
    success: bool
    profile: LinkedProfileResponse


class IntermediaryError(BaseModel):
    error: str
    message: str
    details: Optional[Any] = None
