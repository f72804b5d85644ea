"""Data Transfer Objects (DTOs) for API requests and responses"""

from .github import (
    ConnectionActionResponse,
    ConnectionStateResponse,
    GithubAuthorizeResponse,
    IntermediaryError,
    LinkedProfileResponse,
    Notice,
    ProfileSaveRequest,
    ProfileSaveResponse,
    RateLimitResponse,
    ReconcileResponse,
    RemoteProfile,
    RemoteRepository,
    RepositoryDetailResponse,
    RepositoryDocumentResponse,
    RepositoryListResponse,
    RepositoryStatsResponse,
    TokenExchangeRequest,
    TokenExchangeResponse,
)
from .repository import (
    SavedRepositoryListResponse,
    SavedRepositoryResponse,
    SavedRepositoryUpdateRequest,
    SaveRepositoryRequest,
    WorkspaceStatsResponse,
)

__all__ = [
    "ConnectionActionResponse",
    "ConnectionStateResponse",
    "GithubAuthorizeResponse",
    "IntermediaryError",
    "LinkedProfileResponse",
    "Notice",
    "ProfileSaveRequest",
    "ProfileSaveResponse",
    "RateLimitResponse",
    "ReconcileResponse",
    "RemoteProfile",
    "RemoteRepository",
    "RepositoryDetailResponse",
    "RepositoryDocumentResponse",
    "RepositoryListResponse",
    "RepositoryStatsResponse",
    "TokenExchangeRequest",
    "TokenExchangeResponse",
    "SavedRepositoryListResponse",
    "SavedRepositoryResponse",
    "SavedRepositoryUpdateRequest",
    "SaveRepositoryRequest",
    "WorkspaceStatsResponse",
]
