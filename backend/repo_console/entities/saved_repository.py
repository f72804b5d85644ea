from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import BaseEntity


class SavedRepositoryStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class SavedRepository(BaseEntity):
    """A GitHub repository bookmarked into an owner's workspace."""

    owner_id: str

    # Snapshot of the GitHub repository
    name: str
    full_name: str
    description: Optional[str] = None
    url: str
    clone_url: Optional[str] = None
    ssh_url: Optional[str] = None
    html_url: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    size_kb: int = 0
    is_private: bool = False
    is_fork: bool = False
    has_issues: bool = False
    has_projects: bool = False
    has_wiki: bool = False
    default_branch: str = "main"
    owner_login: Optional[str] = None
    owner_avatar_url: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    license_name: Optional[str] = None
    github_created_at: Optional[datetime] = None
    github_updated_at: Optional[datetime] = None
    github_pushed_at: Optional[datetime] = None

    # Editable overlay
    status: SavedRepositoryStatus = SavedRepositoryStatus.ACTIVE
    category: Optional[str] = None
    priority: int = 0
    notes: Optional[str] = None

    class Config:
        collection = "saved_repositories"
        use_enum_values = True
