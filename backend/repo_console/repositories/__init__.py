"""Repository layer for database operations"""

from .base import BaseRepository
from .linked_identity import LinkedIdentityRepository
from .saved_repository import SavedRepositoryRepository

__all__ = [
    "BaseRepository",
    "LinkedIdentityRepository",
    "SavedRepositoryRepository",
]
