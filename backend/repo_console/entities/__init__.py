from .base import BaseEntity, PyObjectId
from .linked_identity import LinkedIdentity
from .saved_repository import SavedRepository, SavedRepositoryStatus

__all__ = [
    "BaseEntity",
    "PyObjectId",
    "LinkedIdentity",
    "SavedRepository",
    "SavedRepositoryStatus",
]
