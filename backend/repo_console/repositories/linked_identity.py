"""Linked identity repository - durable GitHub linkage keyed by local account"""

import logging
from typing import Optional

from pymongo.database import Database

from repo_console.entities.base import utc_now
from repo_console.entities.linked_identity import LinkedIdentity

from .base import BaseRepository

logger = logging.getLogger(__name__)


class LinkedIdentityRepository(BaseRepository[LinkedIdentity]):
    """Repository for linked GitHub identities.

    Every write is keyed by ``owner_id`` (unique index), so concurrent
    writers for the same owner converge on a single row, last write wins.
    """

    def __init__(self, db: Database):
        super().__init__(db, "linked_identities", LinkedIdentity)

    def upsert(self, record: LinkedIdentity) -> LinkedIdentity:
        """Insert or overwrite the owner's linked identity."""
        now = utc_now()
        fields = record.model_dump(exclude={"id", "created_at", "updated_at"})
        fields["updated_at"] = now
        return self.find_one_and_update(
            {"owner_id": record.owner_id},
            {"$set": fields, "$setOnInsert": {"created_at": now}},
            upsert=True,
        )

    def find_by_owner(self, owner_id: str) -> Optional[LinkedIdentity]:
        """Single-row lookup; ``None`` when the owner never linked GitHub."""
        return self.find_one({"owner_id": owner_id})

    def delete_by_owner(self, owner_id: str) -> bool:
        """Remove the owner's linked identity. Returns whether a row was deleted."""
        deleted = self.delete_many({"owner_id": owner_id})
        if deleted:
            logger.info("Deleted linked identity for owner=%s", owner_id)
        return deleted > 0
