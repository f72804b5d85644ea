"""Saved repository repository for workspace bookmarks"""

import re
from typing import Any, Dict, List, Optional

from pymongo.database import Database

from repo_console.entities.base import utc_now
from repo_console.entities.saved_repository import (
    SavedRepository,
    SavedRepositoryStatus,
)

from .base import BaseRepository

# Overlay fields are user-owned and survive re-saving a repository
OVERLAY_FIELDS = ("status", "category", "priority", "notes")


class SavedRepositoryRepository(BaseRepository[SavedRepository]):
    """Repository for saved workspace repositories"""

    def __init__(self, db: Database):
        super().__init__(db, "saved_repositories", SavedRepository)

    def upsert_snapshot(self, owner_id: str, snapshot: Dict[str, Any]) -> SavedRepository:
        """Insert or refresh the GitHub snapshot, keeping the overlay intact."""
        now = utc_now()
        fields = {k: v for k, v in snapshot.items() if k not in OVERLAY_FIELDS}
        fields["owner_id"] = owner_id
        fields["updated_at"] = now
        return self.find_one_and_update(
            {"owner_id": owner_id, "full_name": snapshot["full_name"]},
            {
                "$set": fields,
                "$setOnInsert": {
                    "created_at": now,
                    "status": SavedRepositoryStatus.ACTIVE.value,
                    "priority": 0,
                },
            },
            upsert=True,
        )

    def find_by_full_name(self, owner_id: str, full_name: str) -> Optional[SavedRepository]:
        return self.find_one({"owner_id": owner_id, "full_name": full_name})

    def list_for_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        language: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[SavedRepository]:
        """List an owner's saved repositories, most recently touched first."""
        query: Dict[str, Any] = {"owner_id": owner_id}
        if status:
            query["status"] = status
        if language:
            query["language"] = language
        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"full_name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        return self.find_many(query, sort=[("updated_at", -1)])

    def update_overlay(
        self, owner_id: str, full_name: str, updates: Dict[str, Any]
    ) -> Optional[SavedRepository]:
        """Update status/category/priority/notes of one saved repository."""
        overlay = {k: v for k, v in updates.items() if k in OVERLAY_FIELDS}
        overlay["updated_at"] = utc_now()
        return self.find_one_and_update(
            {"owner_id": owner_id, "full_name": full_name},
            {"$set": overlay},
        )

    def delete_by_full_name(self, owner_id: str, full_name: str) -> bool:
        return self.delete_many({"owner_id": owner_id, "full_name": full_name}) > 0

    def count_by_field(self, owner_id: str, field: str) -> Dict[str, int]:
        """Histogram of ``field`` values across the owner's saved repositories."""
        rows = self.aggregate(
            [
                {"$match": {"owner_id": owner_id, field: {"$ne": None}}},
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
                {"$sort": {"count": -1}},
            ]
        )
        return {str(row["_id"]): row["count"] for row in rows}
