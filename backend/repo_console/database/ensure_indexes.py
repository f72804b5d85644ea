"""Database index management for MongoDB collections."""

import logging

from pymongo.database import Database
from pymongo.errors import OperationFailure

logger = logging.getLogger(__name__)


def ensure_indexes(db: Database) -> None:
    """
    Ensure all required indexes exist.

    Called on application startup. The unique keys here are what make
    linked-identity and saved-repository writes converge under concurrent
    upserts instead of duplicating rows.
    """
    _ensure_linked_identities_indexes(db)
    _ensure_saved_repositories_indexes(db)
    logger.info("Database indexes ensured successfully")


def _ensure_linked_identities_indexes(db: Database) -> None:
    """Create indexes for linked_identities collection."""
    collection = db.linked_identities

    # One linked GitHub account per local account
    try:
        collection.create_index(
            [("owner_id", 1)],
            unique=True,
            background=True,
            name="owner_id_unique",
        )
        logger.debug("Created index: owner_id_unique")
    except OperationFailure as e:
        if "already exists" not in str(e):
            logger.warning(f"Failed to create owner_id_unique index: {e}")

    try:
        collection.create_index(
            [("external_id", 1)],
            background=True,
            name="external_id_idx",
        )
    except OperationFailure as e:
        if "already exists" not in str(e):
            logger.warning(f"Failed to create external_id_idx index: {e}")


def _ensure_saved_repositories_indexes(db: Database) -> None:
    """Create indexes for saved_repositories collection."""
    collection = db.saved_repositories

    try:
        collection.create_index(
            [("owner_id", 1), ("full_name", 1)],
            unique=True,
            background=True,
            name="owner_full_name_unique",
        )
        logger.debug("Created index: owner_full_name_unique")
    except OperationFailure as e:
        if "already exists" not in str(e):
            logger.warning(f"Failed to create owner_full_name_unique index: {e}")

    # Workspace listing (most common query)
    try:
        collection.create_index(
            [("owner_id", 1), ("status", 1), ("updated_at", -1)],
            background=True,
            name="owner_status_updated_idx",
        )
    except OperationFailure as e:
        if "already exists" not in str(e):
            logger.warning(f"Failed to create owner_status_updated_idx index: {e}")
