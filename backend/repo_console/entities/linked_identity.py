"""Linked identity entity - a local account's connected GitHub account."""

from typing import Optional

from pydantic import Field

from .base import BaseEntity


class LinkedIdentity(BaseEntity):
    """GitHub identity linked to one local account.

    The access token is stored as-is; it is only ever read back by the
    trusted backend to call GitHub on the owner's behalf.
    """

    owner_id: str = Field(..., description="Local account id (unique)")
    external_id: int = Field(..., description="GitHub numeric user id")
    external_handle: str = Field(..., description="GitHub login")
    access_token: str
    scope: Optional[str] = None
    avatar_url: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        collection = "linked_identities"
