"""Authentication dependencies for FastAPI."""
from __future__ import annotations

from typing import Optional

from fastapi import Cookie, HTTPException, Header, status

from repo_console.services.auth import decode_access_token, verify_token


def _extract_token(access_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    # Cookie first, then Authorization header
    if access_token:
        return access_token
    if authorization and authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "", 1)
    return None


async def get_current_user_id(
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None),
) -> str:
    """Extract and validate the local account id from the session JWT.

    Checks for token in:
    1. Cookie (access_token)
    2. Authorization header (Bearer token)

    Raises:
        HTTPException: If no valid token is found
    """
    token = _extract_token(access_token, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return user_id


async def get_current_user_id_optional(
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None),
) -> Optional[str]:
    """Local account id if signed in, otherwise None."""
    token = _extract_token(access_token, authorization)
    if not token:
        return None
    return verify_token(token)
