"""Trusted intermediary: the only surface that holds the GitHub client secret.

Both endpoints answer their own failures with ``{error, message}`` bodies
instead of the dashboard's error envelope, so non-dashboard callers can use
them directly.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from repo_console.api.deps import get_identity_gateway
from repo_console.config import settings
from repo_console.dtos.github import (
    IntermediaryError,
    LinkedProfileResponse,
    ProfileSaveRequest,
    ProfileSaveResponse,
    TokenExchangeRequest,
    TokenExchangeResponse,
)
from repo_console.entities.linked_identity import LinkedIdentity
from repo_console.middleware.auth import get_current_user_id_optional
from repo_console.services.github.exceptions import (
    GithubConfigurationError,
    GithubExchangeError,
    GithubOAuthError,
    GithubTimeoutError,
    GithubTokenMissingError,
)
from repo_console.services.github.github_oauth import GithubTokenExchanger, mask_token
from repo_console.services.github_connection import LinkedIdentityGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth intermediary"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

REQUIRED_PROFILE_FIELDS = ("owner_id", "external_id", "external_handle", "access_token")

OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE"]

EXCHANGE_PATH = "/oauth/exchange"
PROFILE_SAVE_PATH = "/profile/save"
INTERMEDIARY_PATHS = (EXCHANGE_PATH, PROFILE_SAVE_PATH)


def get_direct_exchanger() -> GithubTokenExchanger:
    return GithubTokenExchanger()


def _error(
    status_code: int, error: str, message: str, details: Optional[Any] = None
) -> JSONResponse:
    body = IntermediaryError(error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=CORS_HEADERS,
    )


async def _read_json(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    payload = json.loads(raw.decode("utf-8") or "{}")
    if not isinstance(payload, dict):
        raise ValueError("JSON body must be an object")
    return payload


def _preflight() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


def _method_not_allowed(request: Request) -> JSONResponse:
    response = _error(
        status.HTTP_405_METHOD_NOT_ALLOWED,
        "method_not_allowed",
        f"{request.method} is not allowed, use POST",
    )
    response.headers["Allow"] = "POST, OPTIONS"
    return response


@router.post(EXCHANGE_PATH, response_model=TokenExchangeResponse)
async def exchange_code(
    request: Request,
    exchanger: GithubTokenExchanger = Depends(get_direct_exchanger),
):
    """Swap a one-time authorization code for an access token."""
    try:
        payload = TokenExchangeRequest.model_validate(await _read_json(request))
    except (ValueError, ValidationError):
        return _error(400, "invalid_request", "Request body must be a JSON object")

    if not payload.code:
        return _error(400, "missing_code", "Missing authorization code")

    if not exchanger.configured:
        logger.error("Token exchange requested but GitHub OAuth is not configured")
        return _error(500, "not_configured", "GitHub OAuth not configured")

    try:
        grant = await exchanger.exchange(payload.code)
    except GithubOAuthError as exc:
        return _error(400, exc.error, exc.description or "OAuth error")
    except GithubTokenMissingError as exc:
        return _error(502, "no_token", str(exc))
    except GithubTimeoutError as exc:
        return _error(504, "timeout", str(exc))
    except (GithubExchangeError, GithubConfigurationError) as exc:
        return _error(502, "exchange_failed", str(exc))

    body = TokenExchangeResponse(
        access_token=grant.access_token,
        scope=grant.scope,
        token_type=grant.token_type,
    )
    return JSONResponse(content=body.model_dump(), headers=CORS_HEADERS)


@router.post(PROFILE_SAVE_PATH, response_model=ProfileSaveResponse)
async def save_profile(
    request: Request,
    identities: LinkedIdentityGateway = Depends(get_identity_gateway),
    current_owner: Optional[str] = Depends(get_current_user_id_optional),
):
    """Upsert the linked identity of the signed-in local account."""
    if not current_owner:
        return _error(401, "unauthorized", "Sign in before saving a GitHub profile")

    try:
        payload = ProfileSaveRequest.model_validate(await _read_json(request))
    except (ValueError, ValidationError) as exc:
        return _error(400, "invalid_request", "Request body must be a JSON object", str(exc))

    missing = [name for name in REQUIRED_PROFILE_FIELDS if not getattr(payload, name)]
    if missing:
        return _error(400, "missing_fields", "Missing required fields", missing)

    if payload.owner_id != current_owner:
        logger.warning(
            "Rejected profile save for owner=%s from session owner=%s",
            payload.owner_id,
            current_owner,
        )
        return _error(403, "owner_mismatch", "owner_id does not match the signed-in account")

    record = LinkedIdentity(
        owner_id=payload.owner_id,
        external_id=payload.external_id,
        external_handle=payload.external_handle,
        access_token=payload.access_token,
        scope=payload.scope or ",".join(settings.GITHUB_SCOPES),
        avatar_url=payload.avatar_url,
        name=payload.name,
        email=payload.email,
    )
    try:
        saved = identities.upsert(record)
    except Exception as exc:
        logger.error(f"GitHub profile save failed for owner={payload.owner_id}: {exc}")
        return _error(500, "save_failed", "Failed to save GitHub profile", str(exc))

    logger.info(
        "Saved GitHub profile owner=%s login=%s token=%s",
        saved.owner_id,
        saved.external_handle,
        mask_token(saved.access_token),
    )
    profile = LinkedProfileResponse.model_validate(saved.model_dump())
    body = ProfileSaveResponse(success=True, profile=profile)
    return JSONResponse(content=body.model_dump(mode="json"), headers=CORS_HEADERS)


@router.options(EXCHANGE_PATH, include_in_schema=False)
@router.options(PROFILE_SAVE_PATH, include_in_schema=False)
def intermediary_preflight():
    return _preflight()


@router.api_route(EXCHANGE_PATH, methods=OTHER_METHODS, include_in_schema=False)
@router.api_route(PROFILE_SAVE_PATH, methods=OTHER_METHODS, include_in_schema=False)
def intermediary_method_not_allowed(request: Request):
    return _method_not_allowed(request)
