"""CSRF state for the GitHub authorization round trip.

The pending state lives in a slot scoped to one browser session: in the
HTTP layer that is a cookie without ``Max-Age``/``Expires``, so it is gone
when the browser closes and never replays across restarts.
"""

from __future__ import annotations

import logging
import secrets
from typing import Dict, Iterator, Mapping, MutableMapping, Optional

from starlette.responses import Response

from repo_console.config import settings

logger = logging.getLogger(__name__)


class CookieSessionSlot(MutableMapping[str, str]):
    """Key-value slot backed by browser-session cookies.

    Reads come from the incoming request cookies; writes are buffered and
    flushed onto the outgoing response with :meth:`apply`.
    """

    def __init__(self, cookies: Mapping[str, str]):
        self._values: Dict[str, str] = dict(cookies)
        self._changes: Dict[str, Optional[str]] = {}

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._values[key] = value
        self._changes[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]
        self._changes[key] = None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def apply(self, response: Response) -> Response:
        for key, value in self._changes.items():
            if value is None:
                response.delete_cookie(key, path="/")
            else:
                response.set_cookie(
                    key=key,
                    value=value,
                    httponly=True,
                    secure=not settings.DEBUG,
                    samesite="lax",
                    path="/",
                )
        self._changes.clear()
        return response


class OAuthStateManager:
    """Generates and checks the single pending CSRF state of a session."""

    def __init__(self, slot: MutableMapping[str, str], key: str | None = None):
        self._slot = slot
        self._key = key or settings.OAUTH_STATE_COOKIE

    def generate(self) -> str:
        """Create a fresh state, replacing any pending attempt."""
        state = secrets.token_urlsafe(32)
        self._slot[self._key] = state
        return state

    def validate(self, received_state: str | None) -> bool:
        """Consume the stored state and compare it with ``received_state``.

        The stored value is removed whatever the outcome. A missing stored
        value is a rejection.
        """
        stored = self._slot.pop(self._key, None)
        if not stored or not received_state:
            reason = "no pending state" if not stored else "no state received"
            logger.warning("OAuth state rejected: %s", reason)
            return False
        matches = secrets.compare_digest(stored.encode(), received_state.encode())
        if not matches:
            logger.warning("OAuth state rejected: mismatch")
        return matches

    def clear(self) -> None:
        self._slot.pop(self._key, None)
