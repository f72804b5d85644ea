"""CORS for the dashboard API, skipping routes that answer CORS themselves."""

from typing import Iterable

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class DashboardCORSMiddleware(CORSMiddleware):
    """Starlette CORS restricted to ``allow_origins``, except for ``exclude_paths``.

    Excluded paths are passed straight to the app, so their own handlers
    answer preflights and set their own ``Access-Control-*`` headers.
    """

    def __init__(self, app: ASGIApp, exclude_paths: Iterable[str] = (), **kwargs):
        super().__init__(app, **kwargs)
        self.exclude_paths = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.exclude_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
