"""
core/cors.py
------------
CORS for an API that serves two audiences:

  - the dashboard, whose origins are listed in ALLOWED_ORIGINS and which
    sends credentials;
  - the embeddable tracking script, which runs on arbitrary customer
    sites and calls a handful of public paths.

Starlette's CORSMiddleware takes a single policy, so this wrapper holds
one instance per audience and dispatches on the request path.
"""

from typing import Iterable, Sequence

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class PathScopedCORSMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        allow_origins: Sequence[str],
        public_paths: Iterable[str] = (),
    ) -> None:
        self.public_paths = frozenset(public_paths)
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_methods=["POST", "OPTIONS"],
            allow_headers=["*"],
        )
        self.private = CORSMiddleware(
            app,
            allow_origins=list(allow_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].rstrip("/") in self.public_paths:
            await self.public(scope, receive, send)
        else:
            await self.private(scope, receive, send)
