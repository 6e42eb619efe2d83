"""ASGI middleware that runs the auth chain and exposes the identity downstream."""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from typing import Any

import anyio.to_thread
from starlette.requests import Request

from reauth.chain import AuthChain, AuthResult, Identity
from reauth.errors import ProviderError

logger = logging.getLogger(__name__)

# Bridge between the middleware and request handlers
auth_identity_var: ContextVar[Identity | None] = ContextVar("auth_identity", default=None)


async def run_chain(chain: AuthChain, request: Request) -> AuthResult:
    """Run the chain in a worker thread; backends do blocking network I/O."""
    return await anyio.to_thread.run_sync(chain.authenticate, request)


class AuthMiddleware:
    """ASGI middleware that authenticates requests through an ``AuthChain``.

    On success ``auth_identity_var`` and ``request.state.identity`` carry the
    ``Identity`` for the downstream app. Otherwise the chain's failure mode
    response is sent and the app is not called.

    Args:
        app: The ASGI application to wrap.
        chain: A validated ``AuthChain``.
        exempt_paths: Exact paths that bypass authentication.
        exempt_prefixes: Path prefixes that bypass authentication.
    """

    def __init__(
        self,
        app: Any,
        chain: AuthChain,
        *,
        exempt_paths: set[str] | None = None,
        exempt_prefixes: set[str] | None = None,
    ) -> None:
        self._app = app
        self._chain = chain
        self._exempt_paths = exempt_paths if exempt_paths is not None else {"/health"}
        self._exempt_prefixes = exempt_prefixes or set()

    def _is_exempt(self, path: str) -> bool:
        """Check if a path is exempt from authentication."""
        if path in self._exempt_paths:
            return True
        return any(path.startswith(prefix) for prefix in self._exempt_prefixes)

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        path = scope.get("path", "")
        if self._is_exempt(path):
            await self._app(scope, receive, send)
            return

        request = Request(scope)
        try:
            result = await run_chain(self._chain, request)
        except ProviderError:
            logger.exception("Authentication error for %s", path)
            await self._send_error(send)
            return

        if result.identity is None:
            logger.warning("Authentication failed for %s", path)
            await result.response(scope, receive, send)
            return

        scope.setdefault("state", {})["identity"] = result.identity
        token = auth_identity_var.set(result.identity)
        try:
            await self._app(scope, receive, send)
        finally:
            auth_identity_var.reset(token)

    @staticmethod
    async def _send_error(send: Any) -> None:
        """Send a 500 JSON response for a backend malfunction."""
        body = json.dumps({"error": "Internal Server Error", "detail": "Authentication backend error"}).encode()
        await send(
            {
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
