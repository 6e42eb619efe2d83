"""Forward-auth HTTP service: ``/auth`` answers whether a request is authenticated.

Intended to sit behind a reverse proxy's sub-request hook (nginx
``auth_request``, Traefik ``forwardAuth``): the proxy replays the client's
headers to ``/auth`` and lets the request through on a 2xx answer.
"""

from __future__ import annotations

import logging
import time as _time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from reauth.chain import AuthChain
from reauth.errors import ProviderError
from reauth.middleware import run_chain

logger = logging.getLogger(__name__)

AUTH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class ForwardAuthServer:
    """Serves an ``AuthChain`` over HTTP."""

    def __init__(self, chain: AuthChain) -> None:
        self._chain = chain
        self._start_time = _time.monotonic()

    def _build_health_response(self) -> dict[str, object]:
        """Build health check response."""
        return {
            "status": "ok",
            "uptime_seconds": round(_time.monotonic() - self._start_time, 1),
            "backends": [backend.tag for backend in self._chain.backends],
            "failure": self._chain.failure.tag,
        }

    async def _health(self, request: Request) -> JSONResponse:
        return JSONResponse(self._build_health_response())

    async def _auth(self, request: Request) -> Response:
        try:
            result = await run_chain(self._chain, request)
        except ProviderError:
            logger.exception("Authentication error for %s", _describe(request))
            return JSONResponse(
                {"error": "Internal Server Error", "detail": "Authentication backend error"},
                status_code=500,
            )

        if result.identity is None:
            logger.warning("Authentication failed for %s", _describe(request))
            return result.response

        return Response(
            status_code=200,
            headers={
                "X-Auth-User": result.identity.id,
                "X-Auth-Backend": result.identity.backend,
            },
        )

    @asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            self._chain.close()

    def build_app(self) -> Starlette:
        """Build the Starlette application."""
        return Starlette(
            routes=[
                Route("/health", endpoint=self._health, methods=["GET"]),
                Route("/auth", endpoint=self._auth, methods=AUTH_METHODS),
            ],
            lifespan=self._lifespan,
        )

    async def serve(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Run the service with uvicorn until shut down."""
        self._validate_host_port(host, port)
        logger.info("Starting forward-auth server on %s:%d", host, port)
        config = uvicorn.Config(self.build_app(), host=host, port=port, log_level="info")
        await uvicorn.Server(config).serve()

    def _validate_host_port(self, host: str, port: int) -> None:
        """Validate host and port parameters."""
        if not host:
            raise ValueError("Host must not be empty")
        if not isinstance(port, int) or port < 1 or port > 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {port}")


def create_app(chain: AuthChain) -> Starlette:
    """Build a forward-auth Starlette application for ``chain``."""
    return ForwardAuthServer(chain).build_app()


def _describe(request: Request) -> str:
    """Original URI when proxied, else our own path."""
    return request.headers.get("x-forwarded-uri", request.url.path)
