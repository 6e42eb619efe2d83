"""Shared test fixtures for reauth tests."""

from __future__ import annotations

import base64
from typing import Any

import pytest
from starlette.requests import Request

from reauth.chain import AuthChain
from reauth.errors import ProviderError
from reauth.registry import Resolved

# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def basic_header(username: str, password: str) -> dict[str, str]:
    """An ``Authorization: Basic`` header for the given credentials."""
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def make_scope(
    path: str = "/",
    *,
    headers: dict[str, str] | None = None,
    query: str = "",
    method: str = "GET",
    host: str = "example.com",
    scheme: str = "http",
    client: tuple[str, int] | None = ("203.0.113.7", 52100),
    scope_type: str = "http",
) -> dict[str, Any]:
    """A minimal ASGI HTTP scope."""
    raw_headers = [(b"host", host.encode("latin-1"))]
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return {
        "type": scope_type,
        "http_version": "1.1",
        "method": method,
        "scheme": scheme,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": query.encode("latin-1"),
        "headers": raw_headers,
        "client": client,
        "server": (host, 443 if scheme == "https" else 80),
    }


def make_request(path: str = "/", **kwargs: Any) -> Request:
    """A starlette ``Request`` built from :func:`make_scope`."""
    return Request(make_scope(path, **kwargs))


# ---------------------------------------------------------------------------
# Stub backends
# ---------------------------------------------------------------------------


class StubBackend:
    """Authenticator stub returning a fixed principal (or raising)."""

    def __init__(self, principal: str = "", *, error: Exception | None = None, invalid: str | None = None) -> None:
        self.principal = principal
        self.error = error
        self.invalid = invalid
        self.calls = 0
        self.validations = 0
        self.closed = False

    def validate_config(self) -> None:
        self.validations += 1
        if self.invalid:
            raise ValueError(self.invalid)

    def authenticate(self, request: Request) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.principal

    def close(self) -> None:
        self.closed = True


def stub(tag: str, principal: str = "", **kwargs: Any) -> Resolved[StubBackend]:
    """A resolved stub backend under ``tag``."""
    return Resolved(tag=tag, impl=StubBackend(principal, **kwargs), discriminator="type")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anonymous_request() -> Request:
    """A request carrying no credentials of any kind."""
    return make_request("/secret")


@pytest.fixture
def failing_chain() -> AuthChain:
    """A chain whose only backend always malfunctions."""
    return AuthChain([stub("broken", error=ProviderError("directory unreachable"))])
