"""Authenticator protocol for pluggable authentication backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from starlette.requests import Request


@runtime_checkable
class Authenticator(Protocol):
    """Protocol for authentication backends.

    Implementations inspect the credentials already present on a request
    (Basic auth, cookies, headers) and name the principal they belong to.
    """

    def validate_config(self) -> None:
        """Check the backend is functional, raising on any defect.

        May perform network I/O (for example opening a first connection).
        """
        ...

    def authenticate(self, request: Request) -> str:
        """Authenticate a request.

        Args:
            request: The inbound request. Only headers are read.

        Returns:
            The authenticated principal, or ``""`` if this backend does not
            recognise the request.

        Raises:
            ProviderError: The backend could not reach a decision.
        """
        ...
