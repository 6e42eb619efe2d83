"""FailureHandler protocol: what the client sees when nobody authenticated."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from starlette.requests import Request
from starlette.responses import Response


@runtime_checkable
class FailureHandler(Protocol):
    """Protocol for failure modes.

    Implementations build the denial response for a request that no
    backend authenticated.
    """

    def validate_config(self) -> None:
        """Check the failure mode is usable, raising on any defect."""
        ...

    def handle(self, request: Request) -> Response:
        """Build the response sent to an unauthenticated client."""
        ...
