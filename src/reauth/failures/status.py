"""Status failure mode: a bare HTTP status code."""

from __future__ import annotations

from typing import ClassVar

from starlette.requests import Request
from starlette.responses import Response

from reauth._types import ConfigModel
from reauth.failures.protocol import FailureHandler

DEFAULT_CODE = 403


class StatusFailure(ConfigModel):
    """Simply returns an HTTP status code (403 unless configured)."""

    name: ClassVar[str] = "status"

    code: int = DEFAULT_CODE

    def validate_config(self) -> None:
        if not 100 <= self.code <= 599:
            raise ValueError(f"code must be a valid HTTP status code, got {self.code}")

    def handle(self, request: Request) -> Response:
        return Response(status_code=self.code)


# Verify protocol compliance at import time
assert isinstance(StatusFailure(), FailureHandler)
