"""HTTP Basic failure mode: challenge the client for credentials."""

from __future__ import annotations

from typing import ClassVar

from starlette.requests import Request
from starlette.responses import Response

from reauth._types import ConfigModel
from reauth.failures.protocol import FailureHandler


class BasicFailure(ConfigModel):
    """Answer 401 with a ``WWW-Authenticate: Basic`` challenge.

    The realm defaults to the request's Host header.
    """

    name: ClassVar[str] = "httpbasic"

    realm: str = ""

    def validate_config(self) -> None:
        if '"' in self.realm:
            raise ValueError("realm must not contain double quotes")

    def handle(self, request: Request) -> Response:
        realm = self.realm or request.headers.get("host", "")
        return Response(status_code=401, headers={"WWW-Authenticate": f'Basic realm="{realm}"'})


# Verify protocol compliance at import time
assert isinstance(BasicFailure(), FailureHandler)
