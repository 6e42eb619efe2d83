"""Redirect failure mode: send the client to a login page."""

from __future__ import annotations

from typing import ClassVar
from urllib.parse import quote_plus, urlsplit

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from reauth._types import ConfigModel
from reauth._utils import is_tls, request_uri
from reauth.failures.protocol import FailureHandler

DEFAULT_REDIRECT_CODE = 303


class RedirectFailure(ConfigModel):
    """Redirect to ``url``, substituting ``{uri}`` with the original request.

    The original path and query are query-escaped before substitution. When
    ``url`` points at a different host than the request, the substituted URI
    is made absolute so the login page can send the client back.
    """

    name: ClassVar[str] = "redirect"

    url: str | None = None
    code: int = DEFAULT_REDIRECT_CODE

    def validate_config(self) -> None:
        if not self.url:
            raise ValueError("url to redirect to is a required parameter")
        if not 300 <= self.code <= 399:
            raise ValueError(f"code must be a redirect status (3xx), got {self.code}")

    def location(self, request: Request) -> str:
        """The redirect target for ``request``."""
        uri = request_uri(request)
        host = request.headers.get("host", "")

        target_host = urlsplit(self.url).netloc
        if target_host and target_host != host:
            scheme = "https" if is_tls(request) else "http"
            uri = f"{scheme}://{host}{uri}"

        return self.url.replace("{uri}", quote_plus(uri, safe=""))

    def handle(self, request: Request) -> Response:
        return RedirectResponse(self.location(request), status_code=self.code)


# Verify protocol compliance at import time
assert isinstance(RedirectFailure(), FailureHandler)
