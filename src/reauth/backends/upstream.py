"""Upstream backend: delegate the decision to another HTTP endpoint."""

from __future__ import annotations

import logging
import re
from typing import ClassVar

import httpx
from pydantic import Field, PrivateAttr
from starlette.requests import Request

from reauth._types import URL, ConfigModel, Duration
from reauth._utils import basic_auth, request_uri
from reauth.backends.protocol import Authenticator
from reauth.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class ForwardOptions(ConfigModel):
    """Request details copied onto the upstream call as ``X-Auth-*`` headers."""

    url: bool = False
    method: bool = False
    ip: bool = False
    headers: list[str] = Field(default_factory=list)


class UpstreamBackend(ConfigModel):
    """Authentication against an upstream HTTP server.

    The incoming Basic credentials (and optionally its cookies) are replayed
    as a GET against ``url``. A 200 response means the user is logged in,
    unless ``match`` matches the final response URL.
    """

    name: ClassVar[str] = "upstream"

    url: URL | None = None
    timeout: Duration = DEFAULT_TIMEOUT
    insecure_skip_verify: bool = False
    follow_redirects: bool = False
    pass_cookies: bool = False
    match: re.Pattern[str] | None = None
    forward: ForwardOptions = Field(default_factory=ForwardOptions)

    # Overridden in tests to avoid the network.
    _transport: httpx.BaseTransport | None = PrivateAttr(default=None)

    def validate_config(self) -> None:
        if self.url is None:
            raise ValueError("url to auth against is a required parameter")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than 0")

    def authenticate(self, request: Request) -> str:
        creds = basic_auth(request)
        if creds is None and not self.pass_cookies:
            return ""

        headers = self._forwarded_headers(request)
        auth = httpx.BasicAuth(*creds) if creds is not None else None

        try:
            with self._client() as client:
                response = client.get(self.url, headers=headers, auth=auth)
        except httpx.HTTPError as exc:
            raise ProviderError(f"upstream {self.url}: {exc}") from exc

        if response.status_code != 200:
            logger.debug("upstream: %s answered %d", self.url, response.status_code)
            return ""

        if self.match is not None and self.match.search(str(response.url)):
            logger.debug("upstream: final url %s vetoed by match", response.url)
            return ""

        if creds is not None:
            return creds[0]
        # Cookie-only requests carry no username; the upstream may name one.
        return response.headers.get("x-auth-user", "")

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            follow_redirects=self.follow_redirects,
            verify=not self.insecure_skip_verify,
            transport=self._transport,
        )

    def _forwarded_headers(self, request: Request) -> dict[str, str]:
        headers: dict[str, str] = {}

        cookie = request.headers.get("cookie")
        if self.pass_cookies and cookie:
            headers["Cookie"] = cookie

        if self.forward.url:
            headers["X-Auth-URL"] = request_uri(request)

        if self.forward.method:
            headers["X-Auth-Method"] = request.method

        if self.forward.ip and request.client is not None:
            headers["X-Auth-IP"] = f"{request.client.host}:{request.client.port}"

        for name in self.forward.headers:
            value = request.headers.get(name)
            if value:
                headers[f"X-Auth-Header-{name}"] = value

        return headers


# Verify protocol compliance at import time
assert isinstance(UpstreamBackend(), Authenticator)
