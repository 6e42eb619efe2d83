"""GitLab CI backend: accept a CI job token for the project it belongs to."""

from __future__ import annotations

import logging
from typing import ClassVar
from urllib.parse import quote, urlsplit, urlunsplit

import httpx
from pydantic import PrivateAttr
from starlette.requests import Request

from reauth._types import URL, ConfigModel, Duration
from reauth._utils import basic_auth
from reauth.backends.protocol import Authenticator
from reauth.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_USERNAME = "gitlab-ci-token"

# Answers meaning "this token cannot read that project".
_REJECTED = {401, 403, 404}


class GitlabCIBackend(ConfigModel):
    """Authentication against GitLab project paths.

    Lets GitLab CI jobs reach otherwise private resources without storing
    credentials anywhere: the username is the project path and the password
    is the job token, e.g.::

        docker login docker.example.com -u "$CI_PROJECT_PATH" -p "$CI_JOB_TOKEN"

    The token is checked by fetching the project's git refs with it.
    Redirects are never followed so the token is not sent elsewhere.
    """

    name: ClassVar[str] = "gitlabci"

    url: URL | None = None
    timeout: Duration = DEFAULT_TIMEOUT
    username: str = DEFAULT_USERNAME
    insecure_skip_verify: bool = False

    _transport: httpx.BaseTransport | None = PrivateAttr(default=None)

    def validate_config(self) -> None:
        if not self.username:
            raise ValueError("username is a required option")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than 0")
        if self.url is None:
            raise ValueError("url to auth against is a required parameter")

    def refs_url(self, project: str) -> str | None:
        """URL of the smart-HTTP refs advertisement for ``project``.

        The project path is appended to the configured base path, so the
        request never leaves the configured host. Returns None for a path that
        could escape it (absolute, ``//``, dot segments, a scheme).
        """
        segments = project.split("/")
        if any(segment in ("", ".", "..") for segment in segments) or ":" in project or "\\" in project:
            return None

        base = urlsplit(self.url)
        path = f"{base.path.rstrip('/')}/{quote(project, safe='/')}.git/info/refs"
        target = urlunsplit((base.scheme, base.netloc, path, "service=git-upload-pack", ""))

        parts = urlsplit(target)
        if (parts.scheme, parts.netloc) != (base.scheme, base.netloc):
            return None
        return target

    def authenticate(self, request: Request) -> str:
        creds = basic_auth(request)
        if creds is None:
            return ""
        project, token = creds
        if not project or not token:
            return ""

        target = self.refs_url(project)
        if target is None:
            logger.debug("gitlabci: refusing project path %r", project)
            return ""

        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=False,
                verify=not self.insecure_skip_verify,
                transport=self._transport,
            ) as client:
                response = client.get(target, auth=(self.username, token))
        except httpx.HTTPError as exc:
            raise ProviderError(f"gitlabci {target}: {exc}") from exc

        if response.status_code == 200:
            return project
        if response.status_code in _REJECTED:
            logger.debug("gitlabci: token rejected for %r (%d)", project, response.status_code)
            return ""
        raise ProviderError(
            f"unexpected status code from gitlabci: {response.status_code} ({response.reason_phrase})"
        )


# Verify protocol compliance at import time
assert isinstance(GitlabCIBackend(), Authenticator)
