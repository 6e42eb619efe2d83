"""Simple backend: a static username → password table."""

from __future__ import annotations

import hmac
import logging
from typing import ClassVar

import bcrypt
from pydantic import Field
from starlette.requests import Request

from reauth._types import ConfigModel
from reauth._utils import basic_auth
from reauth.backends.protocol import Authenticator

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


class SimpleBackend(ConfigModel):
    """The simplest backend for authentication, a name:password map.

    With ``use_bcrypt`` the stored values are bcrypt hashes, otherwise they
    are compared verbatim (case-sensitive, constant time).
    """

    name: ClassVar[str] = "simple"

    use_bcrypt: bool = False
    credentials: dict[str, str] = Field(default_factory=dict)

    def validate_config(self) -> None:
        if not self.use_bcrypt:
            return
        bad = sorted(user for user, stored in self.credentials.items() if not stored.startswith(_BCRYPT_PREFIXES))
        if bad:
            raise ValueError(f"credentials are not bcrypt hashes for: {', '.join(bad)}")

    def authenticate(self, request: Request) -> str:
        creds = basic_auth(request)
        if creds is None:
            return ""
        username, password = creds

        stored = self.credentials.get(username)
        if stored is None:
            logger.debug("simple: unknown user %r", username)
            return ""

        if self.use_bcrypt:
            try:
                matched = bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
            except ValueError:
                logger.warning("simple: stored hash for %r is not a valid bcrypt hash", username)
                return ""
        else:
            matched = hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))

        return username if matched else ""


# Verify protocol compliance at import time
assert isinstance(SimpleBackend(), Authenticator)
