"""AuthChain: try each configured backend in order until one names the user."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from starlette.requests import Request
from starlette.responses import Response

from reauth.backends import Authenticator
from reauth.config import ReauthConfig
from reauth.errors import ChainValidationError, ConfigurationError
from reauth.failures import FailureHandler, StatusFailure
from reauth.registry import Resolved, backend_resolver, failure_resolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """An authenticated principal.

    Attributes:
        id: Non-empty principal name as reported by the backend.
        backend: Tag of the backend that recognised the request.
    """

    id: str
    backend: str

    @property
    def metadata(self) -> dict[str, str]:
        return {"reauth_backend": self.backend}


@dataclass(frozen=True)
class AuthResult:
    """Outcome of running the chain for one request.

    Exactly one of ``identity`` and ``response`` is set: the identity on
    success, the failure mode's response otherwise.
    """

    identity: Identity | None = None
    response: Response | None = field(default=None, compare=False)

    @property
    def authenticated(self) -> bool:
        return self.identity is not None


class AuthChain:
    """An ordered list of backends plus the failure mode used when none match.

    Once built the chain holds no per-request state and may be shared across
    worker threads.

    Args:
        backends: Resolved backends, in evaluation order.
        failure: Resolved failure mode. Defaults to a bare 403.
    """

    def __init__(
        self,
        backends: Sequence[Resolved[Authenticator]],
        failure: Resolved[FailureHandler] | None = None,
    ) -> None:
        self._backends = list(backends)
        self._failure = failure or Resolved(tag=StatusFailure.name, impl=StatusFailure(), discriminator="mode")

    @classmethod
    def from_config(cls, config: ReauthConfig | Mapping[str, Any]) -> AuthChain:
        """Resolve and validate every backend and the failure mode.

        Raises:
            ConfigurationError: The first defect found; nothing is served.
        """
        if not isinstance(config, ReauthConfig):
            config = ReauthConfig.from_document(config)

        backends: list[Resolved[Authenticator]] = []
        for index, blob in enumerate(config.backends):
            try:
                backends.append(backend_resolver.resolve(blob))
            except ConfigurationError as exc:
                logger.error("backends[%d] rejected: %s", index, exc)
                raise

        failure = None
        if config.failure is not None:
            try:
                failure = failure_resolver.resolve(config.failure)
            except ConfigurationError as exc:
                logger.error("failure mode rejected: %s", exc)
                raise

        chain = cls(backends, failure)
        logger.info(
            "Auth chain ready: backends=[%s], failure=%s",
            ", ".join(b.tag for b in chain.backends),
            chain.failure.tag,
        )
        return chain

    @property
    def backends(self) -> list[Resolved[Authenticator]]:
        return list(self._backends)

    @property
    def failure(self) -> Resolved[FailureHandler]:
        return self._failure

    def validate(self) -> None:
        """Validate every backend and the failure mode.

        All members are checked so that every defect is reported at once.

        Raises:
            ChainValidationError: Listing each member that failed.
        """
        errors: list[str] = []
        for index, backend in enumerate(self._backends):
            try:
                backend.impl.validate_config()
            except Exception as exc:
                errors.append(f"backends[{index}] ({backend.tag}) failed validation: {exc}")

        try:
            self._failure.impl.validate_config()
        except Exception as exc:
            errors.append(f"failure mode {self._failure.tag} failed validation: {exc}")

        if errors:
            raise ChainValidationError(errors)

    def authenticate(self, request: Request) -> AuthResult:
        """Run the chain for one request.

        Backends are tried in order. The first non-empty principal wins. A
        backend error aborts the chain and propagates; the failure mode is
        only consulted when every backend declined.

        Raises:
            ProviderError: A backend could not reach a decision.
        """
        for backend in self._backends:
            principal = backend.impl.authenticate(request)
            if principal:
                logger.debug("Authenticated %r via %s", principal, backend.tag)
                return AuthResult(identity=Identity(id=principal, backend=backend.tag))

        logger.debug("No backend authenticated %s %s", request.method, request.url.path)
        return AuthResult(response=self._failure.impl.handle(request))

    def to_config(self) -> dict[str, Any]:
        """The chain as a configuration document (secrets included)."""
        return {
            "backends": [backend.to_config() for backend in self._backends],
            "failure": self._failure.to_config(),
        }

    def close(self) -> None:
        """Release resources held by backends (e.g. pooled connections)."""
        for backend in self._backends:
            close = getattr(backend.impl, "close", None)
            if close is not None:
                close()
