"""reauth: chained HTTP authentication for ASGI applications."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from reauth.backends import BACKENDS, Authenticator
from reauth.chain import AuthChain, AuthResult, Identity
from reauth.config import ReauthConfig, load_config
from reauth.errors import (
    AmbiguousPrincipal,
    ChainValidationError,
    ConfigurationError,
    MalformedProviderConfig,
    ProviderError,
    ProviderValidationFailed,
    ReauthError,
    UnknownProviderKind,
)
from reauth.failures import FAILURES, FailureHandler
from reauth.middleware import AuthMiddleware, auth_identity_var
from reauth.registry import Resolved, Resolver, backend_resolver, failure_resolver
from reauth.server import ForwardAuthServer, create_app

__all__ = [
    # Public API
    "build_chain",
    "AuthChain",
    "AuthResult",
    "Identity",
    # ASGI
    "AuthMiddleware",
    "auth_identity_var",
    "ForwardAuthServer",
    "create_app",
    # Configuration
    "ReauthConfig",
    "load_config",
    "Resolver",
    "Resolved",
    "backend_resolver",
    "failure_resolver",
    "BACKENDS",
    "FAILURES",
    # Protocols
    "Authenticator",
    "FailureHandler",
    # Errors
    "ReauthError",
    "ConfigurationError",
    "UnknownProviderKind",
    "MalformedProviderConfig",
    "ProviderValidationFailed",
    "ChainValidationError",
    "ProviderError",
    "AmbiguousPrincipal",
]

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def build_chain(config: ReauthConfig | Mapping[str, Any] | str | os.PathLike[str]) -> AuthChain:
    """Build a ready-to-use chain from a document, a parsed config, or a file path.

    Every backend and the failure mode are resolved and validated, which may
    open network connections (LDAP). Any defect raises before the chain is
    returned.

    Raises:
        ConfigurationError: Unknown tag, malformed fields, or failed validation.
    """
    if isinstance(config, (str, os.PathLike)):
        logger.debug("Loading configuration from %s", config)
        config = load_config(config)
    return AuthChain.from_config(config)
