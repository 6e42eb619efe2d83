"""Exception hierarchy for reauth.

Configuration errors are fatal at load time. Provider errors abort the
chain for a single request. "Not authenticated" is never an exception.
"""

from __future__ import annotations

from typing import Any


class ReauthError(Exception):
    """Base class for all reauth errors."""


class ConfigurationError(ReauthError):
    """The configuration document cannot be turned into a working chain."""


class UnknownProviderKind(ConfigurationError):
    """No registered implementation for the given tag."""

    def __init__(self, kind: str, tag: str, raw: Any) -> None:
        self.kind = kind
        self.tag = tag
        self.raw = raw
        super().__init__(f"unknown {kind} {tag!r}, config: {raw!r}")


class MalformedProviderConfig(ConfigurationError):
    """The tagged blob could not be decoded into its concrete type."""

    def __init__(self, tag: str | None, raw: Any, cause: Exception | str) -> None:
        self.tag = tag
        self.raw = raw
        self.cause = cause
        label = f"reauth:{tag}" if tag else "reauth"
        super().__init__(f"invalid {label} configuration, error: {cause}, config: {raw!r}")


class ProviderValidationFailed(ConfigurationError):
    """A decoded implementation rejected its own configuration."""

    def __init__(self, tag: str, cause: Exception) -> None:
        self.tag = tag
        self.cause = cause
        super().__init__(f"invalid reauth:{tag} configuration, error: {cause}")


class ChainValidationError(ConfigurationError):
    """One or more chain members failed validation.

    Attributes:
        errors: Human readable description of every defect found.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ProviderError(ReauthError):
    """A provider could not reach a decision (network or protocol failure)."""


class AmbiguousPrincipal(ProviderError):
    """A directory lookup matched more than one entry."""

    def __init__(self, filter_: str, count: int) -> None:
        self.filter = filter_
        self.count = count
        super().__init__(f"too many entries returned for {filter_!r}: {count}")
