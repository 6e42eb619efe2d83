"""Resolver: tagged configuration blobs → validated backends and failure modes.

A blob is a JSON object whose discriminator field (``type`` for backends,
``mode`` for failure modes) names the implementation; every other field
belongs to that implementation's configuration model.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from reauth._types import ConfigModel
from reauth.backends import BACKENDS
from reauth.errors import MalformedProviderConfig, ProviderValidationFailed, UnknownProviderKind
from reauth.failures import FAILURES

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A validated implementation together with the tag it was built from.

    Attributes:
        tag: The discriminator value, e.g. ``"ldap"``.
        impl: The configured implementation.
        discriminator: Name of the tag field, e.g. ``"type"``.
    """

    tag: str
    impl: T
    discriminator: str

    def to_config(self) -> dict[str, Any]:
        """Serialize back to the tagged blob shape this was resolved from."""
        return {self.discriminator: self.tag, **self.impl.model_dump(mode="json")}


class Resolver(Generic[T]):
    """Turns tagged blobs into implementations from a fixed table.

    Args:
        kind: Human readable name used in errors ("backend", "failure mode").
        discriminator: Name of the tag field.
        table: Tag → configuration model class.
    """

    def __init__(self, kind: str, discriminator: str, table: Mapping[str, type[ConfigModel]]) -> None:
        self._kind = kind
        self._discriminator = discriminator
        self._table = dict(table)

    @property
    def discriminator(self) -> str:
        return self._discriminator

    def kinds(self) -> list[str]:
        """Registered tags, sorted."""
        return sorted(self._table)

    def decode(self, raw: Mapping[str, Any] | str | bytes) -> Resolved[T]:
        """Decode a blob without validating it.

        Raises:
            MalformedProviderConfig: The blob is not an object, lacks a string
                tag, or its fields do not fit the tagged model.
            UnknownProviderKind: No implementation is registered for the tag.
        """
        blob = raw
        if isinstance(raw, (str, bytes)):
            try:
                blob = json.loads(raw)
            except ValueError as exc:
                raise MalformedProviderConfig(None, raw, exc) from exc

        if not isinstance(blob, Mapping):
            raise MalformedProviderConfig(None, raw, f"expected a JSON object, got {type(blob).__name__}")

        tag = blob.get(self._discriminator)
        if not isinstance(tag, str) or not tag:
            raise MalformedProviderConfig(None, raw, f"{self._discriminator!r} must be a non-empty string")

        model = self._table.get(tag)
        if model is None:
            raise UnknownProviderKind(self._kind, tag, raw)

        fields = {key: value for key, value in blob.items() if key != self._discriminator}
        try:
            impl = model.model_validate(fields)
        except ValidationError as exc:
            raise MalformedProviderConfig(tag, raw, exc) from exc

        return Resolved(tag=tag, impl=impl, discriminator=self._discriminator)

    def resolve(self, raw: Mapping[str, Any] | str | bytes) -> Resolved[T]:
        """Decode a blob and run the implementation's own validation.

        Validation may perform network I/O.

        Raises:
            MalformedProviderConfig, UnknownProviderKind: See :meth:`decode`.
            ProviderValidationFailed: The implementation rejected its configuration.
        """
        resolved = self.decode(raw)
        try:
            resolved.impl.validate_config()
        except Exception as exc:
            raise ProviderValidationFailed(resolved.tag, exc) from exc
        logger.debug("Resolved %s %r", self._kind, resolved.tag)
        return resolved


backend_resolver: Resolver[Any] = Resolver("backend", "type", BACKENDS)
failure_resolver: Resolver[Any] = Resolver("failure mode", "mode", FAILURES)
