"""Configuration document loading.

The document is JSON::

    {
        "backends": [{"type": "simple", "credentials": {"bob": "secret"}}],
        "failure": {"mode": "httpbasic", "realm": "example"}
    }

Only the outer shape is checked here; each tagged blob is decoded by
:mod:`reauth.registry`.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reauth.errors import ConfigurationError

CONFIG_ENV_VAR = "REAUTH_CONFIG"


class ReauthConfig(BaseModel):
    """Outer configuration document.

    Attributes:
        backends: Tagged backend blobs, in evaluation order.
        failure: Tagged failure-mode blob, or None for the default (403).
    """

    model_config = ConfigDict(extra="forbid")

    backends: list[dict[str, Any]] = Field(default_factory=list)
    failure: dict[str, Any] | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ReauthConfig:
        """Shape-check a decoded document.

        Raises:
            ConfigurationError: The document is not an object with a list of
                backend objects and an optional failure object.
        """
        try:
            return cls.model_validate(document)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid reauth configuration document: {exc}") from exc


def load_config(path: str | os.PathLike[str] | None = None) -> ReauthConfig:
    """Read the configuration document from ``path``.

    Falls back to the file named by the ``REAUTH_CONFIG`` environment
    variable when ``path`` is None.

    Raises:
        ConfigurationError: No path, unreadable file, or invalid JSON.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
        if not path:
            raise ConfigurationError(f"no configuration file given and {CONFIG_ENV_VAR} is not set")

    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read configuration file '{config_path}': {exc}") from exc

    try:
        document = json.loads(text)
    except ValueError as exc:
        raise ConfigurationError(f"configuration file '{config_path}' is not valid JSON: {exc}") from exc

    if not isinstance(document, Mapping):
        raise ConfigurationError(f"configuration file '{config_path}' must contain a JSON object")

    return ReauthConfig.from_document(document)
