"""Field types shared by provider and failure-handler configuration models."""

from __future__ import annotations

import re
from typing import Annotated, Any
from urllib.parse import urlsplit

from pydantic import BaseModel, BeforeValidator, ConfigDict

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> Any:
    """Convert a Go-style duration string (``"1m30s"``, ``"250ms"``) to seconds.

    Numbers are taken as seconds and passed through unchanged. Anything else
    is left for pydantic to reject.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    try:
        return sign * float(text)
    except ValueError:
        pass
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def check_url(value: Any) -> Any:
    """Require an absolute URL with a scheme and a host."""
    if not isinstance(value, str):
        return value
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"invalid url {value!r}: scheme and host are required")
    _ = parts.port  # raises ValueError on a malformed port
    return value


# Seconds; accepts numbers or Go-style duration strings.
Duration = Annotated[float, BeforeValidator(parse_duration)]

# Absolute URL kept as the original string so it serializes back unchanged.
URL = Annotated[str, BeforeValidator(check_url)]


class ConfigModel(BaseModel):
    """Base for tagged configuration models: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")
