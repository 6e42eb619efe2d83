"""Internal request helpers for reauth."""

from __future__ import annotations

import base64
import binascii

from starlette.requests import Request


def basic_auth(request: Request) -> tuple[str, str] | None:
    """Return ``(username, password)`` from a Basic ``Authorization`` header.

    Returns None when the header is absent, uses another scheme, or is not
    valid base64 ``user:password``.
    """
    header = request.headers.get("authorization", "")
    if header[:6].lower() != "basic ":
        return None
    try:
        decoded = base64.b64decode(header[6:].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def request_uri(request: Request) -> str:
    """Path plus query string of the original request, as sent by the client."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def is_tls(request: Request) -> bool:
    """Whether the client reached us over TLS, directly or through a proxy."""
    if request.url.scheme in ("https", "wss"):
        return True
    return request.headers.get("x-forwarded-proto", "").lower() == "https"
