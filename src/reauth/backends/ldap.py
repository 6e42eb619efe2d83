"""LDAP backend: search for the user as a service account, then bind as them.

Connections are expensive to set up, so up to ``connection_pool_size`` bound
connections are kept between requests. A pooled connection is re-bound as the
service account before every reuse; one that fails to re-bind is dropped and
replaced by a freshly dialled connection.
"""

from __future__ import annotations

import logging
import ssl
from collections.abc import Iterator
from contextlib import contextmanager
from typing import ClassVar
from urllib.parse import urlsplit

from ldap3 import AUTO_BIND_NONE, DEREF_NEVER, NO_ATTRIBUTES, NONE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPBindError, LDAPException, LDAPInvalidCredentialsResult
from ldap3.core.results import RESULT_INVALID_CREDENTIALS
from ldap3.utils.conv import escape_filter_chars
from pydantic import PrivateAttr
from starlette.requests import Request

from reauth._types import URL, ConfigModel, Duration
from reauth._utils import basic_auth
from reauth.backends.pool import ConnectionPool
from reauth.backends.protocol import Authenticator
from reauth.errors import AmbiguousPrincipal, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 10
DEFAULT_TIMEOUT = 60.0
DEFAULT_FILTER = "(&(objectClass=user)(sAMAccountName=%s))"

# Ports that speak LDAP over TLS from the first byte (LDAPS, AD global catalog).
_IMPLICIT_TLS_PORTS = (636, 3269)


class LDAPBackend(ConfigModel):
    """Authentication against LDAP paths, for example Microsoft AD.

    ``filter_dn`` is a search filter where ``%s`` stands for the supplied
    username (plus ``principal_suffix``). The DN of the single matching entry
    is the authenticated principal.
    """

    name: ClassVar[str] = "ldap"

    url: URL | None = None
    base_dn: str = ""
    filter_dn: str = DEFAULT_FILTER
    principal_suffix: str = ""
    bind_dn: str = ""
    bind_password: str = ""
    tls: bool = False
    insecure_skip_verify: bool = False
    timeout: Duration = DEFAULT_TIMEOUT
    connection_pool_size: int = DEFAULT_POOL_SIZE

    _pool: ConnectionPool[Connection] | None = PrivateAttr(default=None)

    def validate_config(self) -> None:
        missing = [
            label
            for label, value in (
                ("url", self.url),
                ("bind_dn", self.bind_dn),
                ("bind_password", self.bind_password),
                ("base_dn", self.base_dn),
            )
            if not value
        ]
        if missing:
            suffix = "s" if len(missing) > 1 else ""
            raise ValueError(f"missing the following required parameter{suffix}: {', '.join(missing)}")

        if self.timeout <= 0:
            raise ValueError("timeout must be greater than 0")

        if self.connection_pool_size <= 0:
            raise ValueError("connection pool size must be greater than 0")

        if self._pool is None:
            self._pool = ConnectionPool(self.connection_pool_size)

        # Prove the directory is reachable before serving traffic.
        self._release(self._acquire())
        logger.info("ldap: %s ready (pool size %d)", self.url, self.connection_pool_size)

    def search_filter(self, username: str) -> str:
        """The search filter for ``username``, with filter metacharacters escaped."""
        return self.filter_dn.replace("%s", escape_filter_chars(username + self.principal_suffix))

    def authenticate(self, request: Request) -> str:
        creds = basic_auth(request)
        if creds is None:
            return ""
        username, password = creds
        if not password:
            # An empty password would be an anonymous bind, which always "succeeds".
            return ""

        search_filter = self.search_filter(username)
        with self.connection() as conn:
            try:
                entries = self._search(conn, search_filter)
            except LDAPException as exc:
                raise ProviderError(f"search under {self.base_dn!r} for {search_filter!r}: {exc}") from exc

            if not entries:
                logger.debug("ldap: no entry for %r", search_filter)
                return ""
            if len(entries) > 1:
                raise AmbiguousPrincipal(search_filter, len(entries))

            user_dn = entries[0]
            try:
                self._bind(conn, user_dn, password)
            except LDAPException as exc:
                if _invalid_credentials(conn, exc):
                    logger.debug("ldap: invalid credentials for %r", user_dn)
                    return ""
                raise ProviderError(f"bind with {user_dn!r}: {exc}") from exc

        return user_dn

    def close(self) -> None:
        """Close every idle pooled connection."""
        if self._pool is not None:
            self._pool.drain(self._close)

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Check a service-bound connection out of the pool for one request.

        The connection goes back to the pool afterwards, unless the block
        failed with anything other than an ambiguous search result, in which
        case it is closed.
        """
        conn = self._acquire()
        try:
            yield conn
        except AmbiguousPrincipal:
            self._release(conn)
            raise
        except BaseException:
            self._close(conn)
            raise
        else:
            self._release(conn)

    def endpoint(self) -> tuple[str, int, bool]:
        """Resolve ``(host, port, implicit_tls)`` from the configured URL."""
        parts = urlsplit(self.url)
        scheme = parts.scheme.lower()
        port = parts.port or 0

        ldaps = port in _IMPLICIT_TLS_PORTS or scheme == "ldaps"
        if scheme == "ldap":
            ldaps = False
        if not port:
            port = 636 if ldaps else 389

        return parts.hostname or "", port, ldaps

    def _acquire(self) -> Connection:
        if self._pool is None:
            raise ProviderError("ldap backend used before validation")

        conn = self._pool.take()
        if conn is not None:
            try:
                self._bind(conn, self.bind_dn, self.bind_password)
                return conn
            except LDAPException as exc:
                logger.debug("ldap: dropping pooled connection, re-bind failed: %s", exc)
                self._close(conn)

        return self._dial()

    def _release(self, conn: Connection) -> None:
        if self._pool is None or not self._pool.give(conn):
            self._close(conn)

    def _dial(self) -> Connection:
        host, port, ldaps = self.endpoint()
        tls = Tls(validate=ssl.CERT_NONE if self.insecure_skip_verify else ssl.CERT_REQUIRED)
        server = Server(host, port=port, use_ssl=ldaps, tls=tls, connect_timeout=self.timeout, get_info=NONE)
        conn = Connection(
            server,
            user=self.bind_dn,
            password=self.bind_password,
            auto_bind=AUTO_BIND_NONE,
            receive_timeout=self.timeout,
            raise_exceptions=True,
            read_only=True,
        )

        try:
            conn.open()
        except LDAPException as exc:
            raise ProviderError(f"connect to {host}:{port}: {exc}") from exc

        # StartTLS on top of LDAPS is excessive but harmless.
        if self.tls:
            try:
                if not conn.start_tls():
                    raise LDAPException(f"server refused StartTLS: {conn.result}")
            except LDAPException as exc:
                self._close(conn)
                raise ProviderError(f"StartTLS: {exc}") from exc

        try:
            if not conn.bind():
                raise LDAPBindError(f"bind failed: {conn.result}")
        except LDAPException as exc:
            self._close(conn)
            raise ProviderError(f"bind with {self.bind_dn!r}: {exc}") from exc

        logger.debug("ldap: dialled %s:%d (tls=%s, starttls=%s)", host, port, ldaps, self.tls)
        return conn

    def _bind(self, conn: Connection, user: str, password: str) -> None:
        if not conn.rebind(user=user, password=password, read_server_info=False):
            raise LDAPBindError(f"bind as {user!r} failed: {conn.result}")

    def _search(self, conn: Connection, search_filter: str) -> list[str]:
        conn.search(
            search_base=self.base_dn,
            search_filter=search_filter,
            search_scope=SUBTREE,
            dereference_aliases=DEREF_NEVER,
            attributes=NO_ATTRIBUTES,
            time_limit=int(self.timeout),
        )
        return [entry["dn"] for entry in conn.response or () if entry.get("type") == "searchResEntry"]

    @staticmethod
    def _close(conn: Connection) -> None:
        try:
            conn.unbind()
        except LDAPException as exc:
            logger.debug("ldap: error closing connection: %s", exc)


def _invalid_credentials(conn: Connection, exc: LDAPException) -> bool:
    if isinstance(exc, LDAPInvalidCredentialsResult):
        return True
    result = getattr(conn, "result", None) or {}
    return result.get("result") == RESULT_INVALID_CREDENTIALS


# Verify protocol compliance at import time
assert isinstance(LDAPBackend(), Authenticator)
