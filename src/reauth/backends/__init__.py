"""Authentication backends, keyed by their configuration tag."""

from reauth.backends.gitlabci import GitlabCIBackend
from reauth.backends.ldap import LDAPBackend
from reauth.backends.protocol import Authenticator
from reauth.backends.simple import SimpleBackend
from reauth.backends.upstream import UpstreamBackend

BACKENDS = {
    backend.name: backend
    for backend in (GitlabCIBackend, LDAPBackend, SimpleBackend, UpstreamBackend)
}

__all__ = [
    "BACKENDS",
    "Authenticator",
    "GitlabCIBackend",
    "LDAPBackend",
    "SimpleBackend",
    "UpstreamBackend",
]
