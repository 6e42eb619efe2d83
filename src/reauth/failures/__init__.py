"""Failure modes, keyed by their configuration tag."""

from reauth.failures.basic import BasicFailure
from reauth.failures.protocol import FailureHandler
from reauth.failures.redirect import RedirectFailure
from reauth.failures.status import StatusFailure

FAILURES = {failure.name: failure for failure in (BasicFailure, RedirectFailure, StatusFailure)}

__all__ = ["FAILURES", "BasicFailure", "FailureHandler", "RedirectFailure", "StatusFailure"]
