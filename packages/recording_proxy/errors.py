"""Exceptions raised by recording_proxy."""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for every error raised by the shim."""


class ProxyUnavailable(ProxyError):
    """The proxy could not be reached (connection refused, DNS, TLS)."""


class ProxyProtocolError(ProxyError):
    """The proxy answered, but not with what the control protocol expects."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SessionStateError(ProxyError):
    """A session method was called in the wrong lifecycle state."""
