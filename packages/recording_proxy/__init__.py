"""Client-facing exports for recording_proxy.

Typical use::

    settings = ProxySettings.from_env()
    with recording_session(settings) as config:
        client = proxied_client(config) if config else httpx.Client()
        ...

Stopping the session is what makes the proxy save a recording; a record
session that is never stopped is lost.
"""

from .config import (
    ProxyMode,
    ProxySessionConfig,
    ProxySettings,
    RedirectTarget,
    SessionState,
    resolve_recording_file,
)
from .emitter import LoggingEmitter, MemoryEmitter, RedirectRecord, RequestEmitter
from .errors import ProxyError, ProxyProtocolError, ProxyUnavailable, SessionStateError
from .lifecycle import AsyncProxyLifecycleController, ProxyLifecycleController
from .session import (
    async_proxied_client,
    async_recording_session,
    proxied_client,
    proxied_session,
    recording_session,
)
from .transport import (
    AsyncInterceptingTransport,
    InterceptingAdapter,
    InterceptingTransport,
    Transport,
    proxied_url,
    redirect,
    upstream_base_uri,
)

__all__ = [
    "AsyncInterceptingTransport",
    "AsyncProxyLifecycleController",
    "InterceptingAdapter",
    "InterceptingTransport",
    "LoggingEmitter",
    "MemoryEmitter",
    "ProxyError",
    "ProxyLifecycleController",
    "ProxyMode",
    "ProxyProtocolError",
    "ProxySessionConfig",
    "ProxySettings",
    "ProxyUnavailable",
    "RedirectRecord",
    "RedirectTarget",
    "RequestEmitter",
    "SessionState",
    "SessionStateError",
    "Transport",
    "async_proxied_client",
    "async_recording_session",
    "proxied_client",
    "proxied_session",
    "proxied_url",
    "recording_session",
    "redirect",
    "resolve_recording_file",
    "upstream_base_uri",
]
