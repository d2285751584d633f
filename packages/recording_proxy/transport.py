"""Transports that reroute application traffic through the recording proxy.

Each transport wraps another transport of the same kind and rewrites every
outgoing request before delegating to it:

* the URL keeps its scheme, path and query but points at the proxy host/port;
* ``x-recording-upstream-base-uri`` carries the original destination so the
  proxy can forward (record) or look it up (playback);
* ``x-recording-id`` and ``x-recording-mode`` tie the request to a session.

Responses and errors from the wrapped transport are passed back untouched.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit

import httpx
from requests.adapters import BaseAdapter, HTTPAdapter

from .config import ProxySessionConfig, RedirectTarget
from .emitter import DEFAULT_EMITTER, RedirectRecord, RequestEmitter
from .errors import SessionStateError

RECORDING_ID_HEADER = "x-recording-id"
RECORDING_MODE_HEADER = "x-recording-mode"
UPSTREAM_BASE_URI_HEADER = "x-recording-upstream-base-uri"
RECORDING_CONTENT_TYPE = "application/json;charset=utf-8"


@runtime_checkable
class Transport(Protocol):
    """Minimal sending capability: one request in, one response out."""

    def send(self, request: Any) -> Any:  # pragma: no cover - interface
        ...


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def _strip_userinfo(netloc: str) -> str:
    return netloc.rsplit("@", 1)[-1]


def _format_host(host: str) -> str:
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def upstream_base_uri(url: str) -> str:
    """Return ``url`` without its final path segment, query or fragment.

    ``https://storage.example.com/table1/entity1`` becomes
    ``https://storage.example.com/table1``; a URL without a path collapses to
    ``scheme://host``.
    """

    parts = urlsplit(str(url))
    head = parts.path.rsplit("/", 1)[0] if "/" in parts.path else ""
    return f"{parts.scheme}://{_strip_userinfo(parts.netloc)}{head}"


def proxied_url(url: str, host: str, port: Optional[int]) -> str:
    """Point ``url`` at ``host:port``. A falsy port leaves the scheme default."""

    parts = urlsplit(str(url))
    netloc = _format_host(host)
    if port:
        netloc = f"{netloc}:{port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


# ---------------------------------------------------------------------------
# Request rewriting
# ---------------------------------------------------------------------------


def redirect(request, target: RedirectTarget):
    """Rewrite ``request`` in place so it is sent to the proxy.

    Works with any request exposing a mutable ``url`` and ``headers`` mapping
    (``httpx.Request``, ``requests.PreparedRequest``). Headers are overwritten,
    never appended, so applying the same target twice yields the same
    recording headers.
    """

    if not target.recording_id:
        raise SessionStateError(
            "no recording id; start the proxy session before sending requests"
        )

    original = str(request.url)
    rewritten = proxied_url(original, target.host, target.port)

    headers = request.headers
    headers[RECORDING_ID_HEADER] = target.recording_id
    headers[RECORDING_MODE_HEADER] = target.mode.value
    headers[UPSTREAM_BASE_URI_HEADER] = upstream_base_uri(original)
    headers["Content-Type"] = RECORDING_CONTENT_TYPE
    if "host" in headers:
        headers["Host"] = urlsplit(rewritten).netloc

    request.url = type(request.url)(rewritten)
    return request


def _intercept(request, target: RedirectTarget, emitter: RequestEmitter) -> None:
    original = str(request.url)
    redirect(request, target)
    emitter.emit(
        RedirectRecord(
            method=request.method,
            original_url=original,
            proxied_url=str(request.url),
            upstream_base_uri=request.headers[UPSTREAM_BASE_URI_HEADER],
            recording_id=target.recording_id,
            mode=target.mode.value,
        )
    )


# ---------------------------------------------------------------------------
# httpx
# ---------------------------------------------------------------------------


class InterceptingTransport(httpx.BaseTransport):
    """``httpx`` transport that reroutes requests through the proxy.

    The session fields are captured when the transport is built, so build it
    after the session has been started::

        controller.start(config)
        client = httpx.Client(transport=InterceptingTransport(config))
    """

    def __init__(
        self,
        config: ProxySessionConfig,
        inner: httpx.BaseTransport | None = None,
        *,
        emitter: RequestEmitter = DEFAULT_EMITTER,
    ):
        self.target = RedirectTarget.from_config(config)
        self._inner = inner if inner is not None else httpx.HTTPTransport()
        self._emitter = emitter

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        _intercept(request, self.target, self._emitter)
        return self._inner.handle_request(request)

    send = handle_request

    def close(self) -> None:
        self._inner.close()


class AsyncInterceptingTransport(httpx.AsyncBaseTransport):
    def __init__(
        self,
        config: ProxySessionConfig,
        inner: httpx.AsyncBaseTransport | None = None,
        *,
        emitter: RequestEmitter = DEFAULT_EMITTER,
    ):
        self.target = RedirectTarget.from_config(config)
        self._inner = inner if inner is not None else httpx.AsyncHTTPTransport()
        self._emitter = emitter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        _intercept(request, self.target, self._emitter)
        return await self._inner.handle_async_request(request)

    send = handle_async_request

    async def aclose(self) -> None:
        await self._inner.aclose()


# ---------------------------------------------------------------------------
# requests
# ---------------------------------------------------------------------------


class InterceptingAdapter(BaseAdapter):
    """``requests`` adapter that reroutes prepared requests through the proxy.

    Keyword arguments from ``Session.send`` (``timeout``, ``verify``, ...) are
    handed to the wrapped adapter unchanged.
    """

    def __init__(
        self,
        config: ProxySessionConfig,
        inner: BaseAdapter | None = None,
        *,
        emitter: RequestEmitter = DEFAULT_EMITTER,
    ):
        super().__init__()
        self.target = RedirectTarget.from_config(config)
        self._inner = inner if inner is not None else HTTPAdapter()
        self._emitter = emitter

    def send(self, request, **kwargs):
        _intercept(request, self.target, self._emitter)
        return self._inner.send(request, **kwargs)

    def close(self) -> None:
        self._inner.close()
