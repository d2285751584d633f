"""User-facing helpers wiring a proxy session into HTTP clients."""

from __future__ import annotations

from contextlib import AsyncExitStack, ExitStack, asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator, Optional

import httpx
import requests

from .config import ProxySessionConfig, ProxySettings
from .emitter import DEFAULT_EMITTER, RequestEmitter
from .lifecycle import AsyncProxyLifecycleController, ProxyLifecycleController
from .transport import (
    AsyncInterceptingTransport,
    InterceptingAdapter,
    InterceptingTransport,
)


def proxied_client(
    config: ProxySessionConfig,
    *,
    inner: httpx.BaseTransport | None = None,
    emitter: RequestEmitter = DEFAULT_EMITTER,
    **client_kwargs: Any,
) -> httpx.Client:
    """Return an ``httpx.Client`` whose requests go through the proxy."""

    transport = InterceptingTransport(config, inner, emitter=emitter)
    return httpx.Client(transport=transport, **client_kwargs)


def async_proxied_client(
    config: ProxySessionConfig,
    *,
    inner: httpx.AsyncBaseTransport | None = None,
    emitter: RequestEmitter = DEFAULT_EMITTER,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    transport = AsyncInterceptingTransport(config, inner, emitter=emitter)
    return httpx.AsyncClient(transport=transport, **client_kwargs)


def proxied_session(
    config: ProxySessionConfig,
    *,
    inner: requests.adapters.BaseAdapter | None = None,
    emitter: RequestEmitter = DEFAULT_EMITTER,
) -> requests.Session:
    """Return a ``requests.Session`` with the proxy adapter mounted for http(s)."""

    session = requests.Session()
    adapter = InterceptingAdapter(config, inner, emitter=emitter)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


@contextmanager
def recording_session(
    settings: ProxySettings,
    *,
    controller: Optional[ProxyLifecycleController] = None,
    save: bool = True,
) -> Iterator[Optional[ProxySessionConfig]]:
    """Run the managed block inside a started proxy session.

    Yields ``None`` without touching the network when ``settings.enabled`` is
    false, so callers keep their default transport. Otherwise the session is
    stopped on exit even if the block raised; a failed stop is raised.
    """

    if not settings.enabled:
        yield None
        return

    config = settings.session_config()
    with ExitStack() as stack:
        if controller is None:
            controller = stack.enter_context(ProxyLifecycleController())
        controller.start(config)
        try:
            yield config
        finally:
            controller.stop(config, save=save)


@asynccontextmanager
async def async_recording_session(
    settings: ProxySettings,
    *,
    controller: Optional[AsyncProxyLifecycleController] = None,
    save: bool = True,
) -> AsyncIterator[Optional[ProxySessionConfig]]:
    if not settings.enabled:
        yield None
        return

    config = settings.session_config()
    async with AsyncExitStack() as stack:
        if controller is None:
            controller = await stack.enter_async_context(
                AsyncProxyLifecycleController()
            )
        await controller.start(config)
        try:
            yield config
        finally:
            await controller.stop(config, save=save)
