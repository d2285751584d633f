"""Start and stop record/playback sessions on the proxy.

The proxy exposes two control endpoints per mode::

    POST /<mode>/start   body {"x-recording-file": <path>} -> header x-recording-id
    POST /<mode>/stop    headers x-recording-id, x-recording-save

Certificate verification is disabled on the controller's own client only
(the proxy usually serves a self-signed development certificate); the
transports that carry application traffic are not affected.

A record session that is never stopped is never saved: the proxy discards
the capture unless ``stop`` is called with ``save=True``.
"""

from __future__ import annotations

import logging

import httpx

from .config import ProxySessionConfig, SessionState, StartRecordingBody
from .errors import ProxyProtocolError, ProxyUnavailable, SessionStateError
from .transport import RECORDING_ID_HEADER

logger = logging.getLogger(__name__)

RECORDING_SAVE_HEADER = "x-recording-save"


# ---------------------------------------------------------------------------
# Protocol helpers shared by the sync and async controllers
# ---------------------------------------------------------------------------


def _ensure_unstarted(config: ProxySessionConfig) -> None:
    if config.state is not SessionState.UNSTARTED:
        raise SessionStateError(f"session already {config.state.value}")


def _ensure_started(config: ProxySessionConfig) -> None:
    if config.state is not SessionState.STARTED:
        raise SessionStateError(
            f"cannot stop a {config.state.value} session; call start first"
        )


def _start_body(config: ProxySessionConfig) -> dict:
    return StartRecordingBody(recording_file=config.recording_file_path).model_dump(
        by_alias=True
    )


def _stop_headers(config: ProxySessionConfig, save: bool) -> dict[str, str]:
    return {
        RECORDING_ID_HEADER: config.recording_id,
        RECORDING_SAVE_HEADER: "true" if save else "false",
    }


def _unavailable(url: str, exc: httpx.TransportError) -> ProxyUnavailable:
    logger.error(f"Proxy unreachable at {url}: {exc}")
    return ProxyUnavailable(f"could not reach proxy at {url}: {exc}")


def _raise_for_status(response: httpx.Response, url: str) -> None:
    if response.is_success:
        return
    logger.error(f"Proxy returned {response.status_code} for {url}")
    raise ProxyProtocolError(
        f"proxy returned {response.status_code} for {url}",
        status_code=response.status_code,
    )


def _recording_id_from(response: httpx.Response, url: str) -> str:
    _raise_for_status(response, url)
    recording_id = response.headers.get(RECORDING_ID_HEADER)
    if not recording_id:
        logger.error(f"Proxy response from {url} has no {RECORDING_ID_HEADER} header")
        raise ProxyProtocolError(
            f"proxy response from {url} is missing the {RECORDING_ID_HEADER} header",
            status_code=response.status_code,
        )
    return recording_id


# ---------------------------------------------------------------------------
# Controllers
# ---------------------------------------------------------------------------


class ProxyLifecycleController:
    """Blocking start/stop client for the proxy's control channel.

    ``timeout`` is handed to httpx unchanged; the default ``None`` imposes no
    timeout. ``transport`` replaces the network transport (tests, custom
    networking).
    """

    def __init__(
        self,
        *,
        timeout: float | httpx.Timeout | None = None,
        verify: bool = False,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(verify=verify, timeout=timeout, transport=transport)

    def start(self, config: ProxySessionConfig) -> str:
        """Open a session and return the recording id issued by the proxy."""

        _ensure_unstarted(config)
        url = config.control_url("start")
        try:
            response = self._client.post(url, json=_start_body(config))
        except httpx.TransportError as exc:
            raise _unavailable(url, exc) from exc

        recording_id = _recording_id_from(response, url)
        config.bind_recording(recording_id)
        logger.info(
            f"Started {config.mode.value} session {recording_id} "
            f"for {config.recording_file_path}"
        )
        return recording_id

    def stop(self, config: ProxySessionConfig, *, save: bool = True) -> None:
        """Close the session, asking the proxy to persist it when ``save``.

        Must be called exactly once after every record session, otherwise the
        capture is lost. Failures are raised; nothing is retried.
        """

        _ensure_started(config)
        url = config.control_url("stop")
        try:
            response = self._client.post(url, headers=_stop_headers(config, save))
        except httpx.TransportError as exc:
            raise _unavailable(url, exc) from exc

        _raise_for_status(response, url)
        config.mark_stopped()
        logger.info(
            f"Stopped {config.mode.value} session {config.recording_id} (save={save})"
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ProxyLifecycleController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AsyncProxyLifecycleController:
    """``asyncio`` flavour of :class:`ProxyLifecycleController`."""

    def __init__(
        self,
        *,
        timeout: float | httpx.Timeout | None = None,
        verify: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            verify=verify, timeout=timeout, transport=transport
        )

    async def start(self, config: ProxySessionConfig) -> str:
        _ensure_unstarted(config)
        url = config.control_url("start")
        try:
            response = await self._client.post(url, json=_start_body(config))
        except httpx.TransportError as exc:
            raise _unavailable(url, exc) from exc

        recording_id = _recording_id_from(response, url)
        config.bind_recording(recording_id)
        logger.info(
            f"Started {config.mode.value} session {recording_id} "
            f"for {config.recording_file_path}"
        )
        return recording_id

    async def stop(self, config: ProxySessionConfig, *, save: bool = True) -> None:
        _ensure_started(config)
        url = config.control_url("stop")
        try:
            response = await self._client.post(
                url, headers=_stop_headers(config, save)
            )
        except httpx.TransportError as exc:
            raise _unavailable(url, exc) from exc

        _raise_for_status(response, url)
        config.mark_stopped()
        logger.info(
            f"Stopped {config.mode.value} session {config.recording_id} (save={save})"
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncProxyLifecycleController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
