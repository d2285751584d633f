"""
Shared pytest fixtures for all tests.

Provides session configs in each lifecycle state and an in-process fake of
the record/playback proxy built on Starlette.
"""

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from recording_proxy import ProxyMode, ProxySessionConfig


@pytest.fixture
def recording_file(tmp_path):
    """A capture file on disk, as the proxy would expect it."""
    path = tmp_path / "recordings" / "tables.json"
    path.parent.mkdir()
    path.write_text("{}")
    return str(path)


@pytest.fixture
def session_config(recording_file):
    """Unstarted record session pointed at localhost:5001."""
    return ProxySessionConfig(
        host="localhost",
        port=5001,
        mode=ProxyMode.RECORD,
        recording_file_path=recording_file,
    )


@pytest.fixture
def started_config(session_config):
    """Record session already bound to recording id abc123."""
    session_config.bind_recording("abc123")
    return session_config


class FakeProxy:
    """Minimal stand-in for the record/playback proxy.

    Control calls are remembered in ``starts``/``stops``; every other request
    is echoed back as JSON so tests can inspect what reached the proxy.
    """

    def __init__(self, recording_id: str = "abc123", stop_status: int = 200):
        self.recording_id = recording_id
        self.stop_status = stop_status
        self.starts: list[dict] = []
        self.stops: list[dict] = []
        self.app = Starlette(
            routes=[
                Route("/{mode}/start", self.start, methods=["POST"]),
                Route("/{mode}/stop", self.stop, methods=["POST"]),
                Route(
                    "/{path:path}",
                    self.echo,
                    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
                ),
            ]
        )

    async def start(self, request: Request) -> Response:
        self.starts.append(
            {"mode": request.path_params["mode"], "body": await request.json()}
        )
        return Response(status_code=200, headers={"x-recording-id": self.recording_id})

    async def stop(self, request: Request) -> Response:
        self.stops.append(
            {"mode": request.path_params["mode"], "headers": dict(request.headers)}
        )
        return Response(status_code=self.stop_status)

    async def echo(self, request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "method": request.method,
                "url": str(request.url),
                "path": request.url.path,
                "query": request.url.query,
                "headers": dict(request.headers),
                "body": (await request.body()).decode(),
            }
        )


@pytest.fixture
def fake_proxy():
    return FakeProxy()


@pytest.fixture
def failing_proxy():
    """Proxy that refuses to save: every stop call answers 500."""
    return FakeProxy(stop_status=500)
