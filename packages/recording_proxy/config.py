"""Session configuration for the record/playback proxy.

``ProxySessionConfig`` is the per-session state shared by the lifecycle
controller and every transport built for that session. ``ProxySettings`` is
the environment-facing surface used by applications to decide whether the
proxy is in play at all.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import SessionStateError

DEFAULT_PROXY_HOST = "localhost"
DEFAULT_PROXY_PORT = 5001

_TRUTHY = {"1", "true", "yes", "on"}


class ProxyMode(str, Enum):
    RECORD = "record"
    PLAYBACK = "playback"


class SessionState(str, Enum):
    UNSTARTED = "unstarted"
    STARTED = "started"
    STOPPED = "stopped"


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


@dataclass
class ProxySessionConfig:
    """Location, mode and recording identity of one proxy session."""

    host: str
    port: Optional[int]
    mode: ProxyMode
    recording_file_path: str
    scheme: str = "https"
    recording_id: str = ""
    state: SessionState = SessionState.UNSTARTED

    def __post_init__(self) -> None:
        self.mode = ProxyMode(self.mode)

    @property
    def started(self) -> bool:
        return self.state is SessionState.STARTED

    def bind_recording(self, recording_id: str) -> None:
        """Store the id issued by the proxy. Only valid once, before start."""

        if self.state is not SessionState.UNSTARTED:
            raise SessionStateError(
                f"session already {self.state.value}; recording id is immutable"
            )
        if not recording_id:
            raise SessionStateError("recording id must be non-empty")
        self.recording_id = recording_id
        self.state = SessionState.STARTED

    def mark_stopped(self) -> None:
        if self.state is not SessionState.STARTED:
            raise SessionStateError(f"cannot stop a {self.state.value} session")
        self.state = SessionState.STOPPED

    def proxy_netloc(self) -> str:
        if self.port:
            return f"{self.host}:{self.port}"
        return self.host

    def control_url(self, action: str) -> str:
        """Return the control endpoint URL, e.g. ``https://localhost:5001/record/start``."""

        return f"{self.scheme}://{self.proxy_netloc()}/{self.mode.value}/{action}"


@dataclass(frozen=True)
class RedirectTarget:
    """The four session fields a transport needs to reroute a request."""

    host: str
    port: Optional[int]
    mode: ProxyMode
    recording_id: str

    @classmethod
    def from_config(cls, config: ProxySessionConfig) -> "RedirectTarget":
        return cls(
            host=config.host,
            port=config.port,
            mode=config.mode,
            recording_id=config.recording_id,
        )


# ---------------------------------------------------------------------------
# Control channel payloads
# ---------------------------------------------------------------------------


class StartRecordingBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recording_file: str = Field(alias="x-recording-file")


# ---------------------------------------------------------------------------
# Environment surface
# ---------------------------------------------------------------------------


def resolve_recording_file(
    recording_file: str | None = None, recordings_dir: str | None = None
) -> str:
    """Pick the capture file for a session.

    An explicit path always wins. Otherwise ``recordings_dir`` must contain
    exactly one regular file.
    """

    if recording_file:
        return str(Path(recording_file))
    if not recordings_dir:
        raise ValueError(
            "Recording file required. Set PROXY_RECORDING_FILE or PROXY_RECORDINGS_DIR"
        )

    directory = Path(recordings_dir)
    if not directory.is_dir():
        raise ValueError(f"recordings directory '{directory}' does not exist")
    candidates = sorted(p for p in directory.iterdir() if p.is_file())
    if len(candidates) != 1:
        raise ValueError(
            f"recordings directory '{directory}' must contain exactly one file, "
            f"found {len(candidates)}"
        )
    return str(candidates[0])


class ProxySettings(BaseModel):
    enabled: bool = False
    host: str = DEFAULT_PROXY_HOST
    port: Optional[int] = DEFAULT_PROXY_PORT
    mode: ProxyMode = ProxyMode.RECORD
    recording_file: Optional[str] = None
    recordings_dir: Optional[str] = None

    @field_validator("port", mode="before")
    @classmethod
    def _parse_port(cls, value):
        if value in (None, ""):
            return None
        port = int(value)
        if port < 0 or port > 65535:
            raise ValueError("port must be between 0 and 65535")
        return port or None

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_env(
        cls, environ: dict[str, str] | None = None, *, dotenv_path: str | None = None
    ) -> "ProxySettings":
        """Build settings from ``USE_PROXY``/``PROXY_*`` variables."""

        if environ is None:
            load_dotenv(dotenv_path)
            environ = dict(os.environ)

        return cls(
            enabled=environ.get("USE_PROXY", "").strip().lower() in _TRUTHY,
            host=environ.get("PROXY_HOST") or DEFAULT_PROXY_HOST,
            port=environ.get("PROXY_PORT", DEFAULT_PROXY_PORT),
            mode=environ.get("PROXY_MODE") or ProxyMode.RECORD,
            recording_file=environ.get("PROXY_RECORDING_FILE") or None,
            recordings_dir=environ.get("PROXY_RECORDINGS_DIR") or None,
        )

    def session_config(self) -> ProxySessionConfig:
        return ProxySessionConfig(
            host=self.host,
            port=self.port,
            mode=self.mode,
            recording_file_path=resolve_recording_file(
                self.recording_file, self.recordings_dir
            ),
        )
