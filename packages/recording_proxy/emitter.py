"""Observers notified of every request rerouted to the proxy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol

logger = logging.getLogger(__name__)


@dataclass
class RedirectRecord:
    method: str
    original_url: str
    proxied_url: str
    upstream_base_uri: str
    recording_id: str
    mode: str


class RequestEmitter(Protocol):
    def emit(self, record: RedirectRecord) -> None:  # pragma: no cover - interface
        ...


class NoopEmitter:
    def emit(self, record: RedirectRecord) -> None:  # pragma: no cover
        return None


class LoggingEmitter:
    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def emit(self, record: RedirectRecord) -> None:
        logger.log(
            self.level,
            f"{record.method} {record.original_url} -> {record.proxied_url} "
            f"[{record.mode} {record.recording_id}]",
        )


@dataclass
class MemoryEmitter:
    records: List[RedirectRecord] = field(default_factory=list)

    def emit(self, record: RedirectRecord) -> None:
        self.records.append(record)


DEFAULT_EMITTER: RequestEmitter = NoopEmitter()
