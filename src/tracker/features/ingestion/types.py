from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

SESSIONS_TABLE_NAME = "analytics_sessions"
EVENTS_TABLE_NAME = "analytics_events"


@dataclass(frozen=True)
class InsertResult:
    """
    Outcome of one insert call. Clients never raise for transport or endpoint
    errors; they report them here and the delivery policy decides what to do.
    """

    ok: bool
    num_rows: int = 0
    error: str | None = None
    duration_ms: float = 0.0

    @classmethod
    def success(cls, num_rows: int, duration_ms: float = 0.0) -> InsertResult:
        return cls(ok=True, num_rows=num_rows, duration_ms=duration_ms)

    @classmethod
    def failure(cls, error: str, duration_ms: float = 0.0) -> InsertResult:
        return cls(ok=False, num_rows=0, error=error, duration_ms=duration_ms)


class IngestionClient(Protocol):
    """
    Insert-only ingestion endpoint.
    keepalive=True marks a teardown request that must outlive the page.
    """

    def insert_session(self, record: Mapping[str, Any]) -> InsertResult: ...

    def insert_events(
        self, rows: Sequence[Mapping[str, Any]], *, keepalive: bool = False
    ) -> InsertResult: ...
