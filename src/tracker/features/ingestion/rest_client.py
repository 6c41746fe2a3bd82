from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

import requests

from .types import EVENTS_TABLE_NAME, SESSIONS_TABLE_NAME, InsertResult

# Teardown requests must return quickly; the page is going away.
KEEPALIVE_TIMEOUT_SECONDS = 2.0


class RestIngestionClient:
    """
    PostgREST-style HTTP ingestion endpoint:
      POST {base_url}/rest/v1/analytics_sessions
      POST {base_url}/rest/v1/analytics_events   (JSON array)
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def insert_session(self, record: Mapping[str, Any]) -> InsertResult:
        return self._post(SESSIONS_TABLE_NAME, dict(record), num_rows=1, timeout=self.timeout)

    def insert_events(
        self, rows: Sequence[Mapping[str, Any]], *, keepalive: bool = False
    ) -> InsertResult:
        if not rows:
            return InsertResult.success(num_rows=0)
        timeout = min(self.timeout, KEEPALIVE_TIMEOUT_SECONDS) if keepalive else self.timeout
        return self._post(
            EVENTS_TABLE_NAME, [dict(r) for r in rows], num_rows=len(rows), timeout=timeout
        )

    def _post(self, table: str, payload: Any, *, num_rows: int, timeout: float) -> InsertResult:
        t0 = time.perf_counter()
        try:
            response = self.session.post(
                self._table_url(table),
                headers=self._headers(),
                json=payload,
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            return InsertResult.failure(
                f"{type(exc).__name__}: {exc}", duration_ms=(time.perf_counter() - t0) * 1000.0
            )
        return InsertResult.success(
            num_rows=num_rows, duration_ms=(time.perf_counter() - t0) * 1000.0
        )
