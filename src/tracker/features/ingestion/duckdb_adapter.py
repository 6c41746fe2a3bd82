from __future__ import annotations

import os
import time
from collections.abc import Mapping, Sequence
from typing import Any

import duckdb

from tracker.features.events.schema import json_dumps

from .schema import EVENT_COLUMNS, SESSION_COLUMNS, create_schema
from .types import EVENTS_TABLE_NAME, SESSIONS_TABLE_NAME, InsertResult


class DuckDBIngestionAdapter:
    """
    Insert-only ingestion store on DuckDB. Owns the connection and schema.
    """

    def __init__(self, path: str, *, clean_slate: bool = False) -> None:
        self.path = path
        self.clean_slate = clean_slate
        self._conn: duckdb.DuckDBPyConnection | None = None

    def open(self) -> None:
        if self.clean_slate and os.path.exists(self.path):
            os.remove(self.path)

        # Ensure parent dir exists
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self._conn = duckdb.connect(self.path)
        create_schema(self._conn)

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise RuntimeError("DuckDBIngestionAdapter not opened. Call open() first.")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def insert_session(self, record: Mapping[str, Any]) -> InsertResult:
        row = tuple(record.get(col) for col in SESSION_COLUMNS)
        return self._insert(SESSIONS_TABLE_NAME, SESSION_COLUMNS, [row])

    def insert_events(
        self, rows: Sequence[Mapping[str, Any]], *, keepalive: bool = False
    ) -> InsertResult:
        # keepalive has no meaning for a local store: the write is synchronous.
        tuples = [self._event_to_row(r) for r in rows]
        return self._insert(EVENTS_TABLE_NAME, EVENT_COLUMNS, tuples)

    def count_events(self, session_id: str | None = None, event_type: str | None = None) -> int:
        """
        Convenience method for sanity checks/tests.
        """
        where: list[str] = []
        params: list[Any] = []
        if session_id is not None:
            where.append("session_id = ?")
            params.append(session_id)
        if event_type is not None:
            where.append("event_type = ?")
            params.append(event_type)
        clause = f" WHERE {' AND '.join(where)}" if where else ""
        res = self.conn.execute(
            f"SELECT COUNT(*) FROM {EVENTS_TABLE_NAME}{clause}", params
        ).fetchone()
        return int(res[0]) if res else 0

    def count_sessions(self, visitor_id: str | None = None) -> int:
        if visitor_id is None:
            res = self.conn.execute(f"SELECT COUNT(*) FROM {SESSIONS_TABLE_NAME}").fetchone()
        else:
            res = self.conn.execute(
                f"SELECT COUNT(*) FROM {SESSIONS_TABLE_NAME} WHERE visitor_id = ?",
                [visitor_id],
            ).fetchone()
        return int(res[0]) if res else 0

    def _insert(
        self, table: str, columns: Sequence[str], rows: Sequence[tuple]
    ) -> InsertResult:
        if not rows:
            return InsertResult.success(num_rows=0)
        if self._conn is None:
            return InsertResult.failure("ingestion store not opened")

        t0 = time.perf_counter()
        placeholders = ", ".join("?" for _ in columns)
        try:
            self._conn.executemany(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                rows,
            )
        except duckdb.Error as e:
            return InsertResult.failure(str(e), duration_ms=(time.perf_counter() - t0) * 1000.0)

        dt_ms = (time.perf_counter() - t0) * 1000.0
        return InsertResult.success(num_rows=len(rows), duration_ms=dt_ms)

    @staticmethod
    def _event_to_row(r: Mapping[str, Any]) -> tuple:
        data = r.get("event_data")
        return (
            r.get("session_id"),
            r.get("visitor_id"),
            r.get("event_type"),
            json_dumps(dict(data)) if data is not None else None,
            r.get("page_url"),
            r.get("page_title"),
            r.get("created_at"),
        )
