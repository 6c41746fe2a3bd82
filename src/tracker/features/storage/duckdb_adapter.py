from __future__ import annotations

import os

import duckdb

from tracker.core.logging import get_logger

from .schema import STORAGE_TABLE_NAME, create_schema


class DuckDBStorage:
    """
    Key-value profile storage backed by a DuckDB file. Owns the connection.

    Read/write failures are logged and treated as "absent" so the identity
    layer regenerates whatever it cannot read back.
    """

    def __init__(self, path: str, *, clean_slate: bool = False) -> None:
        self.path = path
        self.clean_slate = clean_slate
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._logger = get_logger(__name__)

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
            raise RuntimeError("DuckDBStorage not opened. Call open() first.")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get_item(self, key: str) -> str | None:
        if self._conn is None:
            return None
        try:
            row = self._conn.execute(
                f"SELECT value FROM {STORAGE_TABLE_NAME} WHERE key = ?",
                [key],
            ).fetchone()
        except duckdb.Error as e:
            self._logger.warning("storage read failed", extra={"error": str(e)})
            return None
        return str(row[0]) if row else None

    def set_item(self, key: str, value: str) -> None:
        if self._conn is None:
            self._logger.warning(
                "storage not opened; value not persisted", extra={"storage_key": key}
            )
            return
        try:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {STORAGE_TABLE_NAME} (key, value) VALUES (?, ?)",
                [key, str(value)],
            )
        except duckdb.Error as e:
            self._logger.warning("storage write failed", extra={"error": str(e)})

    def remove_item(self, key: str) -> None:
        if self._conn is None:
            return
        try:
            self._conn.execute(f"DELETE FROM {STORAGE_TABLE_NAME} WHERE key = ?", [key])
        except duckdb.Error as e:
            self._logger.warning("storage delete failed", extra={"error": str(e)})
