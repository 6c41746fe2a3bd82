from __future__ import annotations

STORAGE_TABLE_NAME = "profile_storage"

STORAGE_DDL = f"""
CREATE TABLE IF NOT EXISTS {STORAGE_TABLE_NAME} (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def create_schema(conn) -> None:
    """
    Create the key-value table. No migrations; absent keys mean "never set".
    """
    conn.execute(STORAGE_DDL)
