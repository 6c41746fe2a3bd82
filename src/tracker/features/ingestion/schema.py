from __future__ import annotations

from .types import EVENTS_TABLE_NAME, SESSIONS_TABLE_NAME

SESSIONS_DDL = f"""
CREATE TABLE IF NOT EXISTS {SESSIONS_TABLE_NAME} (
    id TEXT NOT NULL,
    visitor_id TEXT NOT NULL,

    referrer TEXT,
    utm_source TEXT,
    utm_medium TEXT,
    utm_campaign TEXT,

    device_type TEXT,
    screen_width INTEGER,
    screen_height INTEGER,
    user_agent TEXT
);
"""

EVENTS_DDL = f"""
CREATE TABLE IF NOT EXISTS {EVENTS_TABLE_NAME} (
    session_id TEXT NOT NULL,
    visitor_id TEXT NOT NULL,

    event_type TEXT NOT NULL,
    event_data TEXT,

    page_url TEXT,
    page_title TEXT,

    created_at TEXT NOT NULL  -- ISO-8601 UTC, client-assigned
);
"""

EVENTS_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_events_session_id ON {EVENTS_TABLE_NAME}(session_id);",
    f"CREATE INDEX IF NOT EXISTS idx_events_event_type ON {EVENTS_TABLE_NAME}(event_type);",
]

SESSION_COLUMNS = (
    "id",
    "visitor_id",
    "referrer",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "device_type",
    "screen_width",
    "screen_height",
    "user_agent",
)

EVENT_COLUMNS = (
    "session_id",
    "visitor_id",
    "event_type",
    "event_data",
    "page_url",
    "page_title",
    "created_at",
)


def create_schema(conn) -> None:
    """
    Create tables/indexes. No migrations. Safe to call per page load.
    """
    conn.execute(SESSIONS_DDL)
    conn.execute(EVENTS_DDL)
    for ddl in EVENTS_INDEXES:
        conn.execute(ddl)
