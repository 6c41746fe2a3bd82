from __future__ import annotations

from dataclasses import dataclass

from tracker.core.clock import elapsed_seconds

# Storage keys (namespaced with a configurable prefix at runtime)
VISITOR_ID_KEY = "visitor_id"
LAST_ACTIVITY_KEY = "last_activity"
SESSION_ID_KEY = "session_id"
SESSION_START_KEY = "session_start"
RETURNING_VISITOR_KEY = "returning_visitor"


@dataclass(frozen=True, slots=True)
class VisitorIdentity:
    id: str


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    started_at_ms: int

    def duration_seconds(self, now_ms: int) -> int:
        return elapsed_seconds(self.started_at_ms, now_ms)
