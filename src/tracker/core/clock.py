from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

import simpy


class PageClock:
    """
    Wall clock for a page running on a simpy environment.
    env.now is seconds since page load; start_dt anchors it to UTC.
    """

    def __init__(self, env: simpy.Environment, start_dt: datetime) -> None:
        self.env = env
        self.start_dt = start_dt if start_dt.tzinfo is not None else start_dt.replace(tzinfo=UTC)

    def now(self) -> datetime:
        return self.start_dt + timedelta(seconds=float(self.env.now))

    def now_ms(self) -> int:
        return int(round(self.now().timestamp() * 1000))

    def now_iso(self) -> str:
        return self.now().isoformat()


def elapsed_seconds(start_ms: int, end_ms: int) -> int:
    """Whole seconds between two epoch-ms stamps, halves rounded up."""
    return math.floor((end_ms - start_ms) / 1000 + 0.5)
