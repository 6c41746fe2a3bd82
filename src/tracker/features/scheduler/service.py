from __future__ import annotations

from collections.abc import Callable
from typing import Any

import simpy


class FlushScheduler:
    """
    Repeating timer that calls `flush(reason="timer")` every `interval_s`
    for as long as `is_active()` holds (the page's lifetime).

    No back-pressure: a tick fires even if the previous delivery is still in
    flight; each flush owns its own drained snapshot.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        interval_s: float,
        flush: Callable[..., Any],
        is_active: Callable[[], bool] | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.env = env
        self.interval_s = float(interval_s)
        self.flush = flush
        self.is_active = is_active or (lambda: True)

        self.ticks = 0
        self._started = False

    def start(self) -> None:
        """
        Start the timer process. Call once per page load; later calls are no-ops.
        """
        if self._started:
            return
        self._started = True
        self.env.process(self._run())

    def _run(self):
        while True:
            yield self.env.timeout(self.interval_s)
            if not self.is_active():
                return
            self.ticks += 1
            self.flush(reason="timer")
