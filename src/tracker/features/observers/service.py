from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Any

from tracker.core.clock import PageClock, elapsed_seconds
from tracker.features.events.schema import EventKind
from tracker.features.identity.types import Session
from tracker.features.page.service import Page

TrackFn = Callable[[str, dict[str, Any]], Any]


class ScrollTracker:
    """
    Emits scroll_depth once per threshold per page load.

    Scroll signals are coalesced to one depth check per animation frame;
    the check reads the scroll position current at frame time.
    """

    def __init__(self, *, page: Page, track: TrackFn, thresholds: Iterable[int]) -> None:
        self.page = page
        self.track = track
        self.thresholds = tuple(sorted(int(t) for t in thresholds))
        self.reached: set[int] = set()
        self._ticking = False

    def register(self) -> None:
        self.page.add_listener("scroll", self._on_scroll)

    def _on_scroll(self) -> None:
        if self._ticking:
            return
        self._ticking = True
        self.page.request_animation_frame(self._on_frame)

    def _on_frame(self) -> None:
        self._ticking = False
        self.check_scroll_depth()

    def check_scroll_depth(self) -> list[int]:
        scrollable = self.page.max_scroll
        if scrollable <= 0:
            return []

        percent = math.floor(float(self.page.scroll_top) * 100 / scrollable + 0.5)

        emitted: list[int] = []
        for threshold in self.thresholds:
            if percent >= threshold and threshold not in self.reached:
                self.reached.add(threshold)
                self.track(EventKind.SCROLL_DEPTH.value, {"depth": threshold})
                emitted.append(threshold)
        return emitted


class VisibilityTracker:
    """
    Hidden: remember when, flush right away (mobile may freeze timers).
    Visible again: tab_return with away_seconds, only if away > min_away_s.
    """

    def __init__(
        self,
        *,
        page: Page,
        clock: PageClock,
        track: TrackFn,
        flush: Callable[..., Any],
        min_away_s: int = 5,
    ) -> None:
        self.page = page
        self.clock = clock
        self.track = track
        self.flush = flush
        self.min_away_s = int(min_away_s)
        self.hidden_at_ms: int | None = None

    def register(self) -> None:
        self.page.add_listener("visibilitychange", self._on_visibility_change)

    def _on_visibility_change(self) -> None:
        if self.page.hidden:
            self.hidden_at_ms = self.clock.now_ms()
            self.flush(reason="hidden")
            return

        if self.hidden_at_ms is None:
            return

        away_s = elapsed_seconds(self.hidden_at_ms, self.clock.now_ms())
        if away_s > self.min_away_s:
            self.track(EventKind.TAB_RETURN.value, {"away_seconds": away_s})
        self.hidden_at_ms = None


class ExitTracker:
    def __init__(
        self,
        *,
        page: Page,
        clock: PageClock,
        current_session: Callable[[], Session | None],
        flush_reliable: Callable[[int], Any],
    ) -> None:
        self.page = page
        self.clock = clock
        self.current_session = current_session
        self.flush_reliable = flush_reliable

    def register(self) -> None:
        self.page.add_listener("beforeunload", self._on_before_unload)

    def _on_before_unload(self) -> None:
        session = self.current_session()
        duration_s = 0 if session is None else session.duration_seconds(self.clock.now_ms())
        self.flush_reliable(duration_s)
