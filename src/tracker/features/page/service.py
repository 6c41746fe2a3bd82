from __future__ import annotations

from collections.abc import Callable
from typing import Any

import simpy

from tracker.core.types import PageContext

# One animation frame at 60 Hz
FRAME_SECONDS = 1.0 / 60.0

SIGNALS = ("scroll", "visibilitychange", "beforeunload")

Listener = Callable[[], Any]


class Page:
    """
    A loaded document on a simpy environment: the source of browser signals.

    Drivers (tests, the CLI script runner) call scroll_to/hide/show/unload;
    observers register listeners and read the live state back
    (scroll_top, hidden, max_scroll).
    """

    def __init__(self, env: simpy.Environment, context: PageContext) -> None:
        self.env = env
        self.context = context

        self.scroll_top: float = 0.0
        self.hidden: bool = False
        self.closed: bool = False

        self._listeners: dict[str, list[Listener]] = {name: [] for name in SIGNALS}

    @property
    def max_scroll(self) -> int:
        return int(self.context.document_height) - int(self.context.viewport_height)

    def add_listener(self, signal: str, listener: Listener) -> None:
        if signal not in self._listeners:
            raise ValueError(f"Unsupported signal={signal!r}. Allowed={list(SIGNALS)}")
        self._listeners[signal].append(listener)

    def request_animation_frame(self, callback: Listener) -> simpy.Process:
        return self.env.process(self._frame(callback))

    # ----------------------------
    # Drivers
    # ----------------------------
    def scroll_to(self, scroll_top: float) -> None:
        if self.closed:
            return
        self.scroll_top = max(0.0, float(scroll_top))
        self._dispatch("scroll")

    def hide(self) -> None:
        if self.closed or self.hidden:
            return
        self.hidden = True
        self._dispatch("visibilitychange")

    def show(self) -> None:
        if self.closed or not self.hidden:
            return
        self.hidden = False
        self._dispatch("visibilitychange")

    def unload(self) -> None:
        """
        Fires beforeunload once, then tears the page down.
        """
        if self.closed:
            return
        self._dispatch("beforeunload")
        self.closed = True

    def _dispatch(self, signal: str) -> None:
        for listener in list(self._listeners[signal]):
            listener()

    def _frame(self, callback: Listener):
        yield self.env.timeout(FRAME_SECONDS)
        if not self.closed:
            callback()
