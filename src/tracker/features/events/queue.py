from __future__ import annotations

from collections.abc import Iterable

from .schema import Event


class EventQueue:
    """
    In-memory FIFO of pending events.

    drain() swaps the buffer out in one step, so a delivery in flight owns its
    snapshot while new events keep landing in a fresh buffer. requeue_front()
    puts a failed batch back ahead of anything enqueued since the drain.

    No de-duplication and no size cap.
    """

    def __init__(self) -> None:
        self._buf: list[Event] = []

    def enqueue(self, event: Event) -> None:
        self._buf.append(event)

    def drain(self) -> list[Event]:
        drained, self._buf = self._buf, []
        return drained

    def requeue_front(self, events: Iterable[Event]) -> None:
        self._buf[:0] = list(events)

    def snapshot(self) -> list[Event]:
        return list(self._buf)

    def __len__(self) -> int:
        return len(self._buf)
