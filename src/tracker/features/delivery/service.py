from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import simpy

from tracker.core.logging import get_logger
from tracker.features.events.queue import EventQueue
from tracker.features.events.schema import Event, EventKind
from tracker.features.ingestion.types import IngestionClient, InsertResult

EventFactory = Callable[[str, dict[str, Any]], Event]


class DeliveryChannel:
    """
    Moves queued events to the ingestion endpoint.

    Normal path (flush):
      - drain the queue synchronously, then deliver the snapshot in its own
        simpy process after `latency_s` of simulated network time
      - success: batch is dropped
      - failure: whole batch goes back to the front of the queue
      - no backoff, no retry cap, no partial retry

    Teardown path (flush_reliable):
      - append session_end, drain, send once with keepalive
      - the send happens inside the unload callback; failures are dropped
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        queue: EventQueue,
        client: IngestionClient,
        latency_s: float = 0.0,
        event_factory: EventFactory | None = None,
    ) -> None:
        self.env = env
        self.queue = queue
        self.client = client
        self.latency_s = float(latency_s)
        self.event_factory = event_factory
        self._logger = get_logger(__name__)

        self.batches_sent = 0
        self.batches_failed = 0
        self.events_sent = 0

    def flush(self, *, reason: str = "manual") -> simpy.Process | None:
        if len(self.queue) == 0:
            return None

        batch = self.queue.drain()
        return self.env.process(self._deliver(batch, reason=reason))

    def flush_reliable(self, duration_seconds: int) -> InsertResult | None:
        if self.event_factory is not None:
            self.queue.enqueue(
                self.event_factory(
                    EventKind.SESSION_END.value, {"duration_seconds": int(duration_seconds)}
                )
            )

        batch = self.queue.drain()
        if not batch:
            return None

        result = self.client.insert_events([e.as_row() for e in batch], keepalive=True)
        if result.ok:
            self.events_sent += len(batch)
            self._logger.debug(
                "teardown batch sent", extra={"reason": "unload", "num_events": len(batch)}
            )
        else:
            # No retry opportunity once the page is gone.
            self._logger.debug(
                "teardown batch lost",
                extra={"reason": "unload", "num_events": len(batch), "error": result.error},
            )
        return result

    def send_session(self, record: Mapping[str, Any]) -> simpy.Process:
        return self.env.process(self._deliver_session(dict(record)))

    # ----------------------------
    # simpy processes
    # ----------------------------
    def _deliver(self, batch: Sequence[Event], *, reason: str):
        if self.latency_s > 0:
            yield self.env.timeout(self.latency_s)

        result = self.client.insert_events([e.as_row() for e in batch])

        if result.ok:
            self.batches_sent += 1
            self.events_sent += len(batch)
            self._logger.debug(
                "events sent",
                extra={"reason": reason, "num_events": len(batch)},
            )
            return result

        self.batches_failed += 1
        self.queue.requeue_front(batch)
        self._logger.warning(
            "event batch failed; requeued",
            extra={
                "reason": reason,
                "num_events": len(batch),
                "queue_size": len(self.queue),
                "error": result.error,
            },
        )
        return result

    def _deliver_session(self, record: dict[str, Any]):
        if self.latency_s > 0:
            yield self.env.timeout(self.latency_s)

        result = self.client.insert_session(record)
        if result.ok:
            self._logger.debug("session created", extra={"session_id": record.get("id")})
        else:
            self._logger.error(
                "session create failed",
                extra={"session_id": record.get("id"), "error": result.error},
            )
        return result
