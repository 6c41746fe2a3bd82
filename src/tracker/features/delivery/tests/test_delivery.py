from __future__ import annotations

from typing import Any

import simpy


class DummyClient:
    """
    Records every insert; `fail_next` failures are reported before succeeding.
    """

    def __init__(self, fail_next: int = 0, always_fail: bool = False) -> None:
        self.fail_next = fail_next
        self.always_fail = always_fail
        self.batches: list[list[dict[str, Any]]] = []
        self.keepalive_flags: list[bool] = []
        self.sessions: list[dict[str, Any]] = []

    def _result(self, n: int):
        from tracker.features.ingestion.types import InsertResult

        if self.always_fail or self.fail_next > 0:
            self.fail_next = max(0, self.fail_next - 1)
            return InsertResult.failure("endpoint unavailable")
        return InsertResult.success(num_rows=n)

    def insert_events(self, rows, *, keepalive: bool = False):
        self.batches.append([dict(r) for r in rows])
        self.keepalive_flags.append(keepalive)
        return self._result(len(rows))

    def insert_session(self, record):
        self.sessions.append(dict(record))
        return self._result(1)


def _ev(name: str, data: dict | None = None):
    from tracker.features.events.schema import Event

    return Event(
        session_id="s1",
        visitor_id="v1",
        event_type=name,
        page_url="/",
        page_title="Home",
        created_at="2026-01-01T00:00:00+00:00",
        event_data=data or {},
    )


def _types(batch):
    return [r["event_type"] for r in batch]


def make_channel(client: DummyClient, latency_s: float = 0.1):
    from tracker.features.delivery.service import DeliveryChannel
    from tracker.features.events.queue import EventQueue

    env = simpy.Environment()
    q = EventQueue()
    ch = DeliveryChannel(
        env=env,
        queue=q,
        client=client,
        latency_s=latency_s,
        event_factory=lambda kind, data: _ev(kind, data),
    )
    return env, q, ch


def test_flush_empty_queue_is_noop():
    client = DummyClient()
    env, _q, ch = make_channel(client)

    assert ch.flush() is None
    env.run()
    assert client.batches == []


def test_flush_success_discards_batch():
    client = DummyClient()
    env, q, ch = make_channel(client)
    q.enqueue(_ev("a"))
    q.enqueue(_ev("b"))

    proc = ch.flush(reason="timer")
    assert len(q) == 0  # drained synchronously

    env.run()
    assert proc.value.ok
    assert [_types(b) for b in client.batches] == [["a", "b"]]
    assert len(q) == 0
    assert ch.events_sent == 2
    assert ch.batches_sent == 1


def test_failed_batch_is_requeued_ahead_of_newer_events():
    client = DummyClient(fail_next=1)
    env, q, ch = make_channel(client, latency_s=1.0)
    q.enqueue(_ev("A"))
    q.enqueue(_ev("B"))

    ch.flush()

    def enqueue_c():
        yield env.timeout(0.5)  # while the first delivery is in flight
        q.enqueue(_ev("C"))

    env.process(enqueue_c())
    env.run()

    assert [e.event_type for e in q.drain()] == ["A", "B", "C"]
    assert ch.batches_failed == 1


def test_retry_on_next_flush_sends_whole_batch():
    client = DummyClient(fail_next=1)
    env, q, ch = make_channel(client)
    q.enqueue(_ev("A"))
    q.enqueue(_ev("B"))

    ch.flush()
    env.run()
    q.enqueue(_ev("C"))
    ch.flush()
    env.run()

    assert [_types(b) for b in client.batches] == [["A", "B"], ["A", "B", "C"]]
    assert len(q) == 0


def test_permanently_failing_endpoint_grows_queue_without_bound():
    client = DummyClient(always_fail=True)
    env, q, ch = make_channel(client)

    for cycle in range(1, 21):
        q.enqueue(_ev(f"e{cycle}"))
        ch.flush()
        env.run()
        assert len(q) == cycle  # nothing dropped, nothing capped

    # order is still enqueue order
    assert [e.event_type for e in q.snapshot()] == [f"e{i}" for i in range(1, 21)]
    assert ch.batches_failed == 20


def test_concurrent_flushes_own_disjoint_snapshots():
    client = DummyClient()
    env, q, ch = make_channel(client, latency_s=2.0)
    q.enqueue(_ev("a"))
    ch.flush(reason="timer")
    q.enqueue(_ev("b"))
    ch.flush(reason="hidden")  # first delivery still in flight

    env.run()

    assert [_types(b) for b in client.batches] == [["a"], ["b"]]
    assert ch.events_sent == 2


def test_flush_reliable_appends_session_end_and_sends_keepalive():
    client = DummyClient()
    _env, q, ch = make_channel(client)
    q.enqueue(_ev("scroll_depth", {"depth": 25}))

    result = ch.flush_reliable(42)

    # synchronous: no env.run() needed
    assert result is not None and result.ok
    assert client.keepalive_flags == [True]
    assert _types(client.batches[0]) == ["scroll_depth", "session_end"]
    assert client.batches[0][-1]["event_data"] == {"duration_seconds": 42}
    assert len(q) == 0


def test_flush_reliable_failure_is_swallowed():
    client = DummyClient(always_fail=True)
    _env, q, ch = make_channel(client)
    q.enqueue(_ev("a"))

    result = ch.flush_reliable(5)

    assert result is not None and result.ok is False
    assert len(q) == 0  # no retry once the page is gone


def test_send_session_is_fire_and_forget():
    client = DummyClient(fail_next=1)
    env, q, ch = make_channel(client)

    proc = ch.send_session({"id": "s1", "visitor_id": "v1"})
    env.run()

    assert proc.value.ok is False
    assert client.sessions == [{"id": "s1", "visitor_id": "v1"}]
    assert len(q) == 0
