from __future__ import annotations

import pytest
import simpy


def test_timer_fires_every_interval():
    from tracker.features.scheduler.service import FlushScheduler

    env = simpy.Environment()
    calls: list[tuple[float, str]] = []

    sched = FlushScheduler(
        env=env, interval_s=5.0, flush=lambda *, reason: calls.append((env.now, reason))
    )
    sched.start()
    sched.start()  # second start is a no-op

    env.run(until=16.0)

    assert calls == [(5.0, "timer"), (10.0, "timer"), (15.0, "timer")]
    assert sched.ticks == 3


def test_timer_stops_when_inactive():
    from tracker.features.scheduler.service import FlushScheduler

    env = simpy.Environment()
    state = {"active": True}
    calls: list[float] = []

    def stop_at_7():
        yield env.timeout(7.0)
        state["active"] = False

    sched = FlushScheduler(
        env=env,
        interval_s=5.0,
        flush=lambda *, reason: calls.append(env.now),
        is_active=lambda: state["active"],
    )
    sched.start()
    env.process(stop_at_7())

    env.run()  # terminates once the timer exits

    assert calls == [5.0]


def test_invalid_interval_raises():
    from tracker.features.scheduler.service import FlushScheduler

    with pytest.raises(ValueError):
        FlushScheduler(env=simpy.Environment(), interval_s=0, flush=lambda **_: None)
