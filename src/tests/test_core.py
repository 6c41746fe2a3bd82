import json
import logging
import uuid
from datetime import UTC, datetime

import simpy

from tracker.core.clock import PageClock, elapsed_seconds
from tracker.core.config import parse_config
from tracker.core.ids import generate_id, is_valid_id
from tracker.core.logging import JsonFormatter
from tracker.core.rng import RNG


def test_generated_ids_are_uuid4_and_seed_deterministic():
    a = [generate_id(RNG(9)) for _ in range(2)]
    rng = RNG(9)
    b1, b2 = generate_id(rng), generate_id(rng)

    assert a[0] == a[1] == b1
    assert b1 != b2
    assert uuid.UUID(b1).version == 4
    assert is_valid_id(b1)
    assert not is_valid_id("nope")
    assert not is_valid_id(None)


def test_page_clock_tracks_env_time():
    env = simpy.Environment()
    clock = PageClock(env, datetime(2026, 1, 1))  # naive -> UTC

    env.run(until=2.5)

    assert clock.now() == datetime(2026, 1, 1, 0, 0, 2, 500000, tzinfo=UTC)
    assert clock.now_ms() == 1_767_225_602_500
    assert clock.now_iso() == "2026-01-01T00:00:02.500000+00:00"


def test_elapsed_seconds_rounds_half_up():
    assert elapsed_seconds(0, 2_500) == 3
    assert elapsed_seconds(0, 2_499) == 2
    assert elapsed_seconds(1_000, 1_000) == 0


def test_defaults_match_tracker_constants():
    cfg = parse_config(
        {"ingestion": {"kind": "none"}, "logging": {"level": "debug"}},
    )

    assert cfg.tracker.batch_interval_seconds == 5.0
    assert cfg.tracker.session_timeout_minutes == 30.0
    assert cfg.tracker.scroll_thresholds == (25, 50, 75, 100)
    assert cfg.tracker.tab_return_min_away_seconds == 5
    assert cfg.tracker.storage_prefix == "vp_"
    assert cfg.storage.duckdb_path is None
    assert cfg.logging.level == "DEBUG"
    assert cfg.run.seed is None


def test_scroll_thresholds_are_deduplicated_and_sorted():
    cfg = parse_config(
        {
            "tracker": {"scroll_thresholds": [100, 50, 50, 10]},
            "ingestion": {"kind": "none"},
            "logging": {},
        }
    )
    assert cfg.tracker.scroll_thresholds == (10, 50, 100)


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord(
        name="tracker.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="event batch failed; requeued",
        args=(),
        exc_info=None,
    )
    record.queue_size = 7
    record.reason = "timer"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "tracker.test"
    assert payload["queue_size"] == 7
    assert payload["reason"] == "timer"
    assert "session_id" not in payload
