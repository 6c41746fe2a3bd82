from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class RunConfig:
    seed: int | None = None
    start_date: str = "2026-01-01T00:00:00"


@dataclass(frozen=True)
class TrackerSettings:
    batch_interval_seconds: float = 5.0
    session_timeout_minutes: float = 30.0
    scroll_thresholds: tuple[int, ...] = (25, 50, 75, 100)
    tab_return_min_away_seconds: int = 5
    storage_prefix: str = "vp_"
    network_latency_seconds: float = 0.05
    debug: bool = False


@dataclass(frozen=True)
class StorageConfig:
    duckdb_path: str | None = None  # None -> in-memory profile storage
    clean_slate: bool = False


@dataclass(frozen=True)
class IngestionConfig:
    kind: str = "duckdb"  # "duckdb" | "rest" | "none"
    duckdb_path: str | None = None
    clean_slate: bool = False
    url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class TrackerConfig:
    run: RunConfig
    tracker: TrackerSettings
    storage: StorageConfig
    ingestion: IngestionConfig
    logging: LoggingConfig
    page: dict[str, Any] = field(default_factory=dict)
    script: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)  # original parsed YAML


INGESTION_KINDS = {"duckdb", "rest", "none"}


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    data = yaml.safe_load(p.read_text())
    if not isinstance(data, dict):
        raise ValueError("Config YAML must parse to a dict at the top level.")
    return data


def parse_config(data: dict[str, Any]) -> TrackerConfig:
    for key in ["ingestion", "logging"]:
        if key not in data:
            raise ValueError(f"Missing required top-level config section: '{key}'")

    run = data.get("run") or {}
    tracker = data.get("tracker") or {}
    storage = data.get("storage") or {}
    ingestion = data.get("ingestion") or {}
    logging_cfg = data.get("logging") or {}

    seed = run.get("seed")
    run_cfg = RunConfig(
        seed=None if seed is None else int(seed),
        start_date=str(run.get("start_date", RunConfig.start_date)),
    )

    thresholds = tracker.get("scroll_thresholds", list(TrackerSettings.scroll_thresholds))
    if not isinstance(thresholds, list | tuple):
        raise ValueError("tracker.scroll_thresholds must be a list of percentages")
    thresholds_t = tuple(sorted({int(t) for t in thresholds}))
    for t in thresholds_t:
        if not (0 < t <= 100):
            raise ValueError(f"tracker.scroll_thresholds entries must be in (0, 100], got {t}")

    interval = float(tracker.get("batch_interval_seconds", TrackerSettings.batch_interval_seconds))
    if interval <= 0:
        raise ValueError("tracker.batch_interval_seconds must be > 0")

    tracker_cfg = TrackerSettings(
        batch_interval_seconds=interval,
        session_timeout_minutes=float(
            tracker.get("session_timeout_minutes", TrackerSettings.session_timeout_minutes)
        ),
        scroll_thresholds=thresholds_t,
        tab_return_min_away_seconds=int(
            tracker.get("tab_return_min_away_seconds", TrackerSettings.tab_return_min_away_seconds)
        ),
        storage_prefix=str(tracker.get("storage_prefix", TrackerSettings.storage_prefix)),
        network_latency_seconds=float(
            tracker.get("network_latency_seconds", TrackerSettings.network_latency_seconds)
        ),
        debug=bool(tracker.get("debug", False)),
    )

    storage_path = storage.get("duckdb_path")
    storage_cfg = StorageConfig(
        duckdb_path=None if storage_path is None else str(storage_path),
        clean_slate=bool(storage.get("clean_slate", False)),
    )

    kind = str(ingestion.get("kind", "duckdb")).strip().lower()
    if kind not in INGESTION_KINDS:
        raise ValueError(f"Unsupported ingestion.kind={kind!r}. Allowed={sorted(INGESTION_KINDS)}")
    if kind == "duckdb" and not ingestion.get("duckdb_path"):
        raise ValueError("ingestion.duckdb_path is required when ingestion.kind is 'duckdb'")
    if kind == "rest" and not ingestion.get("url"):
        raise ValueError("ingestion.url is required when ingestion.kind is 'rest'")

    ingestion_path = ingestion.get("duckdb_path")
    ingestion_cfg = IngestionConfig(
        kind=kind,
        duckdb_path=None if ingestion_path is None else str(ingestion_path),
        clean_slate=bool(ingestion.get("clean_slate", False)),
        url=ingestion.get("url"),
        api_key=ingestion.get("api_key"),
        timeout_seconds=float(ingestion.get("timeout_seconds", 10.0)),
    )

    log_cfg = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())

    page = data.get("page") or {}
    if not isinstance(page, dict):
        raise ValueError("page must be a mapping")
    script = data.get("script") or []
    if not isinstance(script, list):
        raise ValueError("script must be a list of steps")

    return TrackerConfig(
        run=run_cfg,
        tracker=tracker_cfg,
        storage=storage_cfg,
        ingestion=ingestion_cfg,
        logging=log_cfg,
        page=page,
        script=script,
        raw=data,
    )


def load_config(path: str | Path) -> TrackerConfig:
    data = load_yaml(path)
    return parse_config(data)
