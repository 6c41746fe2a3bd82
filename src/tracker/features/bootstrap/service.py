from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import simpy

from tracker.core.clock import PageClock
from tracker.core.config import IngestionConfig, StorageConfig, TrackerConfig
from tracker.core.logging import get_logger, set_level
from tracker.core.rng import RNG
from tracker.core.types import PageContext
from tracker.features.ingestion.duckdb_adapter import DuckDBIngestionAdapter
from tracker.features.ingestion.rest_client import RestIngestionClient
from tracker.features.ingestion.types import IngestionClient
from tracker.features.page.service import Page
from tracker.features.storage.duckdb_adapter import DuckDBStorage
from tracker.features.storage.service import InMemoryStorage, KeyValueStore
from tracker.features.tracking.service import Tracker


@dataclass
class PageLoad:
    """
    Everything wired for one page load. close() releases the DuckDB handles.
    """

    env: simpy.Environment
    page: Page
    tracker: Tracker
    storage: KeyValueStore
    ingestion: IngestionClient | None

    def close(self) -> None:
        for resource in (self.storage, self.ingestion):
            close = getattr(resource, "close", None)
            if callable(close):
                close()


def build_page_context(raw: dict[str, Any]) -> PageContext:
    href = str(raw.get("href") or raw.get("url") or "https://shop.example.com/")
    return PageContext(
        href=href,
        title=str(raw.get("title", "")),
        referrer=str(raw.get("referrer") or ""),
        user_agent=str(raw.get("user_agent", "")),
        viewport_width=int(raw.get("viewport_width", 1280)),
        viewport_height=int(raw.get("viewport_height", 800)),
        screen_width=int(raw.get("screen_width", 1920)),
        screen_height=int(raw.get("screen_height", 1080)),
        document_height=int(raw.get("document_height", 800)),
    )


def build_storage(cfg: StorageConfig) -> KeyValueStore:
    if cfg.duckdb_path is None:
        return InMemoryStorage()
    storage = DuckDBStorage(cfg.duckdb_path, clean_slate=cfg.clean_slate)
    storage.open()
    return storage


def build_ingestion(cfg: IngestionConfig) -> IngestionClient | None:
    if cfg.kind == "none":
        return None
    if cfg.kind == "rest":
        return RestIngestionClient(
            base_url=str(cfg.url),
            api_key=str(cfg.api_key or ""),
            timeout=cfg.timeout_seconds,
        )
    adapter = DuckDBIngestionAdapter(str(cfg.duckdb_path), clean_slate=cfg.clean_slate)
    adapter.open()
    return adapter


def page_seed(seed: int | None, start_dt: datetime) -> str | None:
    """
    Id RNG seed for one page load: the run seed salted with the page start
    time (epoch ms). `None` stays `None` (OS entropy).
    """
    if seed is None:
        return None
    return f"{seed}:{int(start_dt.timestamp() * 1000)}"


def bootstrap_page(
    cfg: TrackerConfig,
    *,
    storage: KeyValueStore | None = None,
    ingestion: IngestionClient | None = None,
) -> PageLoad:
    """
    Wires a page + tracker from config. Pass storage/ingestion to share them
    across several page loads (same browser profile, same endpoint).
    Does not call tracker.init().
    """
    set_level(cfg.logging.level)
    logger = get_logger(__name__)

    env = simpy.Environment()
    start_dt = datetime.fromisoformat(cfg.run.start_date)
    if start_dt.tzinfo is None:
        start_dt = start_dt.replace(tzinfo=UTC)
    clock = PageClock(env, start_dt)

    page = Page(env, build_page_context(cfg.page))
    storage = storage if storage is not None else build_storage(cfg.storage)
    if ingestion is None:
        ingestion = build_ingestion(cfg.ingestion)

    tracker = Tracker(
        env=env,
        page=page,
        storage=storage,
        ingestion=ingestion,
        rng=RNG(page_seed(cfg.run.seed, start_dt)),
        clock=clock,
        settings=cfg.tracker,
    )
    logger.debug("page wired (ingestion=%s)", cfg.ingestion.kind)
    return PageLoad(env=env, page=page, tracker=tracker, storage=storage, ingestion=ingestion)
