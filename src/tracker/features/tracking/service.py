from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import simpy

from tracker.core.clock import PageClock
from tracker.core.config import TrackerSettings
from tracker.core.ids import RandomBits
from tracker.core.logging import get_logger, set_level
from tracker.features.delivery.service import DeliveryChannel
from tracker.features.events.queue import EventQueue
from tracker.features.events.schema import Event, EventKind, event_type_name
from tracker.features.identity.service import IdentityConfig, IdentityStore
from tracker.features.identity.types import Session
from tracker.features.ingestion.types import IngestionClient
from tracker.features.observers.service import ExitTracker, ScrollTracker, VisibilityTracker
from tracker.features.page.service import Page
from tracker.features.scheduler.service import FlushScheduler
from tracker.features.storage.service import KeyValueStore


class Tracker:
    """
    Per-page tracking engine and the public API other page code calls.

    Owns all mutable tracking state for one page load (identity, session,
    queue, observers, flush timer). Nothing here raises into callers:
    tracking problems are logged and dropped.
    """

    def __init__(
        self,
        *,
        env: simpy.Environment,
        page: Page,
        storage: KeyValueStore,
        ingestion: IngestionClient | None,
        rng: RandomBits,
        clock: PageClock,
        settings: TrackerSettings | None = None,
    ) -> None:
        self.env = env
        self.page = page
        self.ingestion = ingestion
        self.clock = clock
        self.settings = settings or TrackerSettings()

        self.identity = IdentityStore(
            storage=storage,
            rng=rng,
            cfg=IdentityConfig(
                session_timeout_minutes=self.settings.session_timeout_minutes,
                key_prefix=self.settings.storage_prefix,
            ),
        )
        self.queue = EventQueue()

        self.delivery: DeliveryChannel | None = None
        self.scheduler: FlushScheduler | None = None
        self.scroll: ScrollTracker | None = None
        self.visibility: VisibilityTracker | None = None
        self.exit: ExitTracker | None = None

        self._visitor_id: str | None = None
        self._session: Session | None = None
        self._init_started = False
        self._ready = False

        self._logger = get_logger(__name__)
        if self.settings.debug:
            self.enable_debug()

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def init(self) -> bool:
        """
        Runs the startup sequence once per page load. Returns True only for
        the call that actually initialized tracking.
        """
        if self._init_started:
            return False
        self._init_started = True

        if self.ingestion is None:
            self._logger.error("ingestion client not available; tracking disabled")
            return False

        self.delivery = DeliveryChannel(
            env=self.env,
            queue=self.queue,
            client=self.ingestion,
            latency_s=self.settings.network_latency_seconds,
            event_factory=self.build_event,
        )

        now_ms = self.clock.now_ms()
        self._visitor_id = self.identity.get_or_create_visitor_id()
        self._session, is_new = self.identity.start_or_resume_session(now_ms)
        self._ready = True

        if is_new:
            self.delivery.send_session(self._session_record(self._session))
            self.track(
                EventKind.SESSION_START,
                {
                    "is_new_visitor": not self.identity.is_returning_visitor(),
                    "referrer": self.page.context.referrer or "direct",
                },
            )
            self.identity.mark_returning_visitor()

        self.scroll = ScrollTracker(
            page=self.page, track=self.track, thresholds=self.settings.scroll_thresholds
        )
        self.visibility = VisibilityTracker(
            page=self.page,
            clock=self.clock,
            track=self.track,
            flush=self.flush,
            min_away_s=self.settings.tab_return_min_away_seconds,
        )
        self.exit = ExitTracker(
            page=self.page,
            clock=self.clock,
            current_session=lambda: self._session,
            flush_reliable=self.delivery.flush_reliable,
        )
        for observer in (self.scroll, self.visibility, self.exit):
            observer.register()

        self.scheduler = FlushScheduler(
            env=self.env,
            interval_s=self.settings.batch_interval_seconds,
            flush=self.flush,
            is_active=lambda: not self.page.closed,
        )
        self.scheduler.start()

        self.track(
            EventKind.PAGE_VIEW,
            {"url": self.page.context.href, "title": self.page.context.title},
        )

        self._logger.info(
            "tracker initialized",
            extra={"session_id": self._session.id, "visitor_id": self._visitor_id},
        )
        return True

    @property
    def is_initialized(self) -> bool:
        return self._ready

    # ----------------------------
    # Tracking
    # ----------------------------
    def build_event(self, event_type: str | EventKind, data: dict[str, Any] | None = None) -> Event:
        if self._session is None or self._visitor_id is None:
            raise RuntimeError("Tracker not initialized. Call init() first.")
        return Event(
            session_id=self._session.id,
            visitor_id=self._visitor_id,
            event_type=event_type_name(event_type),
            event_data=dict(data or {}),
            page_url=self.page.context.path,
            page_title=self.page.context.title,
            created_at=self.clock.now_iso(),
        )

    def track(
        self, event_type: str | EventKind, data: Mapping[str, Any] | None = None
    ) -> Event | None:
        name = event_type_name(event_type)
        if not self._ready:
            self._logger.warning(
                "tracker not initialized; event dropped", extra={"event_type": name}
            )
            return None
        if not name:
            self._logger.warning("empty event type; event dropped")
            return None

        event = self.build_event(name, dict(data or {}))
        self.queue.enqueue(event)
        self.identity.touch_activity(self.clock.now_ms())

        self._logger.debug(
            "event queued", extra={"event_type": name, "queue_size": len(self.queue)}
        )
        return event

    def flush(self, *, reason: str = "manual") -> simpy.Process | None:
        if self.delivery is None:
            return None
        return self.delivery.flush(reason=reason)

    # ----------------------------
    # Convenience wrappers
    # ----------------------------
    def track_search(self, term: str, results_count: int) -> Event | None:
        return self.track(EventKind.SEARCH, {"term": term, "results_count": results_count})

    def track_product_view(self, product: Mapping[str, Any]) -> Event | None:
        return self.track(
            EventKind.PRODUCT_VIEW,
            {
                "sku": product.get("sku"),
                "name": product.get("name"),
                "price": product.get("price"),
                "category": product.get("category"),
            },
        )

    def track_add_to_cart(self, product: Mapping[str, Any], quantity: int) -> Event | None:
        return self.track(
            EventKind.ADD_TO_CART,
            {
                "sku": product.get("sku"),
                "name": product.get("name"),
                "price": product.get("price"),
                "quantity": quantity,
            },
        )

    def track_remove_from_cart(self, sku: str, name: str) -> Event | None:
        return self.track(EventKind.REMOVE_FROM_CART, {"sku": sku, "name": name})

    def track_checkout_start(
        self, cart_items: Sequence[Mapping[str, Any]], total: float
    ) -> Event | None:
        return self.track(
            EventKind.CHECKOUT_START,
            {
                "items_count": len(cart_items),
                "total": total,
                "items": [
                    {"sku": item.get("code"), "quantity": item.get("quantity")}
                    for item in cart_items
                ],
            },
        )

    def track_category_filter(self, category: str) -> Event | None:
        return self.track(EventKind.FILTER_CATEGORY, {"category": category})

    def track_featured_filter(self, value: Any) -> Event | None:
        return self.track(EventKind.FILTER_FEATURED, {"value": value})

    # ----------------------------
    # Debug accessors
    # ----------------------------
    @property
    def session_id(self) -> str | None:
        return None if self._session is None else self._session.id

    @property
    def visitor_id(self) -> str | None:
        return self._visitor_id

    @property
    def session(self) -> Session | None:
        return self._session

    def enable_debug(self) -> None:
        set_level("DEBUG")

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _session_record(self, session: Session) -> dict[str, Any]:
        ctx = self.page.context
        utm = ctx.utm_params()
        return {
            "id": session.id,
            "visitor_id": self._visitor_id,
            "referrer": ctx.referrer or None,
            "utm_source": utm["utm_source"],
            "utm_medium": utm["utm_medium"],
            "utm_campaign": utm["utm_campaign"],
            "device_type": ctx.device_type,
            "screen_width": ctx.screen_width,
            "screen_height": ctx.screen_height,
            "user_agent": ctx.user_agent,
        }
