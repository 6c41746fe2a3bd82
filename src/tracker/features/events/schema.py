from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """
    Known event types. The set is open: track() accepts any non-empty string.
    """

    SESSION_START = "session_start"
    PAGE_VIEW = "page_view"
    SCROLL_DEPTH = "scroll_depth"
    TAB_RETURN = "tab_return"
    SESSION_END = "session_end"
    SEARCH = "search"
    PRODUCT_VIEW = "product_view"
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"
    CHECKOUT_START = "checkout_start"
    FILTER_CATEGORY = "filter_category"
    FILTER_FEATURED = "filter_featured"


KNOWN_EVENT_TYPES: set[str] = {k.value for k in EventKind}


def event_type_name(event_type: str | EventKind) -> str:
    if isinstance(event_type, EventKind):
        return event_type.value
    return str(event_type)


@dataclass(frozen=True, slots=True)
class Event:
    session_id: str
    visitor_id: str
    event_type: str
    page_url: str
    page_title: str
    created_at: str  # ISO-8601 UTC
    event_data: dict[str, Any] = field(default_factory=dict)

    def as_row(self) -> dict[str, Any]:
        """
        Ingestion row (analytics_events) for this event.
        """
        return {
            "session_id": self.session_id,
            "visitor_id": self.visitor_id,
            "event_type": self.event_type,
            "event_data": dict(self.event_data),
            "page_url": self.page_url,
            "page_title": self.page_title,
            "created_at": self.created_at,
        }


def json_dumps(payload: dict[str, Any] | None) -> str | None:
    if payload is None:
        return None
    # Stable JSON for deterministic outputs/diffs
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
