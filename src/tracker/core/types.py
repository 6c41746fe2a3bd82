from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign")


@dataclass(frozen=True)
class PageContext:
    """
    Static facts about the loaded document and the device showing it.
    """

    href: str
    title: str = ""
    referrer: str = ""
    user_agent: str = ""

    viewport_width: int = 1280
    viewport_height: int = 800
    screen_width: int = 1920
    screen_height: int = 1080

    # Total scrollable height of the document (scrollHeight)
    document_height: int = 800

    @property
    def path(self) -> str:
        return urlsplit(self.href).path or "/"

    @property
    def device_type(self) -> str:
        if self.viewport_width < 768:
            return "mobile"
        if self.viewport_width < 1024:
            return "tablet"
        return "desktop"

    def utm_params(self) -> dict[str, str | None]:
        query = parse_qs(urlsplit(self.href).query)
        return {key: (query.get(key) or [None])[0] or None for key in UTM_KEYS}
