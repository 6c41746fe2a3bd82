from __future__ import annotations

from dataclasses import dataclass

from tracker.core.ids import RandomBits, generate_id, is_valid_id
from tracker.core.logging import get_logger
from tracker.features.storage.service import KeyValueStore

from .types import (
    LAST_ACTIVITY_KEY,
    RETURNING_VISITOR_KEY,
    SESSION_ID_KEY,
    SESSION_START_KEY,
    VISITOR_ID_KEY,
    Session,
)


@dataclass(frozen=True)
class IdentityConfig:
    session_timeout_minutes: float = 30.0
    key_prefix: str = "vp_"


class IdentityStore:
    """
    Visitor + session identity persisted in profile storage.

    - visitor id: created once, never mutated
    - session: renewed once inactivity exceeds the timeout (strictly greater)
    - last activity: touched on every tracked event and on session start

    Missing or unparsable values are treated as never set.
    """

    def __init__(self, *, storage: KeyValueStore, rng: RandomBits, cfg: IdentityConfig) -> None:
        self.storage = storage
        self.rng = rng
        self.cfg = cfg
        self._logger = get_logger(__name__)

    @property
    def timeout_ms(self) -> int:
        return int(round(float(self.cfg.session_timeout_minutes) * 60_000))

    # ----------------------------
    # Public API
    # ----------------------------
    def get_or_create_visitor_id(self) -> str:
        visitor_id = self._get(VISITOR_ID_KEY)
        if is_valid_id(visitor_id):
            return str(visitor_id)

        visitor_id = generate_id(self.rng)
        self._set(VISITOR_ID_KEY, visitor_id)
        self._logger.debug("new visitor", extra={"visitor_id": visitor_id})
        return visitor_id

    def last_activity_ms(self) -> int | None:
        return _parse_ms(self._get(LAST_ACTIVITY_KEY))

    def is_session_expired(self, now_ms: int) -> bool:
        last = self.last_activity_ms()
        if last is None:
            return True
        return (now_ms - last) > self.timeout_ms

    def touch_activity(self, now_ms: int) -> None:
        self._set(LAST_ACTIVITY_KEY, str(int(now_ms)))

    def start_or_resume_session(self, now_ms: int) -> tuple[Session, bool]:
        """
        Returns (session, is_new_session).
        """
        session = None if self.is_session_expired(now_ms) else self._load_session()

        is_new = session is None
        if session is None:
            session = Session(id=generate_id(self.rng), started_at_ms=int(now_ms))
            self._set(SESSION_ID_KEY, session.id)
            self._set(SESSION_START_KEY, str(session.started_at_ms))
            self._logger.debug("new session", extra={"session_id": session.id})
        else:
            self._logger.debug("resumed session", extra={"session_id": session.id})

        self.touch_activity(now_ms)
        return session, is_new

    def is_returning_visitor(self) -> bool:
        return (self._get(RETURNING_VISITOR_KEY) or "").strip().lower() == "true"

    def mark_returning_visitor(self) -> None:
        self._set(RETURNING_VISITOR_KEY, "true")

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _load_session(self) -> Session | None:
        session_id = self._get(SESSION_ID_KEY)
        started_at = _parse_ms(self._get(SESSION_START_KEY))
        if not is_valid_id(session_id) or started_at is None:
            # Activity is recent but the session record is gone/corrupt: start over.
            return None
        return Session(id=str(session_id), started_at_ms=started_at)

    def _key(self, name: str) -> str:
        return f"{self.cfg.key_prefix}{name}"

    def _get(self, name: str) -> str | None:
        return self.storage.get_item(self._key(name))

    def _set(self, name: str, value: str) -> None:
        self.storage.set_item(self._key(name), value)


def _parse_ms(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None
