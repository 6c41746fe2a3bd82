from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

ROOT_LOGGER_NAME = "tracker"

EXTRA_FIELDS = (
    "session_id",
    "visitor_id",
    "event_type",
    "reason",
    "storage_key",
    "num_events",
    "queue_size",
    "error",
)

_default_level = "INFO"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # attach extra fields if present
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger  # avoid double handlers in tests

    logger.setLevel((level or _default_level).upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_level(level: str, prefix: str = ROOT_LOGGER_NAME) -> None:
    """
    Apply `level` to every existing logger under `prefix` and to loggers
    created afterwards through get_logger().
    """
    global _default_level
    _default_level = level.upper()
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name == prefix or name.startswith(prefix + "."):
            logger.setLevel(_default_level)
