"""
docketwatch logging.

Module loggers come from :func:`get_logger`. Pipeline milestones (fetch
attempts, detector anomalies, sweep summaries) go through :func:`event` as one
JSON object per line on the ``docketwatch.events`` logger so they can be
grepped and aggregated by ``event`` name.

Proxy strategies carry their API key in the request URL and hearing details
can include Zoom passcodes, so every event payload passes through
:class:`RedactingFilter` before it is formatted.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from typing import Any, Final

__all__ = ["EVENT_LOGGER", "RedactingFilter", "event", "get_logger"]

EVENT_LOGGER: Final[str] = "docketwatch.events"

_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_MASK = "***"
_SECRET_KEY = re.compile(r"(pass|token|cookie|key|secret|authorization)", re.IGNORECASE)
# api_key=... inside proxied URLs, passcode values inside meeting text
_SECRET_IN_TEXT = re.compile(r"(?P<name>api_key|passcode|pwd)(?P<sep>=|:\s*)(?P<value>[^&\s|]+)", re.IGNORECASE)

_handler_installed = False


def _level_from_env() -> int:
    return getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _install_handler() -> None:
    global _handler_installed
    if _handler_installed:
        return
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    root.setLevel(_level_from_env())
    _handler_installed = True


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: _MASK if isinstance(key, str) and _SECRET_KEY.search(key) else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    if isinstance(value, str):
        return _SECRET_IN_TEXT.sub(lambda m: f"{m.group('name')}{m.group('sep')}{_MASK}", value)
    return value


class RedactingFilter(logging.Filter):
    """Renders ``event`` payloads as compact JSON with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        payload = getattr(record, "_event_payload", None)
        if isinstance(payload, dict):
            record.msg = json.dumps(_scrub(payload), separators=(",", ":"), sort_keys=True, default=str)
            record.args = ()
        return True


def event(name: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Log pipeline milestone ``name`` with ``fields`` as one JSON line."""

    get_logger(EVENT_LOGGER).log(level, "", extra={"_event_payload": {"event": name, **fields}})


def get_logger(name: str) -> logging.Logger:
    _install_handler()
    logger = logging.getLogger(name)
    if name == EVENT_LOGGER and not any(isinstance(f, RedactingFilter) for f in logger.filters):
        logger.addFilter(RedactingFilter())
    return logger
