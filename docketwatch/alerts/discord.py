"""Operator alerts for docketwatch over a Discord webhook.

Alerts cover conditions a person should look at: a register of actions that
shrank, or a sweep where every strategy was unavailable. Delivery is best
effort; a missing webhook or a failed post never interrupts a sweep.
"""

from __future__ import annotations

from typing import Optional

import requests

from ..settings import get_settings
from ..utils.log import get_logger

_LOG = get_logger(__name__)

_TIMEOUT_SECONDS = 3
# Discord rejects message content longer than this.
_MAX_CONTENT = 2000


def _render(message: str, level: str) -> str:
    content = f"[{level.upper()}] docketwatch: {message}"
    if len(content) > _MAX_CONTENT:
        content = content[: _MAX_CONTENT - 3] + "..."
    return content


def post_alert(message: str, level: str = "INFO", *, webhook_url: Optional[str] = None) -> bool:
    """Post ``message`` to the configured webhook. Returns True when delivered."""

    url = webhook_url or get_settings().discord_webhook_url
    if not url:
        _LOG.debug("No DISCORD_WEBHOOK_URL; alert not sent: %s", message)
        return False

    # Case titles are upstream text; never let them ping anyone.
    body = {"content": _render(message, level), "allowed_mentions": {"parse": []}}
    try:
        response = requests.post(url, json=body, timeout=_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as exc:
        _LOG.warning("Alert delivery to Discord failed: %s", exc)
        return False
    return True
