"""Best-effort publication of ledger events to Redis pub/sub."""

from __future__ import annotations

import json
import logging

from coursecoin.config import get_settings

logger = logging.getLogger(__name__)


async def publish_ledger_event(redis: object | None, event: str, payload: dict) -> None:
    """Publish ``payload`` on ``<prefix>:<event>``. Failures are logged, never raised.

    Only call this after the ledger change has committed.
    """
    if redis is None:
        return
    channel = f"{get_settings().events_channel_prefix}:{event}"
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s event", event, exc_info=True)
