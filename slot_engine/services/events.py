"""
slot_engine/services/events.py

Notification sink: pushes events to a Redis queue for the notification
service (SMS / email / dashboard) to consume.

Fire-and-forget: a failed emit is logged and never propagates, so it
cannot undo the booking that produced it.
"""

import json
import time
import logging

from .. import redis_client as redis_module

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit an event for instant delivery.

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    client = redis_module.redis_client
    if client is None:
        logger.debug(f"Redis not configured, event dropped: {event_type}")
        return

    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        client.rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
