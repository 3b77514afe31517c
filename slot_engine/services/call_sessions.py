"""
slot_engine/services/call_sessions.py

Per-call conversation state in Redis, keyed by call/session id with a TTL.

Holds the candidates last read out to a caller so a follow-up booking
can say "option 2" instead of repeating a timestamp. Injected as a
dependency; nothing is kept in process memory.
"""

import json
from datetime import datetime

from redis import Redis

from .. import redis_client as redis_module
from .slots.config import get_engine_config


class CallSessionStore:
    """Redis-backed call session state with expiry."""

    KEY_PREFIX = "callsession"

    def __init__(self, redis: Redis, ttl_seconds: int = 1800):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}:{session_id}"

    def get(self, session_id: str) -> dict | None:
        raw = self.redis.get(self._key(session_id))
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, session_id: str, state: dict) -> None:
        self.redis.setex(self._key(session_id), self.ttl_seconds, json.dumps(state))

    def delete(self, session_id: str) -> None:
        self.redis.delete(self._key(session_id))

    # ── Offered candidates ───────────────────────────────────────────────

    def remember_offer(
        self,
        session_id: str,
        business_id: int,
        starts: list[datetime],
        duration_minutes: int,
    ) -> None:
        """Store the candidates offered to the caller, replacing earlier ones."""
        state = self.get(session_id) or {}
        state["offer"] = {
            "business_id": business_id,
            "duration_minutes": duration_minutes,
            "starts": [s.isoformat() for s in starts],
        }
        self.set(session_id, state)

    def resolve_option(
        self,
        session_id: str,
        business_id: int,
        option: int,
    ) -> tuple[datetime, int] | None:
        """
        (start, duration) for a 1-based option from the last offer, or None
        if the session expired, belongs to another business, or the option
        is out of range.
        """
        state = self.get(session_id)
        offer = (state or {}).get("offer")
        if not offer or offer.get("business_id") != business_id:
            return None

        starts = offer.get("starts", [])
        if not 1 <= option <= len(starts):
            return None
        return datetime.fromisoformat(starts[option - 1]), offer["duration_minutes"]


def get_call_session_store() -> CallSessionStore | None:
    """FastAPI dependency. None when Redis is not configured."""
    if redis_module.redis_client is None:
        return None
    return CallSessionStore(redis_module.redis_client, get_engine_config().session_ttl_seconds)
