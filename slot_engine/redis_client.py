"""
Shared Redis client.

Redis is optional: without REDIS_URL the day-slot cache, booking events
and call sessions are disabled and the engine reads straight from the
database.
"""

from redis import Redis

from .config import settings

redis_client: Redis | None = (
    Redis.from_url(settings.redis_url, decode_responses=True)
    if settings.redis_url
    else None
)


def get_redis() -> Redis | None:
    """FastAPI dependency."""
    return redis_client
