# slot_engine/services/slots/redis_store.py
"""
Redis cache of bookable slot starts, one Sorted Set per business and
local date.

Key format: slots:day:{business_id}:{local_date}
Value: Sorted Set where member = slot start (UTC ISO string),
       score = slot start as unix timestamp.

Query: ZRANGEBYSCORE key ({now_ts} +inf → only future slots.
Sentinel: "__empty__" with score=0 marks "calculated, zero slots".

Version: slots:ver:{business_id} is bumped on every invalidation. A day
filled from the database is only written if the version it read before
the query is still current (WATCH / MULTI), so a fill racing with a
regeneration or block cannot put the old day back.

Only slot rows are cached. Appointments are always read live, so a
booking never needs to touch this cache.
"""

from datetime import date, datetime
from redis import Redis
from redis.exceptions import WatchError

from .timeutils import as_utc

EMPTY_SENTINEL = "__empty__"
EMPTY_TTL_SECONDS = 3600


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot data."""

    KEY_PREFIX = "slots:day"
    VERSION_PREFIX = "slots:ver"

    def __init__(self, redis: Redis):
        self.redis = redis

    def _key(self, business_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{business_id}:{dt.isoformat()}"

    def _version_key(self, business_id: int) -> str:
        return f"{self.VERSION_PREFIX}:{business_id}"

    def get_version(self, business_id: int) -> str | None:
        """Current invalidation version, read before filling a day."""
        return self.redis.get(self._version_key(business_id))

    def bump_version(self, business_id: int) -> int:
        return self.redis.incr(self._version_key(business_id))

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(
        self,
        business_id: int,
        dt: date,
        starts: list[datetime],
        version: str | None,
    ) -> bool:
        """
        Store bookable slot starts for a local date.

        Empty list → sentinel is stored.

        Returns:
            False if the business was invalidated since ``version`` was
            read; nothing is written then.
        """
        key = self._key(business_id, dt)
        version_key = self._version_key(business_id)
        pipe = self.redis.pipeline()
        try:
            pipe.watch(version_key)
            if pipe.get(version_key) != version:
                return False
            pipe.multi()
            self._queue_day_slots(pipe, key, starts)
            pipe.execute()
        except WatchError:
            return False
        finally:
            pipe.reset()
        return True

    def _queue_day_slots(self, pipe, key: str, starts: list[datetime]) -> None:
        # Remove old data
        pipe.delete(key)

        if starts:
            mapping = {as_utc(s).isoformat(): as_utc(s).timestamp() for s in starts}
            pipe.zadd(key, mapping)
            # Key lives until the last slot starts + 1 minute
            pipe.expireat(key, int(max(mapping.values())) + 60)
        else:
            pipe.zadd(key, {EMPTY_SENTINEL: 0})
            pipe.expire(key, EMPTY_TTL_SECONDS)

    # ── Read ─────────────────────────────────────────────────────────────

    def get_bookable_starts(
        self,
        business_id: int,
        dt: date,
        now: datetime,
    ) -> list[datetime] | None:
        """
        Slot starts strictly after ``now``.

        Returns:
            Sorted list of aware UTC datetimes, or None on cache miss.
        """
        key = self._key(business_id, dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, f"({as_utc(now).timestamp()}", "+inf")
        result = []
        for m in members:
            m = m.decode() if isinstance(m, bytes) else m
            if m != EMPTY_SENTINEL:
                result.append(as_utc(datetime.fromisoformat(m)))
        return result

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_slots(
        self,
        business_id: int,
        dates: list[date] | None = None,
    ) -> int:
        """
        Delete cached days.

        Args:
            business_id: Business ID
            dates: Specific local dates, or None to delete all for business.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(business_id, dt) for dt in dates]
        else:
            keys = list(self.redis.scan_iter(f"{self.KEY_PREFIX}:{business_id}:*"))

        if not keys:
            return 0

        return self.redis.delete(*keys)
