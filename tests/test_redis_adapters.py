import json
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from slot_engine.services.call_sessions import CallSessionStore, get_call_session_store
from slot_engine.services.events import P2P_QUEUE, emit_event
from slot_engine.services.slots.invalidator import invalidate_business_cache, local_date_of
from slot_engine.services.slots.redis_store import EMPTY_SENTINEL, SlotsRedisStore

DAY = date(2026, 1, 12)
NINE = datetime(2026, 1, 12, 14, 0, tzinfo=timezone.utc)
TEN = datetime(2026, 1, 12, 15, 0, tzinfo=timezone.utc)


# ── Day slot cache ──────────────────────────────────────────────────────


def test_store_day_slots_scores_by_epoch() -> None:
    redis = MagicMock()
    pipe = redis.pipeline.return_value

    pipe.get.return_value = None

    assert SlotsRedisStore(redis).store_day_slots(3, DAY, [NINE, TEN], None) is True

    pipe.watch.assert_called_once_with("slots:ver:3")
    pipe.multi.assert_called_once()
    pipe.delete.assert_called_once_with("slots:day:3:2026-01-12")
    key, mapping = pipe.zadd.call_args.args
    assert mapping == {NINE.isoformat(): NINE.timestamp(), TEN.isoformat(): TEN.timestamp()}
    pipe.expireat.assert_called_once_with(key, int(TEN.timestamp()) + 60)
    pipe.execute.assert_called_once()


def test_store_empty_day_uses_sentinel() -> None:
    redis = MagicMock()
    pipe = redis.pipeline.return_value

    pipe.get.return_value = "7"

    SlotsRedisStore(redis).store_day_slots(3, DAY, [], "7")

    pipe.zadd.assert_called_once_with("slots:day:3:2026-01-12", {EMPTY_SENTINEL: 0})
    pipe.expire.assert_called_once()


def test_store_rejected_when_version_moved() -> None:
    redis = MagicMock()
    pipe = redis.pipeline.return_value
    pipe.get.return_value = "8"

    assert SlotsRedisStore(redis).store_day_slots(3, DAY, [NINE], "7") is False
    pipe.zadd.assert_not_called()
    pipe.reset.assert_called_once()


def test_store_rejected_on_watch_error() -> None:
    redis = MagicMock()
    pipe = redis.pipeline.return_value
    pipe.get.return_value = "7"
    pipe.execute.side_effect = WatchError("version changed")

    assert SlotsRedisStore(redis).store_day_slots(3, DAY, [NINE], "7") is False


def test_read_filters_by_now_and_drops_sentinel() -> None:
    redis = MagicMock()
    redis.exists.return_value = 1
    redis.zrangebyscore.return_value = [TEN.isoformat().encode()]

    starts = SlotsRedisStore(redis).get_bookable_starts(3, DAY, NINE)

    assert starts == [TEN]
    redis.zrangebyscore.assert_called_once_with("slots:day:3:2026-01-12", f"({NINE.timestamp()}", "+inf")

    redis.zrangebyscore.return_value = [EMPTY_SENTINEL]
    assert SlotsRedisStore(redis).get_bookable_starts(3, DAY, NINE) == []


def test_read_miss_returns_none() -> None:
    redis = MagicMock()
    redis.exists.return_value = 0
    assert SlotsRedisStore(redis).get_bookable_starts(3, DAY, NINE) is None
    redis.zrangebyscore.assert_not_called()


def test_delete_all_days_scans_business_keys() -> None:
    redis = MagicMock()
    redis.scan_iter.return_value = iter(["slots:day:3:2026-01-12", "slots:day:3:2026-01-13"])
    redis.delete.return_value = 2

    assert SlotsRedisStore(redis).delete_day_slots(3) == 2
    redis.scan_iter.assert_called_once_with("slots:day:3:*")


def test_invalidate_bumps_version_before_deleting() -> None:
    redis = MagicMock()
    redis.delete.return_value = 1

    assert invalidate_business_cache(redis, 3, [DAY]) == 1

    redis.incr.assert_called_once_with("slots:ver:3")
    redis.delete.assert_called_once_with("slots:day:3:2026-01-12")
    assert [c[0] for c in redis.method_calls][:2] == ["incr", "delete"]


def test_invalidate_swallows_redis_errors() -> None:
    redis = MagicMock()
    redis.delete.side_effect = RedisConnectionError("down")

    assert invalidate_business_cache(redis, 3, [DAY]) == 0
    assert invalidate_business_cache(None, 3) == 0


def test_local_date_of_uses_business_timezone() -> None:
    late = datetime(2026, 1, 13, 3, 0, tzinfo=timezone.utc)
    assert local_date_of(late, "America/New_York") == DAY


# ── Call sessions ───────────────────────────────────────────────────────


def _session_redis() -> MagicMock:
    redis = MagicMock()
    data = {}
    redis.get.side_effect = lambda key: data.get(key)
    redis.setex.side_effect = lambda key, ttl, value: data.__setitem__(key, value)
    return redis


def test_offer_round_trip() -> None:
    redis = _session_redis()
    store = CallSessionStore(redis, ttl_seconds=600)

    store.remember_offer("CA123", 3, [NINE, TEN], 90)

    assert redis.setex.call_args.args[:2] == ("callsession:CA123", 600)
    assert store.resolve_option("CA123", 3, 2) == (TEN, 90)


def test_resolve_rejects_unknown_options() -> None:
    store = CallSessionStore(_session_redis())
    store.remember_offer("CA123", 3, [NINE], 60)

    assert store.resolve_option("CA123", 3, 2) is None
    assert store.resolve_option("CA123", 3, 0) is None
    assert store.resolve_option("CA123", 4, 1) is None
    assert store.resolve_option("expired", 3, 1) is None


def test_new_offer_replaces_previous() -> None:
    store = CallSessionStore(_session_redis())
    store.set("CA123", {"caller": "Jane"})
    store.remember_offer("CA123", 3, [NINE], 60)
    store.remember_offer("CA123", 3, [TEN], 60)

    assert store.resolve_option("CA123", 3, 1) == (TEN, 60)
    assert store.get("CA123")["caller"] == "Jane"


def test_session_store_dependency_without_redis() -> None:
    with patch("slot_engine.redis_client.redis_client", None):
        assert get_call_session_store() is None


# ── Events ──────────────────────────────────────────────────────────────


def test_emit_event_pushes_json() -> None:
    redis = MagicMock()
    with patch("slot_engine.redis_client.redis_client", redis):
        emit_event("booking_created", {"appointment_id": 5})

    queue, raw = redis.rpush.call_args.args
    assert queue == P2P_QUEUE
    event = json.loads(raw)
    assert event["type"] == "booking_created"
    assert event["appointment_id"] == 5
    assert "ts" in event


def test_emit_event_without_redis_is_noop() -> None:
    with patch("slot_engine.redis_client.redis_client", None):
        emit_event("booking_created", {"appointment_id": 5})
