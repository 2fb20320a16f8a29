"""
Tests for TwoTierCache.
Covers: local-only mode, shared tier reads/writes, Redis degradation, prefix invalidation,
bounded local memory, transactions.
"""

from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from src.infrastructure.cache import TwoTierCache
from src.infrastructure.cache.two_tier_cache import LOCK_STRIPES, TRANSACTION_RETRIES


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def mock_redis():
    redis = MagicMock()
    redis.get.return_value = None
    return redis


@pytest.fixture
def shared_cache(mock_redis, clock):
    return TwoTierCache(redis=mock_redis, local_max_ttl=5, clock=clock)


# ============================================================================
# LOCAL-ONLY MODE
# ============================================================================


def test_local_only_honours_full_ttl(clock):
    cache = TwoTierCache(redis=None, local_max_ttl=5, clock=clock)
    cache.set("status:a", "RUNNING", ttl=60)

    clock.now += 59
    assert cache.get("status:a") == "RUNNING"

    clock.now += 1
    assert cache.get("status:a") is None
    assert not cache.has_shared_tier


def test_zero_ttl_does_not_store(clock):
    cache = TwoTierCache(redis=None, clock=clock)

    cache.set("k", "v", ttl=0)

    assert cache.get("k") is None


def test_purge_expired(clock):
    cache = TwoTierCache(redis=None, clock=clock)
    cache.set("a", "1", ttl=1)
    cache.set("b", "2", ttl=100)

    clock.now += 2

    assert cache.purge_expired() == 1
    assert cache.get("b") == "2"


# ============================================================================
# SHARED TIER
# ============================================================================


def test_set_writes_redis_with_ttl_and_caps_local_copy(shared_cache, mock_redis, clock):
    shared_cache.set("status:a", "RUNNING", ttl=3600)

    mock_redis.setex.assert_called_once_with("status:a", 3600, "RUNNING")
    assert shared_cache.get("status:a") == "RUNNING"
    mock_redis.get.assert_not_called()

    # Local copy expires after local_max_ttl, then Redis is consulted
    clock.now += 5
    mock_redis.get.return_value = "SUCCEEDED"
    assert shared_cache.get("status:a") == "SUCCEEDED"


def test_get_miss_in_both_tiers(shared_cache, mock_redis):
    assert shared_cache.get("missing") is None
    mock_redis.get.assert_called_once_with("missing")


def test_bypass_local_reads_redis(shared_cache, mock_redis):
    shared_cache.set("task:a", "old", ttl=60)
    mock_redis.get.return_value = "new"

    assert shared_cache.get("task:a", bypass_local=True) == "new"
    # Fresh value now warms the local tier
    mock_redis.get.reset_mock()
    assert shared_cache.get("task:a") == "new"
    mock_redis.get.assert_not_called()


# ============================================================================
# REDIS DEGRADATION
# ============================================================================


def test_set_falls_back_to_local_on_redis_error(shared_cache, mock_redis, clock):
    mock_redis.setex.side_effect = RedisConnectionError("down")
    mock_redis.get.side_effect = RedisConnectionError("down")

    shared_cache.set("status:a", "RUNNING", ttl=60)

    # Kept locally with the full TTL, not capped at local_max_ttl
    clock.now += 30
    assert shared_cache.get("status:a") == "RUNNING"


def test_get_returns_local_value_when_redis_fails(shared_cache, mock_redis):
    shared_cache.set("k", "v", ttl=60)
    mock_redis.get.side_effect = RedisConnectionError("down")

    assert shared_cache.get("k", bypass_local=True) == "v"


def test_delete_survives_redis_error(shared_cache, mock_redis):
    shared_cache.set("k", "v", ttl=60)
    mock_redis.delete.side_effect = RedisConnectionError("down")

    shared_cache.delete("k")

    assert shared_cache._local_get("k") is None


# ============================================================================
# PREFIX INVALIDATION
# ============================================================================


def test_invalidate_prefix_clears_both_tiers(shared_cache, mock_redis):
    shared_cache.set("effect_config:bg-replace:china", "{}", ttl=60)
    shared_cache.set("effect_config:flux-kontext:china", "{}", ttl=60)
    shared_cache.set("status:a", "RUNNING", ttl=60)
    mock_redis.scan_iter.return_value = iter(["effect_config:bg-replace:hongkong"])
    mock_redis.delete.return_value = 1

    removed = shared_cache.invalidate_prefix("effect_config:")

    assert removed == 3
    mock_redis.scan_iter.assert_called_once_with(match="effect_config:*")
    mock_redis.delete.assert_called_once_with("effect_config:bg-replace:hongkong")
    assert shared_cache._local_get("status:a") == "RUNNING"


def test_invalidate_prefix_without_shared_keys(shared_cache, mock_redis):
    mock_redis.scan_iter.return_value = iter([])

    assert shared_cache.invalidate_prefix("effect_config:") == 0
    mock_redis.delete.assert_not_called()


def test_invalidate_prefix_tolerates_redis_error(shared_cache, mock_redis):
    shared_cache.set("effect_config:x:china", "{}", ttl=60)
    mock_redis.scan_iter.side_effect = RedisConnectionError("down")

    assert shared_cache.invalidate_prefix("effect_config:") == 1


# ============================================================================
# JSON HELPERS
# ============================================================================


def test_json_round_trip(clock):
    cache = TwoTierCache(redis=None, clock=clock)

    cache.set_json("status:a", {"state": "RUNNING", "attempt": 1}, ttl=10)

    assert cache.get_json("status:a") == {"state": "RUNNING", "attempt": 1}


def test_corrupted_json_is_dropped(shared_cache, mock_redis):
    mock_redis.get.return_value = "{not json"

    assert shared_cache.get_json("task:a") is None
    mock_redis.delete.assert_called_once_with("task:a")


def test_key_lock_is_reentrant(clock):
    cache = TwoTierCache(redis=None, clock=clock)

    with cache.key_lock("task:a"):
        cache.set("task:a", "v", ttl=10)

    assert cache.get("task:a") == "v"


# ============================================================================
# BOUNDED LOCAL MEMORY
# ============================================================================


def test_expired_entries_are_swept_by_later_writes(clock):
    cache = TwoTierCache(redis=None, clock=clock)
    for i in range(1000):
        cache.set_json(f"status:{i}", {"state": "RUNNING"}, ttl=10)
    assert cache.local_size() == 1000

    clock.now += cache.purge_interval + 10
    cache.set_json("status:next", {"state": "RUNNING"}, ttl=10)

    assert cache.local_size() == 1
    assert cache.get_json("status:next") == {"state": "RUNNING"}


def test_sweep_waits_for_purge_interval(clock):
    cache = TwoTierCache(redis=None, clock=clock, purge_interval=30)
    cache.set("a", "1", ttl=1)

    clock.now += 5
    cache.set("b", "2", ttl=100)

    assert cache.local_size() == 2


def test_key_locks_are_a_fixed_pool(clock):
    cache = TwoTierCache(redis=None, clock=clock)

    locks = {id(cache._lock_for(f"task:{i}")) for i in range(1000)}

    assert len(locks) <= LOCK_STRIPES
    assert cache._lock_for("task:1") is cache._lock_for("task:1")


# ============================================================================
# TRANSACTIONS
# ============================================================================


def _bump(current):
    count = (current or {}).get("count", 0)
    return {"counter": ({"count": count + 1}, 60), "counter:copy": ({"count": count + 1}, 5)}


def test_transact_local_only(clock):
    cache = TwoTierCache(redis=None, clock=clock)

    assert cache.transact_json("counter", _bump) is True
    assert cache.transact_json("counter", _bump) is True

    assert cache.get_json("counter") == {"count": 2}
    assert cache.get_json("counter:copy") == {"count": 2}


def test_transact_writes_nothing_when_decide_declines(fake_redis, clock):
    cache = TwoTierCache(redis=fake_redis, clock=clock)

    assert cache.transact_json("counter", lambda current: None) is False
    assert fake_redis.data == {}
    assert cache.local_size() == 0


def test_transact_writes_every_key_with_its_ttl(fake_redis, clock):
    cache = TwoTierCache(redis=fake_redis, clock=clock)

    cache.transact_json("counter", _bump)

    assert fake_redis.ttls == {"counter": 60, "counter:copy": 5}
    assert cache.get_json("counter", bypass_local=True) == {"count": 1}


def test_transact_retries_with_the_value_another_process_wrote(fake_redis, clock):
    ours = TwoTierCache(redis=fake_redis, clock=clock)
    theirs = TwoTierCache(redis=fake_redis, clock=clock)
    ours.set_json("counter", {"count": 1}, ttl=60)
    seen = []

    def decide(current):
        seen.append(current)
        return _bump(current)

    fake_redis.after_watched_read = lambda: theirs.set_json("counter", {"count": 10}, ttl=60)
    ours.transact_json("counter", decide)

    assert seen == [{"count": 1}, {"count": 10}]
    assert theirs.get_json("counter", bypass_local=True) == {"count": 11}


def test_transact_gives_up_after_repeated_conflicts(clock):
    redis = MagicMock()
    pipe = redis.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = None
    pipe.execute.side_effect = WatchError("Watched variable changed.")
    cache = TwoTierCache(redis=redis, clock=clock)

    with pytest.raises(WatchError):
        cache.transact_json("counter", _bump)

    assert pipe.execute.call_count == TRANSACTION_RETRIES
    assert cache.local_size() == 0


def test_transact_falls_back_to_local_on_redis_error(mock_redis, shared_cache):
    mock_redis.pipeline.side_effect = RedisConnectionError("down")

    assert shared_cache.transact_json("counter", _bump) is True

    assert shared_cache.get_json("counter") == {"count": 1}


def test_transact_treats_corrupted_value_as_absent(fake_redis, clock):
    fake_redis.setex("counter", 60, "{not json")
    cache = TwoTierCache(redis=fake_redis, clock=clock)

    cache.transact_json("counter", _bump)

    assert cache.get_json("counter", bypass_local=True) == {"count": 1}
