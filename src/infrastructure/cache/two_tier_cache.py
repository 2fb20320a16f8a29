"""
Two-Tier Cache (hot local + shared Redis)

Response/config cache shared by the API process and Celery workers.

Responsibility:
    - Hot tier: in-process dict with per-entry expiry, swept from set()
      every LOCAL_PURGE_INTERVAL_SECONDS, and a fixed set of striped locks
    - Shared tier: Redis SETEX/GET with the caller's TTL
    - Cross-process read-compare-write: transact_json() (WATCH/MULTI/EXEC)
    - Prefix invalidation (catalog reload drops every effect_config:* entry)
    - Graceful degradation: Redis failures log a warning and fall back to
      the local tier, they never fail the caller

Architecture Notes:
    - Infrastructure Layer (external dependency on Redis)
    - Values are strings (callers store JSON); get_json/set_json wrap that
    - The local tier keeps entries for at most local_max_ttl seconds when a
      shared tier exists, so other processes' writes become visible quickly
    - Without a shared tier the local tier honours the full TTL

Key Patterns (owned by callers):
    - "task:{task_id}"                 authoritative task record
    - "status:{task_id}"               status snapshot for queries
    - "effect_config:{catalog}:{region}" resolved effect config + catalog fingerprint

Examples:
    >>> cache = TwoTierCache(redis=get_optional_redis_client(), local_max_ttl=5)
    >>> cache.set_json("status:abc", {"state": "RUNNING"}, ttl=10)
    >>> cache.get_json("status:abc")
    {'state': 'RUNNING'}
    >>> cache.invalidate_prefix("effect_config:")
"""

import json
import logging
import threading
import time
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError, WatchError

# Configure logger for this module
logger = logging.getLogger(__name__)

# Fixed pool of key locks; each key hashes onto one stripe
LOCK_STRIPES = 64

# Expired local entries are swept from set() at most this often
LOCAL_PURGE_INTERVAL_SECONDS = 30.0

# WATCH/MULTI/EXEC attempts before a contended transaction gives up
TRANSACTION_RETRIES = 5

# {key: (json_value, ttl_seconds)}
Writes = dict[str, tuple[Any, int]]


@dataclass
class CacheEntry:
    """One local-tier entry."""

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TwoTierCache:
    """
    Hot local tier in front of an optional Redis tier.

    Args:
        redis: Redis client for the shared tier (None = local only)
        local_max_ttl: Upper bound in seconds for local entries when Redis is present
        clock: Monotonic clock, injectable for tests
        purge_interval: Seconds between sweeps of expired local entries
    """

    def __init__(
        self,
        redis: Optional[Redis] = None,
        local_max_ttl: int = 5,
        clock: Callable[[], float] = time.monotonic,
        purge_interval: float = LOCAL_PURGE_INTERVAL_SECONDS,
    ) -> None:
        self.redis = redis
        self.local_max_ttl = local_max_ttl
        self.purge_interval = purge_interval
        self._clock = clock
        self._local: dict[str, CacheEntry] = {}
        self._stripes = tuple(threading.RLock() for _ in range(LOCK_STRIPES))
        self._last_purge = clock()

    @property
    def has_shared_tier(self) -> bool:
        return self.redis is not None

    # ========================================================================
    # LOCKING
    # ========================================================================

    def _lock_for(self, key: str) -> threading.RLock:
        return self._stripes[zlib.crc32(key.encode()) % LOCK_STRIPES]

    @contextmanager
    def key_lock(self, key: str) -> Iterator[None]:
        """
        Hold the lock of key's stripe for a read-modify-write sequence.

        Serialises writers of the same key inside this process only; use
        transact_json() when writers in other processes must be excluded.
        Never hold two key locks at once: unrelated keys may share a stripe.
        """
        with self._lock_for(key):
            yield

    # ========================================================================
    # LOCAL TIER
    # ========================================================================

    def _local_get(self, key: str) -> Optional[str]:
        entry = self._local.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._local.pop(key, None)
            return None
        return entry.value

    def _local_set(self, key: str, value: str, ttl: float) -> None:
        now = self._clock()
        if now - self._last_purge >= self.purge_interval:
            self.purge_expired()
        if ttl <= 0:
            self._local.pop(key, None)
            return
        self._local[key] = CacheEntry(key=key, value=value, expires_at=now + ttl)

    def _local_ttl(self, ttl: int) -> float:
        if self.redis is None:
            return ttl
        return min(ttl, self.local_max_ttl)

    def purge_expired(self) -> int:
        """Drop expired local entries. Returns how many were removed."""
        now = self._clock()
        self._last_purge = now
        expired = [key for key, entry in list(self._local.items()) if entry.is_expired(now)]
        for key in expired:
            self._local.pop(key, None)
        if expired:
            logger.debug(f"Purged {len(expired)} expired local cache entries")
        return len(expired)

    def local_size(self) -> int:
        return len(self._local)

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def get(self, key: str, bypass_local: bool = False) -> Optional[str]:
        """
        Read a value, local tier first.

        Args:
            key: Cache key
            bypass_local: Skip the hot tier and read Redis directly (used by
                the poller, which must see other processes' writes)

        Returns:
            Cached string, or None if absent/expired in both tiers
        """
        if not bypass_local:
            value = self._local_get(key)
            if value is not None:
                return value

        if self.redis is None:
            return self._local_get(key)

        try:
            value = self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Redis error in get for {key}, using local tier: {e}")
            return self._local_get(key)

        if value is None:
            return None

        with self.key_lock(key):
            self._local_set(key, value, self.local_max_ttl)
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        """
        Write a value to both tiers.

        Args:
            key: Cache key
            value: String value (JSON for structured data)
            ttl: Time-to-live in seconds for the shared tier

        Error Handling:
            On RedisError the value is kept locally with the full TTL and a
            warning is logged; no exception is raised.
        """
        with self.key_lock(key):
            if self.redis is not None:
                try:
                    self.redis.setex(key, ttl, value)
                except RedisError as e:
                    logger.warning(f"Redis error in set for {key}, keeping local copy only: {e}")
                    self._local_set(key, value, ttl)
                    return
            self._local_set(key, value, self._local_ttl(ttl))

    def delete(self, key: str) -> None:
        with self.key_lock(key):
            self._local.pop(key, None)
            if self.redis is not None:
                try:
                    self.redis.delete(key)
                except RedisError as e:
                    logger.warning(f"Redis error in delete for {key}: {e}")

    def invalidate_prefix(self, prefix: str) -> int:
        """
        Delete every key starting with prefix from both tiers.

        Returns:
            Number of keys removed from the local tier plus the shared tier
        """
        local_keys = [key for key in list(self._local) if key.startswith(prefix)]
        for key in local_keys:
            self._local.pop(key, None)
        removed = len(local_keys)

        if self.redis is not None:
            try:
                shared_keys = list(self.redis.scan_iter(match=f"{prefix}*"))
                if shared_keys:
                    removed += self.redis.delete(*shared_keys)
            except RedisError as e:
                logger.warning(f"Redis error invalidating prefix {prefix!r}: {e}")

        logger.info(f"Cache invalidated: prefix={prefix!r}, removed={removed}")
        return removed

    # ========================================================================
    # JSON HELPERS
    # ========================================================================

    def get_json(self, key: str, bypass_local: bool = False) -> Optional[Any]:
        raw = self.get(key, bypass_local=bypass_local)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted cache entry {key}, dropping it: {e}")
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, ttl: int) -> None:
        self.set(key, json.dumps(value), ttl)

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    def transact_json(self, key: str, decide: Callable[[Optional[Any]], Optional[Writes]]) -> bool:
        """
        Read key, let decide() pick the writes, and apply them atomically.

        With Redis the read-compare-write runs as an optimistic transaction:
        key is WATCHed, decide() sees its current value, and the writes go
        out in one MULTI/EXEC. A write to key by any other process in between
        aborts EXEC and the whole sequence is retried with the fresh value,
        so decide() may run more than once and must not keep state between
        calls. Without Redis (or when Redis fails) the stripe lock of key
        orders the sequence inside this process.

        Args:
            key: Watched key; its decoded JSON value (or None) is passed to decide
            decide: Returns {key: (value, ttl)} to write, or None to write nothing

        Returns:
            True if writes were applied, False if decide() returned None

        Raises:
            WatchError: key kept changing for TRANSACTION_RETRIES attempts
        """
        with self.key_lock(key):
            if self.redis is None:
                return self._local_transact(key, decide)
            try:
                return self._shared_transact(key, decide)
            except WatchError:
                logger.error(f"Transaction on {key} lost {TRANSACTION_RETRIES} races in a row")
                raise
            except RedisError as e:
                logger.warning(f"Redis error in transaction on {key}, using local tier: {e}")
                return self._local_transact(key, decide)

    def _shared_transact(self, key: str, decide: Callable[[Optional[Any]], Optional[Writes]]) -> bool:
        for attempt in range(1, TRANSACTION_RETRIES + 1):
            with self.redis.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    writes = decide(self._decode(key, pipe.get(key)))
                    if writes is None:
                        return False
                    pipe.multi()
                    for write_key, (value, ttl) in writes.items():
                        pipe.setex(write_key, ttl, json.dumps(value))
                    pipe.execute()
                except WatchError:
                    logger.info(f"Concurrent write on {key}, retrying ({attempt}/{TRANSACTION_RETRIES})")
                    continue

            for write_key, (value, ttl) in writes.items():
                self._local_set(write_key, json.dumps(value), self._local_ttl(ttl))
            return True

        raise WatchError(f"Watched key {key} changed during {TRANSACTION_RETRIES} attempts")

    def _local_transact(self, key: str, decide: Callable[[Optional[Any]], Optional[Writes]]) -> bool:
        writes = decide(self._decode(key, self._local_get(key)))
        if writes is None:
            return False
        for write_key, (value, ttl) in writes.items():
            self._local_set(write_key, json.dumps(value), ttl)
        return True

    @staticmethod
    def _decode(key: str, raw: Optional[str]) -> Optional[Any]:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted cache entry {key}, treating it as absent: {e}")
            return None
