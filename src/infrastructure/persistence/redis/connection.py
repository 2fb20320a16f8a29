"""
Process-wide Redis pool for the shared cache tier.

Every process (API, each Celery worker process) builds one ConnectionPool on
first use and hands out clients bound to it. TwoTierCache is the only
consumer; the task store and the effect config cache reach Redis through it.

Settings (environment, read on first use):
    REDIS_HOST / REDIS_PORT / REDIS_DB   localhost / 6379 / 0
    REDIS_PASSWORD                       unset
    REDIS_MAX_CONNECTIONS                20; poll chains run on many worker
                                         threads, each holding a connection
    REDIS_TIMEOUT                        5 seconds (connect and socket)
    REDIS_RETRY_ATTEMPTS                 3 PINGs, sleeping 1s, 2s, 4s... between

Failure model:
    get_redis_client()           raises RedisError once all PINGs failed
    get_optional_redis_client()  returns None instead; callers fall back to
                                 the in-process tier
    health_check()               True/False, never raises
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from redis import ConnectionPool, Redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

# Configure logger for this module
logger = logging.getLogger(__name__)

_redis_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()

# Seconds before the second PING; doubles afterwards
PING_BACKOFF_BASE = 1


@dataclass(frozen=True)
class RedisSettings:
    host: str
    port: int
    db: int
    max_connections: int
    timeout: int
    password: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RedisSettings":
        return cls(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
            max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "20")),
            timeout=int(os.getenv("REDIS_TIMEOUT", "5")),
            password=os.getenv("REDIS_PASSWORD") or None,
        )

    def create_pool(self) -> ConnectionPool:
        logger.info(
            f"Opening Redis pool {self.host}:{self.port}/{self.db} "
            f"(max_connections={self.max_connections}, timeout={self.timeout}s)"
        )
        return ConnectionPool(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            max_connections=self.max_connections,
            socket_timeout=self.timeout,
            socket_connect_timeout=self.timeout,
            socket_keepalive=True,
            decode_responses=True,  # task records are JSON text
        )


def _wait_until_reachable(client: Redis, attempts: int) -> None:
    for attempt in range(1, attempts + 1):
        try:
            client.ping()
            logger.debug(f"Redis answered PING on attempt {attempt}")
            return
        except (ConnectionError, TimeoutError) as e:
            if attempt == attempts:
                logger.error(f"Redis unreachable after {attempts} PING attempts: {e}")
                raise RedisError(
                    f"Failed to connect to Redis after {attempts} attempts. Last error: {e}"
                ) from e
            delay = PING_BACKOFF_BASE * 2 ** (attempt - 1)
            logger.warning(f"Redis PING {attempt}/{attempts} failed ({e}), next try in {delay}s")
            time.sleep(delay)


def get_redis_client(
    host: Optional[str] = None,
    port: Optional[int] = None,
    db: Optional[int] = None,
    max_connections: Optional[int] = None,
    timeout: Optional[int] = None,
) -> Redis:
    """
    Return a client on the shared pool, after confirming Redis answers PING.

    Explicit arguments override the environment. They only matter for the
    call that creates the pool; later calls reuse it as is.

    Raises:
        RedisError: every PING attempt failed
    """
    global _redis_pool

    if _redis_pool is None:
        with _pool_lock:
            if _redis_pool is None:
                env = RedisSettings.from_env()
                settings = RedisSettings(
                    host=host or env.host,
                    port=port or env.port,
                    db=env.db if db is None else db,
                    max_connections=max_connections or env.max_connections,
                    timeout=timeout or env.timeout,
                    password=env.password,
                )
                _redis_pool = settings.create_pool()

    client = Redis(connection_pool=_redis_pool)
    _wait_until_reachable(client, int(os.getenv("REDIS_RETRY_ATTEMPTS", "3")))
    return client


def get_optional_redis_client() -> Optional[Redis]:
    """Like get_redis_client(), but None when Redis cannot be reached."""
    try:
        return get_redis_client()
    except RedisError as e:
        logger.warning(f"Redis unavailable, shared cache tier disabled: {e}")
        return None


def health_check() -> bool:
    try:
        healthy = bool(get_redis_client().ping())
    except RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        return False

    if not healthy:
        logger.warning("Redis health check: PING returned False")
    return healthy


def close_connections() -> None:
    """
    Drop the pool so the next get_redis_client() builds a fresh one.

    Idempotent. Runs on Celery worker process shutdown.
    """
    global _redis_pool

    with _pool_lock:
        pool, _redis_pool = _redis_pool, None

    if pool is None:
        return
    try:
        pool.disconnect()
        logger.info("Redis connection pool closed")
    except RedisError as e:
        logger.error(f"Error closing Redis connection pool: {e}")
