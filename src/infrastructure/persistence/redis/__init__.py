"""
Redis Infrastructure Module

Redis-based implementations for task state and the shared cache tier.

Exports:
    - RedisTaskStore: Task records and status snapshots
    - get_redis_client: Get Redis client with connection pooling
    - get_optional_redis_client: Same, but None when Redis is down
    - health_check: Check Redis health with PING test
    - close_connections: Close all Redis connections
"""

from .connection import (
    close_connections,
    get_optional_redis_client,
    get_redis_client,
    health_check,
)
from .task_state_store import RedisTaskStore

__all__ = [
    "RedisTaskStore",
    "get_redis_client",
    "get_optional_redis_client",
    "health_check",
    "close_connections",
]
