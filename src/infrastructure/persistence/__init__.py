"""
Persistence Infrastructure Module

Exports:
    From redis:
        - RedisTaskStore
"""

from .redis import RedisTaskStore

__all__ = [
    "RedisTaskStore",
]
