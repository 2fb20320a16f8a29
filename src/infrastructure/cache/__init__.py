"""
Cache Infrastructure Module

Exports:
    - TwoTierCache: hot local tier in front of Redis
    - CacheEntry: local-tier entry
"""

from .two_tier_cache import CacheEntry, TwoTierCache

__all__ = ["TwoTierCache", "CacheEntry"]
