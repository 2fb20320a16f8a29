"""
Infrastructure Layer - External Dependencies

Implements technical capabilities that support the Domain Layer.
Handles all external dependencies: Redis, the remote AI processing service,
the catalog file on disk.

Architecture:
    - Implements Application Layer protocols (TaskStoreProtocol, RemoteClientProtocol)
    - Depends on external libraries (redis, httpx)
    - No Domain business logic (only technical implementations)

Modules:
    - cache: Two-tier (local + Redis) cache
    - persistence: Redis connection pool and task record store
    - remote: Region routing, HTTP client and task dispatcher
    - catalog: Effect catalog file loader

Usage:
    >>> from src.infrastructure import RedisTaskStore, TwoTierCache, TaskDispatcher
    >>>
    >>> # Or import from specific submodules
    >>> from src.infrastructure.remote import RegionRouter
"""

# Cache
from .cache import TwoTierCache

# Catalog
from .catalog import EffectCatalogLoader

# Persistence
from .persistence import RedisTaskStore

# Remote service
from .remote import RegionRouter, RunningHubClient, TaskDispatcher

__all__ = [
    # Cache
    "TwoTierCache",
    # Catalog
    "EffectCatalogLoader",
    # Persistence
    "RedisTaskStore",
    # Remote service
    "RegionRouter",
    "RunningHubClient",
    "TaskDispatcher",
]
