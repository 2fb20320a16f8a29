"""
ReloadCatalogCommand - CQRS Write Command

Hot reload of the effect catalog.

Responsibility:
    - Load and validate the catalog file
    - Swap the CatalogRegistry snapshot atomically
    - Drop every cached effect config ("effect_config:*") in both cache tiers

Architecture Notes:
    - A catalog that fails validation leaves the previous snapshot and the
      cache untouched
    - Other processes keep their own snapshot until their next reload or
      restart. Cached configs are tagged with the catalog fingerprint, so
      no process serves a config cached by a process on another catalog
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel

from src.domain.effects import CatalogRegistry
from src.infrastructure.cache import TwoTierCache
from src.infrastructure.catalog import EffectCatalogLoader

# Configure logger for this module
logger = logging.getLogger(__name__)

EFFECT_CONFIG_PREFIX = "effect_config:"


class ReloadCatalogResult(BaseModel):
    """
    Outcome of a catalog reload.

    Attributes:
        version: Snapshot version now current
        effects: Number of effects in the snapshot
        source: File the snapshot was loaded from
        invalidated: Cached effect config entries removed
        fingerprint: Content hash of the snapshot; equal across processes
            that loaded the same catalog
    """

    version: int
    effects: int
    source: Optional[str] = None
    invalidated: int = 0
    fingerprint: Optional[str] = None


class ReloadCatalogCommandHandler:
    """
    Handler for catalog reloads.

    Usage:
        handler = ReloadCatalogCommandHandler(loader, registry, cache)
        result = await handler.handle()
    """

    def __init__(
        self,
        loader: EffectCatalogLoader,
        registry: CatalogRegistry,
        cache: Optional[TwoTierCache] = None,
    ):
        self.loader = loader
        self.registry = registry
        self.cache = cache

    async def handle(self) -> ReloadCatalogResult:
        """
        Reload the catalog.

        Raises:
            CatalogValidationError: The previous snapshot stays current
        """
        snapshot = await asyncio.to_thread(self.loader.reload, self.registry)

        invalidated = 0
        if self.cache is not None:
            invalidated = await asyncio.to_thread(self.cache.invalidate_prefix, EFFECT_CONFIG_PREFIX)

        logger.info(
            f"Catalog reloaded: version={snapshot.version}, effects={len(snapshot)}, "
            f"invalidated={invalidated}, fingerprint={snapshot.fingerprint}"
        )
        return ReloadCatalogResult(
            version=snapshot.version,
            effects=len(snapshot),
            source=snapshot.source,
            invalidated=invalidated,
            fingerprint=snapshot.fingerprint,
        )
