"""
Effect Catalog Infrastructure Module

Exports:
    - EffectCatalogLoader: Reads config/effect_catalog.json into the CatalogRegistry
    - parse_catalog: Validates an already decoded catalog document
"""

from .catalog_loader import DEFAULT_CATALOG_PATH, EffectCatalogLoader, parse_catalog

__all__ = ["EffectCatalogLoader", "parse_catalog", "DEFAULT_CATALOG_PATH"]
