"""
Effect Catalog Loader

Reads effect definitions from the JSON catalog file and installs them in
the CatalogRegistry.

Responsibility:
    - Locate the catalog file (EFFECT_CATALOG_PATH or config/effect_catalog.json)
    - Parse and validate every entry, collecting all errors before failing
    - Reload: validate the new file completely, then swap the snapshot

Architecture Notes:
    - Infrastructure Layer (filesystem I/O)
    - Domain invariants are enforced by EffectDefinition itself; the loader
      only reports them per entry
    - A failed reload leaves the previous snapshot current

File Format:
    {
      "version": 1,
      "effects": [
        {
          "catalogId": "bg-replace",
          "submissionMode": "graph",
          "externalWorkflowId": "1949831786093264897",
          "parameterSpecs": [{"key": "image_240", "kind": "image"}, ...],
          "nodeBindings": [{"nodeId": "240", "fieldName": "image", "paramKey": "image_240"}, ...]
        }
      ]
    }

Examples:
    >>> loader = EffectCatalogLoader()
    >>> registry = CatalogRegistry()
    >>> catalog = loader.reload(registry)
    >>> catalog.ids()
    ['bg-replace', 'flux-kontext', 'portrait-upscale']
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from src.domain.effects import CatalogRegistry, EffectCatalog, EffectDefinition
from src.domain.shared.exceptions import CatalogValidationError

# Configure logger for this module
logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[3] / "config" / "effect_catalog.json"
SUPPORTED_FORMAT_VERSION = 1


def resolve_catalog_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Explicit path, then EFFECT_CATALOG_PATH, then the bundled catalog."""
    if path is not None:
        return Path(path)
    env_path = os.getenv("EFFECT_CATALOG_PATH")
    return Path(env_path) if env_path else DEFAULT_CATALOG_PATH


def parse_catalog(document: Any, source: Optional[str] = None) -> list[EffectDefinition]:
    """
    Turn a decoded catalog document into validated definitions.

    Every entry is validated; errors from all entries are reported together.

    Raises:
        CatalogValidationError: If the document or any entry is invalid
    """
    if not isinstance(document, dict) or not isinstance(document.get("effects"), list):
        raise CatalogValidationError(
            f"Catalog must be an object with an 'effects' list (source: {source or 'inline'})"
        )

    version = document.get("version", SUPPORTED_FORMAT_VERSION)
    if version != SUPPORTED_FORMAT_VERSION:
        raise CatalogValidationError(f"Unsupported catalog format version {version!r}")

    definitions: list[EffectDefinition] = []
    errors: list[str] = []
    seen: set[str] = set()

    for index, entry in enumerate(document["effects"]):
        if not isinstance(entry, dict):
            errors.append(f"effects[{index}]: expected an object")
            continue
        label = entry.get("catalogId") or f"effects[{index}]"
        try:
            definition = EffectDefinition.from_dict(entry)
        except CatalogValidationError as e:
            details = "; ".join(e.errors) if e.errors else e.message
            errors.append(f"{label}: {details}")
            continue

        if definition.catalog_id in seen:
            errors.append(f"{label}: duplicate catalogId")
            continue
        seen.add(definition.catalog_id)
        definitions.append(definition)

    if errors:
        for error in errors:
            logger.error(f"Catalog error: {error}")
        raise CatalogValidationError("Effect catalog is invalid", errors=errors)

    return definitions


class EffectCatalogLoader:
    """
    Loads the effect catalog from disk.

    Args:
        path: Catalog file (default: EFFECT_CATALOG_PATH or config/effect_catalog.json)
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = resolve_catalog_path(path)

    def load(self) -> list[EffectDefinition]:
        """
        Read and validate the catalog file.

        Raises:
            CatalogValidationError: If the file is missing, not JSON, or invalid
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise CatalogValidationError(f"Cannot read effect catalog {self.path}: {e}") from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CatalogValidationError(f"Effect catalog {self.path} is not valid JSON: {e}") from e

        definitions = parse_catalog(document, source=str(self.path))
        logger.info(f"Loaded {len(definitions)} effects from {self.path}")
        return definitions

    def reload(self, registry: CatalogRegistry) -> EffectCatalog:
        """
        Load the file and swap it into the registry.

        Returns:
            The new current snapshot

        Raises:
            CatalogValidationError: The previous snapshot stays current
        """
        definitions = self.load()
        return registry.swap(definitions, source=str(self.path))
