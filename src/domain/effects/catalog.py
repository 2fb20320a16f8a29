"""
Effect Catalog

Immutable catalog snapshot plus a registry that swaps snapshots atomically.

Responsibility:
    - EffectCatalog: read-only mapping catalog_id -> EffectDefinition
    - CatalogRegistry: holds the current snapshot, replaces it as a whole

Architecture Notes:
    - Part of Effects subdomain
    - In-flight requests keep the snapshot they started with; a reload never
      mutates a snapshot, it only rebinds the registry reference
    - Loading from disk lives in Infrastructure (catalog_loader.py)
"""

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from src.domain.effects.entities import EffectDefinition
from src.domain.shared.exceptions import CatalogValidationError, UnknownEffectError

logger = logging.getLogger(__name__)


def _fingerprint(effects: Mapping[str, EffectDefinition]) -> str:
    canonical = json.dumps(
        [effects[catalog_id].to_dict() for catalog_id in sorted(effects)],
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class EffectCatalog:
    """
    Immutable snapshot of every known effect.

    Attributes:
        effects: Read-only mapping catalog_id -> EffectDefinition
        version: Monotonic snapshot number assigned by CatalogRegistry
        loaded_at: When the snapshot was built
        source: Where the definitions came from (file path, "inline", ...)
        fingerprint: Content hash of the definitions. Unlike version it is the
            same in every process that loaded the same catalog, so shared
            cache entries are tagged with it
    """

    effects: Mapping[str, EffectDefinition]
    version: int = 0
    loaded_at: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None
    fingerprint: str = ""

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[EffectDefinition],
        version: int = 0,
        source: Optional[str] = None,
    ) -> "EffectCatalog":
        """
        Build a snapshot, rejecting duplicate catalog ids.

        Raises:
            CatalogValidationError: If two definitions share a catalog_id
        """
        effects: dict[str, EffectDefinition] = {}
        for definition in definitions:
            if definition.catalog_id in effects:
                raise CatalogValidationError(
                    "Duplicate effect in catalog", catalog_id=definition.catalog_id
                )
            effects[definition.catalog_id] = definition
        return cls(
            effects=MappingProxyType(effects),
            version=version,
            source=source,
            fingerprint=_fingerprint(effects),
        )

    def get(self, catalog_id: str) -> EffectDefinition:
        """
        Resolve an effect by id.

        Raises:
            UnknownEffectError: If the id is not in this snapshot
        """
        try:
            return self.effects[catalog_id]
        except KeyError:
            raise UnknownEffectError(catalog_id) from None

    def __contains__(self, catalog_id: object) -> bool:
        return catalog_id in self.effects

    def __len__(self) -> int:
        return len(self.effects)

    def ids(self) -> list[str]:
        return sorted(self.effects)


class CatalogRegistry:
    """
    Holder of the current EffectCatalog snapshot.

    Readers call current() and keep the returned snapshot for the whole
    request. Writers call swap() with a fully built and validated catalog.

    Examples:
        >>> registry = CatalogRegistry(EffectCatalog.from_definitions([]))
        >>> new = registry.swap([bg_replace_definition], source="config/effect_catalog.json")
        >>> new.version
        1
    """

    def __init__(self, initial: Optional[EffectCatalog] = None) -> None:
        self._lock = threading.Lock()
        self._current: EffectCatalog = initial or EffectCatalog.from_definitions([])

    def current(self) -> EffectCatalog:
        return self._current

    def swap(
        self, definitions: Iterable[EffectDefinition], source: Optional[str] = None
    ) -> EffectCatalog:
        """
        Build a new snapshot and make it current.

        The new snapshot is fully validated before the reference is rebound,
        so a failed reload leaves the previous catalog in place.

        Returns:
            The snapshot that is now current
        """
        with self._lock:
            snapshot = EffectCatalog.from_definitions(
                definitions, version=self._current.version + 1, source=source
            )
            self._current = snapshot

        logger.info(
            f"Effect catalog swapped: version={snapshot.version}, "
            f"effects={len(snapshot)}, fingerprint={snapshot.fingerprint}, "
            f"source={source}"
        )
        return snapshot
