"""
ListEffectsQuery - CQRS Read Query

Catalog listing for callers building effect pickers and forms.

Architecture Notes:
    - Reads the current CatalogRegistry snapshot only (no I/O)
    - Exposes parameter declarations, never node bindings or remote ids
"""

from typing import Any, Optional

from pydantic import BaseModel

from src.domain.effects import CatalogRegistry, EffectDefinition


class EffectSummary(BaseModel):
    """
    Caller-facing view of one effect.

    Attributes:
        catalog_id: Effect id used in SubmitEffectCommand
        name: Display name
        submission_mode: "app" or "graph"
        parameters: Parameter declarations (key, kind, default, options, range)
        required: Keys the caller must supply (no default)
    """

    catalog_id: str
    name: Optional[str] = None
    submission_mode: str
    parameters: list[dict[str, Any]]
    required: list[str]

    @classmethod
    def from_definition(cls, effect: EffectDefinition) -> "EffectSummary":
        return cls(
            catalog_id=effect.catalog_id,
            name=effect.name,
            submission_mode=effect.submission_mode.value,
            parameters=[spec.to_dict() for spec in effect.parameter_specs],
            required=effect.required_params,
        )


class EffectListResult(BaseModel):
    """Catalog snapshot listing."""

    version: int
    effects: list[EffectSummary]


class ListEffectsQueryHandler:
    """
    Handler for catalog listings.

    Usage:
        handler = ListEffectsQueryHandler(registry)
        result = await handler.handle()
    """

    def __init__(self, registry: CatalogRegistry):
        self.registry = registry

    async def handle(self) -> EffectListResult:
        catalog = self.registry.current()
        return EffectListResult(
            version=catalog.version,
            effects=[EffectSummary.from_definition(catalog.get(catalog_id)) for catalog_id in catalog.ids()],
        )
