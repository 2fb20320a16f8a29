"""
API Router for the Effect Catalog

Responsibility:
    HTTP interface for listing the available effects and reloading the
    catalog file without a restart.

Architecture Notes:
    - Part of API Layer (Presentation)
    - Listing reads the current immutable catalog snapshot
    - Reload swaps the snapshot atomically and drops cached effect configs;
      an invalid file leaves the previous snapshot active (422 CATALOG_VALIDATION)

Contains:
    - GET /effects - List effects and their parameters
    - POST /effects/reload - Reload the catalog file
"""

import logging

from fastapi import APIRouter, Depends, status

from src.api.schemas.common import ErrorResponse
from src.application.commands.reload_catalog import (
    ReloadCatalogCommandHandler,
    ReloadCatalogResult,
)
from src.application.container import get_container
from src.application.queries.list_effects import EffectListResult, ListEffectsQueryHandler

# Configure logger
logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/effects",
    tags=["effects"],
    responses={500: {"model": ErrorResponse, "description": "Internal Server Error"}},
)


async def get_list_effects_handler() -> ListEffectsQueryHandler:
    """Dependency injection for ListEffectsQueryHandler."""
    return get_container().list_effects_handler()


async def get_reload_catalog_handler() -> ReloadCatalogCommandHandler:
    """Dependency injection for ReloadCatalogCommandHandler."""
    return get_container().reload_catalog_handler()


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=EffectListResult,
    summary="List available effects",
)
async def list_effects(
    handler: ListEffectsQueryHandler = Depends(get_list_effects_handler),
) -> EffectListResult:
    """
    List the effects in the current catalog snapshot.

    Examples:
        >>> curl http://localhost:8000/api/effects
        {"version": 1, "effects": [{"catalog_id": "bg-replace", "required": ["image_240", "prompt_279"], ...}]}
    """
    return await handler.handle()


@router.post(
    "/reload",
    status_code=status.HTTP_200_OK,
    response_model=ReloadCatalogResult,
    summary="Reload the effect catalog",
    responses={
        422: {"description": "Catalog file invalid, previous catalog kept", "model": ErrorResponse},
    },
)
async def reload_catalog(
    handler: ReloadCatalogCommandHandler = Depends(get_reload_catalog_handler),
) -> ReloadCatalogResult:
    """Reload the catalog file and invalidate cached effect configs."""
    result = await handler.handle()
    logger.info(f"Catalog reload requested: version={result.version}, effects={result.effects}")
    return result
