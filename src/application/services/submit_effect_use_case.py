"""
Submit Effect Use Case - Application Orchestration

Responsibility:
    Turns a SubmitEffectCommand into a running remote task.
    Implements Use Case pattern from Clean Architecture.

Architecture Notes:
    - Part of Application Layer (Services/Use Cases)
    - Depends on Domain (catalog, binder) and on the dispatcher and lifecycle
      manager through constructor injection
    - The blocking submission runs in a worker thread (asyncio.to_thread),
      the event loop only awaits it
    - Every validation happens before the network: an invalid request never
      reaches the remote service

Flow:
    1. Resolve the region (UnsupportedRegionError)
    2. Resolve the effect: effect config cache (entries tagged with the
       catalog fingerprint), then the catalog snapshot (UnknownEffectError)
    3. Bind parameters (MissingParameterError / InvalidParameterValueError)
    4. Dispatch with lifecycle_manager.register as state callback, which
       persists every state and arms the first poll
    5. Return the stored task state

Contains:
    - SubmitEffectUseCase: Main orchestration class
    - SubmitEffectResult: Response DTO
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel, Field

from src.application.commands.submit_effect import SubmitEffectCommand
from src.application.ports import TaskDispatcherProtocol
from src.application.services.task_lifecycle_manager import TaskLifecycleManager
from src.domain.effects import CatalogRegistry, EffectDefinition
from src.domain.effects.services import ParameterBinder
from src.domain.shared.exceptions import CatalogValidationError
from src.domain.tasks.lifecycle_config import CONFIG_CACHE_TTL_SECONDS
from src.infrastructure.cache import TwoTierCache
from src.infrastructure.remote import RegionRouter

# Configure logger for this module
logger = logging.getLogger(__name__)


# ============================================================================
# RESULT (Response DTO)
# ============================================================================


class SubmitEffectResult(BaseModel):
    """
    Result DTO for the submit use case.

    Attributes:
        task_id: Local task ID for status queries
        state: Task state after submission (RUNNING, or FAILED for unknown outcomes)
        catalog_id: Effect that was submitted
        region: Region the task went to
        warning: Remote validation warning (accepted-with-warning only)
    """

    task_id: str = Field(description="Task ID for status tracking")
    state: str = Field(description="Task state after submission")
    catalog_id: str
    region: str
    warning: Optional[str] = None


# ============================================================================
# USE CASE
# ============================================================================


class SubmitEffectUseCase:
    """
    Orchestrates one effect submission.

    Dependencies:
        - catalog_registry: Current EffectCatalog snapshot
        - binder: ParameterBinder
        - dispatcher: TaskDispatcher (retries, classification)
        - lifecycle_manager: Persists the task and arms polling
        - region_router: Region validation before any other work
        - cache: Effect config cache (optional)

    Example:
        >>> use_case = SubmitEffectUseCase(registry, ParameterBinder(), dispatcher,
        ...                                manager, RegionRouter.from_env(), cache)
        >>> result = await use_case.execute(SubmitEffectCommand(
        ...     catalog_id="bg-replace",
        ...     params={"image_240": "file.png", "prompt_279": "studio light"},
        ... ))
        >>> result.state
        'RUNNING'
    """

    def __init__(
        self,
        catalog_registry: CatalogRegistry,
        binder: ParameterBinder,
        dispatcher: TaskDispatcherProtocol,
        lifecycle_manager: TaskLifecycleManager,
        region_router: RegionRouter,
        cache: Optional[TwoTierCache] = None,
        config_ttl: int = CONFIG_CACHE_TTL_SECONDS,
    ):
        self.catalog_registry = catalog_registry
        self.binder = binder
        self.dispatcher = dispatcher
        self.lifecycle_manager = lifecycle_manager
        self.region_router = region_router
        self.cache = cache
        self.config_ttl = config_ttl

    @staticmethod
    def _get_config_key(catalog_id: str, region: str) -> str:
        """
        Generate cache key for a resolved effect config.

        Examples:
            >>> SubmitEffectUseCase._get_config_key("bg-replace", "hongkong")
            'effect_config:bg-replace:hongkong'
        """
        return f"effect_config:{catalog_id}:{region}"

    def resolve_effect(self, catalog_id: str, region: str) -> EffectDefinition:
        """
        Resolve an effect through the config cache.

        Cached configs carry the fingerprint of the catalog that wrote them.
        An entry written by a process on a different catalog is treated as
        a miss and replaced, so this process only serves its own snapshot.

        Raises:
            UnknownEffectError: If the effect is not in the current catalog
        """
        key = self._get_config_key(catalog_id, region)
        catalog = self.catalog_registry.current()

        if self.cache is not None:
            cached = self.cache.get_json(key)
            if isinstance(cached, dict) and cached.get("fingerprint") == catalog.fingerprint:
                try:
                    return EffectDefinition.from_dict(cached.get("effect") or {})
                except CatalogValidationError as e:
                    logger.warning(f"Dropping unusable cached config {key}: {e}")
                    self.cache.delete(key)
            elif cached is not None:
                logger.info(f"Cached config {key} belongs to another catalog, replacing it")

        effect = catalog.get(catalog_id)

        if self.cache is not None:
            self.cache.set_json(
                key, {"fingerprint": catalog.fingerprint, "effect": effect.to_dict()}, ttl=self.config_ttl
            )
        return effect

    async def execute(self, command: SubmitEffectCommand) -> SubmitEffectResult:
        """
        Submit the effect.

        Args:
            command: SubmitEffectCommand from the API layer

        Returns:
            SubmitEffectResult with the task id and its state

        Raises:
            ValidationError: Region, effect or parameters invalid (no network call made)
            RemoteConfigurationError: Remote rejected the node bindings
            TransientSubmissionError: Every submission attempt failed transiently
        """
        endpoint = self.region_router.resolve(command.region)
        effect = await asyncio.to_thread(self.resolve_effect, command.catalog_id, endpoint.region)
        binding = self.binder.bind(effect, command.params)

        logger.info(
            f"Submitting effect {effect.catalog_id} ({effect.submission_mode.value}) "
            f"to {endpoint.region} with {len(binding)} node values"
        )

        task = await asyncio.to_thread(
            self.dispatcher.submit,
            effect,
            binding,
            endpoint.region,
            self.lifecycle_manager.register,
        )

        stored = await asyncio.to_thread(self.lifecycle_manager.get, task.task_id)
        current = stored or task

        logger.info(f"Task {current.task_id} submitted: {current.state.value}")
        return SubmitEffectResult(
            task_id=current.task_id,
            state=current.state.value,
            catalog_id=current.catalog_id,
            region=current.region,
            warning=current.warning,
        )
