"""
Service Container

Builds and holds the process-wide service graph shared by the API process
and Celery workers.

Responsibility:
    - Construct every collaborator once per process from environment config
    - Load the effect catalog on first use
    - Provide factories for the per-request handlers used by API routers

Architecture Notes:
    - Part of Application Layer (composition root)
    - Thread-safe singleton (double-checked locking, like the Redis pool)
    - Redis is optional at wiring time: without it the cache runs on its
      local tier only and a warning is logged
    - Tests build their own graph or override the router dependencies

Graph:
    LifecycleConfig.from_env()
    TwoTierCache(get_optional_redis_client())
        └── RedisTaskStore
    RegionRouter.from_env()
    RunningHubClient(submit_timeout, poll_timeout)
        └── TaskDispatcher(+ ErrorClassifier.from_env(), RetryPolicy)
    TaskLifecycleManager(store, client, router, CeleryPollScheduler)
    CatalogRegistry <- EffectCatalogLoader
"""

import logging
import threading
from typing import Optional

from src.application.commands.cancel_task import CancelTaskCommandHandler
from src.application.commands.reload_catalog import ReloadCatalogCommandHandler
from src.application.ports import PollSchedulerProtocol
from src.application.queries.get_task_status import GetTaskStatusQueryHandler
from src.application.queries.list_effects import ListEffectsQueryHandler
from src.application.services.submit_effect_use_case import SubmitEffectUseCase
from src.application.services.task_lifecycle_manager import TaskLifecycleManager
from src.domain.effects import CatalogRegistry
from src.domain.effects.services import ErrorClassifier, ParameterBinder
from src.domain.tasks import LifecycleConfig
from src.infrastructure.cache import TwoTierCache
from src.infrastructure.catalog import EffectCatalogLoader
from src.infrastructure.persistence.redis import RedisTaskStore, get_optional_redis_client
from src.infrastructure.remote import RegionRouter, RunningHubClient, TaskDispatcher

# Configure logger for this module
logger = logging.getLogger(__name__)

# Singleton container (thread-safe)
_container: Optional["ServiceContainer"] = None
_container_lock = threading.Lock()


class ServiceContainer:
    """
    Process-wide service graph.

    Args:
        config: Lifecycle configuration (default: from environment)
        cache: Two-tier cache (default: Redis when reachable)
        region_router: Region table (default: from environment)
        client: Remote HTTP client (default: new httpx-backed client)
        scheduler: Poll scheduler (default: Celery)
        catalog_loader: Catalog file loader (default: EFFECT_CATALOG_PATH)
    """

    def __init__(
        self,
        config: Optional[LifecycleConfig] = None,
        cache: Optional[TwoTierCache] = None,
        region_router: Optional[RegionRouter] = None,
        client: Optional[RunningHubClient] = None,
        scheduler: Optional[PollSchedulerProtocol] = None,
        catalog_loader: Optional[EffectCatalogLoader] = None,
    ) -> None:
        self.config = config or LifecycleConfig.from_env()
        self.cache = cache or TwoTierCache(
            redis=get_optional_redis_client(),
            local_max_ttl=self.config.ttl.local_max_ttl,
        )
        self.task_store = RedisTaskStore(self.cache, self.config)
        self.region_router = region_router or RegionRouter.from_env()
        self.client = client or RunningHubClient(
            submit_timeout=self.config.submit_timeout,
            poll_timeout=self.config.poll_timeout,
        )
        self.dispatcher = TaskDispatcher(
            self.client,
            self.region_router,
            classifier=ErrorClassifier.from_env(),
            retry_policy=self.config.retry,
            polling_policy=self.config.polling,
        )
        self.lifecycle_manager = TaskLifecycleManager(
            self.task_store,
            self.client,
            self.region_router,
            scheduler=scheduler or _default_scheduler(),
            polling_policy=self.config.polling,
        )
        self.binder = ParameterBinder()
        self.catalog_loader = catalog_loader or EffectCatalogLoader()
        self.catalog_registry = CatalogRegistry()
        self.catalog_loader.reload(self.catalog_registry)

        logger.info(f"Service container ready: {self.config.to_dict()}")

    # ========================================================================
    # HANDLER FACTORIES
    # ========================================================================

    def submit_effect_use_case(self) -> SubmitEffectUseCase:
        return SubmitEffectUseCase(
            self.catalog_registry,
            self.binder,
            self.dispatcher,
            self.lifecycle_manager,
            self.region_router,
            cache=self.cache,
            config_ttl=self.config.ttl.config_ttl,
        )

    def task_status_query_handler(self) -> GetTaskStatusQueryHandler:
        return GetTaskStatusQueryHandler(self.task_store, self.config.polling)

    def cancel_task_handler(self) -> CancelTaskCommandHandler:
        return CancelTaskCommandHandler(self.lifecycle_manager)

    def list_effects_handler(self) -> ListEffectsQueryHandler:
        return ListEffectsQueryHandler(self.catalog_registry)

    def reload_catalog_handler(self) -> ReloadCatalogCommandHandler:
        return ReloadCatalogCommandHandler(self.catalog_loader, self.catalog_registry, self.cache)

    def close(self) -> None:
        self.client.close()


def _default_scheduler() -> PollSchedulerProtocol:
    # Deferred: the Celery task module resolves this container at call time
    from src.application.tasks.polling_tasks import CeleryPollScheduler

    return CeleryPollScheduler()


def get_container() -> ServiceContainer:
    """
    Get the process-wide container, building it on first call.

    Raises:
        CatalogValidationError: If the effect catalog cannot be loaded
    """
    global _container

    if _container is None:
        with _container_lock:
            if _container is None:
                _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """Close and drop the singleton (tests, worker shutdown)."""
    global _container

    with _container_lock:
        if _container is not None:
            _container.close()
        _container = None
