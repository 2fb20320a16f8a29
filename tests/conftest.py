"""
Pytest Configuration and Shared Fixtures

This module contains pytest configuration and shared fixtures used across
all test suites (unit, integration).

Fixtures:
    - test_client: FastAPI TestClient for API testing
    - catalog_registry / bg_replace / flux_kontext / portrait_upscale: bundled catalog
    - region_router: Two-region router with fixed keys
    - lifecycle_config: Fast retry/polling policies for tests
    - memory_cache / task_store: Local-only two-tier cache and task store
    - fake_redis: In-memory Redis shared by several caches ("processes")
    - remote / remote_client: Scripted fake remote service on httpx.MockTransport
    - clock: Controllable UTC clock for the lifecycle manager

Architecture Notes:
    - No test needs Redis, Celery or network access
    - TwoTierCache without a Redis client behaves as the shared tier of a
      single process, so the task store semantics are exercised unchanged
    - The fake remote answers every endpoint path of the real contract

Usage:
    def test_something(remote, remote_client, region_router):
        remote.script(STATUS_PATH, {"code": 0, "msg": "success", "data": "SUCCESS"})
        ...
"""

import fnmatch
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator, Iterator, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import WatchError

from src.api.main import create_app
from src.domain.effects import CatalogRegistry
from src.domain.tasks import LifecycleConfig, PollingPolicy, RetryPolicy
from src.infrastructure.cache import TwoTierCache
from src.infrastructure.catalog import EffectCatalogLoader
from src.infrastructure.persistence.redis import RedisTaskStore
from src.infrastructure.remote import RegionRouter, RunningHubClient

# Configure logger for tests
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ============================================================================
# FAKE REMOTE SERVICE
# ============================================================================


def ok(data: Any = None, msg: str = "success") -> dict[str, Any]:
    """Envelope of a successful remote call."""
    return {"code": 0, "msg": msg, "data": data}


class FakeRunningHub:
    """
    Scripted stand-in for the remote service behind httpx.MockTransport.

    Replies are scripted per path and consumed in order; the last reply
    repeats. A reply may be:
        - dict: returned as a 200 JSON body
        - int: returned as that HTTP status with a non-JSON body
        - Exception: raised from the transport (timeouts, refused connections)

    Every request is recorded as (path, body).
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self._replies: dict[str, list[Any]] = {}

    def script(self, path: str, *replies: Any) -> None:
        self._replies[path] = list(replies)

    def calls(self, path: str) -> list[dict[str, Any]]:
        return [body for request_path, body in self.requests if request_path == path]

    def _next(self, path: str) -> Any:
        replies = self._replies.get(path)
        if not replies:
            return ok()
        return replies.pop(0) if len(replies) > 1 else replies[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.url.path, body))

        reply = self._next(request.url.path)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, text="upstream error")
        return httpx.Response(200, json=reply)


class FakeRedis:
    """
    In-memory stand-in for the redis-py calls TwoTierCache makes.

    Several TwoTierCache instances built on one FakeRedis behave like
    processes sharing one Redis server. TTLs are recorded, not enforced.
    Pipelines follow redis-py: after watch() commands run immediately, after
    multi() they are buffered, and execute() raises WatchError when a
    watched key was written in between.

    after_watched_read, when set, runs once right after a pipeline read a
    watched key; tests use it to land another writer inside a transaction.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.versions: dict[str, int] = {}
        self.after_watched_read: Optional[Callable[[], None]] = None

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.ttls[key] = ttl
        self.versions[key] = self.versions.get(key, 0) + 1
        return True

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
                self.ttls.pop(key, None)
                self.versions[key] = self.versions.get(key, 0) + 1
        return removed

    def scan_iter(self, match: str = "*") -> Iterator[str]:
        return iter([key for key in list(self.data) if fnmatch.fnmatchcase(key, match)])

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, server: FakeRedis) -> None:
        self.server = server
        self.watched: dict[str, int] = {}
        self.queued: list[tuple[str, int, str]] = []
        self.buffering = False

    def __enter__(self) -> "FakePipeline":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.reset()

    def watch(self, *keys: str) -> None:
        for key in keys:
            self.watched[key] = self.server.versions.get(key, 0)

    def get(self, key: str) -> Optional[str]:
        value = self.server.get(key)
        hook, self.server.after_watched_read = self.server.after_watched_read, None
        if hook is not None and key in self.watched:
            hook()
        return value

    def multi(self) -> None:
        self.buffering = True

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.queued.append((key, ttl, value))

    def execute(self) -> list[bool]:
        changed = any(self.server.versions.get(key, 0) != version for key, version in self.watched.items())
        queued, self.queued = self.queued, []
        self.reset()
        if changed:
            raise WatchError("Watched variable changed.")
        return [self.server.setex(key, ttl, value) for key, ttl, value in queued]

    def reset(self) -> None:
        self.watched = {}
        self.queued = []
        self.buffering = False


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ============================================================================
# REMOTE FIXTURES
# ============================================================================


@pytest.fixture
def remote() -> FakeRunningHub:
    return FakeRunningHub()


@pytest.fixture
def remote_client(remote) -> Generator[RunningHubClient, None, None]:
    """RunningHubClient wired to the fake remote."""
    http_client = httpx.Client(transport=httpx.MockTransport(remote.handler))
    client = RunningHubClient(submit_timeout=5.0, poll_timeout=5.0, http_client=http_client)
    yield client
    client.close()


@pytest.fixture
def region_router() -> RegionRouter:
    return RegionRouter(
        base_urls={
            "china": "https://www.runninghub.cn",
            "hongkong": "https://www.runninghub.ai",
        },
        api_keys={"china": "key-cn", "hongkong": "key-hk"},
        default_region="hongkong",
    )


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


@pytest.fixture(scope="session")
def catalog_registry() -> CatalogRegistry:
    """Registry holding the bundled config/effect_catalog.json."""
    registry = CatalogRegistry()
    EffectCatalogLoader().reload(registry)
    return registry


@pytest.fixture
def bg_replace(catalog_registry):
    return catalog_registry.current().get("bg-replace")


@pytest.fixture
def flux_kontext(catalog_registry):
    return catalog_registry.current().get("flux-kontext")


@pytest.fixture
def portrait_upscale(catalog_registry):
    return catalog_registry.current().get("portrait-upscale")


@pytest.fixture
def lifecycle_config() -> LifecycleConfig:
    """Default timings except a short task-age ceiling."""
    return LifecycleConfig(
        retry=RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=8.0),
        polling=PollingPolicy(initial_interval=1.5, max_interval=10.0, max_task_age=600),
    )


# ============================================================================
# STORAGE FIXTURES
# ============================================================================


@pytest.fixture
def memory_cache() -> TwoTierCache:
    """Cache without a Redis tier."""
    return TwoTierCache(redis=None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def task_store(memory_cache, lifecycle_config) -> RedisTaskStore:
    return RedisTaskStore(memory_cache, lifecycle_config)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# FASTAPI FIXTURES
# ============================================================================


@pytest.fixture(scope="session")
def test_client() -> Generator[TestClient, None, None]:
    """
    Provide FastAPI TestClient for API testing.

    TestClient doesn't require running server - it calls app directly.
    Router dependencies can be replaced through app.dependency_overrides.
    """
    app = create_app()
    with TestClient(app) as client:
        logger.info("FastAPI TestClient created")
        yield client
    logger.info("FastAPI TestClient closed")


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """
    Pytest configuration hook.

    Registers custom markers for test categorization.

    Markers:
        - integration: Multi-component scenarios (fake remote, no services)
        - unit: Unit tests (no external dependencies)
        - slow: Slow tests (>1s execution time)
    """
    config.addinivalue_line(
        "markers", "integration: Multi-component scenarios against the fake remote"
    )
    config.addinivalue_line(
        "markers", "unit: Unit tests (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow tests (>1s execution time)"
    )
