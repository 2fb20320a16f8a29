"""
Integration tests: effect task lifecycle through the HTTP API.

Wires the real service container (catalog, binder, dispatcher, lifecycle
manager, task store) against the scripted fake remote. Redis and Celery are
replaced by the local cache tier and a recording scheduler; polls are driven
by calling tick() the way poll_effect_task does.

Scenarios:
- bg-replace submitted, polled, SUCCEEDED with outputs
- Missing parameter rejected without any remote call
- Queue full once, then accepted
- Queue full on every attempt: 503 and a FAILED task
- Node info mismatch: 502 after exactly one call
- Cancel stops polling
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.application.container import ServiceContainer
from src.domain.tasks import LifecycleConfig, PollingPolicy, RetryPolicy
from src.infrastructure.catalog import EffectCatalogLoader
from src.infrastructure.catalog.catalog_loader import DEFAULT_CATALOG_PATH
from src.infrastructure.remote.runninghub_client import (
    CANCEL_PATH,
    GRAPH_CREATE_PATH,
    OUTPUTS_PATH,
    STATUS_PATH,
)

pytestmark = pytest.mark.integration

BG_REPLACE_REQUEST = {
    "catalog_id": "bg-replace",
    "region": "hongkong",
    "params": {"image_240": "api/subject.png", "prompt_279": "sunset beach"},
}
ACCEPTED = {"code": 0, "msg": "success", "data": {"taskId": 1904163390028185602}}
QUEUE_FULL = {"code": 421, "msg": "TASK_QUEUE_MAXED", "data": None}


def ok(data=None):
    return {"code": 0, "msg": "success", "data": data}


@pytest.fixture
def scheduler():
    return MagicMock()


@pytest.fixture
def container(memory_cache, region_router, remote_client, scheduler):
    config = LifecycleConfig(
        retry=RetryPolicy(max_attempts=3, base_delay=0.01, max_delay=1.0),
        polling=PollingPolicy(max_task_age=600),
    )
    return ServiceContainer(
        config=config,
        cache=memory_cache,
        region_router=region_router,
        client=remote_client,
        scheduler=scheduler,
        catalog_loader=EffectCatalogLoader(DEFAULT_CATALOG_PATH),
    )


@pytest.fixture
def api(container, monkeypatch):
    monkeypatch.setattr("src.api.routers.tasks.get_container", lambda: container)
    monkeypatch.setattr("src.api.routers.effects.get_container", lambda: container)
    return TestClient(create_app())


# ============================================================================
# HAPPY PATH
# ============================================================================


def test_bg_replace_runs_to_success(api, container, remote, scheduler):
    remote.script(GRAPH_CREATE_PATH, ACCEPTED)
    remote.script(STATUS_PATH, ok("QUEUED"), ok("RUNNING"), ok("SUCCESS"))
    remote.script(OUTPUTS_PATH, ok([{"fileUrl": "/outputs/result.png", "fileType": "png", "nodeId": "9"}]))

    response = api.post("/api/tasks", json=BG_REPLACE_REQUEST)

    assert response.status_code == 202
    task_id = response.json()["task_id"]
    assert response.json()["state"] == "RUNNING"
    scheduler.schedule.assert_called_once_with(task_id, 1.5)

    body = remote.calls(GRAPH_CREATE_PATH)[0]
    assert body["workflowId"] == "1949831786093264897"
    assert body["nodeInfoList"][1] == {"nodeId": "284", "fieldName": "image", "fieldValue": "default_background.png"}

    # Three poll messages: QUEUED, RUNNING, SUCCESS
    manager = container.lifecycle_manager
    assert manager.tick(task_id) is not None
    assert api.get(f"/api/tasks/{task_id}/status").json()["state"] == "RUNNING"
    assert manager.tick(task_id) is not None
    assert manager.tick(task_id) is None

    status = api.get(f"/api/tasks/{task_id}/status").json()
    assert status["state"] == "SUCCEEDED"
    assert status["result"] == [
        {"url": "https://www.runninghub.ai/outputs/result.png", "file_type": "png", "node_id": "9"}
    ]

    # Terminal: repeated queries are stable and never reach the remote
    calls_before = len(remote.requests)
    assert api.get(f"/api/tasks/{task_id}/status").json() == status
    assert len(remote.requests) == calls_before


def test_effect_listing(api):
    effects = api.get("/api/effects").json()["effects"]

    assert {e["catalog_id"] for e in effects} == {"bg-replace", "flux-kontext", "portrait-upscale"}


# ============================================================================
# VALIDATION
# ============================================================================


def test_missing_parameter_is_rejected_before_network(api, remote):
    request = {**BG_REPLACE_REQUEST, "params": {"prompt_279": "sunset beach"}}

    response = api.post("/api/tasks", json=request)

    assert response.status_code == 400
    assert response.json()["details"]["param_key"] == "image_240"
    assert remote.requests == []


def test_unsupported_region_is_rejected_before_network(api, remote):
    response = api.post("/api/tasks", json={**BG_REPLACE_REQUEST, "region": "mars"})

    assert response.status_code == 400
    assert response.json()["code"] == "UNSUPPORTED_REGION"
    assert remote.requests == []


# ============================================================================
# SUBMISSION RETRY AND CLASSIFICATION
# ============================================================================


def test_queue_full_then_accepted(api, remote):
    remote.script(GRAPH_CREATE_PATH, QUEUE_FULL, ACCEPTED)

    response = api.post("/api/tasks", json=BG_REPLACE_REQUEST)

    assert response.status_code == 202
    assert len(remote.calls(GRAPH_CREATE_PATH)) == 2


def test_queue_full_on_every_attempt(api, remote):
    remote.script(GRAPH_CREATE_PATH, QUEUE_FULL)

    response = api.post("/api/tasks", json=BG_REPLACE_REQUEST)

    assert response.status_code == 503
    assert response.headers["retry-after"] == "5"
    assert len(remote.calls(GRAPH_CREATE_PATH)) == 3

    task_id = response.json()["details"]["task_id"]
    status = api.get(f"/api/tasks/{task_id}/status").json()
    assert status["state"] == "FAILED"
    assert status["error_kind"] == "TRANSIENT"
    assert status["diagnostic_code"] == 421


def test_node_info_mismatch_is_not_retried(api, remote):
    remote.script(GRAPH_CREATE_PATH, {"code": 803, "msg": "APIKEY_INVALID_NODE_INFO", "data": None})

    response = api.post("/api/tasks", json=BG_REPLACE_REQUEST)

    assert response.status_code == 502
    assert response.json()["code"] == "REMOTE_CONFIGURATION"
    assert len(remote.calls(GRAPH_CREATE_PATH)) == 1

    status = api.get(f"/api/tasks/{response.json()['details']['task_id']}/status").json()
    assert status["error_kind"] == "CONFIGURATION"
    assert status["diagnostic_code"] == 803


# ============================================================================
# CANCELLATION
# ============================================================================


def test_cancel_stops_polling(api, container, remote):
    remote.script(GRAPH_CREATE_PATH, ACCEPTED)
    remote.script(STATUS_PATH, ok("RUNNING"))
    task_id = api.post("/api/tasks", json=BG_REPLACE_REQUEST).json()["task_id"]
    container.lifecycle_manager.tick(task_id)

    response = api.post(f"/api/tasks/{task_id}/cancel")

    assert response.json() == {"task_id": task_id, "state": "FAILED", "cancelled": True}
    assert remote.calls(CANCEL_PATH) == [{"apiKey": "key-hk", "taskId": "1904163390028185602"}]

    status_calls = len(remote.calls(STATUS_PATH))
    assert container.lifecycle_manager.tick(task_id) is None
    assert len(remote.calls(STATUS_PATH)) == status_calls
    assert api.get(f"/api/tasks/{task_id}/status").json()["error_kind"] == "CANCELLED"


def test_cancel_unknown_task(api):
    response = api.post("/api/tasks/does-not-exist/cancel")

    assert response.status_code == 404
    assert response.json()["code"] == "TASK_NOT_FOUND"
