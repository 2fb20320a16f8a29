"""
Common fixtures for API unit tests.

Provides shared test utilities:
- FastAPI TestClient
- Mocked application handlers installed through app.dependency_overrides
- Sample data
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routers import effects, tasks


@pytest.fixture
def client():
    """
    FastAPI TestClient for testing endpoints.

    Dependency overrides installed by a test are cleared afterwards.
    """
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_task_id():
    """Generate a sample task ID (UUID)."""
    return str(uuid4())


@pytest.fixture
def mock_submit_use_case():
    """Mock for SubmitEffectUseCase, installed on the router."""
    mock = AsyncMock()
    app.dependency_overrides[tasks.get_submit_effect_use_case] = lambda: mock
    return mock


@pytest.fixture
def mock_status_handler():
    """Mock for GetTaskStatusQueryHandler, installed on the router."""
    mock = AsyncMock()
    app.dependency_overrides[tasks.get_task_status_query_handler] = lambda: mock
    return mock


@pytest.fixture
def mock_cancel_handler():
    """Mock for CancelTaskCommandHandler, installed on the router."""
    mock = AsyncMock()
    app.dependency_overrides[tasks.get_cancel_task_handler] = lambda: mock
    return mock


@pytest.fixture
def mock_list_effects_handler():
    mock = AsyncMock()
    app.dependency_overrides[effects.get_list_effects_handler] = lambda: mock
    return mock


@pytest.fixture
def mock_reload_handler():
    mock = AsyncMock()
    app.dependency_overrides[effects.get_reload_catalog_handler] = lambda: mock
    return mock
