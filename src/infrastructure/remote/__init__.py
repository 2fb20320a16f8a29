"""
Remote Service Infrastructure Module

Exports:
    - RegionRouter / RegionEndpoint: region -> base URL + credentials
    - RunningHubClient: HTTP client for the remote AI processing service
    - RemoteTransportError / RemoteResponseError: client failures
    - RemoteTaskStatus: remote status vocabulary
    - TaskDispatcher: payload building, retry and classification
"""

from .region_router import RegionEndpoint, RegionRouter
from .runninghub_client import (
    RemoteResponse,
    RemoteResponseError,
    RemoteTaskStatus,
    RemoteTransportError,
    RunningHubClient,
)
from .task_dispatcher import TaskDispatcher, build_payload

__all__ = [
    "RegionRouter",
    "RegionEndpoint",
    "RunningHubClient",
    "RemoteResponse",
    "RemoteResponseError",
    "RemoteTransportError",
    "RemoteTaskStatus",
    "TaskDispatcher",
    "build_payload",
]
