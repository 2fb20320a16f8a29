"""
Application Layer Ports (Interfaces)

Contains Protocol definitions for dependency inversion.
Infrastructure Layer (and the Celery task module) implement these protocols.
"""

from src.application.ports.poll_scheduler import PollSchedulerProtocol
from src.application.ports.remote_client import (
    RemoteTaskClientProtocol,
    TaskDispatcherProtocol,
)
from src.application.ports.task_store import TaskStoreProtocol

__all__ = [
    "PollSchedulerProtocol",
    "RemoteTaskClientProtocol",
    "TaskDispatcherProtocol",
    "TaskStoreProtocol",
]
