"""
Application Layer Package

Responsibility:
    Coordinates use cases, drives the task lifecycle with Celery, and
    implements the CQRS pattern.

Architecture Notes:
    - Orchestration layer between API and Domain
    - Contains Commands (write), Queries (read), and Use Cases
    - Celery tasks for the polling loop
    - Ports (Protocols) implemented by Infrastructure

Contains:
    - commands/: SubmitEffectCommand, CancelTaskCommand, catalog reload
    - queries/: task status, catalog listing
    - services/: SubmitEffectUseCase, TaskLifecycleManager
    - tasks/: Celery app and poll_effect_task
    - ports/: TaskStoreProtocol, RemoteTaskClientProtocol, PollSchedulerProtocol
    - container: process-wide service graph

Does NOT contain:
    - Domain business rules (in Domain Layer)
    - HTTP handling (in API Layer)
    - Infrastructure details (in Infrastructure Layer)
"""

from src.application.commands import SubmitEffectCommand
from src.application.queries import TaskNotFoundException

__all__ = [
    "SubmitEffectCommand",
    "TaskNotFoundException",
]
