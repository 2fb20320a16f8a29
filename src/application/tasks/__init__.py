"""
Celery Tasks

Responsibility:
    Asynchronous task definitions for the polling side of the task lifecycle.

Contains:
    - celery_app.py - Celery configuration, health_check task
    - polling_tasks.py - poll_effect_task and CeleryPollScheduler

Does NOT contain:
    - Business logic (delegates to TaskLifecycleManager)
    - Submission (runs in the API process, see SubmitEffectUseCase)
"""

from .celery_app import celery_app, health_check
from .polling_tasks import CeleryPollScheduler, poll_effect_task

__all__ = ["celery_app", "health_check", "poll_effect_task", "CeleryPollScheduler"]
