"""
Celery Task for Remote Task Polling

Self re-arming poll loop: one message per pending poll, one poll per task
at a time.

Responsibility:
    - Run one TaskLifecycleManager tick for a task
    - Re-arm itself with apply_async(countdown=...) while the task runs
    - Retry with backoff on unexpected (non-remote) failures

Architecture Notes:
    - Part of Application Layer (orchestration)
    - Thin orchestrator - the state machine lives in TaskLifecycleManager
    - Remote transport errors never reach this layer: the manager turns
      them into poll_failures and a backoff delay
    - Distinct tasks are polled concurrently by the worker pool; there is no
      global lock

Message Flow:
    SubmitEffectUseCase -> manager.register(RUNNING task)
        -> CeleryPollScheduler.schedule(task_id, 1.5)
        -> poll_effect_task(task_id)   [countdown 1.5s]
            -> manager.tick(task_id) -> schedule(task_id, next_delay)
            -> ...
            -> terminal state: no further message
"""

import logging
from typing import Optional

from celery import Task

from .celery_app import celery_app
from src.application.container import get_container

# Configure logger for this module
logger = logging.getLogger(__name__)

POLL_TASK_NAME = "poll_effect_task"


@celery_app.task(
    bind=True,
    name=POLL_TASK_NAME,
    max_retries=3,
    default_retry_delay=5,
    ignore_result=True,
    time_limit=120,  # status + outputs calls, 30s deadline each
    soft_time_limit=100,
)
def poll_effect_task(self: Task, task_id: str) -> dict:
    """
    Poll one remote task once and re-arm the next poll.

    Args:
        self: Celery task instance (bind=True enables self.retry)
        task_id: Local task id

    Returns:
        dict: {"task_id": str, "next_poll_in": float | None}

    Error Handling:
        Unexpected exceptions are logged with traceback and retried with
        exponential backoff (5s, 10s, 20s); after max_retries the error
        propagates and the poll chain of this task stops.
    """
    try:
        delay: Optional[float] = get_container().lifecycle_manager.tick(task_id)
    except Exception as e:
        logger.error(f"Poll of task {task_id} crashed: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=5 * (2**self.request.retries))

    return {"task_id": task_id, "next_poll_in": delay}


class CeleryPollScheduler:
    """
    PollSchedulerProtocol implementation backed by poll_effect_task.

    Examples:
        >>> scheduler = CeleryPollScheduler()
        >>> scheduler.schedule("3fa85f64-5717-4562-b3fc-2c963f66afa6", 1.5)
    """

    def schedule(self, task_id: str, delay_seconds: float) -> None:
        poll_effect_task.apply_async(args=[task_id], countdown=delay_seconds)
        logger.debug(f"Poll of task {task_id} armed in {delay_seconds:.2f}s")
