"""
Task Lifecycle Manager

Owns every task from registration to its terminal state.

Responsibility:
    - register(): persist a task reported by the dispatcher, arm the first poll
    - poll_once(): one polling tick as an explicit state machine step
    - tick(): poll_once() plus re-arming through the PollScheduler
    - cancel(): cooperative cancellation with best-effort remote cancel
    - Enforce the task-age ceiling (TIMED_OUT)

Architecture Notes:
    - Part of Application Layer (orchestration)
    - Depends on ports: TaskStoreProtocol, RemoteTaskClientProtocol,
      PollSchedulerProtocol
    - Stateless between calls: every tick reloads the task from the shared
      tier, so any Celery worker can run any tick
    - The store refuses backwards and post-terminal writes, which makes a
      concurrent cancel win over an in-flight poll

Polling State Machine (one tick):
    load task ── missing / terminal / cancel requested ──> stop
        │
        ├── age > max_task_age ──> TIMED_OUT, stop
        │
        └── remote status
              ├── QUEUED / RUNNING / unknown ──> RUNNING, next = min(max, initial * (1 + age / ramp))
              ├── SUCCESS ──> outputs ──> SUCCEEDED, stop
              ├── FAILED  ──> FAILED (REMOTE_FAILED), stop
              └── transport / response error ──> poll_failures += 1,
                                                  next = min(max, base * 2^(failures - 1))

Examples:
    >>> manager = TaskLifecycleManager(store, client, router, scheduler)
    >>> manager.register(task)            # RUNNING -> first poll armed
    >>> manager.poll_once(task.task_id)   # 1.5 (seconds until next tick)
    >>> manager.cancel(task.task_id).error_kind
    <ErrorKind.CANCELLED: 'CANCELLED'>
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from src.application.ports import (
    PollSchedulerProtocol,
    RemoteTaskClientProtocol,
    TaskStoreProtocol,
)
from src.application.queries.get_task_status import TaskNotFoundException
from src.domain.shared.exceptions import UnsupportedRegionError
from src.domain.tasks import ErrorKind, PollingPolicy, Task, TaskState
from src.infrastructure.remote import (
    RegionRouter,
    RemoteResponseError,
    RemoteTaskStatus,
    RemoteTransportError,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by caller"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskLifecycleManager:
    """
    Drives tasks through RUNNING to a terminal state.

    Args:
        task_store: Task record storage (shared tier)
        client: Remote status / outputs / cancel calls
        region_router: Resolves a task's region to its endpoint
        scheduler: Arms future polls (None = caller drives tick() itself)
        polling_policy: Intervals, backoff and the task-age ceiling
        clock: Current UTC time, injectable for tests
    """

    def __init__(
        self,
        task_store: TaskStoreProtocol,
        client: RemoteTaskClientProtocol,
        region_router: RegionRouter,
        scheduler: Optional[PollSchedulerProtocol] = None,
        polling_policy: Optional[PollingPolicy] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.task_store = task_store
        self.client = client
        self.region_router = region_router
        self.scheduler = scheduler
        self.polling_policy = polling_policy or PollingPolicy.default()
        self._clock = clock

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register(self, task: Task) -> Task:
        """
        Persist a task and arm its first poll when it is RUNNING.

        Used as the dispatcher's on_state_change callback, so it is called
        for SUBMITTING, RUNNING and FAILED alike.

        Returns:
            The task as stored (may differ when the write was refused)
        """
        stored = self.task_store.save(task)

        if stored.is_terminal:
            if stored.cancel_requested and task.state is TaskState.RUNNING and task.external_task_id:
                # Cancelled while the submission was in flight
                logger.info(
                    f"Task {task.task_id} was cancelled during submission, "
                    f"cancelling remote {task.external_task_id}"
                )
                self._cancel_remote(task)
            return stored

        if stored.state is TaskState.RUNNING and not stored.cancel_requested:
            delay = (stored.poll_interval_ms or int(self.polling_policy.initial_interval * 1000)) / 1000
            self._schedule(stored.task_id, delay)
            logger.info(f"Task {stored.task_id} registered, first poll in {delay}s")

        return stored

    def get(self, task_id: str) -> Optional[Task]:
        return self.task_store.get(task_id)

    # ========================================================================
    # POLLING
    # ========================================================================

    def poll_once(self, task_id: str) -> Optional[float]:
        """
        Run one polling tick.

        Args:
            task_id: Local task id

        Returns:
            Seconds until the next tick, or None when polling must stop
        """
        task = self.task_store.get(task_id)
        if task is None:
            logger.warning(f"Poll skipped, task {task_id} not found (evicted?)")
            return None

        if task.is_terminal:
            logger.debug(f"Poll skipped, task {task_id} already {task.state.value}")
            return None

        if task.cancel_requested:
            return self._finish_cancelled(task)

        if task.state is not TaskState.RUNNING or not task.external_task_id:
            logger.warning(f"Poll skipped, task {task_id} is {task.state.value}, not RUNNING")
            return None

        age = task.age_seconds(self._clock())
        if self.polling_policy.is_expired(age):
            task.mark_timed_out(self.polling_policy.expiry_message())
            self.task_store.save(task)
            logger.warning(f"Task {task_id} timed out after {age:.0f}s")
            return None

        try:
            endpoint = self.region_router.resolve(task.region)
        except UnsupportedRegionError as e:
            task.mark_failed(ErrorKind.CONFIGURATION, message=str(e))
            self.task_store.save(task)
            logger.error(f"Task {task_id} region is no longer configured: {e}")
            return None

        try:
            status = self.client.get_status(endpoint, task.external_task_id)
        except (RemoteTransportError, RemoteResponseError) as e:
            return self._poll_failed(task, f"status query failed: {e}")

        if status is RemoteTaskStatus.SUCCESS:
            return self._complete(task, endpoint)

        if status is RemoteTaskStatus.FAILED:
            task.mark_failed(ErrorKind.REMOTE_FAILED, message="Remote task failed")
            self.task_store.save(task)
            logger.warning(f"Task {task_id} failed remotely ({task.external_task_id})")
            return None

        if status is RemoteTaskStatus.UNKNOWN:
            logger.warning(f"Unrecognised remote status for task {task_id}, still polling")

        interval = self.polling_policy.next_interval(age)
        task.record_poll(next_interval_ms=int(interval * 1000))
        stored = self.task_store.save(task)
        if stored.is_terminal or stored.cancel_requested:
            return None

        logger.debug(f"Task {task_id} {status.value}, next poll in {interval:.2f}s")
        return interval

    def tick(self, task_id: str) -> Optional[float]:
        """
        Poll once and re-arm the next poll.

        Returns:
            Delay of the armed poll, or None when polling stopped
        """
        delay = self.poll_once(task_id)
        if delay is not None:
            self._schedule(task_id, delay)
        return delay

    def _complete(self, task: Task, endpoint) -> Optional[float]:
        try:
            artifacts = self.client.get_outputs(endpoint, task.external_task_id)
        except (RemoteTransportError, RemoteResponseError) as e:
            return self._poll_failed(task, f"outputs query failed: {e}")

        if not artifacts:
            return self._poll_failed(task, "remote reported success without outputs")

        task.record_poll()
        task.mark_succeeded(artifacts)
        stored = self.task_store.save(task)
        if stored.state is TaskState.SUCCEEDED:
            logger.info(f"Task {task.task_id} succeeded with {len(artifacts)} output(s)")
        return None

    def _poll_failed(self, task: Task, reason: str) -> Optional[float]:
        delay = self.polling_policy.failure_backoff(task.poll_failures + 1)
        task.record_poll_failure(next_interval_ms=int(delay * 1000))
        stored = self.task_store.save(task)
        logger.warning(
            f"Poll of task {task.task_id} failed ({task.poll_failures} in a row): {reason}. "
            f"Retrying in {delay}s"
        )
        if stored.is_terminal or stored.cancel_requested:
            return None
        return delay

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def cancel(self, task_id: str) -> Task:
        """
        Cancel a task.

        Non-terminal tasks become FAILED with error_kind=CANCELLED right
        away; the remote task is cancelled best effort. Terminal tasks are
        returned unchanged.

        Raises:
            TaskNotFoundException: If the task is unknown or evicted
        """
        task = self.task_store.get(task_id)
        if task is None:
            raise TaskNotFoundException(task_id)

        if task.is_terminal:
            logger.info(f"Cancel of task {task_id} ignored, already {task.state.value}")
            return task

        task.request_cancel()
        task.mark_failed(ErrorKind.CANCELLED, message=CANCELLED_MESSAGE)
        stored = self.task_store.save(task)

        if stored.error_kind is ErrorKind.CANCELLED and task.external_task_id:
            self._cancel_remote(task)

        logger.info(f"Task {task_id} cancelled: {stored.state.value}")
        return stored

    def _finish_cancelled(self, task: Task) -> None:
        task.mark_failed(ErrorKind.CANCELLED, message=CANCELLED_MESSAGE)
        self.task_store.save(task)
        if task.external_task_id:
            self._cancel_remote(task)
        return None

    def _cancel_remote(self, task: Task) -> bool:
        try:
            endpoint = self.region_router.resolve(task.region)
        except UnsupportedRegionError as e:
            logger.warning(f"Remote cancel of task {task.task_id} skipped: {e}")
            return False
        return self.client.cancel(endpoint, task.external_task_id)

    # ========================================================================
    # SCHEDULING
    # ========================================================================

    def _schedule(self, task_id: str, delay: Union[int, float]) -> None:
        if self.scheduler is None:
            return
        self.scheduler.schedule(task_id, delay)
