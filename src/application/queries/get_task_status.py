"""
GetTaskStatusQuery - CQRS Read Query

Query object and handler for retrieving task status from the status cache.
Part of CQRS pattern - separates read operations from write operations.

Responsibility:
    - Query: Data holder with task_id to query
    - Handler: Reads the status snapshot written by the Task Lifecycle Manager

Architecture Notes:
    - Part of Application Layer (orchestration)
    - Never contacts the remote service and never schedules a poll: polling is
      owned by the lifecycle manager, so repeated queries of a terminal task
      always return the same answer
    - The only write is the age-ceiling timeout of a RUNNING task whose poll
      chain stopped
    - Snapshot reads go through the two-tier cache (hot tier first)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from src.application.ports import TaskStoreProtocol
from src.domain.tasks import PollingPolicy, Task, TaskState

# Configure logger for this module
logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GetTaskStatusQuery(BaseModel):
    """
    Query object containing the task ID to retrieve status for.

    Attributes:
        task_id: Local task ID returned by POST /api/tasks
    """

    task_id: str = Field(min_length=1, description="Task ID returned on submission")


class TaskStatusResult(BaseModel):
    """
    Result DTO returned by GetTaskStatusQueryHandler.

    Mirrors the stored task snapshot. Converted to the API response model
    by the router.

    Attributes:
        task_id: Local task ID
        catalog_id: Effect the task runs
        region: Region the task was submitted to
        state: PENDING / SUBMITTING / RUNNING / SUCCEEDED / FAILED / TIMED_OUT
        result: Output artifacts (SUCCEEDED only)
        error_kind: Failure classification (FAILED / TIMED_OUT only)
        error_message: Human-readable failure description
        diagnostic_code: Raw remote code kept for support
        warning: Remote validation warning on accepted tasks
        cancel_requested: Whether a cancel was requested
        poll_interval_ms: Current polling interval (RUNNING only)
        created_at: ISO timestamp of task creation
        updated_at: ISO timestamp of the last change
    """

    task_id: str
    catalog_id: str
    region: str
    state: str
    result: Optional[list[dict[str, Any]]] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    diagnostic_code: Optional[int] = None
    warning: Optional[str] = None
    cancel_requested: bool = False
    poll_interval_ms: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> "TaskStatusResult":
        return cls(
            task_id=snapshot["task_id"],
            catalog_id=snapshot["catalog_id"],
            region=snapshot["region"],
            state=snapshot["state"],
            result=snapshot.get("result"),
            error_kind=snapshot.get("error_kind"),
            error_message=snapshot.get("error_message"),
            diagnostic_code=snapshot.get("diagnostic_code"),
            warning=snapshot.get("warning"),
            cancel_requested=snapshot.get("cancel_requested", False),
            poll_interval_ms=snapshot.get("poll_interval_ms"),
            created_at=snapshot.get("created_at"),
            updated_at=snapshot.get("updated_at"),
        )


class GetTaskStatusQueryHandler:
    """
    Handler for retrieving task status.

    Architecture:
        API Layer -> QueryHandler -> TaskStore (TwoTierCache -> Redis)

    A RUNNING task older than the polling policy's max_task_age is marked
    TIMED_OUT here as well as in the poller. The poll chain of a task can
    die (worker gave up retrying, broker message lost); the age ceiling must
    still show up in its status.

    Usage:
        handler = GetTaskStatusQueryHandler(task_store, polling_policy)
        result = await handler.handle(GetTaskStatusQuery(task_id="..."))
    """

    def __init__(
        self,
        task_store: TaskStoreProtocol,
        polling_policy: Optional[PollingPolicy] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize with dependencies.

        Args:
            task_store: RedisTaskStore instance (injected)
            polling_policy: Source of the task-age ceiling (default policy if None)
            clock: Current UTC time, injectable for tests
        """
        self.task_store = task_store
        self.polling_policy = polling_policy or PollingPolicy.default()
        self._clock = clock

    async def handle(self, query: GetTaskStatusQuery) -> TaskStatusResult:
        """
        Retrieve task status.

        Args:
            query: GetTaskStatusQuery with task_id

        Returns:
            TaskStatusResult built from the stored snapshot

        Raises:
            TaskNotFoundException: If the task never existed or was evicted
        """
        snapshot = await asyncio.to_thread(self.task_store.get_status_snapshot, query.task_id)

        if snapshot is None:
            logger.warning(f"Task not found: {query.task_id}")
            raise TaskNotFoundException(query.task_id)

        if snapshot.get("state") == TaskState.RUNNING.value:
            snapshot = await asyncio.to_thread(self._expire_if_overdue, query.task_id, snapshot)

        result = TaskStatusResult.from_snapshot(snapshot)
        logger.debug(f"Task {query.task_id} status retrieved: {result.state}")
        return result

    def _expire_if_overdue(self, task_id: str, snapshot: dict[str, Any]) -> dict[str, Any]:
        if not self.polling_policy.is_expired(Task.from_dict(snapshot).age_seconds(self._clock())):
            return snapshot

        # The snapshot may lag behind the record; decide on the record
        task = self.task_store.get(task_id)
        if task is None:
            return snapshot
        if task.state is not TaskState.RUNNING:
            return task.to_dict()

        task.mark_timed_out(self.polling_policy.expiry_message())
        stored = self.task_store.save(task)
        if stored.state is TaskState.TIMED_OUT:
            logger.warning(f"Task {task_id} passed the age ceiling without a poll, marked TIMED_OUT")
        return stored.to_dict()


class TaskNotFoundException(Exception):
    """
    Raised when task_id is not found in the task store.

    Can happen when:
        - Task never existed
        - Task record expired (grace period after terminal state exceeded)
        - Redis was restarted without persistence
    """

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found or expired")
