"""
TaskStoreProtocol - Task Persistence Port

Contract between the Task Lifecycle Manager / status query and the storage
holding task records.

Architecture Notes:
    - Protocol-based interface (structural typing)
    - Implemented by RedisTaskStore (src/infrastructure/persistence/redis)
    - Synchronous: called from Celery workers and from worker threads of the
      API process
"""

from typing import Any, Optional, Protocol

from src.domain.tasks import Task


class TaskStoreProtocol(Protocol):
    """
    Storage of task records and status snapshots.

    Business Rules (enforced by implementations):
        - save() never moves a task backwards in the state machine
        - save() never rewrites a terminal task
        - A cancel request, once stored, is never cleared
    """

    def get(self, task_id: str) -> Optional[Task]:
        """
        Load the authoritative task record.

        Returns:
            Task, or None if unknown or evicted
        """
        ...

    def save(self, task: Task) -> Task:
        """
        Persist a task.

        Returns:
            The task now stored (the existing record if the write was refused)
        """
        ...

    def get_status_snapshot(self, task_id: str) -> Optional[dict[str, Any]]:
        """
        Read the query-facing snapshot (Task.to_dict() shape).

        Returns:
            Snapshot dict, or None if unknown or evicted
        """
        ...
