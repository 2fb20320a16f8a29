"""
Redis Task State Store

Persists Task records and status snapshots through the two-tier cache.
Used by the Task Lifecycle Manager (writes) and GetTaskStatus (reads).

Responsibility:
    - Store the authoritative task record under "task:{task_id}"
    - Store the query-facing status snapshot under "status:{task_id}"
    - Dynamic TTL: short while the task can change, long once terminal
    - Monotonic guard: never move a task backwards, never rewrite a terminal task
      (enforced atomically in Redis, see RedisTaskStore)

Architecture Notes:
    - Infrastructure Layer (Redis via TwoTierCache)
    - Implements TaskStoreProtocol (src/application/ports)
    - Redis failures are absorbed by TwoTierCache (local-tier fallback)

Storage Format:
    "task:{task_id}"   -> Task.to_dict() JSON, TTL = max task age + grace
                          (running) or terminal grace (terminal)
    "status:{task_id}" -> Task.to_dict() JSON, TTL = running/terminal status TTL

Examples:
    >>> store = RedisTaskStore(cache=TwoTierCache(get_optional_redis_client()))
    >>> store.save(task)
    >>> store.get(task.task_id).state
    <TaskState.RUNNING: 'RUNNING'>
    >>> store.get_status_snapshot(task.task_id)["state"]
    'RUNNING'
"""

import logging
from typing import Any, Optional

from src.domain.tasks import STATE_RANK, LifecycleConfig, Task
from src.infrastructure.cache import TwoTierCache

# Configure logger for this module
logger = logging.getLogger(__name__)


class RedisTaskStore:
    """
    Task persistence on top of TwoTierCache.

    Note on concurrency:
        save() is a read-compare-write over "task:{task_id}". With Redis it
        runs as a WATCH/MULTI/EXEC transaction, so the guard holds against
        writers in any process: a stale RUNNING write that loses the race
        re-reads the terminal record and is refused. Without Redis the
        cache's key lock orders writers inside this one process.
    """

    def __init__(
        self,
        cache: TwoTierCache,
        config: Optional[LifecycleConfig] = None,
    ) -> None:
        self.cache = cache
        self.config = config or LifecycleConfig.default()

    def _get_task_key(self, task_id: str) -> str:
        """
        Generate cache key for a task record.

        Examples:
            >>> store._get_task_key("abc-123")
            'task:abc-123'
        """
        return f"task:{task_id}"

    def _get_status_key(self, task_id: str) -> str:
        """
        Generate cache key for a task status snapshot.

        Examples:
            >>> store._get_status_key("abc-123")
            'status:abc-123'
        """
        return f"status:{task_id}"

    def _load(self, task_id: str, bypass_local: bool) -> Optional[Task]:
        data = self.cache.get_json(self._get_task_key(task_id), bypass_local=bypass_local)
        return self._parse(task_id, data)

    def _parse(self, task_id: str, data: Optional[dict[str, Any]]) -> Optional[Task]:
        if data is None:
            return None
        try:
            return Task.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.error(f"Unreadable task record for {task_id}: {e}")
            return None

    def get(self, task_id: str) -> Optional[Task]:
        """
        Load the authoritative task record (reads through to Redis).

        Returns:
            Task, or None if never stored or already evicted
        """
        return self._load(task_id, bypass_local=True)

    def save(self, task: Task) -> Task:
        """
        Persist a task unless that would move it backwards.

        The guard reads the stored record and writes record and snapshot in
        one TwoTierCache.transact_json() call, so a writer in another process
        that lands in between forces a re-check against its record.

        Args:
            task: Task with its new state

        Returns:
            The task now stored: the argument on success, or the existing
            record when the write was refused by the monotonic guard
        """
        key = self._get_task_key(task.task_id)
        outcome: dict[str, Task] = {}

        def decide(data: Optional[dict[str, Any]]) -> Optional[dict[str, tuple[Any, int]]]:
            outcome["stored"] = task
            current = self._parse(task.task_id, data)
            if current is not None:
                if current.is_terminal and not (
                    task.state == current.state and task.to_dict() == current.to_dict()
                ):
                    logger.info(
                        f"Refusing to rewrite terminal task {task.task_id} "
                        f"({current.state.value} -> {task.state.value})"
                    )
                    outcome["stored"] = current
                    return None
                if STATE_RANK[task.state] < STATE_RANK[current.state]:
                    logger.warning(
                        f"Refusing backwards transition for task {task.task_id}: "
                        f"{current.state.value} -> {task.state.value}"
                    )
                    outcome["stored"] = current
                    return None
                # Cancellation is sticky across concurrent writers
                if current.cancel_requested and not task.cancel_requested:
                    task.cancel_requested = True
            return self._writes(task)

        if self.cache.transact_json(key, decide):
            logger.debug(f"Task {task.task_id} saved: {task.state.value}")
        return outcome["stored"]

    def _writes(self, task: Task) -> dict[str, tuple[Any, int]]:
        data = task.to_dict()
        record_ttl = self.config.ttl.record_ttl(task.is_terminal, self.config.polling.max_task_age)
        status_ttl = self.config.ttl.status_ttl(task.is_terminal)
        return {
            self._get_task_key(task.task_id): (data, record_ttl),
            self._get_status_key(task.task_id): (data, status_ttl),
        }

    def get_status_snapshot(self, task_id: str) -> Optional[dict[str, Any]]:
        """
        Read the status snapshot used by GetTaskStatus.

        Falls back to the task record when the short-lived snapshot expired,
        and refreshes the snapshot from it. Never contacts the remote service.

        Returns:
            Task dict, or None if the task is unknown or evicted
        """
        snapshot = self.cache.get_json(self._get_status_key(task_id))
        if snapshot is not None:
            return snapshot

        task = self._load(task_id, bypass_local=True)
        if task is None:
            return None

        data = task.to_dict()
        self.cache.set_json(
            self._get_status_key(task_id), data, ttl=self.config.ttl.status_ttl(task.is_terminal)
        )
        return data

    def delete(self, task_id: str) -> None:
        self.cache.delete(self._get_task_key(task_id))
        self.cache.delete(self._get_status_key(task_id))
