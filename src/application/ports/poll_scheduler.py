"""
PollSchedulerProtocol - Polling Trigger Port

The Task Lifecycle Manager decides when the next poll of a task is due; a
scheduler makes it happen.

Implementations:
    - CeleryPollScheduler (src/application/tasks/polling_tasks.py):
      poll_effect_task.apply_async(countdown=delay)
    - Tests: a recording fake that stores (task_id, delay) pairs
"""

from typing import Protocol


class PollSchedulerProtocol(Protocol):
    """Arms one future poll of one task."""

    def schedule(self, task_id: str, delay_seconds: float) -> None:
        """
        Request a poll of task_id after delay_seconds.

        Callers guarantee at most one pending poll per task: a poll is only
        scheduled on registration or at the end of the previous poll.
        """
        ...
