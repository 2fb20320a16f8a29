"""
Tasks Subdomain

Task entity, its state machine and the timing policies that drive it.
"""

from src.domain.tasks.lifecycle_config import (
    CacheTtlPolicy,
    LifecycleConfig,
    PollingPolicy,
    RetryPolicy,
)
from src.domain.tasks.task import (
    ALLOWED_TRANSITIONS,
    STATE_RANK,
    TERMINAL_STATES,
    ErrorKind,
    Task,
    TaskState,
)

__all__ = [
    "Task",
    "TaskState",
    "ErrorKind",
    "ALLOWED_TRANSITIONS",
    "STATE_RANK",
    "TERMINAL_STATES",
    "LifecycleConfig",
    "RetryPolicy",
    "PollingPolicy",
    "CacheTtlPolicy",
]
