"""
Task Entity

Local representation of one in-flight or finished remote processing job.

Responsibility:
    - Hold identity (local task_id, remote external_task_id)
    - Own the state machine PENDING -> SUBMITTING -> RUNNING -> terminal
    - Reject backwards or post-terminal transitions
    - Record polling bookkeeping (interval, failures, timestamps)
    - Serialize to/from the JSON stored in the shared cache tier

Architecture Notes:
    - Entity (identity = task_id, mutable state)
    - Part of Tasks subdomain
    - Owned by the Task Lifecycle Manager from creation to terminal state

State Machine:
    PENDING ──> SUBMITTING ──> RUNNING ──> SUCCEEDED
       │             │            ├──────> FAILED
       └─────────────┴──> FAILED  └──────> TIMED_OUT
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from src.domain.effects.value_objects import ResultArtifact
from src.domain.shared.exceptions import InvalidTaskTransitionError


class TaskState(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "PENDING"
    SUBMITTING = "SUBMITTING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


class ErrorKind(str, Enum):
    """Why a task ended in FAILED or TIMED_OUT."""

    VALIDATION = "VALIDATION"
    TRANSIENT = "TRANSIENT"
    CONFIGURATION = "CONFIGURATION"
    CANCELLED = "CANCELLED"
    TIMED_OUT = "TIMED_OUT"
    REMOTE_FAILED = "REMOTE_FAILED"
    UNKNOWN = "UNKNOWN"


TERMINAL_STATES: frozenset[TaskState] = frozenset(
    {TaskState.SUCCEEDED, TaskState.FAILED, TaskState.TIMED_OUT}
)

ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.PENDING: frozenset({TaskState.SUBMITTING, TaskState.FAILED}),
    TaskState.SUBMITTING: frozenset({TaskState.RUNNING, TaskState.FAILED}),
    TaskState.RUNNING: frozenset({TaskState.SUCCEEDED, TaskState.FAILED, TaskState.TIMED_OUT}),
    TaskState.SUCCEEDED: frozenset(),
    TaskState.FAILED: frozenset(),
    TaskState.TIMED_OUT: frozenset(),
}

# Position in the state machine, used to keep concurrent writers monotonic
STATE_RANK: dict[TaskState, int] = {
    TaskState.PENDING: 0,
    TaskState.SUBMITTING: 1,
    TaskState.RUNNING: 2,
    TaskState.SUCCEEDED: 3,
    TaskState.FAILED: 3,
    TaskState.TIMED_OUT: 3,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Task:
    """
    One unit of asynchronous remote work.

    Attributes:
        catalog_id: Effect the task runs
        region: Region the task was submitted to
        task_id: Local UUID, assigned before submission
        state: Current TaskState
        external_task_id: Remote task id (set once accepted)
        submitted_at: When the first submission attempt started
        last_polled_at: When the last remote status check completed
        poll_interval_ms: Current adaptive polling interval
        attempt: Submission attempts used
        poll_failures: Consecutive transient polling failures
        result: Output artifacts (SUCCEEDED only)
        error_kind: Failure classification (FAILED / TIMED_OUT only)
        error_message: Human-readable failure description
        diagnostic_code: Raw remote code kept for support
        warning: Set when the remote accepted the task with a validation warning
        cancel_requested: Cooperative cancellation flag
        created_at: Entity creation time
        updated_at: Last mutation time

    Examples:
        >>> task = Task(catalog_id="bg-replace", region="hongkong")
        >>> task.mark_submitting()
        >>> task.mark_running("1904163390028185602")
        >>> task.state
        <TaskState.RUNNING: 'RUNNING'>
    """

    catalog_id: str
    region: str
    task_id: str = field(default_factory=lambda: str(uuid4()))
    state: TaskState = TaskState.PENDING
    external_task_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    last_polled_at: Optional[datetime] = None
    poll_interval_ms: Optional[int] = None
    attempt: int = 0
    poll_failures: int = 0
    result: Optional[list[ResultArtifact]] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    diagnostic_code: Optional[int] = None
    warning: Optional[str] = None
    cancel_requested: bool = False
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # ========================================================================
    # STATE QUERIES
    # ========================================================================

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since submission started (or creation if never submitted)."""
        reference = self.submitted_at or self.created_at
        return ((now or _now()) - reference).total_seconds()

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def _transition(self, target: TaskState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTaskTransitionError(self.task_id, self.state.value, target.value)
        self.state = target
        self.updated_at = _now()

    def mark_submitting(self) -> None:
        self._transition(TaskState.SUBMITTING)
        if self.submitted_at is None:
            self.submitted_at = self.updated_at

    def mark_running(
        self,
        external_task_id: str,
        warning: Optional[str] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> None:
        if not external_task_id:
            raise ValueError("external_task_id must be non-empty")
        self._transition(TaskState.RUNNING)
        self.external_task_id = str(external_task_id)
        self.warning = warning
        self.poll_interval_ms = poll_interval_ms

    def mark_succeeded(self, result: list[ResultArtifact]) -> None:
        self._transition(TaskState.SUCCEEDED)
        self.result = list(result)

    def mark_failed(
        self,
        error_kind: ErrorKind,
        message: Optional[str] = None,
        diagnostic_code: Optional[int] = None,
    ) -> None:
        self._transition(TaskState.FAILED)
        self.error_kind = error_kind
        self.error_message = message
        if diagnostic_code is not None:
            self.diagnostic_code = diagnostic_code

    def mark_timed_out(self, message: Optional[str] = None) -> None:
        self._transition(TaskState.TIMED_OUT)
        self.error_kind = ErrorKind.TIMED_OUT
        self.error_message = message

    def request_cancel(self) -> None:
        self.cancel_requested = True
        self.updated_at = _now()

    # ========================================================================
    # POLLING BOOKKEEPING
    # ========================================================================

    def record_poll(self, next_interval_ms: Optional[int] = None) -> None:
        """Record a successful status check."""
        self.last_polled_at = _now()
        self.updated_at = self.last_polled_at
        self.poll_failures = 0
        if next_interval_ms is not None:
            self.poll_interval_ms = next_interval_ms

    def record_poll_failure(self, next_interval_ms: Optional[int] = None) -> None:
        """Record a transient status-check failure (never fails the task)."""
        self.poll_failures += 1
        self.updated_at = _now()
        if next_interval_ms is not None:
            self.poll_interval_ms = next_interval_ms

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "catalog_id": self.catalog_id,
            "region": self.region,
            "state": self.state.value,
            "external_task_id": self.external_task_id,
            "submitted_at": _format_dt(self.submitted_at),
            "last_polled_at": _format_dt(self.last_polled_at),
            "poll_interval_ms": self.poll_interval_ms,
            "attempt": self.attempt,
            "poll_failures": self.poll_failures,
            "result": [artifact.to_dict() for artifact in self.result] if self.result is not None else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
            "diagnostic_code": self.diagnostic_code,
            "warning": self.warning,
            "cancel_requested": self.cancel_requested,
            "created_at": _format_dt(self.created_at),
            "updated_at": _format_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        result = data.get("result")
        error_kind = data.get("error_kind")
        return cls(
            task_id=data["task_id"],
            catalog_id=data["catalog_id"],
            region=data["region"],
            state=TaskState(data["state"]),
            external_task_id=data.get("external_task_id"),
            submitted_at=_parse_dt(data.get("submitted_at")),
            last_polled_at=_parse_dt(data.get("last_polled_at")),
            poll_interval_ms=data.get("poll_interval_ms"),
            attempt=data.get("attempt", 0),
            poll_failures=data.get("poll_failures", 0),
            result=[ResultArtifact.from_dict(item) for item in result] if result is not None else None,
            error_kind=ErrorKind(error_kind) if error_kind else None,
            error_message=data.get("error_message"),
            diagnostic_code=data.get("diagnostic_code"),
            warning=data.get("warning"),
            cancel_requested=data.get("cancel_requested", False),
            created_at=_parse_dt(data.get("created_at")) or _now(),
            updated_at=_parse_dt(data.get("updated_at")) or _now(),
        )

    def __repr__(self) -> str:
        return (
            f"Task(task_id={self.task_id!r}, catalog_id={self.catalog_id!r}, "
            f"state={self.state.value}, external_task_id={self.external_task_id!r})"
        )
