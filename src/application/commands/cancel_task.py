"""
CancelTaskCommand - CQRS Write Command

Cooperative cancellation of a task.

Responsibility:
    - Command: task_id to cancel
    - Handler: delegates to TaskLifecycleManager.cancel() off the event loop

Architecture Notes:
    - Idempotent: cancelling a terminal task acknowledges its current state
    - Remote cancel is best effort and never fails the command
"""

import asyncio
import logging

from pydantic import BaseModel, Field

from src.application.services.task_lifecycle_manager import TaskLifecycleManager
from src.domain.tasks import ErrorKind

# Configure logger for this module
logger = logging.getLogger(__name__)


class CancelTaskCommand(BaseModel):
    """Task to cancel."""

    task_id: str = Field(min_length=1, description="Task ID returned on submission")


class CancelTaskResult(BaseModel):
    """
    Outcome of a cancel request.

    Attributes:
        task_id: Local task ID
        state: State after the request
        cancelled: True if the task ended because of a cancel request
    """

    task_id: str
    state: str
    cancelled: bool


class CancelTaskCommandHandler:
    """
    Handler for CancelTaskCommand.

    Usage:
        handler = CancelTaskCommandHandler(lifecycle_manager)
        result = await handler.handle(CancelTaskCommand(task_id="..."))
    """

    def __init__(self, lifecycle_manager: TaskLifecycleManager):
        self.lifecycle_manager = lifecycle_manager

    async def handle(self, command: CancelTaskCommand) -> CancelTaskResult:
        """
        Cancel the task.

        Raises:
            TaskNotFoundException: If the task is unknown or evicted
        """
        task = await asyncio.to_thread(self.lifecycle_manager.cancel, command.task_id)
        return CancelTaskResult(
            task_id=task.task_id,
            state=task.state.value,
            cancelled=task.error_kind is ErrorKind.CANCELLED,
        )
