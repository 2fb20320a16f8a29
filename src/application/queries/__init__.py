"""
Queries (CQRS read operations)

Contains:
    - GetTaskStatusQuery / GetTaskStatusQueryHandler: task status from the status cache
    - ListEffectsQueryHandler: current catalog listing
"""

from src.application.queries.get_task_status import (
    GetTaskStatusQuery,
    GetTaskStatusQueryHandler,
    TaskNotFoundException,
    TaskStatusResult,
)
from src.application.queries.list_effects import (
    EffectListResult,
    EffectSummary,
    ListEffectsQueryHandler,
)

__all__ = [
    "GetTaskStatusQuery",
    "GetTaskStatusQueryHandler",
    "TaskNotFoundException",
    "TaskStatusResult",
    "EffectListResult",
    "EffectSummary",
    "ListEffectsQueryHandler",
]
