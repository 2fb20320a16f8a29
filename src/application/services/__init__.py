"""
Application Services

Responsibility:
    Orchestration services that coordinate domain services and
    infrastructure components.

Contains:
    - TaskLifecycleManager: registration, polling state machine, cancellation
    - SubmitEffectUseCase: region -> effect -> binding -> dispatch

Does NOT contain:
    - Domain business logic (use Domain services)
    - Direct infrastructure construction (see src/application/container.py)
"""

from src.application.services.task_lifecycle_manager import TaskLifecycleManager
from src.application.services.submit_effect_use_case import (
    SubmitEffectResult,
    SubmitEffectUseCase,
)

__all__ = [
    "TaskLifecycleManager",
    "SubmitEffectUseCase",
    "SubmitEffectResult",
]
