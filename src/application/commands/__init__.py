"""
Commands (CQRS write operations)

Contains:
    - SubmitEffectCommand: start an effect task
    - CancelTaskCommand / CancelTaskCommandHandler: cooperative cancellation
    - ReloadCatalogCommandHandler: hot reload of the effect catalog
"""

from src.application.commands.cancel_task import (
    CancelTaskCommand,
    CancelTaskCommandHandler,
    CancelTaskResult,
)
from src.application.commands.reload_catalog import (
    ReloadCatalogCommandHandler,
    ReloadCatalogResult,
)
from src.application.commands.submit_effect import SubmitEffectCommand

__all__ = [
    "SubmitEffectCommand",
    "CancelTaskCommand",
    "CancelTaskCommandHandler",
    "CancelTaskResult",
    "ReloadCatalogCommandHandler",
    "ReloadCatalogResult",
]
