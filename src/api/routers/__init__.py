"""
API Routers Package

Contains all FastAPI routers grouped by functionality.

Architecture Notes:
    - Part of API Layer (Presentation)
    - Routers are thin wrappers around Application Layer handlers
    - All routers follow dependency injection pattern

Available Routers:
    - tasks_router: Effect submission, task status and cancellation
    - effects_router: Effect catalog listing and reload
"""

from .tasks import router as tasks_router
from .effects import router as effects_router

__all__ = ["tasks_router", "effects_router"]
