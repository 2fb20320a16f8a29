"""
API Router for Effect Tasks

Responsibility:
    HTTP interface for submitting effects and tracking the resulting tasks.
    Thin layer that delegates to Application Layer handlers via dependency injection.

Architecture Notes:
    - Part of API Layer (Presentation)
    - Depends on Application Layer (SubmitEffectUseCase, GetTaskStatusQueryHandler,
      CancelTaskCommandHandler) resolved from the service container
    - Returns 202 Accepted on submission: the task keeps running remotely
    - Domain and not-found errors are mapped to HTTP by the global handlers in main.py
    - Status reads never trigger a remote call (CQRS Query)

Contains:
    - POST /tasks - Submit an effect
    - GET /tasks/{task_id}/status - Query task state
    - POST /tasks/{task_id}/cancel - Cancel a task

Does NOT contain:
    - Business logic (delegated to Application/Domain Layer)
    - Polling (Celery poll_effect_task)
    - Direct Redis or HTTP client access
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field

from src.api.schemas.common import ErrorResponse
from src.application.commands.cancel_task import CancelTaskCommand, CancelTaskCommandHandler
from src.application.commands.submit_effect import SubmitEffectCommand
from src.application.container import get_container
from src.application.queries.get_task_status import GetTaskStatusQuery, GetTaskStatusQueryHandler
from src.application.services.submit_effect_use_case import SubmitEffectUseCase

# Configure logger
logger = logging.getLogger(__name__)


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================


class SubmitEffectRequest(BaseModel):
    """
    Request to submit one effect.

    Attributes:
        catalog_id: Effect id from GET /api/effects
        region: Region code (optional, default region when omitted)
        params: Parameter values keyed by param_key
    """

    catalog_id: str = Field(min_length=1, description="Effect catalog id")
    region: Optional[str] = Field(default=None, description="Region code")
    params: Dict[str, Any] = Field(default_factory=dict, description="Parameters keyed by param_key")

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "catalog_id": "bg-replace",
                "region": "hongkong",
                "params": {
                    "image_240": "api/3f1c2a.png",
                    "prompt_279": "studio lighting, white background",
                },
            }
        }


class SubmitEffectResponse(BaseModel):
    """
    Response for an accepted submission.

    Attributes:
        task_id: Local task ID for status tracking
        state: Task state (RUNNING, or FAILED when the outcome is unknown)
        catalog_id: Submitted effect
        region: Region the task went to
        warning: Remote validation warning, if the remote accepted with one
    """

    task_id: str = Field(description="Task ID for status tracking")
    state: str = Field(description="Task state after submission")
    catalog_id: str
    region: str
    warning: Optional[str] = None


class TaskStatusResponse(BaseModel):
    """
    Response model for a task status query.

    Attributes:
        task_id: Local task ID
        catalog_id: Effect the task runs
        region: Region the task was submitted to
        state: PENDING / SUBMITTING / RUNNING / SUCCEEDED / FAILED / TIMED_OUT
        result: Output artifacts (SUCCEEDED only)
        error_kind: VALIDATION / TRANSIENT / CONFIGURATION / CANCELLED / TIMED_OUT / REMOTE_FAILED / UNKNOWN
        error_message: Human-readable failure description
        diagnostic_code: Raw remote code for support
        warning: Remote validation warning
        cancel_requested: Whether a cancel was requested
        poll_interval_ms: Current polling interval
        created_at: ISO 8601 creation timestamp
        updated_at: ISO 8601 timestamp of the last change
    """

    task_id: str
    catalog_id: str
    region: str
    state: str
    result: Optional[List[Dict[str, Any]]] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    diagnostic_code: Optional[int] = None
    warning: Optional[str] = None
    cancel_requested: bool = False
    poll_interval_ms: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "task_id": "6f1d0c1e-8f55-4a43-9d0a-3b8f6f1f5e2a",
                "catalog_id": "bg-replace",
                "region": "hongkong",
                "state": "SUCCEEDED",
                "result": [{"url": "https://cdn.example.com/out.png", "file_type": "png"}],
                "error_kind": None,
                "error_message": None,
                "diagnostic_code": None,
                "warning": None,
                "cancel_requested": False,
                "poll_interval_ms": 2000,
                "created_at": "2026-01-11T10:30:00+00:00",
                "updated_at": "2026-01-11T10:30:42+00:00",
            }
        }


class CancelTaskResponse(BaseModel):
    """Response for a cancel request."""

    task_id: str
    state: str
    cancelled: bool


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================


router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={
        404: {"model": ErrorResponse, "description": "Not Found - Unknown effect or task"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    },
)


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================


async def get_submit_effect_use_case() -> SubmitEffectUseCase:
    """
    Dependency injection for SubmitEffectUseCase.

    Architecture Pattern:
        API Layer -> Use Case -> (Catalog, Binder, Dispatcher, Lifecycle Manager)
    """
    return get_container().submit_effect_use_case()


async def get_task_status_query_handler() -> GetTaskStatusQueryHandler:
    """Dependency injection for GetTaskStatusQueryHandler."""
    return get_container().task_status_query_handler()


async def get_cancel_task_handler() -> CancelTaskCommandHandler:
    """Dependency injection for CancelTaskCommandHandler."""
    return get_container().cancel_task_handler()


# ============================================================================
# ENDPOINTS
# ============================================================================


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SubmitEffectResponse,
    summary="Submit an effect",
    description=(
        "Validates the effect and its parameters, submits it to the remote "
        "service and returns the local task id. Poll GET /api/tasks/{task_id}/status "
        "for the outcome."
    ),
    responses={
        202: {"description": "Accepted - Task is running remotely", "model": SubmitEffectResponse},
        400: {"description": "Bad Request - Missing/invalid parameter or unsupported region", "model": ErrorResponse},
        502: {"description": "Bad Gateway - Remote rejected the effect configuration", "model": ErrorResponse},
        503: {"description": "Service Unavailable - Remote busy, retry later", "model": ErrorResponse},
    },
)
async def submit_effect(
    request: SubmitEffectRequest,
    use_case: SubmitEffectUseCase = Depends(get_submit_effect_use_case),
) -> SubmitEffectResponse:
    """
    Submit an effect for asynchronous processing.

    Process Flow:
        1. Convert request to SubmitEffectCommand
        2. Delegate to use_case.execute(command)
        3. Convert SubmitEffectResult to SubmitEffectResponse

    Examples:
        >>> curl -X POST http://localhost:8000/api/tasks \\
        ...   -H "Content-Type: application/json" \\
        ...   -d '{"catalog_id": "bg-replace", "params": {"image_240": "api/a.png", "prompt_279": "beach"}}'
        {"task_id": "6f1d...", "state": "RUNNING", "catalog_id": "bg-replace", "region": "hongkong", "warning": null}
    """
    command = SubmitEffectCommand(
        catalog_id=request.catalog_id,
        region=request.region,
        params=request.params,
    )
    logger.debug(f"Created submit command for effect {command.catalog_id}")

    result = await use_case.execute(command)
    logger.info(f"Task {result.task_id} accepted: {result.state}")

    return SubmitEffectResponse(
        task_id=result.task_id,
        state=result.state,
        catalog_id=result.catalog_id,
        region=result.region,
        warning=result.warning,
    )


@router.get(
    "/{task_id}/status",
    status_code=status.HTTP_200_OK,
    response_model=TaskStatusResponse,
    summary="Get status of an effect task",
    description=(
        "Returns the stored task state. Never contacts the remote service; "
        "polling runs in the background."
    ),
)
async def get_task_status(
    task_id: str = Path(..., min_length=1, description="Task ID returned on submission"),
    handler: GetTaskStatusQueryHandler = Depends(get_task_status_query_handler),
) -> TaskStatusResponse:
    """
    Get the current state of a task.

    Examples:
        >>> curl http://localhost:8000/api/tasks/6f1d.../status
        {"task_id": "6f1d...", "state": "RUNNING", "poll_interval_ms": 2000, ...}
    """
    result = await handler.handle(GetTaskStatusQuery(task_id=task_id))
    return TaskStatusResponse(**result.model_dump())


@router.post(
    "/{task_id}/cancel",
    status_code=status.HTTP_200_OK,
    response_model=CancelTaskResponse,
    summary="Cancel an effect task",
    description=(
        "Marks a non-terminal task FAILED with error kind CANCELLED and stops "
        "polling. Terminal tasks are returned unchanged."
    ),
)
async def cancel_task(
    task_id: str = Path(..., min_length=1, description="Task ID returned on submission"),
    handler: CancelTaskCommandHandler = Depends(get_cancel_task_handler),
) -> CancelTaskResponse:
    """Cancel a task (idempotent)."""
    result = await handler.handle(CancelTaskCommand(task_id=task_id))
    logger.info(f"Cancel request for task {task_id}: state={result.state}, cancelled={result.cancelled}")

    return CancelTaskResponse(
        task_id=result.task_id,
        state=result.state,
        cancelled=result.cancelled,
    )
