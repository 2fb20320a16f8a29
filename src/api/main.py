"""
HTTP entry point of the effect task orchestration service.

Builds the FastAPI application served by uvicorn:

    uvicorn src.api.main:app --reload

Wiring done here:
    - /api/tasks and /api/effects routers
    - CORS and per-request access logging
    - translation of domain/application exceptions into ErrorResponse bodies
    - GET /health for load balancers

Handlers never call the remote service or Redis directly; everything below
the HTTP boundary comes from src/application/container.py.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.routers import effects, tasks
from src.api.schemas.common import ErrorResponse
from src.application.queries.get_task_status import TaskNotFoundException
from src.domain.shared.exceptions import (
    CatalogValidationError,
    DomainException,
    InvalidParameterValueError,
    InvalidTaskTransitionError,
    MissingParameterError,
    RemoteConfigurationError,
    TransientSubmissionError,
    UnknownEffectError,
    UnsupportedRegionError,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Sent as Retry-After with 503 responses
TRANSIENT_RETRY_AFTER_SECONDS = 5

# First match wins, so subclasses go before their bases.
# Anything not listed (ValidationError family included) maps to 400.
DOMAIN_STATUS_TABLE: List[Tuple[Type[DomainException], int]] = [
    (UnknownEffectError, status.HTTP_404_NOT_FOUND),
    (CatalogValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RemoteConfigurationError, status.HTTP_502_BAD_GATEWAY),
    (TransientSubmissionError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidTaskTransitionError, status.HTTP_409_CONFLICT),
]

# Exception attributes copied into ErrorResponse.details
DETAIL_ATTRIBUTES: List[Tuple[Type[DomainException], Tuple[str, ...]]] = [
    (MissingParameterError, ("param_key", "catalog_id")),
    (InvalidParameterValueError, ("param_key", "reason")),
    (UnknownEffectError, ("catalog_id",)),
    (UnsupportedRegionError, ("region", "supported")),
    (CatalogValidationError, ("catalog_id", "errors")),
    (RemoteConfigurationError, ("catalog_id", "task_id", "diagnostic_code")),
    (TransientSubmissionError, ("task_id", "attempts", "diagnostic_code")),
    (InvalidTaskTransitionError, ("task_id", "current", "requested")),
]


class HealthCheckResponse(BaseModel):
    """Liveness payload returned by GET /health."""

    status: str = "ok"
    version: str = API_VERSION
    timestamp: float


# ============================================================================
# MIDDLEWARE
# ============================================================================


async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and wall time of every request."""
    route = f"{request.method} {request.url.path}"
    logger.info(f"Incoming request: {route}")

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    logger.info(f"Request completed: {route} - {response.status_code} - {elapsed:.3f}s")
    return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================


def _error_code(exc: Exception) -> str:
    """
    Turn an exception class name into an upper snake case error code.

    Examples:
        >>> _error_code(MissingParameterError("image_240"))
        'MISSING_PARAMETER'
        >>> _error_code(TaskNotFoundException("t-1"))
        'TASK_NOT_FOUND'
    """
    name = re.sub(r"(Exception|Error)$", "", exc.__class__.__name__)
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()


def _status_for(exc: DomainException) -> int:
    for exc_type, status_code in DOMAIN_STATUS_TABLE:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _exception_details(exc: DomainException) -> Dict[str, Any]:
    details: Dict[str, Any] = {"exception_type": exc.__class__.__name__}
    for exc_type, attributes in DETAIL_ATTRIBUTES:
        if isinstance(exc, exc_type):
            details.update({name: getattr(exc, name, None) for name in attributes})
            break
    return details


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def domain_exception_handler(request: Request, exc: DomainException):
    """
    Convert any DomainException into an ErrorResponse.

    Status codes come from DOMAIN_STATUS_TABLE:
        UnknownEffectError          404
        CatalogValidationError      422 (catalog file is broken)
        RemoteConfigurationError    502 (catalog disagrees with the remote graph)
        TransientSubmissionError    503 + Retry-After
        InvalidTaskTransitionError  409
        everything else             400

    Server-side failures (5xx) are logged as errors, client mistakes as
    warnings.
    """
    status_code = _status_for(exc)
    headers = None
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(TRANSIENT_RETRY_AFTER_SECONDS)}

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__} on {request.method} {request.url.path} "
        f"-> {status_code}: {exc}"
    )

    return _error_response(status_code, _error_code(exc), str(exc), _exception_details(exc), headers)


async def task_not_found_exception_handler(request: Request, exc: TaskNotFoundException):
    """Unknown or expired task id -> 404 TASK_NOT_FOUND."""
    logger.warning(f"Task {exc.task_id} not found ({request.method} {request.url.path})")
    return _error_response(
        status.HTTP_404_NOT_FOUND,
        "TASK_NOT_FOUND",
        str(exc),
        {"task_id": exc.task_id},
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Last resort: anything unhandled becomes a 500 with the traceback logged."""
    logger.error(
        f"Unhandled {exc.__class__.__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
        {"error": str(exc), "type": exc.__class__.__name__},
    )


# ============================================================================
# APP FACTORY
# ============================================================================


def create_app() -> FastAPI:
    """
    Assemble the FastAPI application.

    CORS is wide open; deployments put the service behind a gateway that
    enforces origins. Routers are mounted under /api, the health probe at
    the root.

    Returns:
        FastAPI application ready for uvicorn or TestClient
    """
    app = FastAPI(
        title="Effect Task Orchestration API",
        version=API_VERSION,
        description=(
            "Submits image effects to the remote node-graph AI processing service "
            "and tracks them until they finish."
        ),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_logging_middleware)

    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(TaskNotFoundException, task_not_found_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for module in (tasks, effects):
        app.include_router(module.router, prefix="/api")

    @app.get("/health", response_model=HealthCheckResponse, tags=["health"])
    async def health_check() -> HealthCheckResponse:
        """Liveness probe; does not touch Redis or the remote service."""
        return HealthCheckResponse(timestamp=time.time())

    logger.info("Effect task API created (routers: /api/tasks, /api/effects)")
    return app


app = create_app()
