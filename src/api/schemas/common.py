"""
Common API Schemas

Shared Pydantic models used across all API routers.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response model for all API errors.

    Provides consistent error structure across all endpoints. Raw remote
    status codes only ever appear as details.diagnostic_code.

    Attributes:
        code: Machine-readable error code (e.g., "TASK_NOT_FOUND", "MISSING_PARAMETER")
        message: Human-readable error message
        details: Optional additional error details (offending parameter, task id, ...)
    """

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error context"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "code": "MISSING_PARAMETER",
                "message": "MissingParameterError: Missing required parameter 'image_240'",
                "details": {"param_key": "image_240", "catalog_id": "bg-replace"},
            }
        }
