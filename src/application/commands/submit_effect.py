"""
SubmitEffectCommand - CQRS Write Command

Encapsulates a caller's "apply effect X with parameters P" request.

Responsibility:
    - Data holder for one submission
    - Shape validation only (catalog id present, params is an object)
    - Parameter semantics are validated by the ParameterBinder against the
      effect's parameter specs, not here

Architecture Notes:
    - Part of Application Layer (orchestration)
    - Used by SubmitEffectUseCase
    - Immutable data structure (Command pattern)
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmitEffectCommand(BaseModel):
    """
    Command containing everything needed to start one effect task.

    Attributes:
        catalog_id: Effect to run (e.g. "bg-replace")
        region: Region code ("china" / "hongkong"); None = default region
        params: Caller parameters keyed by param_key

    Examples:
        >>> command = SubmitEffectCommand(
        ...     catalog_id="bg-replace",
        ...     region="hongkong",
        ...     params={"image_240": "file.png", "prompt_279": "studio light"},
        ... )
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "catalog_id": "bg-replace",
                "region": "hongkong",
                "params": {"image_240": "file.png", "prompt_279": "studio light"},
            }
        },
    )

    catalog_id: str = Field(min_length=1, description="Effect catalog id")
    region: Optional[str] = Field(default=None, description="Region code (default region if omitted)")
    params: dict[str, Any] = Field(default_factory=dict, description="Parameters keyed by param_key")

    @field_validator("catalog_id")
    @classmethod
    def strip_catalog_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("catalog_id must not be blank")
        return value
