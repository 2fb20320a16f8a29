"""
ResultArtifact Value Object

Reference to one output produced by a finished remote task.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ResultArtifact(BaseModel):
    """
    Immutable reference to one output file of a SUCCEEDED task.

    Attributes:
        url: Absolute URL of the output (relative remote paths are resolved
            against the region base URL before this object is built)
        file_type: File extension or MIME-ish type reported by the remote (e.g. "png")
        node_id: Remote node that produced the output (optional)

    Examples:
        >>> artifact = ResultArtifact(url="https://www.runninghub.ai/out/a.png", file_type="png")
        >>> artifact.to_dict()["file_type"]
        'png'
    """

    url: str = Field(min_length=1, description="Absolute URL of the output file")
    file_type: Optional[str] = Field(default=None, description="Output file type")
    node_id: Optional[str] = Field(default=None, description="Producing node id")

    model_config = {
        "frozen": True,  # Immutable value object
    }

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultArtifact":
        return cls.model_validate(data)
