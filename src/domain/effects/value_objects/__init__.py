"""
Effects Value Objects.

Available Value Objects:
    - ParamKind / ParameterSpec: caller-facing parameter declarations
    - WireType / NodeBinding: catalog mapping from parameters to remote node fields
    - NodeValue / ParameterBinding: per-request resolved node list
    - ResultArtifact: output reference of a finished task
"""

from src.domain.effects.value_objects.node_binding import (
    NodeBinding,
    NodeValue,
    ParameterBinding,
    WireType,
    WireValue,
)
from src.domain.effects.value_objects.parameter_spec import ParameterSpec, ParamKind
from src.domain.effects.value_objects.result_artifact import ResultArtifact

__all__ = [
    "ParamKind",
    "ParameterSpec",
    "WireType",
    "WireValue",
    "NodeBinding",
    "NodeValue",
    "ParameterBinding",
    "ResultArtifact",
]
