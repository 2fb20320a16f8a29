"""
EffectDefinition Entity

Immutable catalog entry describing how one user-facing effect is submitted to
the remote node-graph service.

Responsibility:
    - Hold the workflow/app identifier (always a string)
    - Hold ordered parameter specs and node bindings
    - Enforce catalog authoring invariants at load time:
        * (node_id, field_name) unique within the effect
        * every binding references a declared parameter
        * wire type compatible with parameter kind
    - Serialize to/from catalog JSON

Architecture Notes:
    - Identified by catalog_id, read-only after load
    - Part of Effects subdomain
    - A catalog reload builds new instances, existing ones are never mutated
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from src.domain.effects.value_objects import (
    NodeBinding,
    ParameterSpec,
    ParamKind,
    WireType,
)
from src.domain.shared.exceptions import CatalogValidationError


class SubmissionMode(str, Enum):
    """
    Remote request shape used to start a task.

    APP: templated app identified by webappId, node values only
    GRAPH: workflow identified by workflowId, optionally with inline graph overrides
    """

    APP = "app"
    GRAPH = "graph"


# Wire types each parameter kind may be bound with
_ALLOWED_WIRE_TYPES: dict[ParamKind, frozenset[WireType]] = {
    ParamKind.IMAGE: frozenset({WireType.STRING}),
    ParamKind.TEXT: frozenset({WireType.STRING}),
    ParamKind.SELECT: frozenset({WireType.STRING}),
    ParamKind.NUMBER: frozenset({WireType.INTEGER, WireType.NUMERIC_STRING}),
}


def _workflow_id_to_str(value: Any) -> str:
    """Convert configured workflow id to string, rejecting lossy forms."""
    if isinstance(value, bool) or value is None:
        raise CatalogValidationError(f"externalWorkflowId must be a string, got {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise CatalogValidationError(
        f"externalWorkflowId must be a non-empty string or integer, got {value!r}"
    )


@dataclass(frozen=True)
class EffectDefinition:
    """
    Immutable description of one effect in the catalog.

    Attributes:
        catalog_id: Stable effect identifier used by callers (e.g. "bg-replace")
        submission_mode: APP or GRAPH request shape
        external_workflow_id: Remote webappId / workflowId, stored as str
        parameter_specs: Ordered caller-facing parameter declarations
        node_bindings: Ordered parameter -> node field mapping
        name: Display name (optional)
        instance_type: Remote machine class for GRAPH mode (optional, e.g. "plus")
        workflow_overrides: Inline graph JSON sent with GRAPH submissions (optional)

    Examples:
        >>> effect = EffectDefinition.from_dict({
        ...     "catalogId": "bg-replace",
        ...     "submissionMode": "graph",
        ...     "externalWorkflowId": 1949831786093264897,
        ...     "parameterSpecs": [{"key": "image_240", "kind": "image"}],
        ...     "nodeBindings": [{"nodeId": "240", "fieldName": "image", "paramKey": "image_240"}],
        ... })
        >>> effect.external_workflow_id
        '1949831786093264897'
    """

    catalog_id: str
    submission_mode: SubmissionMode
    external_workflow_id: str
    parameter_specs: tuple[ParameterSpec, ...]
    node_bindings: tuple[NodeBinding, ...]
    name: Optional[str] = None
    instance_type: Optional[str] = None
    workflow_overrides: Optional[dict[str, Any]] = field(default=None, compare=False, hash=False)

    def __post_init__(self) -> None:
        """
        Validate catalog invariants.

        All violations are collected and reported together so an author sees
        every problem of an effect in one load attempt.

        Raises:
            CatalogValidationError: If any invariant is violated
        """
        errors: list[str] = []

        if not isinstance(self.catalog_id, str) or not self.catalog_id.strip():
            raise CatalogValidationError("catalogId must be a non-empty string")

        if not isinstance(self.external_workflow_id, str) or not self.external_workflow_id:
            errors.append("externalWorkflowId must be a non-empty string")

        if self.workflow_overrides is not None and self.submission_mode is not SubmissionMode.GRAPH:
            errors.append("workflow overrides are only allowed in graph mode")

        specs_by_key: dict[str, ParameterSpec] = {}
        for spec in self.parameter_specs:
            if spec.key in specs_by_key:
                errors.append(f"parameter '{spec.key}' is declared twice")
            specs_by_key[spec.key] = spec

        seen_targets: set[tuple[str, str]] = set()
        for binding in self.node_bindings:
            if binding.target in seen_targets:
                errors.append(
                    f"duplicate node target (nodeId={binding.node_id}, fieldName={binding.field_name})"
                )
            seen_targets.add(binding.target)

            spec = specs_by_key.get(binding.param_key)
            if spec is None:
                errors.append(
                    f"node {binding.node_id}.{binding.field_name} references undeclared parameter '{binding.param_key}'"
                )
                continue

            if binding.wire_type is not None and binding.wire_type not in _ALLOWED_WIRE_TYPES[spec.kind]:
                errors.append(
                    f"node {binding.node_id}.{binding.field_name}: wire type {binding.wire_type.value} "
                    f"does not fit {spec.kind.value} parameter '{spec.key}'"
                )

        if errors:
            raise CatalogValidationError(
                "Invalid effect definition", catalog_id=self.catalog_id, errors=errors
            )

    def get_spec(self, param_key: str) -> Optional[ParameterSpec]:
        """Return the parameter spec for a key, or None."""
        for spec in self.parameter_specs:
            if spec.key == param_key:
                return spec
        return None

    @property
    def required_params(self) -> list[str]:
        """Keys a caller must supply (bound parameters without default)."""
        bound = {binding.param_key for binding in self.node_bindings}
        return [
            spec.key
            for spec in self.parameter_specs
            if spec.key in bound and not spec.has_default
        ]

    def workflow_overrides_json(self) -> Optional[str]:
        """Inline graph as the JSON string the remote expects, or None."""
        if self.workflow_overrides is None:
            return None
        return json.dumps(self.workflow_overrides, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to catalog JSON shape."""
        data: dict[str, Any] = {
            "catalogId": self.catalog_id,
            "submissionMode": self.submission_mode.value,
            "externalWorkflowId": self.external_workflow_id,
            "parameterSpecs": [spec.to_dict() for spec in self.parameter_specs],
            "nodeBindings": [binding.to_dict() for binding in self.node_bindings],
        }
        if self.name is not None:
            data["name"] = self.name
        if self.instance_type is not None:
            data["instanceType"] = self.instance_type
        if self.workflow_overrides is not None:
            data["workflow"] = self.workflow_overrides
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EffectDefinition":
        """
        Build an EffectDefinition from catalog JSON.

        Args:
            data: Catalog entry with camelCase keys

        Returns:
            Validated EffectDefinition

        Raises:
            CatalogValidationError: If the entry is malformed or violates an invariant
        """
        catalog_id = data.get("catalogId")
        try:
            mode = SubmissionMode(str(data.get("submissionMode", "")).lower())
        except ValueError as e:
            raise CatalogValidationError(
                f"Unknown submission mode {data.get('submissionMode')!r}",
                catalog_id=catalog_id,
            ) from e

        workflow = data.get("workflow")
        if isinstance(workflow, str):
            try:
                workflow = json.loads(workflow)
            except json.JSONDecodeError as e:
                raise CatalogValidationError(
                    "Inline workflow is not valid JSON", catalog_id=catalog_id
                ) from e

        return cls(
            catalog_id=catalog_id or "",
            submission_mode=mode,
            external_workflow_id=_workflow_id_to_str(data.get("externalWorkflowId")),
            parameter_specs=tuple(
                ParameterSpec.from_dict(spec) for spec in data.get("parameterSpecs", [])
            ),
            node_bindings=tuple(
                NodeBinding.from_dict(binding) for binding in data.get("nodeBindings", [])
            ),
            name=data.get("name"),
            instance_type=data.get("instanceType"),
            workflow_overrides=workflow,
        )
