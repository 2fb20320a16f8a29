"""
Node Binding Value Objects

Maps effect parameters onto addressable targets in the remote processing graph,
and carries the per-request result of that mapping.

Responsibility:
    - NodeBinding: static catalog mapping {node_id, field_name} <- param_key
    - WireType: scalar type the remote field expects
    - NodeValue: one resolved {node_id, field_name, field_value} entry
    - ParameterBinding: ordered per-request list of NodeValue

Architecture Notes:
    - Value Objects (immutable)
    - Part of Effects subdomain
    - The remote service rejects a submission whose field value has the
      wrong scalar type, so the wire type is carried per binding, never
      inferred from the Python value
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from src.domain.shared.exceptions import CatalogValidationError

WireValue = Union[str, int]


class WireType(str, Enum):
    """
    Scalar type a remote node field expects.

    STRING: JSON string (image, text, select fields)
    INTEGER: JSON integer (some numeric fields)
    NUMERIC_STRING: decimal number rendered as a JSON string
    """

    STRING = "string"
    INTEGER = "integer"
    NUMERIC_STRING = "numeric_string"


def _identifier_to_str(value: Any, what: str) -> str:
    """
    Render a configured identifier as a string without losing digits.

    Integers are accepted (catalog authors often write node ids as numbers)
    but floats are rejected since their text form may not round-trip.
    """
    if isinstance(value, bool) or value is None:
        raise CatalogValidationError(f"{what} must be a string or integer, got {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise CatalogValidationError(f"{what} must be a non-empty string or integer, got {value!r}")


@dataclass(frozen=True)
class NodeBinding:
    """
    Static mapping from one effect parameter to one remote node field.

    Attributes:
        node_id: Remote node identifier (always a string, e.g. "240")
        field_name: Field within the node (e.g. "image", "prompt")
        param_key: Parameter that supplies the value
        wire_type: Scalar type expected by the field (None = kind default)

    Examples:
        >>> NodeBinding.from_dict({"nodeId": 240, "fieldName": "image", "paramKey": "image_240"})
        NodeBinding(node_id='240', field_name='image', param_key='image_240', wire_type=None)
    """

    node_id: str
    field_name: str
    param_key: str
    wire_type: Optional[WireType] = None

    @property
    def target(self) -> tuple[str, str]:
        """(node_id, field_name) pair that must be unique per effect."""
        return (self.node_id, self.field_name)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nodeId": self.node_id,
            "fieldName": self.field_name,
            "paramKey": self.param_key,
        }
        if self.wire_type is not None:
            data["wireType"] = self.wire_type.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeBinding":
        """
        Build a binding from catalog JSON (camelCase keys, as in the remote API).

        Raises:
            CatalogValidationError: If an identifier is missing or malformed
        """
        wire_type = data.get("wireType")
        try:
            parsed_wire_type = WireType(wire_type) if wire_type is not None else None
        except ValueError as e:
            raise CatalogValidationError(f"Unknown wire type {wire_type!r}") from e

        return cls(
            node_id=_identifier_to_str(data.get("nodeId"), "nodeId"),
            field_name=_identifier_to_str(data.get("fieldName"), "fieldName"),
            param_key=_identifier_to_str(data.get("paramKey"), "paramKey"),
            wire_type=parsed_wire_type,
        )


@dataclass(frozen=True)
class NodeValue:
    """One resolved node field with its value already in wire form."""

    node_id: str
    field_name: str
    field_value: WireValue

    def to_wire(self) -> dict[str, WireValue]:
        return {
            "nodeId": self.node_id,
            "fieldName": self.field_name,
            "fieldValue": self.field_value,
        }


@dataclass(frozen=True)
class ParameterBinding:
    """
    Fully-resolved per-request node list for one submission.

    Created by ParameterBinder.bind() and consumed by the Task Dispatcher.
    Order follows the effect's node bindings.

    Attributes:
        catalog_id: Effect the binding was produced for
        values: Ordered node values
    """

    catalog_id: str
    values: tuple[NodeValue, ...] = field(default_factory=tuple)

    def to_node_info_list(self) -> list[dict[str, WireValue]]:
        """Render as the remote nodeInfoList payload."""
        return [value.to_wire() for value in self.values]

    def __len__(self) -> int:
        return len(self.values)
