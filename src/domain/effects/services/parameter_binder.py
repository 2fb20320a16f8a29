"""
Parameter Binder Domain Service

Validates a caller's parameter map against an EffectDefinition and produces the
node list ready for submission.

Responsibility:
    - Resolve every node binding to a value (caller value or declared default)
    - Coerce each value with the coercion function of its parameter kind
    - Render each value with the scalar type its remote field expects

Architecture Notes:
    - Part of Effects subdomain
    - Pure transform: no I/O, never raises network errors
    - Failures are always ValidationError subclasses
    - Duplicate node targets are rejected at catalog load, not here

Coercion Rules:
    image   -> non-empty str
    text    -> str
    select  -> str; integral numbers rendered without decimal point ("2", not "2.0");
               must be one of the declared options when options exist
    number  -> numeric check (bool and non-numeric strings rejected), range check,
               then int for INTEGER fields or decimal string for NUMERIC_STRING fields
"""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from src.domain.effects.entities import EffectDefinition
from src.domain.effects.value_objects import (
    NodeBinding,
    NodeValue,
    ParameterBinding,
    ParameterSpec,
    ParamKind,
    WireType,
    WireValue,
)
from src.domain.shared.exceptions import (
    InvalidParameterValueError,
    MissingParameterError,
)

logger = logging.getLogger(__name__)

Coercer = Callable[[ParameterSpec, NodeBinding, Any], WireValue]


# ============================================================================
# PER-KIND COERCION FUNCTIONS
# ============================================================================


def _to_decimal(spec: ParameterSpec, value: Any) -> Decimal:
    """Parse a caller value as a finite number."""
    if isinstance(value, bool):
        raise InvalidParameterValueError(spec.key, value, "expected a number, got a boolean")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidParameterValueError(spec.key, value, "expected a finite number")
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidParameterValueError(spec.key, value, "expected a number") from None
        if not number.is_finite():
            raise InvalidParameterValueError(spec.key, value, "expected a finite number")
        return number
    raise InvalidParameterValueError(spec.key, value, "expected a number")


def _decimal_to_text(number: Decimal) -> str:
    """Render a decimal without exponent and without a trailing '.0'."""
    if number == number.to_integral_value():
        return str(int(number))
    return format(number.normalize(), "f")


def coerce_image(spec: ParameterSpec, binding: NodeBinding, value: Any) -> WireValue:
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameterValueError(
            spec.key, value, "expected a non-empty file name or URL"
        )
    return value.strip()


def coerce_text(spec: ParameterSpec, binding: NodeBinding, value: Any) -> WireValue:
    if isinstance(value, (dict, list, tuple, set)):
        raise InvalidParameterValueError(spec.key, value, "expected a scalar text value")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def coerce_select(spec: ParameterSpec, binding: NodeBinding, value: Any) -> WireValue:
    if isinstance(value, bool) or isinstance(value, (dict, list, tuple, set)):
        raise InvalidParameterValueError(spec.key, value, "expected a select option")

    if isinstance(value, (int, float)) or (isinstance(value, str) and _looks_numeric(value)):
        text = _decimal_to_text(_to_decimal(spec, value))
    else:
        text = str(value)

    if spec.options is not None and text not in spec.options:
        raise InvalidParameterValueError(
            spec.key, value, f"expected one of {', '.join(spec.options)}"
        )
    return text


def coerce_number(spec: ParameterSpec, binding: NodeBinding, value: Any) -> WireValue:
    number = _to_decimal(spec, value)

    if spec.minimum is not None and number < Decimal(str(spec.minimum)):
        raise InvalidParameterValueError(spec.key, value, f"must be >= {spec.minimum}")
    if spec.maximum is not None and number > Decimal(str(spec.maximum)):
        raise InvalidParameterValueError(spec.key, value, f"must be <= {spec.maximum}")

    if binding.wire_type is WireType.INTEGER:
        if number != number.to_integral_value():
            raise InvalidParameterValueError(spec.key, value, "expected a whole number")
        return int(number)

    return _decimal_to_text(number)


def _looks_numeric(text: str) -> bool:
    try:
        return Decimal(text.strip()).is_finite()
    except InvalidOperation:
        return False


COERCERS: dict[ParamKind, Coercer] = {
    ParamKind.IMAGE: coerce_image,
    ParamKind.TEXT: coerce_text,
    ParamKind.SELECT: coerce_select,
    ParamKind.NUMBER: coerce_number,
}


# ============================================================================
# BINDER
# ============================================================================


class ParameterBinder:
    """
    Turns (EffectDefinition, params) into a ParameterBinding.

    The coercion registry can be replaced per instance (tests, new kinds)
    without touching the binding loop.

    Examples:
        >>> binder = ParameterBinder()
        >>> binding = binder.bind(bg_replace, {"image_240": "file.png", "prompt_279": "studio light"})
        >>> binding.to_node_info_list()[0]
        {'nodeId': '240', 'fieldName': 'image', 'fieldValue': 'file.png'}
    """

    def __init__(self, coercers: Optional[Mapping[ParamKind, Coercer]] = None) -> None:
        self.coercers: dict[ParamKind, Coercer] = dict(coercers or COERCERS)

    def bind(self, effect: EffectDefinition, params: Mapping[str, Any]) -> ParameterBinding:
        """
        Resolve every node binding of the effect.

        Args:
            effect: Catalog entry to bind against
            params: Caller parameters keyed by param_key

        Returns:
            ParameterBinding with one NodeValue per node binding, in order

        Raises:
            MissingParameterError: If a bound parameter is absent and has no default
            InvalidParameterValueError: If a value does not fit its kind
        """
        values: list[NodeValue] = []

        for binding in effect.node_bindings:
            # EffectDefinition guarantees every binding has a spec
            spec = effect.get_spec(binding.param_key)

            raw = params.get(binding.param_key)
            if raw is None:
                if not spec.has_default:
                    raise MissingParameterError(binding.param_key, catalog_id=effect.catalog_id)
                raw = spec.default

            field_value = self.coercers[spec.kind](spec, binding, raw)
            values.append(
                NodeValue(
                    node_id=binding.node_id,
                    field_name=binding.field_name,
                    field_value=field_value,
                )
            )

        unknown = set(params) - {spec.key for spec in effect.parameter_specs}
        if unknown:
            logger.debug(
                f"Ignoring undeclared parameters for {effect.catalog_id}: {sorted(unknown)}"
            )

        return ParameterBinding(catalog_id=effect.catalog_id, values=tuple(values))
