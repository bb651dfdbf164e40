"""Field-level schema validation shared by every flow.

A schema is a plain mapping from field name to :class:`FieldSpec`. The same
checker validates caller input before dispatch and the reasoner's candidate
output afterwards; only the declarations differ.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Pattern, Tuple, Union

NUMBER = (int, float)

Schema = Mapping[str, "FieldSpec"]


# ============================================================================
# Schema Definitions
# ============================================================================

@dataclass(frozen=True)
class FieldSpec:
    """Specification for a single payload field."""
    required: bool = True
    field_type: Optional[Union[type, Tuple[type, ...]]] = None
    allowed_values: Optional[FrozenSet[Any]] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[Pattern[str]] = None
    min_length: Optional[int] = None
    items: Optional[Union["FieldSpec", Schema]] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    media: bool = False
    description: str = ""


def freeze_schema(schema: Mapping[str, FieldSpec]) -> Schema:
    """Return a read-only view of ``schema`` with nested item schemas frozen too."""
    frozen: Dict[str, FieldSpec] = {}
    for name, spec in schema.items():
        if isinstance(spec.items, Mapping) and not isinstance(spec.items, MappingProxyType):
            spec = replace(spec, items=freeze_schema(spec.items))
        frozen[name] = spec
    return MappingProxyType(frozen)


def string(
    *,
    required: bool = True,
    pattern: Optional[str] = None,
    min_length: Optional[int] = None,
    allowed: Optional[Tuple[str, ...]] = None,
    media: bool = False,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        required=required,
        field_type=str,
        pattern=re.compile(pattern) if pattern else None,
        min_length=min_length,
        allowed_values=frozenset(allowed) if allowed else None,
        media=media,
        description=description,
    )


def number(
    *,
    required: bool = True,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        required=required,
        field_type=NUMBER,
        min_value=min_value,
        max_value=max_value,
        description=description,
    )


def boolean(*, required: bool = True, description: str = "") -> FieldSpec:
    return FieldSpec(required=required, field_type=bool, description=description)


def array(
    items: Union[FieldSpec, Schema],
    *,
    required: bool = True,
    min_items: Optional[int] = None,
    max_items: Optional[int] = None,
    description: str = "",
) -> FieldSpec:
    return FieldSpec(
        required=required,
        field_type=list,
        items=items,
        min_items=min_items,
        max_items=max_items,
        description=description,
    )


# ============================================================================
# Schema Validation
# ============================================================================

def _type_name(field_type: Union[type, Tuple[type, ...]]) -> str:
    if isinstance(field_type, tuple):
        if field_type == NUMBER:
            return "number"
        return " | ".join(t.__name__ for t in field_type)
    return field_type.__name__


def _matches_type(value: Any, field_type: Union[type, Tuple[type, ...]]) -> bool:
    # bool is an int subclass; it never counts as a number here
    if isinstance(value, bool):
        types = field_type if isinstance(field_type, tuple) else (field_type,)
        return bool in types
    return isinstance(value, field_type)


def validate_field(
    field_name: str,
    value: Any,
    spec: FieldSpec,
    path_context: str = ""
) -> List[str]:
    """Validate a single field against its specification.

    Returns:
        List of error messages (empty if valid)
    """
    if field_name and path_context:
        context = f"{path_context}.{field_name}"
    else:
        context = path_context or field_name

    if value is None:
        if spec.required:
            return [f"{context}: value is required"]
        return []

    if spec.field_type and not _matches_type(value, spec.field_type):
        return [
            f"{context}: expected type {_type_name(spec.field_type)}, "
            f"got {type(value).__name__}"
        ]

    errors = []

    if isinstance(value, NUMBER) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            return [f"{context}: value {value} is not a finite number"]
        if spec.min_value is not None and value < spec.min_value:
            errors.append(f"{context}: value {value} < minimum {spec.min_value}")
        if spec.max_value is not None and value > spec.max_value:
            errors.append(f"{context}: value {value} > maximum {spec.max_value}")

    if isinstance(value, str):
        if spec.min_length is not None and len(value.strip()) < spec.min_length:
            errors.append(f"{context}: must contain at least {spec.min_length} character(s)")
        if spec.pattern is not None and not spec.pattern.fullmatch(value):
            errors.append(f"{context}: value '{value[:40]}' does not match {spec.pattern.pattern}")

    if spec.allowed_values and value not in spec.allowed_values:
        errors.append(
            f"{context}: value '{value}' not in allowed values: "
            f"{sorted(spec.allowed_values)}"
        )

    if isinstance(value, list):
        errors.extend(_validate_items(context, value, spec))

    return errors


def _validate_items(context: str, value: List[Any], spec: FieldSpec) -> List[str]:
    errors = []
    if spec.min_items is not None and len(value) < spec.min_items:
        errors.append(f"{context}: expected at least {spec.min_items} item(s), got {len(value)}")
    if spec.max_items is not None and len(value) > spec.max_items:
        errors.append(f"{context}: expected at most {spec.max_items} item(s), got {len(value)}")
    if spec.items is None:
        return errors

    for idx, item in enumerate(value):
        item_context = f"{context}[{idx}]"
        if isinstance(spec.items, FieldSpec):
            errors.extend(validate_field("", item, spec.items, item_context))
            continue
        if not isinstance(item, dict):
            errors.append(f"{item_context}: expected object, got {type(item).__name__}")
            continue
        errors.extend(validate_schema(item, spec.items, path_context=item_context))
    return errors


def validate_schema(
    content: Mapping[str, Any],
    schema: Schema,
    path_context: str = ""
) -> List[str]:
    """Validate content against schema.

    Returns:
        List of error messages (empty if valid)
    """
    if not isinstance(content, Mapping):
        where = path_context or "payload"
        return [f"{where}: expected object, got {type(content).__name__}"]

    errors = []
    for field_name, spec in schema.items():
        if field_name not in content:
            if spec.required:
                where = f"{path_context}: " if path_context else ""
                errors.append(f"{where}missing required field '{field_name}'")
            continue
        errors.extend(validate_field(field_name, content[field_name], spec, path_context))

    return errors


# ============================================================================
# JSON-schema export
# ============================================================================

def _spec_to_json_schema(spec: FieldSpec) -> Dict[str, Any]:
    node: Dict[str, Any] = {}
    if spec.field_type is not None:
        if spec.field_type == NUMBER:
            node["type"] = "number"
        elif spec.field_type is bool:
            node["type"] = "boolean"
        elif spec.field_type is str:
            node["type"] = "string"
        elif spec.field_type is list:
            node["type"] = "array"
    if spec.allowed_values:
        node["enum"] = sorted(spec.allowed_values)
    if spec.min_value is not None:
        node["minimum"] = spec.min_value
    if spec.max_value is not None:
        node["maximum"] = spec.max_value
    if spec.min_items is not None:
        node["minItems"] = spec.min_items
    if spec.max_items is not None:
        node["maxItems"] = spec.max_items
    if spec.items is not None:
        if isinstance(spec.items, FieldSpec):
            node["items"] = _spec_to_json_schema(spec.items)
        else:
            node["items"] = to_json_schema(spec.items)
    if spec.description:
        node["description"] = spec.description
    return node


def to_json_schema(schema: Schema) -> Dict[str, Any]:
    """Render a schema as a JSON-schema object, for providers that enforce one."""
    return {
        "type": "object",
        "properties": {name: _spec_to_json_schema(spec) for name, spec in schema.items()},
        "required": [name for name, spec in schema.items() if spec.required],
    }


def describe_schema(schema: Schema) -> str:
    """Stable JSON rendering of :func:`to_json_schema`, used inside prompts."""
    return json.dumps(to_json_schema(schema), ensure_ascii=False, indent=2, sort_keys=True)
