"""Flow definitions and the process-wide registry that maps names to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .exceptions import (
    DuplicateFlowError,
    InputError,
    OutputError,
    RegistryFrozenError,
    UnknownFlowError,
)
from .fallback import FallbackPolicy, FlowClass
from .schema import Schema, freeze_schema, validate_schema


@dataclass(frozen=True)
class FlowDefinition:
    """One named, schema-bound inference capability."""

    name: str
    input_schema: Schema
    output_schema: Schema
    prompt: str
    fallback: FallbackPolicy
    model: Optional[str] = None
    context_field: Optional[str] = None
    description: str = ""
    media_fields: Tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_schema", freeze_schema(self.input_schema))
        object.__setattr__(self, "output_schema", freeze_schema(self.output_schema))
        media = tuple(name for name, spec in self.input_schema.items() if spec.media)
        object.__setattr__(self, "media_fields", media)
        if self.context_field and self.context_field not in self.input_schema:
            raise ValueError(
                f"Flow '{self.name}': context field '{self.context_field}' is not an input field"
            )

    @property
    def flow_class(self) -> FlowClass:
        return self.fallback.flow_class


class FlowRegistry:
    """Name -> FlowDefinition mapping, populated at startup then frozen."""

    def __init__(self) -> None:
        self._flows: Dict[str, FlowDefinition] = {}
        self._frozen = False

    def register(self, definition: FlowDefinition) -> FlowDefinition:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{definition.name}': registry is read-only")
        if definition.name in self._flows:
            raise DuplicateFlowError(f"Flow '{definition.name}' is already registered")
        self._flows[definition.name] = definition
        return definition

    def freeze(self) -> "FlowRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> FlowDefinition:
        try:
            return self._flows[name]
        except KeyError:
            raise UnknownFlowError(
                f"Unknown flow '{name}'. Registered flows: {', '.join(sorted(self._flows)) or 'none'}"
            ) from None

    def names(self) -> List[str]:
        return sorted(self._flows)

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __iter__(self) -> Iterator[FlowDefinition]:
        return iter(self._flows[name] for name in self.names())

    def __len__(self) -> int:
        return len(self._flows)

    # Schema checks ---------------------------------------------------------
    def validate_input(self, name: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        """Return ``payload`` untouched if it satisfies the flow's input schema."""
        definition = self.get(name)
        errors = validate_schema(payload, definition.input_schema)
        if errors:
            raise InputError(name, errors)
        return payload

    def validate_output(self, name: str, candidate: Any) -> Mapping[str, Any]:
        """Return ``candidate`` untouched if it is structurally valid output."""
        definition = self.get(name)
        if candidate is None:
            raise OutputError(f"Flow '{name}' returned no result")
        errors = validate_schema(candidate, definition.output_schema)
        if errors:
            raise OutputError(f"Flow '{name}' returned an invalid result", errors)
        return candidate
