"""Turns a flow definition plus one request into a provider-neutral reasoning request."""

from __future__ import annotations

import copy
import hashlib
import json
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from .prompts_loader import PromptRepository
from .registry import FlowDefinition
from .schema import describe_schema, to_json_schema
from .utils import render_value, serialize_records

MISSING_VALUE = "N/A"
_DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


@dataclass(frozen=True)
class HistoricalContext:
    """Prior records for one entity (farmer, packer, batch), owned by the caller."""

    entity_id: str
    records: Union[str, Sequence[Any], Mapping[str, Any]]

    def serialize(self) -> str:
        return serialize_records(self.records)


@dataclass(frozen=True)
class FlowRequest:
    """One invocation of a flow. The payload is copied and exposed read-only."""

    flow_name: str
    payload: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", MappingProxyType(copy.deepcopy(dict(self.payload))))

    @classmethod
    def build(
        cls,
        definition: FlowDefinition,
        payload: Mapping[str, Any],
        context: Optional[HistoricalContext] = None,
    ) -> "FlowRequest":
        """Create a request, filling the flow's context field from ``context`` when given."""
        merged = dict(payload)
        if context is not None:
            if not definition.context_field:
                raise ValueError(f"Flow '{definition.name}' does not accept historical context")
            merged[definition.context_field] = context.serialize()
        return cls(flow_name=definition.name, payload=merged)


@dataclass(frozen=True)
class TextPart:
    text: str
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class MediaPart:
    mime_type: str
    data: str
    field: str
    kind: Literal["media"] = "media"

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


RequestPart = Union[TextPart, MediaPart]


@dataclass(frozen=True)
class ComposedRequest:
    """Opaque request body plus the output schema the response must satisfy."""

    flow_name: str
    system: str
    parts: Tuple[RequestPart, ...]
    output_schema: Mapping[str, Any] = field(compare=False, repr=False)
    model: Optional[str] = None

    @property
    def text(self) -> str:
        """User-side text with media replaced by a short marker."""
        chunks = []
        for part in self.parts:
            if isinstance(part, TextPart):
                chunks.append(part.text)
            else:
                chunks.append(f"[{part.field}: {part.mime_type}]")
        return "\n".join(chunks)

    @property
    def has_media(self) -> bool:
        return any(isinstance(part, MediaPart) for part in self.parts)

    def schema_hint(self) -> Dict[str, Any]:
        return to_json_schema(self.output_schema)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flow": self.flow_name,
            "model": self.model,
            "system": self.system,
            "parts": [
                {"kind": "text", "text": p.text}
                if isinstance(p, TextPart)
                else {"kind": "media", "field": p.field, "mime_type": p.mime_type, "data": p.data}
                for p in self.parts
            ],
        }

    def fingerprint(self) -> str:
        canonical = json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_data_uri(value: str, field_name: str = "media") -> MediaPart:
    match = _DATA_URI_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"{field_name}: not a base64 data URI")
    return MediaPart(mime_type=match.group("mime"), data=match.group("data"), field=field_name)


def _media_marker(name: str) -> str:
    return f"\x00media:{name}\x00"


def _split_media(text: str, media: Dict[str, MediaPart]) -> List[RequestPart]:
    if not media:
        return [TextPart(text)]
    pattern = re.compile("|".join(re.escape(_media_marker(name)) for name in media))
    parts: List[RequestPart] = []
    cursor = 0
    for match in pattern.finditer(text):
        chunk = text[cursor:match.start()].strip()
        if chunk:
            parts.append(TextPart(chunk))
        parts.append(media[match.group(0).strip("\x00").split(":", 1)[1]])
        cursor = match.end()
    tail = text[cursor:].strip()
    if tail:
        parts.append(TextPart(tail))
    # media fields missing from the template still travel with the request
    placed = {part.field for part in parts if isinstance(part, MediaPart)}
    parts.extend(part for name, part in media.items() if name not in placed)
    return parts


def compose(
    definition: FlowDefinition,
    request: FlowRequest,
    prompts: Optional[PromptRepository] = None,
) -> ComposedRequest:
    """Interpolate the request payload into the flow's prompt templates."""
    if request.flow_name != definition.name:
        raise ValueError(f"Request for '{request.flow_name}' composed with flow '{definition.name}'")
    prompts = prompts or PromptRepository()

    values: Dict[str, str] = {}
    media: Dict[str, MediaPart] = {}
    for name in definition.input_schema:
        value = request.payload.get(name)
        if name in definition.media_fields and value is not None:
            media[name] = parse_data_uri(value, name)
            values[name] = _media_marker(name)
        elif value is None:
            values[name] = MISSING_VALUE
        else:
            values[name] = render_value(value)
    values["output_schema"] = describe_schema(definition.output_schema)

    rendered = prompts.render(definition.prompt, **values)
    return ComposedRequest(
        flow_name=definition.name,
        system=rendered["system"],
        parts=tuple(_split_media(rendered["user"], media)),
        output_schema=definition.output_schema,
        model=definition.model,
    )
