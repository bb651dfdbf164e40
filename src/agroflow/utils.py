import json
from typing import Any

import yaml


def strip_markdown_fences(text: str) -> str:
    text = text.strip()
    # Find the first opening fence
    start_fence_idx = text.find("```")
    if start_fence_idx == -1:
        return text

    # Find the end of the opening fence line (to skip language identifier)
    newline_idx = text.find("\n", start_fence_idx)
    if newline_idx == -1:
        # Only opening fence? Return everything after it
        return text[start_fence_idx + 3:].strip()

    content_start = newline_idx + 1

    # Find the closing fence
    end_fence_idx = text.find("\n```", content_start)
    if end_fence_idx == -1:
        # Closing fence glued to the end of the text
        if text.endswith("```") and len(text) > content_start + 3:
            return text[content_start:-3].strip()
        return text[content_start:].strip()

    return text[content_start:end_fence_idx].strip()


def extract_bracketed_payload(text: str, opener: str, closer: str) -> str | None:
    start = text.find(opener)
    if start == -1:
        return None
    end = text.rfind(closer)
    if end == -1 or end <= start:
        return None
    return text[start : end + 1]


def json_loads_with_repairs(text: str) -> object:
    # Most common failure seen from Gemini: invalid JSON escape \' inside strings.
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        repaired = text.replace("\\'", "'")
        return json.loads(repaired)


def parse_llm_json_object(response_text: str | None) -> dict | None:
    """Coerce raw reasoner text into a JSON object, or ``None`` when impossible."""
    if not response_text or not response_text.strip():
        return None
    cleaned = strip_markdown_fences(response_text)
    candidates = [
        cleaned,
        extract_bracketed_payload(cleaned, "{", "}"),
    ]
    for candidate in candidates:
        if not candidate:
            continue
        try:
            parsed = json_loads_with_repairs(candidate)
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def serialize_records(records: Any) -> str:
    """Render prior records deterministically; strings pass through verbatim."""
    if isinstance(records, str):
        return records
    return json.dumps(records, ensure_ascii=False, indent=2, sort_keys=True, default=str)


def render_value(value: Any) -> str:
    """Render a payload value for interpolation into a prompt."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return serialize_records(value)


class LiteralDumper(yaml.SafeDumper):
    """Custom YAML Dumper that uses block style for multiline strings."""
    def represent_scalar(self, tag, value, style=None):
        if tag == 'tag:yaml.org,2002:str' and "\n" in value:
            style = '|'
        return super().represent_scalar(tag, value, style)
