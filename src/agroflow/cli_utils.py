"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml
from rich.logging import RichHandler

from .composer import HistoricalContext
from .config import auto_load_json_config
from .llm_client import build_llm_client
from .utils import LiteralDumper

DEFAULT_LLM_PING_FLOW = "validateProductionData"
DEFAULT_LLM_PING_PAYLOAD = {
    "kilosPerBatch": 400,
    "batchId": "L001",
    "farmerId": "ping",
    "averageKilosPerBatch": 400,
    "historicalData": "[]",
}


def setup_logging(level: str = "WARNING") -> None:
    """Route library logging through rich; user-facing output stays on the console."""
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    for noisy in ("httpx", "httpcore", "urllib3", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def load_structured_file(path: Path) -> Any:
    """Load a JSON or YAML document, chosen by file extension."""
    content = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yml", ".yaml"}:
            return yaml.safe_load(content)
        return json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Cannot parse {path}: {exc}") from exc


def load_payload(path: Path) -> Dict[str, Any]:
    data = load_structured_file(path)
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain an object with the flow's input fields")
    return data


def load_context(path: Optional[Path], entity_id: Optional[str] = None) -> Optional[HistoricalContext]:
    """Prior records from a file; a top-level ``records`` key is unwrapped."""
    if not path:
        return None
    data = load_structured_file(path)
    if isinstance(data, dict) and "records" in data:
        entity_id = entity_id or data.get("entity_id")
        data = data["records"]
    return HistoricalContext(entity_id=entity_id or path.stem, records=data)


def dump_result(result: Any, output: Optional[Path]) -> str:
    """Serialize a result as YAML for .yml/.yaml outputs, JSON otherwise."""
    if output is not None and output.suffix.lower() in {".yml", ".yaml"}:
        text = yaml.dump(result, Dumper=LiteralDumper, allow_unicode=True, sort_keys=False)
    else:
        text = json.dumps(result, ensure_ascii=False, indent=2)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    return text


def ping_llm_client(llm_config: str, config_tag: str = "default") -> dict[str, Any]:
    """Send one cheap validation request straight to the configured client."""
    from .composer import FlowRequest, compose
    from .flows import build_default_registry

    config = auto_load_json_config(llm_config, tag=config_tag)
    client = build_llm_client(llm_config, config_tag=config_tag)
    definition = build_default_registry().get(DEFAULT_LLM_PING_FLOW)
    request = compose(definition, FlowRequest.build(definition, DEFAULT_LLM_PING_PAYLOAD))
    response = client.complete(request)
    safe_config = {key: value for key, value in config.items() if key != "api_key"}
    return {"config": safe_config, "flow": DEFAULT_LLM_PING_FLOW, "response": response}
