"""Configuration helpers for loading JSON config files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

REPO_ROOT = Path(__file__).resolve().parents[2]
CONFIG_DIR = REPO_ROOT / "config"
DEFAULT_LLM_CONFIG = "llm_config.json"


def load_json_config(file_name: str) -> Any:
    """Load a JSON config file relative to the repository config directory."""

    file_path = Path(file_name)
    if not file_path.is_absolute():
        file_path = CONFIG_DIR / file_name

    if not file_path.exists():
        raise FileNotFoundError(f"Config file '{file_name}' does not exist at {file_path}")

    with file_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def auto_load_json_config(file_name: str, tag: str = "default") -> Dict[str, Any]:
    """
    Pick one config out of a file holding several tagged configs.

    A file containing a single object is returned as-is. For a list, the first
    entry carrying ``tag`` in its ``tags`` wins, otherwise the first entry.
    """
    config_data = load_json_config(file_name)

    if isinstance(config_data, list):
        if not config_data:
            raise ValueError(f"Config file '{file_name}' is an empty list.")

        for config in config_data:
            if tag in config.get("tags", []):
                return config

        return config_data[0]

    if not isinstance(config_data, dict):
        raise ValueError(f"Config file '{file_name}' must hold an object or a list of objects.")
    return config_data
