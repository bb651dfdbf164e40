"""Acceptance check for reasoner candidates."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from .llm_client import ReasoningCandidate
from .schema import Schema, validate_schema

logger = logging.getLogger(__name__)


def check(candidate: Optional[ReasoningCandidate], schema: Schema) -> Tuple[Optional[Dict[str, Any]], List[str]]:
    """Return ``(payload, [])`` for an acceptable candidate, else ``(None, errors)``."""
    if candidate is None or candidate.payload is None:
        return None, ["no structured result"]
    errors = validate_schema(candidate.payload, schema)
    if errors:
        logger.info("Rejected candidate: %s", "; ".join(errors))
        return None, errors
    return candidate.payload, []


def accept(candidate: Optional[ReasoningCandidate], schema: Schema) -> Optional[Dict[str, Any]]:
    """Structurally valid candidates come back as the very same object; anything else is None.

    Content is trusted verbatim: no clamping, trimming or reinterpretation.
    """
    payload, _ = check(candidate, schema)
    return payload
