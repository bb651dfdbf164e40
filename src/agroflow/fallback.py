"""Per-flow policies applied when no valid candidate came back from the reasoner.

Judgment flows (yes/no verdicts on data entry) degrade to a permissive default
so that a missing opinion never blocks the caller. Generative flows have no
safe default and fail explicitly instead of fabricating content.
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Literal, Mapping, Sequence

from .exceptions import OutputError

logger = logging.getLogger(__name__)

FlowClass = Literal["judgment", "generative"]


class FallbackPolicy(ABC):
    """Decides what replaces a missing or invalid candidate."""

    flow_class: FlowClass
    absorbs_invocation_errors: bool = False

    @abstractmethod
    def resolve(self, flow_name: str, errors: Sequence[str] = ()) -> Dict[str, Any]:
        raise NotImplementedError


class PermissiveDefault(FallbackPolicy):
    """Return a fixed default result; also covers a failed reasoning call."""

    flow_class: FlowClass = "judgment"
    absorbs_invocation_errors = True

    def __init__(self, default: Mapping[str, Any]):
        self._default = copy.deepcopy(dict(default))

    @property
    def default(self) -> Dict[str, Any]:
        return copy.deepcopy(self._default)

    def resolve(self, flow_name: str, errors: Sequence[str] = ()) -> Dict[str, Any]:
        logger.warning(
            "Flow '%s' produced no valid result, using default %s (%d error(s))",
            flow_name,
            self._default,
            len(errors),
        )
        return self.default

    def __repr__(self) -> str:
        return f"PermissiveDefault({self._default!r})"


class RaiseFailure(FallbackPolicy):
    """Surface the failure to the caller as an :class:`OutputError`."""

    flow_class: FlowClass = "generative"

    def __init__(self, message: str):
        self.message = message

    def resolve(self, flow_name: str, errors: Sequence[str] = ()) -> Dict[str, Any]:
        logger.error("Flow '%s' produced no valid result: %s", flow_name, "; ".join(errors) or "empty response")
        raise OutputError(self.message, errors)

    def __repr__(self) -> str:
        return f"RaiseFailure({self.message!r})"


OPTIMISTIC_ACCEPT = PermissiveDefault({"isValid": True})
