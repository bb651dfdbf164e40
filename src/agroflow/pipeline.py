"""High-level structured inference pipeline."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional, Sequence

from .composer import ComposedRequest, FlowRequest, HistoricalContext, compose
from .config import DEFAULT_LLM_CONFIG
from .exceptions import InputError, InvocationError
from .llm_client import LLMClient, ReasoningCandidate, ReasoningInvoker, build_llm_client
from .prompts_loader import PromptRepository
from .registry import FlowDefinition, FlowRegistry
from .validator import check

logger = logging.getLogger(__name__)


class InferencePipeline:
    """Ties together input validation, composition, the reasoner and the fallback policy."""

    def __init__(
        self,
        registry: FlowRegistry,
        invoker: ReasoningInvoker,
        prompts: Optional[PromptRepository] = None,
    ):
        self.registry = registry
        self.invoker = invoker
        self.prompts = prompts or PromptRepository()

    @classmethod
    def from_config(
        cls,
        llm_config: str = DEFAULT_LLM_CONFIG,
        config_tag: str = "default",
        registry: Optional[FlowRegistry] = None,
    ) -> "InferencePipeline":
        from .flows import build_default_registry

        client = build_llm_client(llm_config, config_tag=config_tag)
        return cls(registry or build_default_registry(), ReasoningInvoker(client))

    @classmethod
    def with_client(cls, client: LLMClient, registry: Optional[FlowRegistry] = None) -> "InferencePipeline":
        from .flows import build_default_registry

        return cls(registry or build_default_registry(), ReasoningInvoker(client))

    # Stages ---------------------------------------------------------------
    def prepare(
        self,
        flow_name: str,
        payload: Mapping[str, Any],
        context: Optional[HistoricalContext] = None,
    ) -> FlowRequest:
        """Build the request and reject it before any external call if malformed."""
        definition = self.registry.get(flow_name)
        if not isinstance(payload, Mapping):
            raise InputError(flow_name, [f"payload: expected object, got {type(payload).__name__}"])
        request = FlowRequest.build(definition, payload, context)
        self.registry.validate_input(flow_name, request.payload)
        return request

    def compose(self, request: FlowRequest) -> ComposedRequest:
        return compose(self.registry.get(request.flow_name), request, self.prompts)

    def fallback(self, flow_name: str, errors: Sequence[str] = ()) -> Dict[str, Any]:
        return self.registry.get(flow_name).fallback.resolve(flow_name, errors)

    # Core flow ------------------------------------------------------------
    def run(
        self,
        flow_name: str,
        payload: Mapping[str, Any],
        context: Optional[HistoricalContext] = None,
        model: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run one flow end to end and return a result satisfying its output schema.

        Raises:
            InputError: payload violates the input schema; nothing was sent.
            InvocationError: the reasoning call failed and the flow's policy
                does not absorb it. Callers may retry the whole request.
            OutputError: generative flow without a valid result.
        """
        definition = self.registry.get(flow_name)
        request = self.prepare(flow_name, payload, context)
        composed = self.compose(request)

        started = time.perf_counter()
        try:
            candidate = self.invoker.invoke(composed, model)
        except InvocationError as exc:
            if not definition.fallback.absorbs_invocation_errors:
                raise
            logger.warning("Flow '%s': reasoning call failed (%s)", flow_name, exc)
            return self.fallback(flow_name, [str(exc)])
        finally:
            logger.debug("Flow '%s' reasoning took %.2fs", flow_name, time.perf_counter() - started)

        return self.finalize(definition, candidate)

    def finalize(self, definition: FlowDefinition, candidate: Optional[ReasoningCandidate]) -> Dict[str, Any]:
        result, errors = check(candidate, definition.output_schema)
        if result is None:
            return self.fallback(definition.name, errors)
        logger.info("Flow '%s' accepted result from %s", definition.name, candidate.model)
        return result
