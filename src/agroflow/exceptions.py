"""Custom exceptions for the agroflow inference pipeline."""

from __future__ import annotations

from typing import List, Sequence


class AgroFlowError(RuntimeError):
    """Base class for domain-specific runtime errors."""


class InputError(AgroFlowError):
    """Raised when caller-supplied data violates a flow's input schema.

    Fatal to the request: no reasoning call is made and nothing is retried.
    """

    def __init__(self, flow_name: str, errors: Sequence[str]):
        self.flow_name = flow_name
        self.errors: List[str] = list(errors)
        super().__init__(f"Invalid input for flow '{flow_name}': {'; '.join(self.errors)}")


class InvocationError(AgroFlowError):
    """Raised when the reasoning backend cannot serve a request."""


class OutputError(AgroFlowError):
    """Raised when the reasoner produced no structurally valid result."""

    def __init__(self, message: str, errors: Sequence[str] = ()):
        self.errors: List[str] = list(errors)
        super().__init__(message)


class UnknownFlowError(AgroFlowError):
    """Raised when a flow name is looked up that was never registered."""


class DuplicateFlowError(AgroFlowError):
    """Raised when two flows are registered under the same name."""


class RegistryFrozenError(AgroFlowError):
    """Raised when registering a flow after startup has completed."""


class PromptNotFoundError(AgroFlowError):
    """Raised when an expected prompt template cannot be loaded."""
