"""
HippoGraph Exceptions
=====================

Error taxonomy shared by indexing and retrieval.

- NotReadyError: retrieval attempted before a successful indexing pass
- CollaboratorError: embedding / search / extraction / completion failure
- ExtractionError: the extractor returned something that is not a valid result
- EmptySeedSetError: PPR invoked with a seed map whose total weight is not positive
- QueryTimeoutError: a single query exceeded its configured deadline

Malformed rerank replies are not errors: they are reported through
``RerankResult.fallback`` and never reach the caller.
"""

from typing import Optional


class HippoGraphError(Exception):
    """Base class for all HippoGraph errors."""


class NotReadyError(HippoGraphError):
    """Raised when retrieval is attempted before indexing completed."""

    def __init__(self, message: str = "index not ready, call index() first"):
        super().__init__(message)


class CollaboratorError(HippoGraphError):
    """
    Failure of an external collaborator (embedder, vector store, extractor, LLM).

    Attributes:
        collaborator: Short name of the failing component (e.g. "embedder")
    """

    def __init__(self, message: str, collaborator: Optional[str] = None):
        super().__init__(message)
        self.collaborator = collaborator

    def __str__(self) -> str:
        base = super().__str__()
        if self.collaborator:
            return f"[{self.collaborator}] {base}"
        return base


class ExtractionError(CollaboratorError):
    """The extraction service answered with an unusable payload."""

    def __init__(self, message: str):
        super().__init__(message, collaborator="extractor")


class EmptySeedSetError(HippoGraphError, ValueError):
    """Seed weights are empty or sum to a non-positive total."""


class QueryTimeoutError(HippoGraphError, TimeoutError):
    """A query did not finish within its deadline."""
