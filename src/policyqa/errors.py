"""Error taxonomy shared by the workflow stages."""

from __future__ import annotations


class PolicyQAError(RuntimeError):
    """Base class for failures surfaced as structured workflow results."""

    code = "policyqa_error"


class ResourceNotFoundError(PolicyQAError):
    """Raised when the source document is missing at the configured path."""

    code = "resource_not_found"


class IndexingError(PolicyQAError):
    """Raised when loading, splitting or embedding the document fails."""

    code = "indexing_failure"


class RetrievalError(PolicyQAError):
    """Raised when the similarity search fails."""

    code = "retrieval_failure"


class GenerationError(PolicyQAError):
    """Raised when the language model call fails or returns an unusable response."""

    code = "generation_failure"


class UpstreamDependencyError(PolicyQAError):
    """Raised for provider or network errors from an external collaborator."""

    code = "upstream_dependency_failure"


class InvalidRequestError(PolicyQAError):
    """Raised when the trigger payload does not carry a usable question."""

    code = "invalid_request"


class IndexUnavailableError(PolicyQAError):
    """Raised when answer generation is attempted without a built index."""

    code = "index_unavailable"


__all__ = [
    "GenerationError",
    "IndexUnavailableError",
    "IndexingError",
    "InvalidRequestError",
    "PolicyQAError",
    "ResourceNotFoundError",
    "RetrievalError",
    "UpstreamDependencyError",
]
