"""Shared domain models used across the policyqa pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal, Mapping, Sequence

from policyqa.errors import PolicyQAError

if TYPE_CHECKING:
    from policyqa.embeddings.store import PolicyIndex

Status = Literal["success", "error"]


@dataclass(frozen=True)
class DocumentMetadata:
    """Metadata captured for the loaded source document."""

    document_id: str
    source_path: str
    media_type: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentChunk:
    """Span of document text ready for embedding."""

    chunk_id: str
    text: str
    document_metadata: DocumentMetadata
    order: int
    chunk_metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def language(self) -> str | None:
        value = self.chunk_metadata.get("language")
        return str(value) if value is not None else None


@dataclass(frozen=True)
class RetrievedChunk:
    """Chunk returned from the index during retrieval."""

    chunk: DocumentChunk
    score: float


@dataclass(frozen=True)
class IndexResult:
    """Outcome of the index building stage."""

    status: Status
    index: PolicyIndex | None = None
    error: PolicyQAError | None = None

    @classmethod
    def success(cls, index: PolicyIndex) -> "IndexResult":
        return cls(status="success", index=index)

    @classmethod
    def failure(cls, error: PolicyQAError) -> "IndexResult":
        return cls(status="error", error=error)

    @property
    def ok(self) -> bool:
        return self.status == "success" and self.index is not None


@dataclass(frozen=True)
class WorkflowResult:
    """Structured answer returned to the caller; never carries a partial answer on error."""

    status: Status
    answer: str | None = None
    error: str | None = None
    error_code: str | None = None
    citations: Sequence[RetrievedChunk] = ()

    @classmethod
    def success(cls, answer: str, citations: Sequence[RetrievedChunk] = ()) -> "WorkflowResult":
        return cls(status="success", answer=answer, citations=tuple(citations))

    @classmethod
    def failure(cls, error: PolicyQAError) -> "WorkflowResult":
        return cls(status="error", error=str(error), error_code=error.code)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, str]:
        payload: dict[str, str] = {"status": self.status}
        if self.answer is not None:
            payload["answer"] = self.answer
        if self.error is not None:
            payload["error"] = self.error
        if self.error_code is not None:
            payload["error_code"] = self.error_code
        return payload
