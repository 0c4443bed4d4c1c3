"""Retrieval on top of the per-run policy index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from policyqa.config import Settings
from policyqa.embeddings.store import PolicyIndex
from policyqa.errors import PolicyQAError, RetrievalError
from policyqa.models import RetrievedChunk


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for retrieval."""

    top_k: int = 5
    language: str | None = "zh-CN"
    max_top_k: int | None = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetrievalConfig":
        return cls(
            top_k=settings.top_k,
            language=settings.retrieval_language or None,
            max_top_k=settings.retrieval_max_top_k,
        )


class Retriever(Protocol):
    """Retrieve relevant chunks for a query string."""

    def retrieve(self, query: str, *, top_k: int | None = None) -> Sequence[RetrievedChunk]:
        """Return the top-k retrieved chunks."""


class IndexRetriever:
    """Top-K retriever restricted to chunks in the configured language."""

    def __init__(self, index: PolicyIndex, config: RetrievalConfig | None = None) -> None:
        self._index = index
        self._config = config or RetrievalConfig()

    def retrieve(self, query: str, *, top_k: int | None = None) -> Sequence[RetrievedChunk]:
        limit = self._config.top_k if top_k is None else top_k
        if self._config.max_top_k:
            limit = min(limit, self._config.max_top_k)
        limit = max(1, limit)
        language = self._config.language
        try:
            items = self._index.similarity_search(query, top_k=limit, language=language)
        except PolicyQAError:
            raise
        except Exception as exc:
            raise RetrievalError(f"Similarity search failed: {exc}") from exc
        if language:
            items = [item for item in items if item.chunk.language == language]
        return list(items)[:limit]
