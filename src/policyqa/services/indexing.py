"""Index building: load, chunk and embed the policy document."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from chromadb.api import ClientAPI

from policyqa.config import Settings
from policyqa.embeddings.service import EmbeddingBackend, EmbeddingConfig, build_embedding_backend
from policyqa.embeddings.store import PolicyIndex
from policyqa.errors import IndexingError, PolicyQAError
from policyqa.ingestion.service import DocumentIngestor, IngestionConfig, LangChainDocumentIngestor
from policyqa.metrics.observability import PipelineMetrics, TimedSection, get_logger
from policyqa.models import IndexResult

BackendFactory = Callable[[], EmbeddingBackend]


class IndexBuilder:
    """First workflow stage: build a transient index from the source document.

    ``build`` never raises. The embedding backend is created per build so the
    query is later embedded by exactly the backend that embedded the chunks.
    """

    def __init__(
        self,
        ingestor: DocumentIngestor,
        embedding_backend: EmbeddingBackend | BackendFactory,
        *,
        client: ClientAPI | None = None,
    ) -> None:
        self._ingestor = ingestor
        self._embedding_backend = embedding_backend
        self._client = client
        self._logger = get_logger("indexing")

    @classmethod
    def from_settings(cls, settings: Settings, *, client: ClientAPI | None = None) -> "IndexBuilder":
        embedding_config = EmbeddingConfig.from_settings(settings)
        return cls(
            LangChainDocumentIngestor(IngestionConfig.from_settings(settings)),
            lambda: build_embedding_backend(embedding_config),
            client=client,
        )

    def build(self, path: Path) -> IndexResult:
        index: PolicyIndex | None = None
        try:
            with TimedSection() as timer:
                chunks = self._ingestor.ingest(Path(path))
                index = PolicyIndex(self._resolve_backend(), client=self._client)
                index.add(chunks)
            PipelineMetrics.observe_indexing(timer.duration, len(chunks))
            self._logger.info(
                "indexing.complete",
                path=str(path),
                chunk_count=len(chunks),
                collection=index.collection_name,
                duration_seconds=timer.duration,
            )
            return IndexResult.success(index)
        except PolicyQAError as exc:
            self._discard(index)
            self._logger.error("indexing.error", path=str(path), error_code=exc.code, detail=str(exc))
            return IndexResult.failure(exc)
        except Exception as exc:
            self._discard(index)
            error = IndexingError(f"Failed to build index for {path}: {exc}")
            self._logger.error("indexing.error", path=str(path), error_code=error.code, detail=str(exc))
            return IndexResult.failure(error)

    def _resolve_backend(self) -> EmbeddingBackend:
        if callable(self._embedding_backend) and not hasattr(self._embedding_backend, "embed_chunks"):
            return self._embedding_backend()
        return self._embedding_backend  # type: ignore[return-value]

    def _discard(self, index: PolicyIndex | None) -> None:
        if index is None:
            return
        try:
            index.close()
        except Exception as exc:  # pragma: no cover - cleanup only
            self._logger.warning("index.close_failed", detail=str(exc))
