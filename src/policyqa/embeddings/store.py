"""Ephemeral vector index over the policy chunks."""

from __future__ import annotations

import json
from typing import Dict, Iterable, Mapping, MutableMapping, Sequence
from uuid import uuid4

import chromadb
from chromadb.api import ClientAPI
from chromadb.api.types import Documents, Embeddings as ChromaEmbeddings, IDs, Metadatas

from policyqa.embeddings.service import EmbeddingBackend
from policyqa.metrics.observability import get_logger
from policyqa.models import DocumentChunk, DocumentMetadata, RetrievedChunk

# Chunk metadata keys promoted to top-level Chroma metadata so they can be filtered on.
_FILTERABLE_KEYS = ("language", "chunk_type", "source", "page", "hard_cut")


class PolicyIndex:
    """In-memory Chroma collection holding one run's chunks and vectors.

    Each instance owns a uniquely named collection; ``close`` drops it. The
    index is read-only once built.
    """

    _logger = get_logger("index")

    def __init__(
        self,
        embedding_backend: EmbeddingBackend,
        *,
        client: ClientAPI | None = None,
        collection_name: str | None = None,
    ) -> None:
        self._client = client or chromadb.EphemeralClient()
        self._collection_name = collection_name or f"policyqa-{uuid4().hex}"
        self._collection = self._client.get_or_create_collection(
            name=self._collection_name,
            metadata={"hnsw:space": "cosine"},
        )
        self._backend = embedding_backend
        self._closed = False

    @property
    def collection_name(self) -> str:
        return self._collection_name

    def add(self, chunks: Sequence[DocumentChunk]) -> Sequence[str]:
        if not chunks:
            return []
        embeddings = self._backend.embed_chunks(chunks)
        ids: IDs = [embedding.chunk.chunk_id for embedding in embeddings]
        documents: Documents = [embedding.chunk.text for embedding in embeddings]
        metadatas: Metadatas = [self._serialize_chunk(embedding.chunk) for embedding in embeddings]
        vectors: ChromaEmbeddings = [list(embedding.vector) for embedding in embeddings]
        self._collection.add(ids=ids, documents=documents, embeddings=vectors, metadatas=metadatas)
        return list(ids)

    def similarity_search(
        self,
        query: str,
        *,
        top_k: int = 5,
        language: str | None = None,
    ) -> Sequence[RetrievedChunk]:
        """Return up to ``top_k`` chunks nearest to ``query``, nearest first.

        When ``language`` is given only chunks tagged with that language are
        candidates, whatever their distance.
        """
        if top_k <= 0:
            return []
        where = {"language": language} if language else None
        candidates = self.count(where=where)
        if candidates == 0:
            return []
        vector = list(self._backend.embed_query(query))
        results = self._collection.query(
            query_embeddings=[vector],
            n_results=min(top_k, candidates),
            where=where,
            include=["documents", "metadatas", "distances"],
        )
        return self._deserialize_results(results)

    def count(self, *, where: Mapping[str, object] | None = None) -> int:
        if where is None:
            return int(self._collection.count())
        matched = self._collection.get(where=dict(where), include=["metadatas"])
        return len(matched.get("ids") or [])

    def chunks(self) -> Sequence[DocumentChunk]:
        """Return the stored chunks in document order."""
        batch = self._collection.get(include=["documents", "metadatas"])
        ids = batch.get("ids") or []
        documents = batch.get("documents") or []
        metadatas = batch.get("metadatas") or []
        stored = [
            self._deserialize_chunk(idx, doc, metadata, distance=None).chunk
            for idx, doc, metadata in zip(ids, documents, metadatas)
        ]
        return sorted(stored, key=lambda chunk: chunk.order)

    def close(self) -> None:
        if self._closed:
            return
        self._client.delete_collection(self._collection_name)
        self._closed = True
        self._logger.debug("index.closed", collection=self._collection_name)

    def __enter__(self) -> "PolicyIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _serialize_chunk(self, chunk: DocumentChunk) -> MutableMapping[str, object]:
        metadata: MutableMapping[str, object] = {
            "document_id": chunk.document_metadata.document_id,
            "source_path": chunk.document_metadata.source_path,
            "media_type": chunk.document_metadata.media_type,
            "order": chunk.order,
            "doc_extra": self._dumps(chunk.document_metadata.extra),
            "chunk_metadata": self._dumps(chunk.chunk_metadata),
        }
        for key in _FILTERABLE_KEYS:
            value = chunk.chunk_metadata.get(key)
            if isinstance(value, (str, int, float, bool)):
                metadata[key] = value
        return metadata

    def _deserialize_results(self, results: Mapping[str, object]) -> Sequence[RetrievedChunk]:
        ids = self._first(results.get("ids", []))
        documents = self._first(results.get("documents", []))
        metadatas = self._first(results.get("metadatas", []))
        distances = self._first(results.get("distances", []))
        retrieved: list[RetrievedChunk] = []
        if not ids or not documents or not metadatas:
            return retrieved
        for idx, doc, metadata, distance in zip(ids, documents, metadatas, distances, strict=True):
            retrieved.append(self._deserialize_chunk(idx, doc, metadata, distance))
        return retrieved

    def _deserialize_chunk(
        self,
        chunk_id: str,
        document: str,
        metadata: Mapping[str, object],
        distance: float | None,
    ) -> RetrievedChunk:
        document_metadata = DocumentMetadata(
            document_id=str(metadata.get("document_id", "")),
            source_path=str(metadata.get("source_path", "")),
            media_type=str(metadata.get("media_type", "")),
            extra=self._loads_dict(metadata.get("doc_extra")),
        )
        chunk_metadata = self._loads_dict(metadata.get("chunk_metadata"))
        if "language" in metadata:
            chunk_metadata["language"] = metadata["language"]
        chunk = DocumentChunk(
            chunk_id=chunk_id,
            text=document,
            document_metadata=document_metadata,
            order=int(metadata.get("order", 0)),
            chunk_metadata=chunk_metadata,
        )
        score = 1.0 - float(distance) if distance is not None else 0.0
        return RetrievedChunk(chunk=chunk, score=score)

    @staticmethod
    def _first(value: object) -> Iterable:
        if isinstance(value, list):
            return value[0] if value else []
        return []

    @staticmethod
    def _dumps(value: object) -> str:
        try:
            return json.dumps(value, default=str, ensure_ascii=False)
        except TypeError:
            return json.dumps({}, default=str)

    @staticmethod
    def _loads_dict(value: object) -> Dict[str, object]:
        if isinstance(value, str) and value:
            try:
                loaded = json.loads(value)
                if isinstance(loaded, dict):
                    return loaded
            except json.JSONDecodeError:
                return {}
        if isinstance(value, Mapping):
            return dict(value)
        return {}
