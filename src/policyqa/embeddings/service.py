"""Embedding backends for policyqa."""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import List, Literal, Protocol, Sequence, Tuple

import openai
from langchain_community.embeddings import HuggingFaceEmbeddings

from policyqa.config import Settings
from policyqa.errors import IndexingError, UpstreamDependencyError
from policyqa.models import DocumentChunk

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for embedding backends.

    The same configuration must be used to embed the chunks and the query,
    otherwise similarity scores are meaningless.
    """

    provider: Literal["hash", "openai", "huggingface"] = "openai"
    model: str = "text-embedding-3-large"
    dim: int = 3072
    normalize: bool = True
    batch_size: int = 256
    api_key: str | None = None
    base_url: str | None = None
    timeout: float | None = None
    device: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingConfig":
        return cls(
            provider=settings.embedding_provider,
            model=settings.embedding_model,
            dim=settings.embedding_dim,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout_seconds,
        )


@dataclass(frozen=True)
class Embedding:
    """Vector representation of a document chunk."""

    chunk: DocumentChunk
    vector: Tuple[float, ...]


class EmbeddingBackend(Protocol):
    """Protocol describing embedding behaviour."""

    def embed_chunks(self, chunks: Sequence[DocumentChunk]) -> Sequence[Embedding]:
        """Return embeddings for the provided chunks."""

    def embed_query(self, query: str) -> Tuple[float, ...]:
        """Return embedding vector for a query string."""


def _normalize(vector: Sequence[float]) -> Tuple[float, ...]:
    norm = math.sqrt(sum(value * value for value in vector)) or 1.0
    return tuple(value / norm for value in vector)


class HashEmbeddingBackend:
    """Deterministic lightweight embedding used for tests and offline runs."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig(provider="hash")

    def _hash_to_vector(self, text: str) -> Tuple[float, ...]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeat = (self._config.dim + len(digest) - 1) // len(digest)
        raw = (digest * repeat)[: self._config.dim]
        vector = [byte / 255.0 for byte in raw]
        if self._config.normalize:
            return _normalize(vector)
        return tuple(vector)

    def embed_chunks(self, chunks: Sequence[DocumentChunk]) -> Sequence[Embedding]:
        return [Embedding(chunk=chunk, vector=self._hash_to_vector(chunk.text)) for chunk in chunks]

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return self._hash_to_vector(query)


class OpenAIEmbeddingBackend:
    """Embedding backend calling the OpenAI embeddings endpoint."""

    def __init__(self, config: EmbeddingConfig | None = None, *, client: openai.OpenAI | None = None) -> None:
        self._config = config or EmbeddingConfig()
        self._client = client
        LOGGER.info("Using OpenAI embeddings %s (dim=%d)", self._config.model, self._config.dim)

    def _get_client(self) -> openai.OpenAI:
        # Created on first use so a missing API key surfaces as a stage error.
        if self._client is None:
            try:
                self._client = openai.OpenAI(
                    api_key=self._config.api_key,
                    base_url=self._config.base_url,
                    timeout=self._config.timeout,
                    max_retries=0,
                )
            except openai.OpenAIError as exc:
                raise UpstreamDependencyError(f"Failed to initialise OpenAI embeddings: {exc}") from exc
        return self._client

    def embed_chunks(self, chunks: Sequence[DocumentChunk]) -> Sequence[Embedding]:
        if not chunks:
            return []
        vectors: List[Tuple[float, ...]] = []
        batch_size = max(1, self._config.batch_size)
        for offset in range(0, len(chunks), batch_size):
            batch = chunks[offset : offset + batch_size]
            vectors.extend(self._embed([chunk.text for chunk in batch]))
        if len(vectors) != len(chunks):
            LOGGER.error("Embedding backend returned %d vectors for %d chunks", len(vectors), len(chunks))
            raise IndexingError("Mismatch between number of chunks and embedding vectors")
        return [Embedding(chunk=chunk, vector=vector) for chunk, vector in zip(chunks, vectors)]

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return self._embed([query])[0]

    def _embed(self, texts: Sequence[str]) -> List[Tuple[float, ...]]:
        try:
            response = self._get_client().embeddings.create(
                model=self._config.model,
                input=[text or " " for text in texts],
                dimensions=self._config.dim,
            )
        except openai.OpenAIError as exc:
            raise UpstreamDependencyError(f"OpenAI embeddings request failed: {exc}") from exc
        ordered = sorted(response.data, key=lambda item: item.index)
        vectors = [tuple(item.embedding) for item in ordered]
        if vectors and len(vectors[0]) != self._config.dim:
            LOGGER.warning("Embedding dim mismatch: configured=%d, actual=%d", self._config.dim, len(vectors[0]))
        if self._config.normalize:
            return [_normalize(vector) for vector in vectors]
        return vectors


class HuggingFaceEmbeddingBackend:
    """Local sentence-embedding backend via LangChain's HuggingFace wrapper."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig(provider="huggingface", model="BAAI/bge-m3", dim=1024)
        model_kwargs = {"device": self._config.device} if self._config.device else {}
        self._client = HuggingFaceEmbeddings(
            model_name=self._config.model,
            model_kwargs=model_kwargs,
            encode_kwargs={"normalize_embeddings": self._config.normalize},
        )
        LOGGER.info("Loaded embedding model %s", self._config.model)

    def embed_chunks(self, chunks: Sequence[DocumentChunk]) -> Sequence[Embedding]:
        if not chunks:
            return []
        vectors = self._client.embed_documents([chunk.text for chunk in chunks])
        if len(vectors) != len(chunks):
            LOGGER.error("Embedding backend returned %d vectors for %d chunks", len(vectors), len(chunks))
            raise IndexingError("Mismatch between number of chunks and embedding vectors")
        if vectors and len(vectors[0]) != self._config.dim:
            LOGGER.warning("Embedding dim mismatch: configured=%d, actual=%d", self._config.dim, len(vectors[0]))
        return [Embedding(chunk=chunk, vector=tuple(vector)) for chunk, vector in zip(chunks, vectors)]

    def embed_query(self, query: str) -> Tuple[float, ...]:
        return tuple(self._client.embed_query(query))


def build_embedding_backend(config: EmbeddingConfig) -> EmbeddingBackend:
    """Return the backend selected by ``config.provider``."""

    if config.provider == "hash":
        LOGGER.info("Embedding backend running in hash-only mode.")
        return HashEmbeddingBackend(config)
    if config.provider == "huggingface":
        return HuggingFaceEmbeddingBackend(config)
    return OpenAIEmbeddingBackend(config)
