"""Embedding services."""

from .service import (
    Embedding,
    EmbeddingBackend,
    EmbeddingConfig,
    HashEmbeddingBackend,
    HuggingFaceEmbeddingBackend,
    OpenAIEmbeddingBackend,
    build_embedding_backend,
)
from .store import PolicyIndex

__all__ = [
    "Embedding",
    "EmbeddingBackend",
    "EmbeddingConfig",
    "HashEmbeddingBackend",
    "HuggingFaceEmbeddingBackend",
    "OpenAIEmbeddingBackend",
    "PolicyIndex",
    "build_embedding_backend",
]
