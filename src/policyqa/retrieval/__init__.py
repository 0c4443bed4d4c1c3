"""Retrieval components."""

from .service import IndexRetriever, RetrievalConfig, Retriever

__all__ = ["IndexRetriever", "RetrievalConfig", "Retriever"]
