"""Tests for the Chroma-backed policy index and the retriever."""

from __future__ import annotations

import chromadb

from policyqa.embeddings.service import EmbeddingConfig, HashEmbeddingBackend
from policyqa.embeddings.store import PolicyIndex
from policyqa.models import DocumentChunk, DocumentMetadata
from policyqa.retrieval.service import IndexRetriever, RetrievalConfig


def _mk(text: str, order: int, language: str = "zh-CN") -> DocumentChunk:
    meta = DocumentMetadata(document_id="doc", source_path="/tmp/policy.txt", media_type="txt")
    return DocumentChunk(
        chunk_id=f"doc-{order}",
        text=text,
        document_metadata=meta,
        order=order,
        chunk_metadata={"language": language, "chunk_type": "insurance_policy", "source": "test"},
    )


def _index() -> PolicyIndex:
    backend = HashEmbeddingBackend(EmbeddingConfig(provider="hash", dim=16))
    return PolicyIndex(backend, client=chromadb.EphemeralClient())


def test_add_and_similarity_search_returns_ranked_chunks():
    with _index() as index:
        index.add([_mk("保费每年缴付", 0), _mk("身故赔偿", 1)])
        assert index.count() == 2
        results = index.similarity_search("保费每年缴付", top_k=2, language="zh-CN")
        assert [r.chunk.chunk_id for r in results][0] == "doc-0"
        assert results[0].score >= results[-1].score
        assert results[0].chunk.chunk_metadata["chunk_type"] == "insurance_policy"


def test_language_filter_excludes_other_tags_regardless_of_rank():
    with _index() as index:
        index.add([_mk("premium schedule", 0, "en"), _mk("保费表", 1), _mk("现金价值", 2), _mk("premium", 3, "en")])
        # The exact-text match is tagged "en" and must not be returned.
        results = index.similarity_search("premium schedule", top_k=5, language="zh-CN")
        assert {r.chunk.chunk_id for r in results} == {"doc-1", "doc-2"}
        assert all(r.chunk.language == "zh-CN" for r in results)


def test_top_k_bound():
    with _index() as index:
        index.add([_mk(f"条款 {i}", i) for i in range(7)] + [_mk("clause", 7, "en")])
        assert len(index.similarity_search("条款", top_k=5, language="zh-CN")) == 5
        assert len(index.similarity_search("条款", top_k=3, language="zh-CN")) == 3
        # Fewer are returned only when fewer chunks match the filter.
        assert len(index.similarity_search("clause", top_k=5, language="en")) == 1


def test_empty_index_returns_nothing():
    with _index() as index:
        index.add([])
        assert index.count() == 0
        assert list(index.similarity_search("保费是多少?", top_k=5, language="zh-CN")) == []


def test_chunks_round_trip_in_order():
    with _index() as index:
        index.add([_mk("second", 1), _mk("first", 0)])
        assert [chunk.text for chunk in index.chunks()] == ["first", "second"]


def test_indexes_are_isolated_and_closed():
    client = chromadb.EphemeralClient()
    backend = HashEmbeddingBackend(EmbeddingConfig(provider="hash", dim=16))
    first = PolicyIndex(backend, client=client)
    second = PolicyIndex(backend, client=client)
    first.add([_mk("保费", 0)])
    assert first.collection_name != second.collection_name
    assert second.count() == 0
    first.close()
    second.close()
    names = {getattr(c, "name", c) for c in client.list_collections()}
    assert first.collection_name not in names
    assert second.collection_name not in names


def test_retriever_clamps_top_k():
    with _index() as index:
        index.add([_mk(f"条款 {i}", i) for i in range(6)])
        retriever = IndexRetriever(index, RetrievalConfig(top_k=5, language="zh-CN", max_top_k=2))
        assert len(retriever.retrieve("条款")) == 2
        assert len(retriever.retrieve("条款", top_k=1)) == 1


def test_retriever_honours_explicit_top_k_below_one():
    with _index() as index:
        index.add([_mk(f"条款 {i}", i) for i in range(6)])
        retriever = IndexRetriever(index, RetrievalConfig(top_k=5, language="zh-CN", max_top_k=20))
        assert len(retriever.retrieve("条款", top_k=0)) == 1
        assert len(retriever.retrieve("条款", top_k=-3)) == 1
        assert len(retriever.retrieve("条款", top_k=None)) == 5


def test_search_results_carry_similarity_scores():
    with _index() as index:
        index.add([_mk(f"条款 {i}", i) for i in range(3)])
        results = index.similarity_search("条款 1", top_k=3, language="zh-CN")
        assert len(results) == 3
        assert results[0].chunk.text == "条款 1"
        assert results[0].score > 0.99
        assert [item.score for item in results] == sorted((item.score for item in results), reverse=True)
