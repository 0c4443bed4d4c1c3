"""Tests for document loading and chunking."""

from __future__ import annotations

import string
from pathlib import Path

import pytest

from policyqa.errors import IndexingError, ResourceNotFoundError
from policyqa.ingestion.service import IngestionConfig, LangChainDocumentIngestor, UnsupportedFileTypeError

CHUNK_SIZE = 50
OVERLAP = 10
# No separator occurs in this run, so it can only be split by a hard cut.
RUN = string.ascii_letters + string.digits

POLICY_TEXT = (
    "第一条 保险计划的基本信息。本计划为储蓄保险。\n"
    "保费按年缴付，缴费期为五年！\n\n"
    "The policy term is ten years. Premiums are paid annually!\n"
    "Is the bonus guaranteed? No; it is not guaranteed.\n"
    f"{RUN}\n"
    "保证现金价值逐年增加；红利不保证。"
)


def _ingestor() -> LangChainDocumentIngestor:
    return LangChainDocumentIngestor(IngestionConfig(chunk_size=CHUNK_SIZE, chunk_overlap=OVERLAP))


def _write(tmp_path: Path, text: str, name: str = "policy.txt") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _assert_reconstructs(text: str, chunks) -> None:
    rebuilt = ""
    for chunk in chunks:
        start = chunk.chunk_metadata["start_index"]
        assert text[start : start + len(chunk.text)] == chunk.text
        if start > len(rebuilt):
            gap = text[len(rebuilt) : start]
            assert not gap.strip(), "gap between consecutive chunks"
            rebuilt += gap
        assert len(rebuilt) - start <= OVERLAP, "overlap larger than configured"
        rebuilt = rebuilt[:start] + chunk.text
    assert not text[len(rebuilt) :].strip()
    assert rebuilt == text[: len(rebuilt)]


def test_chunks_reconstruct_document_without_gaps(tmp_path: Path) -> None:
    chunks = _ingestor().ingest(_write(tmp_path, POLICY_TEXT))

    assert len(chunks) > 1
    _assert_reconstructs(POLICY_TEXT, chunks)
    assert chunks[0].chunk_metadata["start_index"] == 0


def test_start_index_follows_repeated_clauses(tmp_path: Path) -> None:
    text = "条款一。" * 40 + "\n\n" + "条款一。" * 40
    chunks = _ingestor().ingest(_write(tmp_path, text))

    starts = [chunk.chunk_metadata["start_index"] for chunk in chunks]
    assert starts == sorted(set(starts))
    _assert_reconstructs(text, chunks)
    assert max(start + len(chunk.text) for start, chunk in zip(starts, chunks)) == len(text)


def test_whitespace_only_pieces_are_not_indexed(tmp_path: Path) -> None:
    text = "条款一。" * 40 + "\n\n" + "条款一。" * 40
    chunks = _ingestor().ingest(_write(tmp_path, text))

    assert chunks
    assert all(chunk.text.strip() for chunk in chunks)
    assert [chunk.order for chunk in chunks] == list(range(len(chunks)))


def test_chunks_respect_size_and_flag_hard_cuts(tmp_path: Path) -> None:
    ingestor = _ingestor()
    chunks = ingestor.ingest(_write(tmp_path, POLICY_TEXT))
    separators = [sep for sep in ingestor.config.separators if sep]

    assert all(len(chunk.text) <= CHUNK_SIZE for chunk in chunks)
    hard_cuts = [chunk for chunk in chunks if chunk.chunk_metadata["hard_cut"]]
    assert hard_cuts, "expected the separator-free run to be hard cut"
    for chunk in hard_cuts:
        assert len(chunk.text) == CHUNK_SIZE
        assert not any(sep in chunk.text for sep in separators)
    soft = [chunk for chunk in chunks[:-1] if not chunk.chunk_metadata["hard_cut"]]
    assert all(chunk.text.endswith(tuple(separators)) for chunk in soft)


def test_chunks_are_tagged(tmp_path: Path) -> None:
    chunks = _ingestor().ingest(_write(tmp_path, POLICY_TEXT))

    for order, chunk in enumerate(chunks):
        assert chunk.order == order
        assert chunk.language == "zh-CN"
        assert chunk.chunk_metadata["chunk_type"] == "insurance_policy"
        assert chunk.chunk_metadata["source"] == "FortuneXtra_Savings_Plan"
        assert chunk.document_metadata.extra["display_name"] == "policy.txt"


def test_build_is_idempotent(tmp_path: Path) -> None:
    path = _write(tmp_path, POLICY_TEXT)
    first = _ingestor().ingest(path)
    second = _ingestor().ingest(path)

    assert [c.text for c in first] == [c.text for c in second]
    assert [c.chunk_id for c in first] == [c.chunk_id for c in second]


def test_empty_document_yields_no_chunks(tmp_path: Path) -> None:
    assert list(_ingestor().ingest(_write(tmp_path, ""))) == []


def test_missing_document_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(ResourceNotFoundError, match="document not found"):
        _ingestor().ingest(tmp_path / "missing.pdf")


def test_unsupported_extension_is_an_indexing_error(tmp_path: Path) -> None:
    path = _write(tmp_path, "content", name="policy.docx")
    with pytest.raises(UnsupportedFileTypeError) as excinfo:
        _ingestor().ingest(path)
    assert isinstance(excinfo.value, IndexingError)
