"""End-to-end tests for the two-stage workflow."""

from __future__ import annotations

from pathlib import Path

import chromadb
import pytest
from pydantic import ValidationError

from policyqa.config import Settings
from policyqa.embeddings.service import EmbeddingConfig, HashEmbeddingBackend
from policyqa.ingestion.service import IngestionConfig, LangChainDocumentIngestor
from policyqa.services.indexing import IndexBuilder
from policyqa.services.query import AnswerGenerator
from policyqa.services.workflow import InsuranceFaqWorkflow, TriggerPayload

POLICY = "第一条 本计划为储蓄保险。\n\n第二条 年缴保费为每年10,000港元。\n\n第三条 保单年期为十年。"


class CountingFactory:
    """Embedding backend factory that records how often a backend was requested."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> HashEmbeddingBackend:
        self.calls += 1
        return HashEmbeddingBackend(EmbeddingConfig(provider="hash", dim=16))


class RecordingGenerator:
    def __init__(self) -> None:
        self.calls = 0

    def generate(self, *, messages, citations) -> str:
        self.calls += 1
        return f"answer from {len(citations)} passages"


def _settings(path: Path) -> Settings:
    return Settings(
        environment="test",
        document_path=path,
        embedding_provider="hash",
        embedding_dim=16,
        generation_provider="template",
    )


def _workflow(path: Path, factory: CountingFactory, generator: RecordingGenerator) -> InsuranceFaqWorkflow:
    builder = IndexBuilder(
        LangChainDocumentIngestor(IngestionConfig(chunk_size=30, chunk_overlap=5)),
        factory,
        client=chromadb.EphemeralClient(),
    )
    return InsuranceFaqWorkflow(_settings(path), index_builder=builder, answer_generator=AnswerGenerator(generator))


def test_run_answers_from_document(tmp_path: Path) -> None:
    path = tmp_path / "policy.txt"
    path.write_text(POLICY, encoding="utf-8")
    factory, generator = CountingFactory(), RecordingGenerator()

    result = _workflow(path, factory, generator).run("保费是多少?")

    assert result.ok
    assert result.answer == "answer from 3 passages"
    assert factory.calls == 1
    assert generator.calls == 1


def test_missing_document_fails_without_provider_calls(tmp_path: Path) -> None:
    factory, generator = CountingFactory(), RecordingGenerator()

    result = _workflow(tmp_path / "missing.pdf", factory, generator).run("保费是多少?")

    assert result.status == "error"
    assert result.error.startswith("document not found")
    assert result.error_code == "resource_not_found"
    assert result.answer is None
    assert factory.calls == 0
    assert generator.calls == 0


def test_every_run_builds_and_discards_its_own_index(tmp_path: Path) -> None:
    path = tmp_path / "policy.txt"
    path.write_text(POLICY, encoding="utf-8")
    client = chromadb.EphemeralClient()
    factory, generator = CountingFactory(), RecordingGenerator()
    builder = IndexBuilder(LangChainDocumentIngestor(IngestionConfig()), factory, client=client)
    workflow = InsuranceFaqWorkflow(_settings(path), index_builder=builder, answer_generator=AnswerGenerator(generator))

    before = len(client.list_collections())

    workflow.run("保费是多少?")
    workflow.run("保单年期多长?")

    assert factory.calls == 2
    assert generator.calls == 2
    assert len(client.list_collections()) == before


def test_from_settings_runs_offline(tmp_path: Path) -> None:
    path = tmp_path / "policy.txt"
    path.write_text(POLICY, encoding="utf-8")

    result = InsuranceFaqWorkflow.from_settings(_settings(path)).run(TriggerPayload(question="保费是多少?"))

    assert result.ok
    assert "保费" in result.answer


def test_empty_document_answers_with_acknowledgement(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    settings = _settings(path)

    result = InsuranceFaqWorkflow.from_settings(settings).run("保费是多少?")

    assert result.ok
    assert result.answer == settings.no_context_answer


def test_trigger_payload_requires_question():
    with pytest.raises(ValidationError):
        TriggerPayload(question="")
    with pytest.raises(ValidationError):
        TriggerPayload.model_validate({})


def test_blank_question_returns_structured_error(tmp_path: Path) -> None:
    path = tmp_path / "policy.txt"
    path.write_text(POLICY, encoding="utf-8")
    factory, generator = CountingFactory(), RecordingGenerator()

    result = _workflow(path, factory, generator).run("")

    assert result.status == "error"
    assert result.error_code == "invalid_request"
    assert result.answer is None
    assert factory.calls == 0
    assert generator.calls == 0
