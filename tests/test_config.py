from __future__ import annotations

from policyqa.config import DEFAULT_SEPARATORS, Settings, get_settings


def test_defaults_match_deployment():
    settings = get_settings({"environment": "test"})
    assert settings.chunk_size == 500
    assert settings.chunk_overlap == 100
    assert settings.top_k == 5
    assert settings.retrieval_language == "zh-CN"
    assert settings.document_language == "zh-CN"
    assert settings.embedding_model == "text-embedding-3-large"
    assert settings.embedding_dim == 3072
    assert settings.generator_model == "gpt-4o-mini"


def test_separators_prefer_paragraphs_and_end_with_hard_cut():
    settings = get_settings({"environment": "test"})
    assert settings.separators == DEFAULT_SEPARATORS
    assert settings.separators[:2] == ("\n\n", "\n")
    assert "。" in settings.separators and "；" in settings.separators
    assert settings.separators[-1] == ""


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("POLICYQA_CHUNK_SIZE", "300")
    monkeypatch.setenv("POLICYQA_EMBEDDING_PROVIDER", "hash")
    settings = Settings()
    assert settings.chunk_size == 300
    assert settings.embedding_provider == "hash"
