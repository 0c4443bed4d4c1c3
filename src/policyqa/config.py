"""Runtime configuration for the policyqa workflow."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Paragraph, line, then sentence and clause punctuation in Latin and CJK scripts.
# The trailing empty separator is the hard-cut fallback.
DEFAULT_SEPARATORS: tuple[str, ...] = (
    "\n\n",
    "\n",
    "。",
    ".",
    "！",
    "!",
    "？",
    "?",
    ";",
    "；",
    "",
)

DEFAULT_NO_CONTEXT_ANSWER = (
    "抱歉，保单文件中没有找到与您的问题相关的信息。"
    "\nSorry, no relevant information was found in the policy document for your question."
)


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="policyqa_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"

    # Source document
    document_path: Path = Path("./rag-data/pdf/LPPM 848-2401C FortuneXtra Savings Plan PFFS (Chi).pdf")
    chunk_type: str = "insurance_policy"
    document_language: str = "zh-CN"
    source_id: str = "FortuneXtra_Savings_Plan"

    # Character based chunking so mixed-script text is measured consistently
    chunk_size: int = 500
    chunk_overlap: int = 100
    separators: tuple[str, ...] = DEFAULT_SEPARATORS

    embedding_provider: Literal["hash", "openai", "huggingface"] = "openai"
    embedding_model: str = "text-embedding-3-large"
    embedding_dim: int = 3072

    top_k: int = 5
    retrieval_max_top_k: int = 20
    retrieval_language: str = "zh-CN"

    generation_provider: Literal["template", "openai"] = "openai"
    generator_model: str = "gpt-4o-mini"
    generator_temperature: float | None = None
    generator_max_tokens: int | None = None
    no_context_answer: str = DEFAULT_NO_CONTEXT_ANSWER

    # OpenAI client
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    request_timeout_seconds: float | None = 60.0

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
