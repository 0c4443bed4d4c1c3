"""Generation backends for policyqa."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Mapping, Protocol, Sequence

import openai

from policyqa.config import Settings
from policyqa.errors import GenerationError, UpstreamDependencyError
from policyqa.models import RetrievedChunk

LOGGER = logging.getLogger(__name__)

ChatMessage = Mapping[str, str]


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for answer generation."""

    provider: Literal["template", "openai"] = "openai"
    model: str = "gpt-4o-mini"
    temperature: float | None = None
    max_tokens: int | None = None
    api_key: str | None = None
    base_url: str | None = None
    timeout: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationConfig":
        return cls(
            provider=settings.generation_provider,
            model=settings.generator_model,
            temperature=settings.generator_temperature,
            max_tokens=settings.generator_max_tokens,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout_seconds,
        )


class GenerationBackend(Protocol):
    """Protocol describing generation behaviour."""

    def generate(self, *, messages: Sequence[ChatMessage], citations: Sequence[RetrievedChunk]) -> str:
        """Return the model's reply to the role-tagged ``messages``."""


class TemplateGenerator:
    """Simple deterministic generator used for tests and offline environments."""

    def generate(self, *, messages: Sequence[ChatMessage], citations: Sequence[RetrievedChunk]) -> str:
        question = next((m["content"] for m in messages if m.get("role") == "user"), "")
        if not citations:
            return "I do not have enough relevant information in the policy document to answer that question."
        summary = citations[0].chunk.text.strip()
        return (
            f"Summary: {summary}\n\n"
            f"Answer: Based on the policy document, here is the best match for your question '{question}'."
        )


class OpenAIChatGenerator:
    """Generator calling the OpenAI chat completions endpoint."""

    def __init__(self, config: GenerationConfig | None = None, *, client: openai.OpenAI | None = None) -> None:
        self._config = config or GenerationConfig()
        self._client = client
        LOGGER.info("Using OpenAI generation model %s", self._config.model)

    def _get_client(self) -> openai.OpenAI:
        if self._client is None:
            try:
                self._client = openai.OpenAI(
                    api_key=self._config.api_key,
                    base_url=self._config.base_url,
                    timeout=self._config.timeout,
                    max_retries=0,
                )
            except openai.OpenAIError as exc:
                raise UpstreamDependencyError(f"Failed to initialise OpenAI client: {exc}") from exc
        return self._client

    def generate(self, *, messages: Sequence[ChatMessage], citations: Sequence[RetrievedChunk]) -> str:
        options: dict[str, object] = {}
        if self._config.temperature is not None:
            options["temperature"] = self._config.temperature
        if self._config.max_tokens is not None:
            options["max_tokens"] = self._config.max_tokens
        try:
            response = self._get_client().chat.completions.create(
                model=self._config.model,
                messages=[{"role": m["role"], "content": m["content"]} for m in messages],
                **options,
            )
        except openai.APIStatusError as exc:
            raise GenerationError(f"Generation request rejected ({exc.status_code}): {exc.message}") from exc
        except openai.OpenAIError as exc:
            raise UpstreamDependencyError(f"Generation request failed: {exc}") from exc
        if not response.choices:
            raise GenerationError("Generation response contained no choices")
        content = response.choices[0].message.content
        if not content:
            raise GenerationError("Generation response was empty")
        return content


def build_generator(config: GenerationConfig) -> GenerationBackend:
    """Return the backend selected by ``config.provider``."""

    if config.provider == "template":
        LOGGER.info("Generator running in template-only mode.")
        return TemplateGenerator()
    return OpenAIChatGenerator(config)
