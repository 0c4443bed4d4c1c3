"""Answer generation: retrieval, prompt assembly and the model call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from policyqa.errors import GenerationError, IndexUnavailableError, PolicyQAError
from policyqa.metrics.observability import PipelineMetrics, TimedSection, get_logger
from policyqa.models import IndexResult, RetrievedChunk, WorkflowResult
from policyqa.retrieval.service import IndexRetriever, RetrievalConfig
from policyqa.services.generation import ChatMessage, GenerationBackend, TemplateGenerator
from policyqa.services.prompts import AGENT_INSTRUCTIONS, CONTEXT_RULE, DOCUMENT_GUIDELINES

NO_CONTEXT_ANSWER = "No relevant information was found in the policy document for this question."


@dataclass(frozen=True)
class PromptBuilderConfig:
    """Configuration for prompt construction."""

    label_template: str = "[Document {index}]:"
    preamble: str = f"{AGENT_INSTRUCTIONS}\n\n{DOCUMENT_GUIDELINES}"


class PromptBuilder:
    """Builds the system instruction and message list for the generation call."""

    def __init__(self, config: PromptBuilderConfig | None = None) -> None:
        self._config = config or PromptBuilderConfig()

    def build_context(self, citations: Sequence[RetrievedChunk]) -> str:
        blocks = [
            f"{self._config.label_template.format(index=index)}\n{citation.chunk.text}"
            for index, citation in enumerate(citations, start=1)
        ]
        return "\n\n".join(blocks)

    def build_system_prompt(self, citations: Sequence[RetrievedChunk]) -> str:
        return (
            f"{self._config.preamble}\n\n"
            "Retrieved insurance documents:\n"
            f"{CONTEXT_RULE}\n"
            f"{self.build_context(citations)}\n"
            f"{CONTEXT_RULE}"
        )

    def build_messages(self, question: str, citations: Sequence[RetrievedChunk]) -> list[ChatMessage]:
        return [
            {"role": "system", "content": self.build_system_prompt(citations)},
            {"role": "user", "content": question},
        ]


class AnswerGenerator:
    """Second workflow stage: answer a question from a built index.

    Never raises; every failure is returned as an error ``WorkflowResult``.
    """

    def __init__(
        self,
        generator: GenerationBackend | None = None,
        *,
        prompt_builder: PromptBuilder | None = None,
        retrieval_config: RetrievalConfig | None = None,
        no_context_answer: str = NO_CONTEXT_ANSWER,
    ) -> None:
        self._generator = generator or TemplateGenerator()
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._retrieval_config = retrieval_config or RetrievalConfig()
        self._no_context_answer = no_context_answer
        self._logger = get_logger("query")

    def answer(self, index_result: IndexResult, question: str, *, top_k: int | None = None) -> WorkflowResult:
        if not index_result.ok:
            reason = str(index_result.error) if index_result.error else "index was not built"
            error = IndexUnavailableError(f"index unavailable: {reason}")
            self._logger.warning("query.index_unavailable", detail=reason)
            return WorkflowResult.failure(error)

        try:
            retriever = IndexRetriever(index_result.index, self._retrieval_config)
            with TimedSection() as retrieval:
                retrieved = retriever.retrieve(question, top_k=top_k)
            PipelineMetrics.observe_retrieval(
                retrieval.duration,
                len(retrieved),
                (citation.score for citation in retrieved),
            )
            self._logger.info(
                "retrieval.complete",
                question=question,
                chunk_count=len(retrieved),
                duration_seconds=retrieval.duration,
                top_k=top_k or self._retrieval_config.top_k,
                language=self._retrieval_config.language,
            )
            if not retrieved:
                return WorkflowResult.success(self._no_context_answer)

            messages = self._prompt_builder.build_messages(question, retrieved)
            with TimedSection(PipelineMetrics.observe_generation) as generation:
                text = self._generator.generate(messages=messages, citations=retrieved)
            self._logger.info(
                "generation.complete",
                question=question,
                duration_seconds=generation.duration,
                citation_count=len(retrieved),
            )
        except PolicyQAError as exc:
            self._logger.error("query.error", error_code=exc.code, detail=str(exc))
            return WorkflowResult.failure(exc)
        except Exception as exc:
            self._logger.error("query.error", error_code=GenerationError.code, detail=str(exc))
            return WorkflowResult.failure(GenerationError(f"Unexpected error generating response: {exc}"))
        return WorkflowResult.success(text, retrieved)
