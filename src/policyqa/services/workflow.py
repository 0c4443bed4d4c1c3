"""The insurance FAQ workflow: build the index, then answer the question."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from policyqa.config import Settings, get_settings
from policyqa.errors import InvalidRequestError
from policyqa.metrics.observability import PipelineMetrics, get_logger
from policyqa.models import WorkflowResult
from policyqa.retrieval.service import RetrievalConfig
from policyqa.services.generation import GenerationConfig, build_generator
from policyqa.services.indexing import IndexBuilder
from policyqa.services.query import AnswerGenerator


class TriggerPayload(BaseModel):
    """Input accepted by a workflow run."""

    question: str = Field(..., min_length=1, description="End-user question about the policy")


class InsuranceFaqWorkflow:
    """Fixed two-stage pipeline: ``IndexBuilder`` then ``AnswerGenerator``.

    Every run rebuilds the index from the source document and discards it
    afterwards; nothing is shared between runs.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        index_builder: IndexBuilder,
        answer_generator: AnswerGenerator,
    ) -> None:
        self._settings = settings
        self._index_builder = index_builder
        self._answer_generator = answer_generator
        self._logger = get_logger("workflow")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "InsuranceFaqWorkflow":
        settings = settings or get_settings()
        answer_generator = AnswerGenerator(
            build_generator(GenerationConfig.from_settings(settings)),
            retrieval_config=RetrievalConfig.from_settings(settings),
            no_context_answer=settings.no_context_answer,
        )
        return cls(
            settings,
            index_builder=IndexBuilder.from_settings(settings),
            answer_generator=answer_generator,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def run(
        self,
        payload: TriggerPayload | str,
        *,
        document_path: Path | None = None,
        top_k: int | None = None,
    ) -> WorkflowResult:
        if isinstance(payload, str):
            try:
                payload = TriggerPayload(question=payload)
            except ValidationError as exc:
                error = InvalidRequestError(f"invalid question: {exc.errors()[0]['msg']}")
                PipelineMetrics.observe_failure(error.code)
                self._logger.error("workflow.error", error_code=error.code, detail=str(error))
                return WorkflowResult.failure(error)
        path = document_path or self._settings.document_path
        index_result = self._index_builder.build(path)
        try:
            result = self._answer_generator.answer(index_result, payload.question, top_k=top_k)
        finally:
            if index_result.index is not None:
                index_result.index.close()
        if index_result.error is not None:
            # The caller gets the root cause rather than the generic "index unavailable".
            result = WorkflowResult.failure(index_result.error)
        if not result.ok:
            PipelineMetrics.observe_failure(result.error_code or "unknown")
            self._logger.error("workflow.error", error_code=result.error_code, detail=result.error)
        return result
