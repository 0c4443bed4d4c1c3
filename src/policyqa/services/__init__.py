"""Service layer orchestrations for policyqa."""

from .generation import (
    GenerationBackend,
    GenerationConfig,
    OpenAIChatGenerator,
    TemplateGenerator,
    build_generator,
)
from .indexing import IndexBuilder
from .query import AnswerGenerator, PromptBuilder, PromptBuilderConfig
from .workflow import InsuranceFaqWorkflow, TriggerPayload

__all__ = [
    "AnswerGenerator",
    "GenerationBackend",
    "GenerationConfig",
    "IndexBuilder",
    "InsuranceFaqWorkflow",
    "OpenAIChatGenerator",
    "PromptBuilder",
    "PromptBuilderConfig",
    "TemplateGenerator",
    "TriggerPayload",
    "build_generator",
]
