"""Pydantic models for the policyqa API."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from policyqa.config import get_settings
from policyqa.services.workflow import TriggerPayload


class QueryRequest(TriggerPayload):
    top_k: Optional[int] = Field(
        default=None,
        ge=1,
        le=get_settings().retrieval_max_top_k,
        description="Override the number of retrieved chunks",
    )


class CitationModel(BaseModel):
    chunk_id: str
    score: float
    text: str
    language: Optional[str] = None
    page: Optional[int] = None


class QueryResponse(BaseModel):
    status: Literal["success", "error"]
    answer: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    citations: List[CitationModel] = Field(default_factory=list)
