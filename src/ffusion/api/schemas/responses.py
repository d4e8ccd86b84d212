from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    stage: str
    source: str | None = None
    reason: str


class SourceStatusResponse(BaseModel):
    source_id: str
    category: str
    ok: bool
    records: int = 0
    skipped: int = 0
    filtered: int = 0
    error: str | None = None


class SourcesResponse(BaseModel):
    sources: list[SourceStatusResponse] = Field(default_factory=list)
