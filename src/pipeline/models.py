# src/pipeline/models.py — v1
"""Embedding pipeline models: PipelineMode, DocumentFailure, PipelineReport."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class PipelineMode(str, Enum):
    """Which documents a run selects."""

    FILL_GAPS = "fill_gaps"
    FORCE_REGENERATE = "force_regenerate"


class DocumentFailure(BaseModel):
    """One document the run could not embed."""

    document_id: int
    filename: str | None = None
    provider: str | None = None
    kind: str
    message: str


class PipelineReport(BaseModel):
    """Outcome of one pipeline run."""

    scope: str
    mode: PipelineMode
    job_id: str
    total_candidates: int = 0
    success_count: int = 0
    failure_count: int = 0
    aborted: bool = False
    abort_reason: str | None = None
    cancelled: bool = False
    embedded_ids: list[int] = Field(default_factory=list)
    failures: list[DocumentFailure] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def processed(self) -> int:
        return self.success_count + self.failure_count

    @property
    def untouched(self) -> int:
        """Candidates never attempted because the run stopped early."""
        return self.total_candidates - self.processed
