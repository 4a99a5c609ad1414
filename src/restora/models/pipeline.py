"""Pipeline state and stage models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class PipelineStage(StrEnum):
    """Stages of the restoration pipeline."""

    QUEUED = "queued"
    VALIDATION = "validation"
    DENOISE = "denoise"
    SYNC = "sync"
    UPSCALE = "upscale"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PipelineState(BaseModel):
    """Current state of a restoration job."""

    job_id: str = Field(..., min_length=1)
    stage: PipelineStage = Field(default=PipelineStage.QUEUED)
    progress: float = Field(default=0.0, ge=0, le=1)
    message: str = Field(default="")
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    input_path: str | None = None
    denoised_path: str | None = None
    synced_path: str | None = None
    output_path: str | None = None
    segments_done: int = Field(default=0, ge=0)
    segments_total: int = Field(default=0, ge=0)
