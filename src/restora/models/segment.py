"""Segment and resume state models."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class SegmentStatus(StrEnum):
    """Completion status of a segment artifact."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class Segment(BaseModel):
    """A bounded time slice [start, start + length) of a job timeline."""

    index: int = Field(..., ge=0)
    start: float = Field(..., ge=0, description="Start offset in seconds")
    length: float = Field(..., gt=0, description="Slice length in seconds")
    artifact_path: Path
    status: SegmentStatus = Field(default=SegmentStatus.PENDING)

    @property
    def end(self) -> float:
        return self.start + self.length


class SegmentMarker(BaseModel):
    """Sidecar completion token written after an artifact is finalized."""

    index: int = Field(..., ge=0)
    duration: float = Field(..., gt=0)
    size_bytes: int = Field(..., gt=0)


class SegmentPlan(BaseModel):
    """Segmentation parameters persisted alongside the segment artifacts."""

    input_name: str = Field(..., min_length=1)
    segment_seconds: int = Field(..., gt=0)


class ResumeState(BaseModel):
    """Where a segmentation run picks up, derived from the segments directory."""

    start_offset: float = Field(default=0.0, ge=0)
    next_index: int = Field(default=0, ge=0)
    completed: list[int] = Field(default_factory=list)

    @field_validator("completed")
    @classmethod
    def validate_contiguous(cls, v: list[int]) -> list[int]:
        if v != list(range(len(v))):
            raise ValueError("Completed segment indices must be contiguous from 0")
        return v

    @model_validator(mode="after")
    def validate_next_index(self) -> "ResumeState":
        if self.next_index != len(self.completed):
            raise ValueError(
                f"next_index ({self.next_index}) must equal completed count ({len(self.completed)})"
            )
        return self
