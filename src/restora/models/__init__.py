"""Data models for Restora."""

from restora.models.audio import ChannelStream, NoiseProfile, TempoDecision
from restora.models.errors import (
    DriftOutOfRangeError,
    ErrorResponse,
    MissingDependencyError,
    PipelineStallError,
    ProbeError,
    ProcessingError,
    RestoraError,
    StageToolError,
    ValidationError,
    WorkerFailureError,
)
from restora.models.job import DenoiseParams, Job, UpscaleParams
from restora.models.media import MediaInfo
from restora.models.options import RestoreOptions
from restora.models.pipeline import PipelineStage, PipelineState
from restora.models.segment import (
    ResumeState,
    Segment,
    SegmentMarker,
    SegmentPlan,
    SegmentStatus,
)

__all__ = [
    "ChannelStream",
    "DenoiseParams",
    "DriftOutOfRangeError",
    "ErrorResponse",
    "Job",
    "MediaInfo",
    "MissingDependencyError",
    "NoiseProfile",
    "PipelineStage",
    "PipelineStallError",
    "PipelineState",
    "ProbeError",
    "ProcessingError",
    "RestoraError",
    "RestoreOptions",
    "ResumeState",
    "Segment",
    "SegmentMarker",
    "SegmentPlan",
    "SegmentStatus",
    "StageToolError",
    "TempoDecision",
    "UpscaleParams",
    "ValidationError",
    "WorkerFailureError",
]
