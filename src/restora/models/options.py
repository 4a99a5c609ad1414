"""User-facing restoration options."""

from pydantic import BaseModel, Field


class RestoreOptions(BaseModel):
    """Per-job overrides for the restoration pipeline."""

    denoise: bool = Field(default=True, description="Run per-channel noise reduction")
    sync: bool = Field(default=True, description="Correct audio/video drift")
    upscale: bool = Field(default=True, description="Run segmented Real-ESRGAN upscaling")
    segment_seconds: int | None = Field(
        default=None, gt=0, le=3600, description="Upscale segment length in seconds"
    )
    crf: int | None = Field(default=None, ge=0, le=51, description="x264 CRF for segments")
    tile_size: int | None = Field(default=None, ge=0, description="Real-ESRGAN tile size")
    nr_amount: float | None = Field(default=None, gt=0, le=1, description="Noise reduction amount")
    norm_db: float | None = Field(default=None, le=0, description="Normalization target (dBFS)")
    reset_segments: bool = Field(
        default=False, description="Discard existing segments instead of resuming"
    )
