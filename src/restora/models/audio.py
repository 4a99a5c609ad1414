"""Audio channel and noise profile models."""

from pathlib import Path

from pydantic import BaseModel, Field


class NoiseProfile(BaseModel):
    """Noise fingerprint of one channel, built from a short sample window."""

    model_config = {"frozen": True}

    channel_index: int = Field(..., ge=0)
    path: Path = Field(..., description="sox noiseprof output file")
    window_start: str = Field(..., description="Sample window start (ffmpeg time syntax)")
    window_duration: str = Field(..., description="Sample window length (ffmpeg time syntax)")


class ChannelStream(BaseModel):
    """One audio channel of the source, carried in index order end to end."""

    index: int = Field(..., ge=0)
    sample_rate: int = Field(..., ge=8000)
    profile: NoiseProfile | None = None


class TempoDecision(BaseModel):
    """Outcome of comparing audio and video durations."""

    factor: float = Field(..., gt=0, description="audio_duration / video_duration")
    drift_percent: float = Field(..., ge=0)
    apply: bool = Field(..., description="False when drift is negligible")
