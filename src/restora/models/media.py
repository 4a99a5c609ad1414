"""Media probe data models."""

from pydantic import BaseModel, Field


class MediaInfo(BaseModel):
    """Stream layout and timing of a media file as reported by ffprobe."""

    has_video: bool = Field(default=False)
    has_audio: bool = Field(default=False)
    channels: int = Field(default=2, ge=1, description="Audio channel count of a:0")
    sample_rate: int = Field(default=48000, ge=8000, description="Audio sample rate of a:0")
    frame_rate: str | None = Field(
        default=None, description="Raw r_frame_rate of v:0, e.g. 30000/1001"
    )
    video_duration: float | None = Field(default=None, ge=0)
    audio_duration: float | None = Field(default=None, ge=0)
    container_duration: float | None = Field(default=None, ge=0)

    @property
    def fps(self) -> float | None:
        if not self.frame_rate:
            return None
        if "/" in self.frame_rate:
            num, den = self.frame_rate.split("/", maxsplit=1)
            if float(den) == 0:
                return None
            return float(num) / float(den)
        return float(self.frame_rate)
