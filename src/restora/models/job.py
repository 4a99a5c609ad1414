"""Job and tuning parameter models."""

from pathlib import Path

from pydantic import BaseModel, Field

from restora.config import Settings


class DenoiseParams(BaseModel):
    """Noise profiling and reduction parameters."""

    noise_start: str = Field(default="00:00:00", description="Start of the noise sample window")
    noise_duration: str = Field(default="00:00:00.3", description="Length of the sample window")
    nr_amount: float = Field(default=0.20, gt=0, le=1, description="sox noisered strength")
    norm_db: float = Field(default=-1.0, le=0, description="sox norm target in dBFS")
    threads: int = Field(default=0, ge=0, description="ffmpeg threads (0 = all cores)")

    @classmethod
    def from_settings(cls, settings: Settings) -> "DenoiseParams":
        return cls(
            noise_start=settings.noise_start,
            noise_duration=settings.noise_duration,
            nr_amount=settings.nr_amount,
            norm_db=settings.norm_db,
            threads=settings.ffmpeg_threads,
        )


class UpscaleParams(BaseModel):
    """Real-ESRGAN and segment encoder parameters."""

    model_name: str = Field(default="realesrgan-x4plus", min_length=1)
    internal_scale: int = Field(default=4, ge=1, le=4)
    final_scale: int = Field(default=2, ge=1, le=4)
    tile_size: int = Field(default=400, ge=0, description="Tile size (0 = auto)")
    threads: str = Field(default="3:3:2", pattern=r"^\d+:\d+(,\d+)*:\d+$")
    gpu: str = Field(default="0")
    crf: int = Field(default=21, ge=0, le=51)
    preset: str = Field(default="medium")
    jpeg_quality: int = Field(default=2, ge=1, le=31)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UpscaleParams":
        return cls(
            model_name=settings.model_name,
            internal_scale=settings.internal_scale,
            final_scale=settings.final_scale,
            tile_size=settings.tile_size,
            threads=settings.upscale_threads,
            gpu=settings.gpu_device,
            crf=settings.output_crf,
            preset=settings.output_preset,
            jpeg_quality=settings.jpeg_quality,
        )


class Job(BaseModel):
    """One end-to-end restoration request."""

    job_id: str = Field(..., min_length=1)
    input_path: Path
    output_path: Path
    segment_seconds: int = Field(default=120, gt=0)
    denoise: DenoiseParams = Field(default_factory=DenoiseParams)
    upscale: UpscaleParams = Field(default_factory=UpscaleParams)
    work_root: Path = Field(default_factory=lambda: Path.cwd() / "vhs_upscale_work")

    @classmethod
    def from_settings(
        cls,
        job_id: str,
        input_path: Path,
        output_path: Path,
        settings: Settings,
        *,
        segment_seconds: int | None = None,
        denoise: DenoiseParams | None = None,
        upscale: UpscaleParams | None = None,
        work_root: Path | None = None,
    ) -> "Job":
        """Fill every parameter the caller did not pin from `settings`."""
        return cls(
            job_id=job_id,
            input_path=input_path,
            output_path=output_path,
            segment_seconds=segment_seconds or settings.segment_seconds,
            denoise=denoise or DenoiseParams.from_settings(settings),
            upscale=upscale or UpscaleParams.from_settings(settings),
            work_root=work_root or settings.work_root,
        )

    @property
    def work_dir(self) -> Path:
        """Segment workspace; keyed by the recording, not by intermediate stage files."""
        return self.work_root / self.input_path.stem
