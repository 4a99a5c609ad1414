"""Application configuration using Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Restora configuration loaded from environment variables."""

    model_config = {"env_prefix": "RESTORA_", "env_file": ".env", "extra": "ignore"}

    # External tools
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    sox_bin: str = "sox"
    realesrgan_bin: str = "realesrgan-ncnn-vulkan"
    models_dir: Path = Field(
        default_factory=lambda: Path.home() / "opt" / "realesrgan-ncnn" / "models"
    )
    probe_timeout_seconds: float = 30.0

    # Redis / Celery
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # Upload constraints
    upload_max_size_mb: int = 20480
    allowed_video_formats: list[str] = ["mp4", "mov", "mkv", "avi", "m4v"]

    # Directories
    work_root: Path = Field(default_factory=lambda: Path.cwd() / "vhs_upscale_work")
    temp_dir: Path = Path("/tmp/restora/temp")
    output_dir: Path = Path("/tmp/restora/output")

    # Denoise
    noise_start: str = "00:00:00"
    noise_duration: str = "00:00:00.3"
    nr_amount: float = 0.20
    norm_db: float = -1.0
    ffmpeg_threads: int = 0  # 0 = os.cpu_count()
    sox_buffer: int = 131072
    thread_queue_size: int = 1024
    default_channels: int = 2
    default_sample_rate: int = 48000

    # Drift correction
    drift_min_percent: float = 0.05
    tempo_min: float = 0.5
    tempo_max: float = 2.0

    # Upscale
    segment_seconds: int = 120
    model_name: str = "realesrgan-x4plus"
    internal_scale: int = 4
    final_scale: int = 2
    tile_size: int = 400
    upscale_threads: str = "3:3:2"
    gpu_device: str = "0"
    jpeg_quality: int = 2
    output_crf: int = 21
    output_preset: str = "medium"

    # Audio encoding
    denoise_audio_bitrate: str = "256k"
    sync_audio_bitrate: str = "192k"
    mux_audio_bitrate: str = "160k"

    # Supervision
    poll_interval_seconds: float = 0.2
    pipeline_timeout_seconds: float | None = None
    terminate_grace_seconds: float = 5.0

    # Processing
    max_concurrent_jobs: int = 1

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: str = "%Y-%m-%d %H:%M:%S"
    log_file: Path | None = None
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 3


def get_settings() -> Settings:
    """Return settings instance."""
    return Settings()
