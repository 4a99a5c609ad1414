"""Audio/video drift correction by audio time-scaling."""

import logging
import os
from pathlib import Path

from restora.config import Settings, get_settings
from restora.extractors.probe import probe_media
from restora.extractors.validators import validate_output_path
from restora.models.audio import TempoDecision
from restora.models.errors import DriftOutOfRangeError, ProbeError
from restora.models.media import MediaInfo
from restora.process.runner import run_tool
from restora.process.toolchain import SYNC_TOOLS, resolve_toolchain
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder
from restora.rendering.progress import FFmpegProgressMonitor

logger = logging.getLogger(__name__)


def compute_tempo(
    audio_duration: float, video_duration: float, settings: Settings | None = None
) -> TempoDecision:
    """Tempo factor that makes the audio last exactly as long as the video."""
    settings = settings or get_settings()
    if video_duration <= 0:
        raise ProbeError(
            f"Invalid video duration: {video_duration}",
            details={"video_duration": video_duration},
        )
    if audio_duration <= 0:
        raise ProbeError(
            f"Invalid audio duration: {audio_duration}",
            details={"audio_duration": audio_duration},
        )

    factor = audio_duration / video_duration
    drift_percent = abs(factor - 1.0) * 100
    if drift_percent < settings.drift_min_percent:
        return TempoDecision(factor=factor, drift_percent=drift_percent, apply=False)
    if not settings.tempo_min <= factor <= settings.tempo_max:
        raise DriftOutOfRangeError(
            f"Tempo {factor:.6f} outside atempo range "
            f"[{settings.tempo_min}, {settings.tempo_max}]",
            details={
                "audio_duration": audio_duration,
                "video_duration": video_duration,
                "tempo": factor,
            },
        )
    return TempoDecision(factor=factor, drift_percent=drift_percent, apply=True)


def durations_for_sync(info: MediaInfo, file_path: Path) -> tuple[float, float]:
    """(audio, video) durations, each falling back to the container duration."""
    audio = info.audio_duration or info.container_duration
    video = info.video_duration or info.container_duration
    if not audio or not video:
        raise ProbeError(
            f"Could not determine audio/video durations of {file_path}",
            details={"file": str(file_path)},
        )
    return audio, video


def correct_drift(
    input_path: Path,
    output_path: Path,
    settings: Settings | None = None,
    progress_callback=None,
) -> Path:
    """Stretch a:0 to match v:0. Returns the input path when no change is needed."""
    settings = settings or get_settings()
    resolve_toolchain(SYNC_TOOLS, settings)
    validate_output_path(input_path, output_path)

    info = probe_media(input_path, settings)
    if not info.has_audio or not info.has_video:
        raise ProbeError(
            f"Drift correction needs both a:0 and v:0 in {input_path}",
            details={"file": str(input_path)},
        )
    audio, video = durations_for_sync(info, input_path)
    decision = compute_tempo(audio, video, settings)
    logger.info(
        "Audio %.3fs, video %.3fs: tempo %.8f (drift %.4f%%)",
        audio,
        video,
        decision.factor,
        decision.drift_percent,
    )
    if not decision.apply:
        logger.info("Drift below %.2f%%; skipping sync", settings.drift_min_percent)
        return input_path

    partial = output_path.with_name(f"{output_path.stem}.partial{output_path.suffix}")
    builder = FFmpegCommandBuilder(settings)
    monitor = FFmpegProgressMonitor(video, callback=progress_callback, label="sync")
    try:
        run_tool(
            builder.atempo(input_path, decision.factor, partial),
            component="sync",
            monitor=monitor,
        )
        os.replace(partial, output_path)
    finally:
        partial.unlink(missing_ok=True)
    logger.info("Synced output: %s", output_path)
    return output_path
