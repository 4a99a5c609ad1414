"""Media probing with ffprobe."""

import json
import logging
import subprocess
from pathlib import Path

from restora.config import Settings, get_settings
from restora.models.errors import MissingDependencyError, ProbeError
from restora.models.media import MediaInfo

logger = logging.getLogger(__name__)


def run_ffprobe(file_path: Path, settings: Settings | None = None) -> dict:
    """Return ffprobe's JSON description of streams and format."""
    settings = settings or get_settings()
    if not file_path.exists():
        raise ProbeError(f"File not found: {file_path}")
    try:
        result = subprocess.run(
            [
                settings.ffprobe_bin,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                str(file_path),
            ],
            capture_output=True,
            text=True,
            timeout=settings.probe_timeout_seconds,
        )
    except FileNotFoundError:
        raise MissingDependencyError(
            "ffprobe not found. Please install FFmpeg.",
            details={"command": settings.ffprobe_bin},
        )
    except subprocess.TimeoutExpired:
        raise ProbeError(
            "File probe timed out; file may be corrupted",
            details={"file": str(file_path)},
        )
    if result.returncode != 0:
        raise ProbeError(
            "File appears to be corrupted or unreadable",
            details={"file": str(file_path), "stderr": result.stderr[:500]},
        )
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError:
        raise ProbeError(
            "Failed to parse ffprobe output",
            details={"file": str(file_path)},
        )


def _parse_duration(value) -> float | None:
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    return duration if duration > 0 else None


def _parse_int(value, minimum: int) -> int | None:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= minimum else None


def _parse_frame_rate(value) -> str | None:
    if not value or not isinstance(value, str):
        return None
    try:
        if "/" in value:
            num, den = value.split("/", maxsplit=1)
            if float(den) == 0 or float(num) <= 0:
                return None
        elif float(value) <= 0:
            return None
    except ValueError:
        return None
    return value


def parse_probe(probe: dict, settings: Settings | None = None) -> MediaInfo:
    """Build MediaInfo from ffprobe JSON.

    Channel count and sample rate fall back to configured defaults when
    missing or invalid; durations and frame rate are left as None.
    """
    settings = settings or get_settings()
    video_stream = None
    audio_stream = None
    for stream in probe.get("streams", []):
        kind = stream.get("codec_type")
        if kind == "video" and video_stream is None:
            video_stream = stream
        elif kind == "audio" and audio_stream is None:
            audio_stream = stream

    channels = settings.default_channels
    sample_rate = settings.default_sample_rate
    audio_duration = None
    if audio_stream is not None:
        probed_channels = _parse_int(audio_stream.get("channels"), 1)
        probed_rate = _parse_int(audio_stream.get("sample_rate"), 8000)
        if probed_channels is None or probed_rate is None:
            logger.warning(
                "Audio layout unreadable (channels=%r, sample_rate=%r); using %d ch @ %d Hz",
                audio_stream.get("channels"),
                audio_stream.get("sample_rate"),
                channels if probed_channels is None else probed_channels,
                sample_rate if probed_rate is None else probed_rate,
            )
        channels = probed_channels or channels
        sample_rate = probed_rate or sample_rate
        audio_duration = _parse_duration(audio_stream.get("duration"))

    frame_rate = None
    video_duration = None
    if video_stream is not None:
        frame_rate = _parse_frame_rate(video_stream.get("r_frame_rate"))
        video_duration = _parse_duration(video_stream.get("duration"))

    return MediaInfo(
        has_video=video_stream is not None,
        has_audio=audio_stream is not None,
        channels=channels,
        sample_rate=sample_rate,
        frame_rate=frame_rate,
        video_duration=video_duration,
        audio_duration=audio_duration,
        container_duration=_parse_duration(probe.get("format", {}).get("duration")),
    )


def probe_media(file_path: Path, settings: Settings | None = None) -> MediaInfo:
    """Probe a media file and return its stream layout."""
    info = parse_probe(run_ffprobe(file_path, settings), settings)
    logger.debug("Probed %s: %s", file_path, info)
    return info


def require_duration(info: MediaInfo, file_path: Path) -> float:
    """Container duration, falling back to the longest stream; fatal if absent."""
    duration = info.container_duration or max(
        info.video_duration or 0.0, info.audio_duration or 0.0
    )
    if not duration:
        raise ProbeError(
            f"Could not determine duration of {file_path}",
            details={"file": str(file_path)},
        )
    return duration


def require_frame_rate(info: MediaInfo, file_path: Path) -> str:
    """Raw frame rate of v:0; fatal if absent."""
    if not info.has_video:
        raise ProbeError(f"No video stream found in {file_path}", details={"file": str(file_path)})
    if info.frame_rate is None:
        raise ProbeError(
            f"Could not determine frame rate of {file_path}",
            details={"file": str(file_path)},
        )
    return info.frame_rate


def probe_duration(file_path: Path, settings: Settings | None = None) -> float:
    """Duration of a media file in seconds."""
    return require_duration(probe_media(file_path, settings), file_path)
