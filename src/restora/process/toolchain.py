"""External tool resolution and dependency checks."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from restora.config import Settings, get_settings
from restora.models.errors import MissingDependencyError

logger = logging.getLogger(__name__)

DENOISE_TOOLS = ("ffmpeg", "ffprobe", "sox")
SYNC_TOOLS = ("ffmpeg", "ffprobe")
UPSCALE_TOOLS = ("ffmpeg", "ffprobe", "realesrgan")


@dataclass(frozen=True)
class Toolchain:
    ffmpeg: str
    ffprobe: str
    sox: str | None = None
    realesrgan: str | None = None
    models_dir: Path | None = None


def resolve_binary(name_or_path: str) -> str | None:
    """Return an absolute binary path from an explicit path or PATH lookup."""
    candidate = Path(name_or_path).expanduser()
    if candidate.is_file():
        return str(candidate.resolve())
    return shutil.which(name_or_path)


def resolve_toolchain(
    required: tuple[str, ...] = DENOISE_TOOLS, settings: Settings | None = None
) -> Toolchain:
    """Resolve the binaries a stage needs and raise a clear dependency error."""
    settings = settings or get_settings()
    configured = {
        "ffmpeg": settings.ffmpeg_bin,
        "ffprobe": settings.ffprobe_bin,
        "sox": settings.sox_bin,
        "realesrgan": settings.realesrgan_bin,
    }

    resolved: dict[str, str | None] = {}
    missing = []
    for tool in required:
        path = resolve_binary(configured[tool])
        if path is None:
            missing.append(configured[tool])
        resolved[tool] = path

    if missing:
        raise MissingDependencyError(
            f"Missing required dependency: {', '.join(missing)}. "
            "Install it with your system package manager or set its RESTORA_* path.",
            details={"missing": missing},
        )

    models_dir = None
    if "realesrgan" in required:
        models_dir = settings.models_dir.expanduser()
        if not models_dir.is_dir():
            raise MissingDependencyError(
                f"Real-ESRGAN models directory not found: {models_dir}. "
                "Set RESTORA_MODELS_DIR to your realesrgan-ncnn models directory.",
                details={"models_dir": str(models_dir)},
            )

    logger.debug("Resolved toolchain: %s", resolved)
    return Toolchain(
        ffmpeg=resolved.get("ffmpeg") or settings.ffmpeg_bin,
        ffprobe=resolved.get("ffprobe") or settings.ffprobe_bin,
        sox=resolved.get("sox"),
        realesrgan=resolved.get("realesrgan"),
        models_dir=models_dir,
    )
