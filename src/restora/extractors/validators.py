"""Input file and workspace validation."""

from pathlib import Path

from restora.config import Settings, get_settings
from restora.extractors.probe import probe_media
from restora.models.errors import ValidationError
from restora.models.media import MediaInfo


def validate_file_format(file_path: Path, allowed_formats: list[str]) -> None:
    """Validate that file has an allowed extension."""
    ext = file_path.suffix.lstrip(".").lower()
    if ext not in allowed_formats:
        raise ValidationError(
            f"Unsupported format: .{ext}. Allowed: {allowed_formats}",
            details={"extension": ext, "allowed": allowed_formats},
        )


def validate_file_size(file_path: Path, max_size_mb: int | None = None) -> None:
    """Validate that file size is within limits."""
    if not file_path.exists():
        raise ValidationError(f"File not found: {file_path}")
    max_mb = max_size_mb or get_settings().upload_max_size_mb
    size_mb = file_path.stat().st_size / (1024 * 1024)
    if size_mb > max_mb:
        raise ValidationError(
            f"File too large: {size_mb:.1f}MB exceeds {max_mb}MB limit",
            details={"size_mb": size_mb, "max_mb": max_mb},
        )


def validate_output_path(input_path: Path, output_path: Path) -> None:
    """Refuse to overwrite the input in place."""
    if input_path.resolve() == output_path.resolve():
        raise ValidationError(
            "Output path must differ from input path",
            details={"path": str(input_path)},
        )
    if not output_path.parent.exists():
        raise ValidationError(f"Output directory does not exist: {output_path.parent}")


def validate_input_video(file_path: Path, settings: Settings | None = None) -> MediaInfo:
    """Full validation for a recording to restore. Returns its probe."""
    settings = settings or get_settings()
    if not file_path.is_file():
        raise ValidationError(f"Input file not found: {file_path}")
    validate_file_format(file_path, settings.allowed_video_formats)
    validate_file_size(file_path, settings.upload_max_size_mb)
    info = probe_media(file_path, settings)
    if not info.has_video:
        raise ValidationError("No video stream found in file", details={"file": str(file_path)})
    return info
