"""Shared test fixtures and fake tool helpers."""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

from restora.config import Settings
from restora.models.errors import ProbeError
from restora.models.media import MediaInfo
from restora.segmentation.transforms import BaseSegmentTransform


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def settings(tmp_dir):
    """Settings isolated to the test's temp directory."""
    return Settings(
        work_root=tmp_dir / "work",
        temp_dir=tmp_dir / "temp",
        output_dir=tmp_dir / "output",
        poll_interval_seconds=0.05,
        terminate_grace_seconds=2.0,
        _env_file=None,
    )


@pytest.fixture
def stereo_info():
    return MediaInfo(
        has_video=True,
        has_audio=True,
        channels=2,
        sample_rate=48000,
        frame_rate="30000/1001",
        video_duration=125.0,
        audio_duration=125.0,
        container_duration=125.0,
    )


def make_video_file(path: Path, size: int = 1024) -> Path:
    """Write a placeholder file standing in for a recording."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


def py_cmd(code: str) -> list[str]:
    """argv running `code` in a fresh interpreter; stands in for an external tool."""
    return [sys.executable, "-c", code]


def tool_available(*names: str) -> bool:
    return all(shutil.which(name) for name in names)


class FakeTransform(BaseSegmentTransform):
    """Writes a small fake artifact per segment; records what it rendered."""

    def __init__(self, fail_on: set[int] | None = None, empty_from: int | None = None):
        self.rendered: list[int] = []
        self.fail_on = fail_on or set()
        self.empty_from = empty_from

    def render(self, segment, output_path: Path) -> int:
        if segment.index in self.fail_on:
            output_path.write_bytes(b"truncated")
            raise RuntimeError(f"render failed for segment {segment.index}")
        if self.empty_from is not None and segment.index >= self.empty_from:
            return 0
        self.rendered.append(segment.index)
        output_path.write_bytes(f"segment {segment.index} {segment.length}".encode())
        return max(1, int(segment.length * 30))


def fake_prober(path: Path) -> float:
    """Duration encoded by FakeTransform in the artifact body."""
    try:
        _, _, length = path.read_text().split()
        return float(length)
    except ValueError:
        raise ProbeError(f"Could not determine duration of {path}")
