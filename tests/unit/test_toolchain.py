"""Tests for external tool resolution."""

import sys

import pytest

from restora.models.errors import MissingDependencyError
from restora.process.toolchain import (
    DENOISE_TOOLS,
    SYNC_TOOLS,
    UPSCALE_TOOLS,
    resolve_binary,
    resolve_toolchain,
)


@pytest.fixture
def tool_settings(settings, tmp_path):
    settings.ffmpeg_bin = sys.executable
    settings.ffprobe_bin = sys.executable
    settings.sox_bin = sys.executable
    settings.realesrgan_bin = sys.executable
    settings.models_dir = tmp_path / "models"
    settings.models_dir.mkdir()
    return settings


class TestResolveBinary:
    def test_explicit_path(self):
        assert resolve_binary(sys.executable) is not None

    def test_unknown(self):
        assert resolve_binary("definitely-not-a-real-tool-xyz") is None


class TestResolveToolchain:
    def test_denoise_tools(self, tool_settings):
        chain = resolve_toolchain(DENOISE_TOOLS, tool_settings)
        assert chain.sox is not None
        assert chain.realesrgan is None
        assert chain.models_dir is None

    def test_upscale_tools(self, tool_settings):
        chain = resolve_toolchain(UPSCALE_TOOLS, tool_settings)
        assert chain.realesrgan is not None
        assert chain.models_dir == tool_settings.models_dir

    def test_missing_tool_named(self, tool_settings):
        tool_settings.sox_bin = "no-such-sox-xyz"
        with pytest.raises(MissingDependencyError, match="no-such-sox-xyz") as exc_info:
            resolve_toolchain(DENOISE_TOOLS, tool_settings)
        assert exc_info.value.details["missing"] == ["no-such-sox-xyz"]

    def test_sync_does_not_need_sox(self, tool_settings):
        tool_settings.sox_bin = "no-such-sox-xyz"
        resolve_toolchain(SYNC_TOOLS, tool_settings)

    def test_missing_models_dir(self, tool_settings, tmp_path):
        tool_settings.models_dir = tmp_path / "nowhere"
        with pytest.raises(MissingDependencyError, match="models directory"):
            resolve_toolchain(UPSCALE_TOOLS, tool_settings)
