"""Tests for ffprobe parsing and duration/frame-rate requirements."""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from restora.extractors.probe import (
    parse_probe,
    probe_duration,
    require_duration,
    require_frame_rate,
    run_ffprobe,
)
from restora.models.errors import MissingDependencyError, ProbeError
from restora.models.media import MediaInfo
from tests.conftest import make_video_file

STEREO_PROBE = {
    "streams": [
        {"codec_type": "video", "r_frame_rate": "30000/1001", "duration": "600.6"},
        {"codec_type": "audio", "channels": 2, "sample_rate": "48000", "duration": "600.9"},
    ],
    "format": {"duration": "600.9"},
}


class TestParseProbe:
    def test_stereo(self, settings):
        info = parse_probe(STEREO_PROBE, settings)
        assert info.has_video and info.has_audio
        assert info.channels == 2
        assert info.sample_rate == 48000
        assert info.frame_rate == "30000/1001"
        assert info.video_duration == pytest.approx(600.6)
        assert info.audio_duration == pytest.approx(600.9)

    def test_first_audio_stream_wins(self, settings):
        probe = {
            "streams": [
                {"codec_type": "audio", "channels": 6, "sample_rate": "44100"},
                {"codec_type": "audio", "channels": 1, "sample_rate": "8000"},
            ]
        }
        info = parse_probe(probe, settings)
        assert info.channels == 6
        assert info.sample_rate == 44100

    def test_unreadable_layout_falls_back(self, settings):
        probe = {"streams": [{"codec_type": "audio", "channels": 0, "sample_rate": "N/A"}]}
        info = parse_probe(probe, settings)
        assert info.channels == 2
        assert info.sample_rate == 48000

    def test_no_audio(self, settings):
        info = parse_probe({"streams": [{"codec_type": "video"}]}, settings)
        assert not info.has_audio

    def test_invalid_frame_rate(self, settings):
        probe = {"streams": [{"codec_type": "video", "r_frame_rate": "0/0"}]}
        assert parse_probe(probe, settings).frame_rate is None

    def test_na_durations(self, settings):
        probe = {
            "streams": [{"codec_type": "video", "duration": "N/A"}],
            "format": {"duration": "N/A"},
        }
        info = parse_probe(probe, settings)
        assert info.video_duration is None
        assert info.container_duration is None


class TestRequirements:
    def test_duration_prefers_container(self):
        info = MediaInfo(container_duration=10.0, video_duration=9.0)
        assert require_duration(info, Path("x")) == 10.0

    def test_duration_falls_back_to_streams(self):
        info = MediaInfo(video_duration=9.0, audio_duration=9.5)
        assert require_duration(info, Path("x")) == 9.5

    def test_duration_missing_is_fatal(self):
        with pytest.raises(ProbeError, match="duration"):
            require_duration(MediaInfo(), Path("x"))

    def test_frame_rate_missing_is_fatal(self):
        with pytest.raises(ProbeError, match="frame rate"):
            require_frame_rate(MediaInfo(has_video=True), Path("x"))

    def test_frame_rate_needs_video(self):
        with pytest.raises(ProbeError, match="No video"):
            require_frame_rate(MediaInfo(has_video=False), Path("x"))


class TestRunFfprobe:
    def test_parses_json(self, tmp_path, settings):
        f = make_video_file(tmp_path / "a.mp4")
        result = MagicMock(returncode=0, stdout=json.dumps(STEREO_PROBE), stderr="")
        with patch("restora.extractors.probe.subprocess.run", return_value=result) as run:
            assert run_ffprobe(f, settings) == STEREO_PROBE
        assert run.call_args[0][0][0] == "ffprobe"

    def test_nonzero_exit(self, tmp_path, settings):
        f = make_video_file(tmp_path / "a.mp4")
        result = MagicMock(returncode=1, stdout="", stderr="moov atom not found")
        with patch("restora.extractors.probe.subprocess.run", return_value=result):
            with pytest.raises(ProbeError, match="corrupted"):
                run_ffprobe(f, settings)

    def test_timeout(self, tmp_path, settings):
        f = make_video_file(tmp_path / "a.mp4")
        with patch(
            "restora.extractors.probe.subprocess.run",
            side_effect=subprocess.TimeoutExpired("ffprobe", 30),
        ):
            with pytest.raises(ProbeError, match="timed out"):
                run_ffprobe(f, settings)

    def test_ffprobe_missing(self, tmp_path, settings):
        f = make_video_file(tmp_path / "a.mp4")
        with patch("restora.extractors.probe.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(MissingDependencyError):
                run_ffprobe(f, settings)

    def test_missing_file(self, tmp_path, settings):
        with pytest.raises(ProbeError, match="not found"):
            run_ffprobe(tmp_path / "gone.mp4", settings)

    def test_probe_duration(self, tmp_path, settings):
        f = make_video_file(tmp_path / "a.mp4")
        result = MagicMock(returncode=0, stdout=json.dumps(STEREO_PROBE), stderr="")
        with patch("restora.extractors.probe.subprocess.run", return_value=result):
            assert probe_duration(f, settings) == pytest.approx(600.9)
