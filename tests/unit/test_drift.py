"""Tests for drift measurement and tempo correction."""

from pathlib import Path
from unittest.mock import patch

import pytest

from restora.models.errors import DriftOutOfRangeError, ProbeError
from restora.models.media import MediaInfo
from restora.sync.drift import compute_tempo, correct_drift, durations_for_sync
from tests.conftest import make_video_file


class TestComputeTempo:
    def test_equal_durations_skip(self, settings):
        decision = compute_tempo(10.0, 10.0, settings)
        assert decision.factor == 1.0
        assert decision.apply is False

    def test_half_permille_applied(self, settings):
        decision = compute_tempo(10.05, 10.0, settings)
        assert decision.factor == pytest.approx(1.005)
        assert decision.drift_percent == pytest.approx(0.5)
        assert decision.apply is True

    def test_below_threshold_skipped(self, settings):
        assert compute_tempo(10.004, 10.0, settings).apply is False

    def test_audio_shorter(self, settings):
        decision = compute_tempo(9.9, 10.0, settings)
        assert decision.factor == pytest.approx(0.99)
        assert decision.apply

    def test_out_of_range_rejected(self, settings):
        with pytest.raises(DriftOutOfRangeError) as exc_info:
            compute_tempo(25.0, 10.0, settings)
        assert exc_info.value.details["tempo"] == pytest.approx(2.5)

    def test_too_slow_rejected(self, settings):
        with pytest.raises(DriftOutOfRangeError):
            compute_tempo(4.0, 10.0, settings)

    def test_zero_video_duration(self, settings):
        with pytest.raises(ProbeError):
            compute_tempo(10.0, 0.0, settings)


class TestDurationsForSync:
    def test_per_stream(self, tmp_path):
        info = MediaInfo(audio_duration=10.05, video_duration=10.0, container_duration=10.1)
        assert durations_for_sync(info, tmp_path) == (10.05, 10.0)

    def test_container_fallback(self, tmp_path):
        info = MediaInfo(audio_duration=None, video_duration=10.0, container_duration=10.1)
        assert durations_for_sync(info, tmp_path) == (10.1, 10.0)

    def test_nothing_available(self, tmp_path):
        with pytest.raises(ProbeError):
            durations_for_sync(MediaInfo(), tmp_path)


class TestCorrectDrift:
    @pytest.fixture
    def patched(self):
        with patch("restora.sync.drift.resolve_toolchain"), patch(
            "restora.sync.drift.probe_media"
        ) as probe, patch("restora.sync.drift.run_tool") as run:
            yield probe, run

    def test_skip_returns_input(self, tmp_path, settings, patched):
        probe, run = patched
        probe.return_value = MediaInfo(
            has_video=True, has_audio=True, audio_duration=10.0, video_duration=10.0
        )
        src = make_video_file(tmp_path / "in-NR.mp4")
        out = tmp_path / "in-NR-sync.mp4"
        assert correct_drift(src, out, settings) == src
        run.assert_not_called()
        assert not out.exists()

    def test_applies_atempo(self, tmp_path, settings, patched):
        probe, run = patched
        probe.return_value = MediaInfo(
            has_video=True, has_audio=True, audio_duration=10.05, video_duration=10.0
        )

        def fake_run(cmd, component, monitor):
            assert component == "sync"
            assert "atempo=1.00500000,aresample=async=1:first_pts=0" in cmd
            Path(cmd[-1]).write_bytes(b"synced")
            monitor.finish()
            return []

        run.side_effect = fake_run
        src = make_video_file(tmp_path / "in-NR.mp4")
        out = tmp_path / "in-NR-sync.mp4"
        progress = []
        assert correct_drift(src, out, settings, progress.append) == out
        assert out.read_bytes() == b"synced"
        assert not (tmp_path / "in-NR-sync.partial.mp4").exists()
        assert progress[-1] == 1.0

    def test_failure_leaves_no_output(self, tmp_path, settings, patched):
        probe, run = patched
        probe.return_value = MediaInfo(
            has_video=True, has_audio=True, audio_duration=10.05, video_duration=10.0
        )

        def fake_run(cmd, component, monitor):
            Path(cmd[-1]).write_bytes(b"half")
            raise RuntimeError("ffmpeg died")

        run.side_effect = fake_run
        src = make_video_file(tmp_path / "in.mp4")
        out = tmp_path / "out.mp4"
        with pytest.raises(RuntimeError):
            correct_drift(src, out, settings)
        assert not out.exists()
        assert not (tmp_path / "out.partial.mp4").exists()

    def test_needs_audio(self, tmp_path, settings, patched):
        probe, _ = patched
        probe.return_value = MediaInfo(has_video=True, has_audio=False)
        src = make_video_file(tmp_path / "in.mp4")
        with pytest.raises(ProbeError, match="a:0"):
            correct_drift(src, tmp_path / "out.mp4", settings)
