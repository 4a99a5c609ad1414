"""Tests for the resumable segmentation controller."""

from pathlib import Path

import pytest

from restora.models.errors import ValidationError
from restora.models.segment import SegmentMarker, SegmentPlan
from restora.segmentation.controller import (
    SegmentationController,
    count_segments,
    iter_segment_bounds,
)
from restora.storage.workspace import SegmentWorkspace
from tests.conftest import FakeTransform, fake_prober


class FakeRunner:
    """Records commands; materializes the output file of concat/mux."""

    def __init__(self):
        self.calls: list[tuple[str, list[str]]] = []

    def __call__(self, cmd, component="stage", **kwargs):
        self.calls.append((component, [str(c) for c in cmd]))
        Path(cmd[-1]).write_bytes(component.encode())
        return []


@pytest.fixture
def workspace(tmp_path):
    return SegmentWorkspace(tmp_path / "work", tmp_path / "tape.mp4")


def make_controller(workspace, transform=None, segment_seconds=60, runner=None, on_segment=None):
    controller = SegmentationController(
        workspace,
        transform or FakeTransform(),
        segment_seconds,
        prober=fake_prober,
        runner=runner or FakeRunner(),
        on_segment=on_segment,
    )
    controller.prepare()
    return controller


class TestTiling:
    def test_125_over_60(self):
        assert list(iter_segment_bounds(125, 60)) == [(0, 0, 60), (1, 60, 60), (2, 120, 5)]

    def test_exact_multiple(self):
        assert [s for _, s, _ in iter_segment_bounds(120, 60)] == [0, 60]

    def test_shorter_than_one_segment(self):
        assert list(iter_segment_bounds(7.5, 120)) == [(0, 0, 7.5)]

    def test_invalid_length(self):
        with pytest.raises(ValidationError):
            list(iter_segment_bounds(10, 0))

    def test_count(self):
        assert count_segments(125, 60) == 3
        assert count_segments(0, 60) == 0


class TestRun:
    def test_renders_every_segment(self, workspace):
        transform = FakeTransform()
        controller = make_controller(workspace, transform)
        artifacts = controller.run(125)
        assert transform.rendered == [0, 1, 2]
        assert [p.name for p in artifacts] == ["seg_000.mp4", "seg_001.mp4", "seg_002.mp4"]
        marker = workspace.load_marker(2)
        assert marker.duration == 5.0
        assert marker.size_bytes == workspace.artifact_path(2).stat().st_size
        assert not workspace.partial_path(2).exists()

    def test_second_run_is_idempotent(self, workspace):
        make_controller(workspace).run(125)
        before = {p.name: p.read_bytes() for _, p in workspace.list_artifacts()}
        transform = FakeTransform()
        make_controller(workspace, transform).run(125)
        assert transform.rendered == []
        after = {p.name: p.read_bytes() for _, p in workspace.list_artifacts()}
        assert before == after

    def test_resume_after_failure(self, workspace):
        with pytest.raises(RuntimeError):
            make_controller(workspace, FakeTransform(fail_on={1})).run(125)
        assert [i for i, _ in workspace.list_artifacts()] == [0]
        assert not workspace.partial_path(1).exists()

        transform = FakeTransform()
        controller = make_controller(workspace, transform)
        state = controller.scan_resume_state()
        assert state.next_index == 1
        assert state.start_offset == 60
        controller.run(125)
        assert transform.rendered == [1, 2]

    def test_truncated_artifact_without_marker_is_redone(self, workspace):
        make_controller(workspace).run(125)
        # Simulate a crash after rename but before the marker landed.
        workspace.marker_path(1).unlink()
        transform = FakeTransform()
        make_controller(workspace, transform).run(125)
        assert transform.rendered == [1]

    def test_size_mismatch_is_redone(self, workspace):
        make_controller(workspace).run(125)
        workspace.artifact_path(2).write_bytes(b"segment 2 5.0 plus garbage")
        transform = FakeTransform()
        make_controller(workspace, transform).run(125)
        assert transform.rendered == [2]

    def test_unprobeable_artifact_is_redone(self, workspace):
        make_controller(workspace).run(125)
        artifact = workspace.artifact_path(0)
        artifact.write_bytes(b"x" * artifact.stat().st_size)
        transform = FakeTransform()
        make_controller(workspace, transform).run(125)
        assert transform.rendered == [0]

    def test_zero_frames_ends_stream(self, workspace):
        transform = FakeTransform(empty_from=2)
        artifacts = make_controller(workspace, transform).run(125)
        assert len(artifacts) == 2
        assert not workspace.artifact_path(2).exists()

    def test_on_segment_callback(self, workspace):
        seen = []
        controller = make_controller(
            workspace, on_segment=lambda seg, total: seen.append((seg.index, total))
        )
        controller.run(125)
        assert seen == [(0, 3), (1, 3), (2, 3)]

    def test_frame_dirs_purged(self, workspace):
        make_controller(workspace).run(60)
        assert not workspace.frames_dir.exists()
        assert not workspace.upscaled_dir.exists()


class TestPlan:
    def test_segment_length_change_rejected(self, workspace):
        make_controller(workspace, segment_seconds=60).run(125)
        controller = SegmentationController(
            workspace, FakeTransform(), 30, prober=fake_prober, runner=FakeRunner()
        )
        with pytest.raises(ValidationError, match="segmented at 60s"):
            controller.prepare()

    def test_reset_allows_new_length(self, workspace):
        make_controller(workspace, segment_seconds=60).run(125)
        transform = FakeTransform()
        controller = SegmentationController(
            workspace, transform, 30, prober=fake_prober, runner=FakeRunner()
        )
        controller.prepare(reset=True)
        controller.run(125)
        assert transform.rendered == [0, 1, 2, 3, 4]
        assert workspace.load_plan() == SegmentPlan(input_name="tape.mp4", segment_seconds=30)


class TestFinalize:
    def test_concat_and_mux(self, workspace, tmp_path):
        runner = FakeRunner()
        controller = make_controller(workspace, runner=runner)
        controller.run(125)
        output = tmp_path / "tape-x2.mp4"
        controller.finalize(output, tmp_path / "tape.mp4")

        assert [c for c, _ in runner.calls] == ["concat", "mux"]
        manifest = workspace.manifest_path.read_text().splitlines()
        assert manifest == [f"file '{workspace.artifact_path(i)}'" for i in range(3)]
        assert output.read_bytes() == b"mux"
        assert not output.with_name("tape-x2.partial.mp4").exists()

    def test_no_audio_moves_concat(self, workspace, tmp_path):
        runner = FakeRunner()
        controller = make_controller(workspace, runner=runner)
        controller.run(60)
        output = tmp_path / "out.mp4"
        controller.finalize(output, None)
        assert [c for c, _ in runner.calls] == ["concat"]
        assert output.read_bytes() == b"concat"

    def test_empty_workspace(self, workspace, tmp_path):
        controller = make_controller(workspace)
        with pytest.raises(ValidationError, match="No segment files"):
            controller.finalize(tmp_path / "out.mp4", None)

    def test_gap_rejected(self, workspace, tmp_path):
        controller = make_controller(workspace)
        controller.run(125)
        workspace.discard_segment(1)
        with pytest.raises(ValidationError, match=r"missing.*\[1\]"):
            controller.finalize(tmp_path / "out.mp4", None)

    def test_incomplete_rejected(self, workspace, tmp_path):
        controller = make_controller(workspace)
        controller.run(125)
        workspace.marker_path(0).unlink()
        with pytest.raises(ValidationError, match="completion check"):
            controller.finalize(tmp_path / "out.mp4", None)

    def test_marker_survives_reload(self, workspace):
        make_controller(workspace).run(60)
        assert workspace.load_marker(0) == SegmentMarker(
            index=0, duration=60.0, size_bytes=workspace.artifact_path(0).stat().st_size
        )


class CountingProber:
    def __init__(self):
        self.calls: list[str] = []

    def __call__(self, path):
        self.calls.append(path.name)
        return fake_prober(path)


class TestProbeCount:
    def test_resumed_segments_probed_once(self, workspace, tmp_path):
        make_controller(workspace).run(125)
        prober = CountingProber()
        controller = SegmentationController(
            workspace, FakeTransform(), 60, prober=prober, runner=FakeRunner()
        )
        controller.prepare()
        controller.run(125)
        controller.finalize(tmp_path / "out.mp4", None)
        assert sorted(prober.calls) == ["seg_000.mp4", "seg_001.mp4", "seg_002.mp4"]

    def test_rendered_segments_not_reprobed_by_finalize(self, workspace, tmp_path):
        prober = CountingProber()
        controller = SegmentationController(
            workspace, FakeTransform(), 60, prober=prober, runner=FakeRunner()
        )
        controller.prepare()
        controller.run(125)
        controller.finalize(tmp_path / "out.mp4", None)
        assert prober.calls == [f"seg_{i:03d}.partial.mp4" for i in range(3)]
