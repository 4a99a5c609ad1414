"""Resumable segmentation controller.

The job timeline is cut into fixed-length segments, each rendered to its own
artifact under the workspace's `segments/` directory. An artifact counts as
complete only when its sidecar marker exists, the recorded size matches, and
the file still probes with a positive duration, so a crash mid-encode never
leaves a truncated segment that a later run would accept.
"""

import logging
import math
import os
from collections.abc import Callable, Iterator
from pathlib import Path

from restora.extractors.probe import probe_duration
from restora.models.errors import ProbeError, ValidationError
from restora.models.segment import (
    ResumeState,
    Segment,
    SegmentMarker,
    SegmentPlan,
    SegmentStatus,
)
from restora.process.runner import run_tool
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder
from restora.segmentation.transforms import BaseSegmentTransform
from restora.storage.workspace import SegmentWorkspace

logger = logging.getLogger(__name__)


def iter_segment_bounds(
    total_duration: float, segment_length: float
) -> Iterator[tuple[int, float, float]]:
    """Yield (index, start, length) tiling [0, total_duration) exactly."""
    if segment_length <= 0:
        raise ValidationError(f"Segment length must be > 0, got {segment_length}")
    index = 0
    start = 0.0
    while start < total_duration:
        yield index, start, min(segment_length, total_duration - start)
        index += 1
        start = index * segment_length


def count_segments(total_duration: float, segment_length: float) -> int:
    if total_duration <= 0:
        return 0
    return math.ceil(total_duration / segment_length)


class SegmentationController:
    """Drives per-segment rendering with resume, then joins the artifacts."""

    def __init__(
        self,
        workspace: SegmentWorkspace,
        transform: BaseSegmentTransform,
        segment_seconds: int,
        *,
        prober: Callable[[Path], float] = probe_duration,
        builder: FFmpegCommandBuilder | None = None,
        runner: Callable[..., list[str]] = run_tool,
        on_segment: Callable[[Segment, int], None] | None = None,
    ):
        self.workspace = workspace
        self.transform = transform
        self.segment_seconds = segment_seconds
        self.prober = prober
        self.builder = builder or FFmpegCommandBuilder()
        self.runner = runner
        self.on_segment = on_segment
        self._verified: set[int] = set()

    def prepare(self, reset: bool = False) -> None:
        """Create the workspace and pin the segment length it was started with."""
        ws = self.workspace
        ws.ensure()
        if reset:
            ws.reset_segments()
        self._verified.clear()
        plan = ws.load_plan()
        if plan is not None and plan.segment_seconds != self.segment_seconds:
            raise ValidationError(
                f"Workspace {ws.root} was segmented at {plan.segment_seconds}s but "
                f"{self.segment_seconds}s was requested; rerun with the original length "
                "or reset the segments to start over",
                details={
                    "workspace": str(ws.root),
                    "existing_segment_seconds": plan.segment_seconds,
                    "requested_segment_seconds": self.segment_seconds,
                },
            )
        if plan is None:
            ws.save_plan(
                SegmentPlan(input_name=ws.input_path.name, segment_seconds=self.segment_seconds)
            )

    def iter_segments(self, total_duration: float) -> Iterator[Segment]:
        for index, start, length in iter_segment_bounds(total_duration, self.segment_seconds):
            yield Segment(
                index=index,
                start=start,
                length=length,
                artifact_path=self.workspace.artifact_path(index),
            )

    def _marker_matches(self, index: int) -> bool:
        artifact = self.workspace.artifact_path(index)
        if not artifact.is_file():
            return False
        size = artifact.stat().st_size
        if size == 0:
            return False
        marker = self.workspace.load_marker(index)
        return marker is not None and marker.size_bytes == size

    def _validated_duration(self, index: int) -> float | None:
        if not self._marker_matches(index):
            return None
        artifact = self.workspace.artifact_path(index)
        try:
            duration = self.prober(artifact)
        except ProbeError as exc:
            logger.warning("Segment %03d failed to probe: %s", index, exc.message)
            return None
        return duration if duration > 0 else None

    def is_complete(self, index: int) -> bool:
        return self._validated_duration(index) is not None

    def _still_complete(self, index: int) -> bool:
        # Segments already probed by this controller only need their marker rechecked.
        if index in self._verified:
            return self._marker_matches(index)
        return self.is_complete(index)

    def scan_resume_state(self) -> ResumeState:
        """Sum whole-second durations of the contiguous run of complete segments."""
        completed: list[int] = []
        offset = 0
        for index, _path in self.workspace.list_artifacts():
            if index != len(completed):
                break
            duration = self._validated_duration(index)
            if duration is None:
                break
            completed.append(index)
            self._verified.add(index)
            offset += math.ceil(duration)
        return ResumeState(start_offset=offset, next_index=len(completed), completed=completed)

    def process_segment(self, segment: Segment) -> Path | None:
        """Render one segment to its artifact; None when past the last frame.

        The encoder writes a partial file that is renamed into place only once
        it probes cleanly; the completion marker is written last.
        """
        ws = self.workspace
        partial = ws.partial_path(segment.index)
        partial.unlink(missing_ok=True)
        ws.reset_frame_dirs()
        segment.status = SegmentStatus.IN_PROGRESS
        finished = False
        try:
            frames = self.transform.render(segment, partial)
            if frames == 0:
                logger.info("Segment %03d: no frames extracted; end of stream", segment.index)
                segment.status = SegmentStatus.PENDING
                finished = True
                return None
            duration = self.prober(partial)
            size = partial.stat().st_size
            os.replace(partial, segment.artifact_path)
            ws.save_marker(SegmentMarker(index=segment.index, duration=duration, size_bytes=size))
            self._verified.add(segment.index)
            segment.status = SegmentStatus.COMPLETE
            finished = True
            return segment.artifact_path
        finally:
            ws.purge_frame_dirs()
            if not finished:
                partial.unlink(missing_ok=True)
                logger.error("Segment %03d failed; partial output removed", segment.index)

    def run(self, total_duration: float) -> list[Path]:
        """Render every segment not already complete. Returns artifacts in order."""
        total = count_segments(total_duration, self.segment_seconds)
        resume = self.scan_resume_state()
        if resume.next_index:
            logger.info(
                "Resuming: %d segment(s) already complete (~%ds)",
                resume.next_index,
                resume.start_offset,
            )
        artifacts: list[Path] = []
        for segment in self.iter_segments(total_duration):
            if segment.index < resume.next_index or self.is_complete(segment.index):
                self._verified.add(segment.index)
                segment.status = SegmentStatus.COMPLETE
                logger.info(
                    "Segment %03d/%03d: reused %s",
                    segment.index,
                    total - 1,
                    segment.artifact_path.name,
                )
                artifacts.append(segment.artifact_path)
            else:
                # A finalized name without a valid marker is a leftover from an interrupted run.
                self.workspace.discard_segment(segment.index)
                logger.info(
                    "Segment %03d/%03d: processing [%gs, %gs)",
                    segment.index,
                    total - 1,
                    segment.start,
                    segment.end,
                )
                path = self.process_segment(segment)
                if path is None:
                    break
                artifacts.append(path)
            if self.on_segment is not None:
                self.on_segment(segment, total)
        return artifacts

    def finalize(self, output_path: Path, audio_source: Path | None) -> Path:
        """Concatenate all artifacts by stream copy and mux the source audio."""
        ws = self.workspace
        artifacts = ws.list_artifacts()
        if not artifacts:
            raise ValidationError(f"No segment files found in {ws.segments_dir}")
        indices = [index for index, _ in artifacts]
        missing = sorted(set(range(indices[-1] + 1)) - set(indices))
        if missing:
            raise ValidationError(
                f"Segments missing from {ws.segments_dir}: {missing}",
                details={"missing": missing},
            )
        incomplete = [index for index in indices if not self._still_complete(index)]
        if incomplete:
            raise ValidationError(
                f"Segments failed the completion check: {incomplete}; rerun to reprocess them",
                details={"incomplete": incomplete},
            )

        paths = [path for _, path in artifacts]
        logger.info("Concatenating %d segment(s) into %s", len(paths), ws.concat_path)
        ws.manifest_path.write_text(self.builder.build_concat_manifest(paths))
        self.runner(self.builder.concat(ws.manifest_path, ws.concat_path), component="concat")

        partial = output_path.with_name(f"{output_path.stem}.partial{output_path.suffix}")
        try:
            if audio_source is not None:
                logger.info("Muxing audio from %s into %s", audio_source, output_path)
                self.runner(
                    self.builder.mux_audio(ws.concat_path, audio_source, partial),
                    component="mux",
                )
                os.replace(partial, output_path)
            else:
                os.replace(ws.concat_path, output_path)
        finally:
            partial.unlink(missing_ok=True)
        return output_path
