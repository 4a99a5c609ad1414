"""Persistent per-input workspace for resumable segment processing."""

import logging
import os
import re
import shutil
from pathlib import Path

from pydantic import BaseModel

from restora.models.job import Job
from restora.models.segment import SegmentMarker, SegmentPlan

logger = logging.getLogger(__name__)

SEGMENT_GLOB = "seg_*.mp4"
_SEGMENT_RE = re.compile(r"^seg_(\d+)\.mp4$")


def write_json_atomic(path: Path, model: BaseModel) -> Path:
    """Write a model as JSON via a temp file and rename."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(model.model_dump_json(indent=2))
    os.replace(tmp, path)
    return path


class SegmentWorkspace:
    """Layout `<work_root>/<input_stem>/{frames, frames_up, segments}`."""

    def __init__(self, work_root: Path, input_path: Path, *, root: Path | None = None):
        self.input_path = input_path
        self.root = root or work_root / input_path.stem
        self.frames_dir = self.root / "frames"
        self.upscaled_dir = self.root / "frames_up"
        self.segments_dir = self.root / "segments"
        self.plan_path = self.segments_dir / "plan.json"
        self.manifest_path = self.root / "segments.txt"
        self.concat_path = self.root / "video_concat.mp4"

    @classmethod
    def for_job(cls, job: Job, source: Path) -> "SegmentWorkspace":
        """Workspace at `job.work_dir` for segmenting `source`."""
        return cls(job.work_root, source, root=job.work_dir)

    def ensure(self) -> None:
        for d in (self.frames_dir, self.upscaled_dir, self.segments_dir):
            d.mkdir(parents=True, exist_ok=True)

    # -- segment artifacts ------------------------------------------------------

    def artifact_path(self, index: int) -> Path:
        return self.segments_dir / f"seg_{index:03d}.mp4"

    def partial_path(self, index: int) -> Path:
        return self.segments_dir / f"seg_{index:03d}.partial.mp4"

    def marker_path(self, index: int) -> Path:
        return self.segments_dir / f"seg_{index:03d}.done.json"

    def list_artifacts(self) -> list[tuple[int, Path]]:
        """Finalized artifacts as (index, path), sorted by numeric index."""
        if not self.segments_dir.is_dir():
            return []
        found = []
        for path in self.segments_dir.glob(SEGMENT_GLOB):
            match = _SEGMENT_RE.match(path.name)
            if match:
                found.append((int(match.group(1)), path))
        return sorted(found)

    def save_marker(self, marker: SegmentMarker) -> Path:
        return write_json_atomic(self.marker_path(marker.index), marker)

    def load_marker(self, index: int) -> SegmentMarker | None:
        path = self.marker_path(index)
        if not path.exists():
            return None
        try:
            return SegmentMarker.model_validate_json(path.read_text())
        except ValueError:
            logger.warning("Ignoring unreadable completion marker %s", path)
            return None

    def discard_segment(self, index: int) -> None:
        """Remove an artifact, its marker and any partial write."""
        for path in (self.artifact_path(index), self.marker_path(index), self.partial_path(index)):
            path.unlink(missing_ok=True)

    # -- scratch frame directories ----------------------------------------------

    def reset_frame_dirs(self) -> None:
        self.purge_frame_dirs()
        self.frames_dir.mkdir(parents=True, exist_ok=True)
        self.upscaled_dir.mkdir(parents=True, exist_ok=True)

    def purge_frame_dirs(self) -> None:
        shutil.rmtree(self.frames_dir, ignore_errors=True)
        shutil.rmtree(self.upscaled_dir, ignore_errors=True)

    # -- segmentation plan --------------------------------------------------------

    def load_plan(self) -> SegmentPlan | None:
        if not self.plan_path.exists():
            return None
        return SegmentPlan.model_validate_json(self.plan_path.read_text())

    def save_plan(self, plan: SegmentPlan) -> Path:
        self.segments_dir.mkdir(parents=True, exist_ok=True)
        return write_json_atomic(self.plan_path, plan)

    def reset_segments(self) -> None:
        """Delete every segment artifact, marker and the plan."""
        shutil.rmtree(self.segments_dir, ignore_errors=True)
        self.manifest_path.unlink(missing_ok=True)
        self.concat_path.unlink(missing_ok=True)
        self.segments_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Discarded existing segments in %s", self.segments_dir)

    def delete(self) -> None:
        """Remove the whole workspace (explicit cleanup only)."""
        if self.root.exists():
            shutil.rmtree(self.root, ignore_errors=True)
            logger.info(f"Deleted workspace {self.root}")
