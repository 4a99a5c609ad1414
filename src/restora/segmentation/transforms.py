"""Per-segment extract -> transform -> encode sub-pipelines."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from restora.models.job import UpscaleParams
from restora.models.segment import Segment
from restora.process.runner import run_tool
from restora.rendering.ffmpeg_builder import INPUT_FRAME_GLOB, FFmpegCommandBuilder
from restora.storage.workspace import SegmentWorkspace
from restora.upscale.realesrgan import RealEsrganUpscaler

logger = logging.getLogger(__name__)


class BaseSegmentTransform(ABC):
    """Renders one segment of the source into a single artifact file."""

    @abstractmethod
    def render(self, segment: Segment, output_path: Path) -> int:
        """Write the processed slice to `output_path`.

        Returns the number of frames rendered; 0 means the slice lies past the
        last decodable frame and nothing was written.
        """
        ...


class UpscaleSegmentTransform(BaseSegmentTransform):
    """JPEG frame dump -> Real-ESRGAN -> H.264 re-encode at the final scale."""

    def __init__(
        self,
        input_path: Path,
        frame_rate: str,
        workspace: SegmentWorkspace,
        upscaler: RealEsrganUpscaler,
        params: UpscaleParams,
        builder: FFmpegCommandBuilder | None = None,
        runner: Callable[..., list[str]] = run_tool,
    ):
        self.input_path = input_path
        self.frame_rate = frame_rate
        self.workspace = workspace
        self.upscaler = upscaler
        self.params = params
        self.builder = builder or FFmpegCommandBuilder()
        self.runner = runner

    def render(self, segment: Segment, output_path: Path) -> int:
        ws = self.workspace
        self.runner(
            self.builder.extract_frames(
                self.input_path,
                segment.start,
                segment.length,
                ws.frames_dir,
                self.params.jpeg_quality,
            ),
            component="extract_frames",
        )
        frame_count = len(list(ws.frames_dir.glob(INPUT_FRAME_GLOB)))
        if frame_count == 0:
            return 0

        logger.info("Segment %03d: upscaling %d frames", segment.index, frame_count)
        self.upscaler.upscale(ws.frames_dir, ws.upscaled_dir, frame_count)

        logger.info("Segment %03d: encoding at %dx", segment.index, self.params.final_scale)
        self.runner(
            self.builder.encode_sequence(
                ws.upscaled_dir,
                self.frame_rate,
                output_path,
                internal_scale=self.params.internal_scale,
                final_scale=self.params.final_scale,
                crf=self.params.crf,
                preset=self.params.preset,
            ),
            component="encode_segment",
        )
        return frame_count
