"""Resumable segmented upscale of a whole recording."""

import logging
from collections.abc import Callable
from pathlib import Path

from restora.config import Settings, get_settings
from restora.extractors.probe import require_duration, require_frame_rate
from restora.extractors.validators import validate_input_video, validate_output_path
from restora.models.job import Job, UpscaleParams
from restora.models.segment import Segment
from restora.process.toolchain import UPSCALE_TOOLS, resolve_toolchain
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder
from restora.segmentation.controller import SegmentationController
from restora.segmentation.transforms import UpscaleSegmentTransform
from restora.storage.workspace import SegmentWorkspace
from restora.upscale.realesrgan import RealEsrganUpscaler

logger = logging.getLogger(__name__)


def upscale_video(
    input_path: Path,
    output_path: Path,
    *,
    segment_seconds: int | None = None,
    params: UpscaleParams | None = None,
    reset_segments: bool = False,
    work_root: Path | None = None,
    settings: Settings | None = None,
    on_segment: Callable[[Segment, int], None] | None = None,
    job: Job | None = None,
) -> Path:
    """Upscale `input_path` segment by segment, resuming prior progress.

    With `job` given, its segment length, upscale parameters and work dir are
    used and `segment_seconds`, `params` and `work_root` are ignored.
    """
    settings = settings or get_settings()
    if job is None:
        job = Job.from_settings(
            input_path.stem,
            input_path,
            output_path,
            settings,
            segment_seconds=segment_seconds,
            upscale=params,
            work_root=work_root,
        )
    params = job.upscale
    segment_seconds = job.segment_seconds
    toolchain = resolve_toolchain(UPSCALE_TOOLS, settings)

    info = validate_input_video(input_path, settings)
    validate_output_path(input_path, output_path)
    duration = require_duration(info, input_path)
    frame_rate = require_frame_rate(info, input_path)

    workspace = SegmentWorkspace.for_job(job, input_path)
    logger.info(
        "Upscale %s -> %s: %.2fs @ %s fps, %ds segments, %s (internal %dx, final %dx), "
        "tile %d, threads %s, crf %d, work dir %s",
        input_path,
        output_path,
        duration,
        frame_rate,
        segment_seconds,
        params.model_name,
        params.internal_scale,
        params.final_scale,
        params.tile_size,
        params.threads,
        params.crf,
        workspace.root,
    )

    builder = FFmpegCommandBuilder(settings)
    upscaler = RealEsrganUpscaler(
        toolchain.realesrgan or settings.realesrgan_bin, toolchain.models_dir, params
    )
    transform = UpscaleSegmentTransform(
        input_path, frame_rate, workspace, upscaler, params, builder=builder
    )
    controller = SegmentationController(
        workspace, transform, segment_seconds, builder=builder, on_segment=on_segment
    )
    controller.prepare(reset=reset_segments)
    controller.run(duration)
    controller.finalize(output_path, input_path if info.has_audio else None)

    logger.info("Final upscaled file: %s", output_path)
    logger.info("Work dir (for resume or inspection): %s", workspace.root)
    return output_path
