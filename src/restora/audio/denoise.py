"""Channel-split streaming denoise.

Each channel of a:0 is profiled from a short noise window, then filtered in
its own `ffmpeg | sox` chain. The filtered channels stream through anonymous
pipes into a single ffmpeg that merges them in index order and muxes them with
the untouched source video. Nothing but the final file touches the disk.
"""

import logging
import os
from pathlib import Path

from restora.audio.channel_worker import ChannelWorker
from restora.audio.merge import StreamMergeStage
from restora.audio.profile import NoiseProfileBuilder
from restora.config import Settings, get_settings
from restora.extractors.validators import validate_input_video, validate_output_path
from restora.models.audio import ChannelStream
from restora.models.errors import ProbeError
from restora.models.job import DenoiseParams
from restora.models.media import MediaInfo
from restora.process.supervisor import ProcessSupervisor
from restora.process.toolchain import DENOISE_TOOLS, resolve_toolchain
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder
from restora.storage.temp_store import TempFileManager

logger = logging.getLogger(__name__)


def partial_output_path(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.stem}.partial{output_path.suffix}")


class DenoisePipeline:
    """Runs the parallel denoise for one recording."""

    def __init__(
        self,
        settings: Settings | None = None,
        temp_store: TempFileManager | None = None,
        builder: FFmpegCommandBuilder | None = None,
    ):
        self.settings = settings or get_settings()
        self.temp_store = temp_store or TempFileManager(self.settings.temp_dir)
        self.builder = builder or FFmpegCommandBuilder(self.settings)

    def run(self, input_path: Path, output_path: Path, params: DenoiseParams) -> Path:
        resolve_toolchain(DENOISE_TOOLS, self.settings)
        info = validate_input_video(input_path, self.settings)
        validate_output_path(input_path, output_path)
        if not info.has_audio:
            raise ProbeError(
                f"No audio stream (a:0) found in {input_path}",
                details={"file": str(input_path)},
            )

        logger.info(
            "Denoise %s -> %s: %d ch @ %d Hz, noise window %s +%s, nr %.2f, norm %.1f dB",
            input_path,
            output_path,
            info.channels,
            info.sample_rate,
            params.noise_start,
            params.noise_duration,
            params.nr_amount,
            params.norm_db,
        )

        partial = partial_output_path(output_path)
        with self.temp_store.scoped_dir("denoise") as work_dir:
            try:
                if info.channels == 1:
                    self._run_mono(input_path, partial, info, params, work_dir)
                else:
                    self._run_parallel(input_path, partial, info, params, work_dir)
                os.replace(partial, output_path)
            finally:
                partial.unlink(missing_ok=True)

        logger.info("Denoised output: %s", output_path)
        return output_path

    def _profiler(
        self, input_path: Path, info: MediaInfo, params: DenoiseParams, work_dir: Path
    ) -> NoiseProfileBuilder:
        return NoiseProfileBuilder(
            input_path,
            info.sample_rate,
            params,
            work_dir,
            builder=self.builder,
            settings=self.settings,
        )

    def _run_mono(
        self,
        input_path: Path,
        output_path: Path,
        info: MediaInfo,
        params: DenoiseParams,
        work_dir: Path,
    ) -> None:
        profile = self._profiler(input_path, info, params, work_dir).build_profile(0, isolate=False)
        channel = ChannelStream(index=0, sample_rate=info.sample_rate, profile=profile)
        worker = ChannelWorker(input_path, channel, params, self.builder, isolate=False)
        mux = self.builder.mux_mono_stdin(
            input_path, info.sample_rate, output_path, threads=params.threads
        )

        logger.info("Mono input: single filter chain")
        with ProcessSupervisor.from_settings(work_dir / "logs", self.settings) as sup:
            sup.spawn_chain("mono", [*worker.commands(), mux])
            sup.wait_all()

    def _run_parallel(
        self,
        input_path: Path,
        output_path: Path,
        info: MediaInfo,
        params: DenoiseParams,
        work_dir: Path,
    ) -> None:
        profiler = self._profiler(input_path, info, params, work_dir)
        channels = [
            ChannelStream(
                index=i,
                sample_rate=info.sample_rate,
                profile=profiler.build_profile(i),
            )
            for i in range(info.channels)
        ]

        merge = StreamMergeStage(
            input_path, info.sample_rate, output_path, self.builder, threads=params.threads
        )
        logger.info("Filtering %d channels in parallel", len(channels))
        with ProcessSupervisor.from_settings(work_dir / "logs", self.settings) as sup:
            pipes = [sup.open_pipe(f"channel-{ch.index}") for ch in channels]
            merge.spawn(sup, pipes)
            for channel, pipe in zip(channels, pipes):
                ChannelWorker(input_path, channel, params, self.builder).spawn(sup, pipe)
            sup.wait_all()


def denoise_video(
    input_path: Path,
    output_path: Path,
    params: DenoiseParams | None = None,
    settings: Settings | None = None,
) -> Path:
    """Denoise every channel of `input_path` into `output_path`."""
    settings = settings or get_settings()
    params = params or DenoiseParams.from_settings(settings)
    return DenoisePipeline(settings).run(input_path, output_path, params)
