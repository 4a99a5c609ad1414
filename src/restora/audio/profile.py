"""Per-channel noise profile construction."""

import logging
from pathlib import Path

from restora.config import Settings, get_settings
from restora.models.audio import NoiseProfile
from restora.models.errors import StageToolError
from restora.models.job import DenoiseParams
from restora.process.supervisor import ProcessSupervisor
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder

logger = logging.getLogger(__name__)


class NoiseProfileBuilder:
    """Builds one sox noise profile per channel from the sample window."""

    def __init__(
        self,
        input_path: Path,
        sample_rate: int,
        params: DenoiseParams,
        work_dir: Path,
        *,
        builder: FFmpegCommandBuilder | None = None,
        settings: Settings | None = None,
    ):
        self.input_path = input_path
        self.sample_rate = sample_rate
        self.params = params
        self.work_dir = work_dir
        self.settings = settings or get_settings()
        self.builder = builder or FFmpegCommandBuilder(self.settings)

    def commands(self, channel_index: int, profile_path: Path, isolate: bool) -> list[list[str]]:
        extract = self.builder.extract_channel_raw(
            self.input_path,
            channel_index if isolate else None,
            self.sample_rate,
            threads=self.params.threads,
            start=self.params.noise_start,
            duration=self.params.noise_duration,
        )
        return [extract, self.builder.sox_noiseprof(self.sample_rate, profile_path)]

    def build_profile(self, channel_index: int, isolate: bool = True) -> NoiseProfile:
        """Profile one channel; `isolate=False` takes a:0 as-is (mono input)."""
        profile_path = self.work_dir / f"noise.{channel_index}.prof"
        logger.info(
            "Channel %d: profiling noise from %s +%s",
            channel_index,
            self.params.noise_start,
            self.params.noise_duration,
        )
        with ProcessSupervisor.from_settings(self.work_dir / "logs", self.settings) as sup:
            sup.spawn_chain(
                f"profile-{channel_index}", self.commands(channel_index, profile_path, isolate)
            )
            sup.wait_all()

        if not profile_path.is_file() or profile_path.stat().st_size == 0:
            raise StageToolError(
                f"Noise profile for channel {channel_index} is empty; "
                "is the sample window inside the recording?",
                component="noiseprof",
                details={"profile": str(profile_path), "window": self.params.noise_start},
            )
        return NoiseProfile(
            channel_index=channel_index,
            path=profile_path,
            window_start=self.params.noise_start,
            window_duration=self.params.noise_duration,
        )
