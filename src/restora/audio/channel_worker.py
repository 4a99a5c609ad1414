"""Channel worker: one channel, full length, filtered into its pipe."""

from pathlib import Path

from restora.models.audio import ChannelStream
from restora.models.errors import ProcessingError
from restora.models.job import DenoiseParams
from restora.process.supervisor import ChannelPipe, ManagedProcess, ProcessSupervisor
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder


class ChannelWorker:
    """`ffmpeg pan=mono|c0=cN | sox noisered norm` writing raw s16le to a pipe."""

    def __init__(
        self,
        input_path: Path,
        channel: ChannelStream,
        params: DenoiseParams,
        builder: FFmpegCommandBuilder,
        isolate: bool = True,
    ):
        if channel.profile is None:
            raise ProcessingError(
                f"Channel {channel.index} has no noise profile", component="denoise"
            )
        self.input_path = input_path
        self.channel = channel
        self.params = params
        self.builder = builder
        self.isolate = isolate

    @property
    def name(self) -> str:
        return f"channel-{self.channel.index}"

    def commands(self) -> list[list[str]]:
        extract = self.builder.extract_channel_raw(
            self.input_path,
            self.channel.index if self.isolate else None,
            self.channel.sample_rate,
            threads=self.params.threads,
        )
        noisered = self.builder.sox_noisered(
            self.channel.sample_rate,
            self.channel.profile.path,
            self.params.nr_amount,
            self.params.norm_db,
        )
        return [extract, noisered]

    def spawn(self, supervisor: ProcessSupervisor, pipe: ChannelPipe) -> list[ManagedProcess]:
        """Start the worker; the parent's write end is closed once sox holds it."""
        procs = supervisor.spawn_chain(self.name, self.commands(), stdout=pipe.write_fd)
        pipe.close_writer()
        return procs
