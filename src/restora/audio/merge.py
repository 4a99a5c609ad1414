"""Stream merge stage: per-channel pipes back into one multichannel track."""

from collections.abc import Sequence
from pathlib import Path

from restora.process.supervisor import ChannelPipe, ManagedProcess, ProcessSupervisor
from restora.rendering.ffmpeg_builder import FFmpegCommandBuilder


class StreamMergeStage:
    """ffmpeg reading every channel pipe, in index order, alongside the source video.

    Must be spawned before any channel worker: it inherits all read ends at
    spawn time, so no worker can block waiting for its reader to attach.
    """

    def __init__(
        self,
        video_source: Path,
        sample_rate: int,
        output_path: Path,
        builder: FFmpegCommandBuilder,
        threads: int = 0,
    ):
        self.video_source = video_source
        self.sample_rate = sample_rate
        self.output_path = output_path
        self.builder = builder
        self.threads = threads

    def command(self, pipes: Sequence[ChannelPipe]) -> list[str]:
        return self.builder.merge_channels(
            self.video_source,
            [pipe.reader_url for pipe in pipes],
            self.sample_rate,
            self.output_path,
            threads=self.threads,
        )

    def spawn(self, supervisor: ProcessSupervisor, pipes: Sequence[ChannelPipe]) -> ManagedProcess:
        proc = supervisor.spawn(
            "merge", self.command(pipes), pass_fds=[pipe.read_fd for pipe in pipes]
        )
        for pipe in pipes:
            pipe.close_reader()
        return proc
