"""FFmpeg and SoX command construction."""

import os
from collections.abc import Sequence
from pathlib import Path

from restora.config import Settings, get_settings

INPUT_FRAME_PATTERN = "frame_%08d.jpg"
INPUT_FRAME_GLOB = "frame_*.jpg"

_QUIET = ["-hide_banner", "-loglevel", "error", "-nostdin"]


def resolve_threads(threads: int) -> int:
    return threads if threads > 0 else (os.cpu_count() or 1)


class FFmpegCommandBuilder:
    """Builds argv lists for every ffmpeg / sox invocation of the pipeline."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.ffmpeg = self.settings.ffmpeg_bin
        self.sox = self.settings.sox_bin

    # -- audio ----------------------------------------------------------------

    def build_pan_filter(self, channel_index: int) -> str:
        """Select one channel of a:0 as a mono stream."""
        return f"pan=mono|c0=c{channel_index}"

    def build_amerge_filter(self, channels: int, first_input: int = 1) -> str:
        """Interleave `channels` mono inputs, in input order, into one stream."""
        labels = "".join(f"[{first_input + i}:a:0]" for i in range(channels))
        return f"{labels}amerge=inputs={channels}[am]"

    def extract_channel_raw(
        self,
        input_path: Path,
        channel_index: int | None,
        sample_rate: int,
        *,
        threads: int = 0,
        start: str | None = None,
        duration: str | None = None,
    ) -> list[str]:
        """Decode a:0 (or one channel of it) to s16le mono on stdout."""
        cmd = [self.ffmpeg, *_QUIET, "-y", "-threads", str(resolve_threads(threads))]
        if start is not None:
            cmd.extend(["-ss", start])
        if duration is not None:
            cmd.extend(["-t", duration])
        cmd.extend(["-i", str(input_path), "-map", "a:0", "-vn"])
        if channel_index is not None:
            cmd.extend(["-af", self.build_pan_filter(channel_index)])
        cmd.extend(["-ac", "1", "-ar", str(sample_rate), "-f", "s16le", "-"])
        return cmd

    def _sox_raw_input(self, sample_rate: int) -> list[str]:
        return [
            self.sox,
            "--buffer",
            str(self.settings.sox_buffer),
            "-t",
            "s16",
            "-r",
            str(sample_rate),
            "-c",
            "1",
            "-",
        ]

    def sox_noiseprof(self, sample_rate: int, profile_path: Path) -> list[str]:
        """Read raw mono from stdin and write a noise profile."""
        return [*self._sox_raw_input(sample_rate), "-n", "noiseprof", str(profile_path)]

    def sox_noisered(
        self, sample_rate: int, profile_path: Path, amount: float, norm_db: float
    ) -> list[str]:
        """Filter raw mono from stdin to raw mono on stdout."""
        return [
            *self._sox_raw_input(sample_rate),
            "-t",
            "s16",
            "-",
            "noisered",
            str(profile_path),
            f"{amount:g}",
            "norm",
            f"{norm_db:g}",
        ]

    def merge_channels(
        self,
        video_source: Path,
        pipe_urls: Sequence[str],
        sample_rate: int,
        output_path: Path,
        *,
        threads: int = 0,
    ) -> list[str]:
        """Merge per-channel raw pipes, in order, and mux with the source video."""
        channels = len(pipe_urls)
        queue = str(self.settings.thread_queue_size)
        cmd = [self.ffmpeg, *_QUIET, "-y", "-thread_queue_size", queue, "-i", str(video_source)]
        for url in pipe_urls:
            cmd.extend(
                [
                    "-thread_queue_size",
                    queue,
                    "-f",
                    "s16le",
                    "-ar",
                    str(sample_rate),
                    "-ac",
                    "1",
                    "-i",
                    url,
                ]
            )
        cmd.extend(
            [
                "-filter_complex",
                self.build_amerge_filter(channels),
                "-map",
                "0:v:0",
                "-map",
                "[am]",
                "-c:v",
                "copy",
                "-c:a",
                "aac",
                "-b:a",
                self.settings.denoise_audio_bitrate,
                "-ac",
                str(channels),
                "-threads",
                str(resolve_threads(threads)),
                "-movflags",
                "+faststart",
                str(output_path),
            ]
        )
        return cmd

    def mux_mono_stdin(
        self, video_source: Path, sample_rate: int, output_path: Path, *, threads: int = 0
    ) -> list[str]:
        """Mux filtered mono raw audio from stdin with the source video."""
        queue = str(self.settings.thread_queue_size)
        return [
            self.ffmpeg,
            *_QUIET,
            "-y",
            "-thread_queue_size",
            queue,
            "-i",
            str(video_source),
            "-thread_queue_size",
            queue,
            "-f",
            "s16le",
            "-ar",
            str(sample_rate),
            "-ac",
            "1",
            "-i",
            "-",
            "-map",
            "0:v:0",
            "-map",
            "1:a:0",
            "-c:v",
            "copy",
            "-c:a",
            "aac",
            "-b:a",
            self.settings.denoise_audio_bitrate,
            "-threads",
            str(resolve_threads(threads)),
            "-movflags",
            "+faststart",
            str(output_path),
        ]

    def atempo(self, input_path: Path, tempo: float, output_path: Path) -> list[str]:
        """Time-scale a:0 by `tempo`, resync timestamps, copy v:0."""
        return [
            self.ffmpeg,
            *_QUIET,
            "-stats",
            "-y",
            "-i",
            str(input_path),
            "-map",
            "0:v:0",
            "-map",
            "0:a:0",
            "-c:v",
            "copy",
            "-af",
            f"atempo={tempo:.8f},aresample=async=1:first_pts=0",
            "-c:a",
            "aac",
            "-b:a",
            self.settings.sync_audio_bitrate,
            str(output_path),
        ]

    # -- video ----------------------------------------------------------------

    def extract_frames(
        self, input_path: Path, start: float, length: float, frames_dir: Path, jpeg_quality: int
    ) -> list[str]:
        """Dump [start, start + length) of v:0 as numbered JPEG frames."""
        return [
            self.ffmpeg,
            *_QUIET,
            "-y",
            "-ss",
            f"{start:g}",
            "-t",
            f"{length:g}",
            "-i",
            str(input_path),
            "-an",
            "-qscale:v",
            str(jpeg_quality),
            str(frames_dir / INPUT_FRAME_PATTERN),
        ]

    def build_downscale_filter(self, internal_scale: int, final_scale: int) -> str | None:
        """Scale filter taking upscaler output down to the final factor, if needed."""
        if internal_scale == final_scale:
            return None
        ratio = f"{final_scale}/{internal_scale}"
        return f"scale=trunc(iw*{ratio}/2)*2:trunc(ih*{ratio}/2)*2"

    def encode_sequence(
        self,
        frames_dir: Path,
        frame_rate: str,
        output_path: Path,
        *,
        internal_scale: int,
        final_scale: int,
        crf: int,
        preset: str,
    ) -> list[str]:
        """Encode a numbered frame directory to an H.264 video-only segment."""
        cmd = [
            self.ffmpeg,
            *_QUIET,
            "-y",
            "-framerate",
            frame_rate,
            "-i",
            str(frames_dir / INPUT_FRAME_PATTERN),
        ]
        scale = self.build_downscale_filter(internal_scale, final_scale)
        if scale:
            cmd.extend(["-vf", scale])
        cmd.extend(
            [
                "-c:v",
                "libx264",
                "-preset",
                preset,
                "-crf",
                str(crf),
                "-pix_fmt",
                "yuv420p",
                "-an",
                str(output_path),
            ]
        )
        return cmd

    def build_concat_manifest(self, artifacts: Sequence[Path]) -> str:
        """Concat demuxer manifest, one quoted path per line."""
        lines = []
        for path in artifacts:
            escaped = str(path).replace("'", r"'\''")
            lines.append(f"file '{escaped}'")
        return "\n".join(lines) + "\n"

    def concat(self, manifest_path: Path, output_path: Path) -> list[str]:
        """Join segments by stream copy."""
        return [
            self.ffmpeg,
            *_QUIET,
            "-y",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(manifest_path),
            "-c",
            "copy",
            str(output_path),
        ]

    def mux_audio(self, video_path: Path, audio_source: Path, output_path: Path) -> list[str]:
        """Attach a:0 of `audio_source` to v:0 of `video_path`, re-encoding only audio."""
        return [
            self.ffmpeg,
            *_QUIET,
            "-stats",
            "-y",
            "-i",
            str(video_path),
            "-i",
            str(audio_source),
            "-map",
            "0:v:0",
            "-map",
            "1:a:0",
            "-c:v",
            "copy",
            "-c:a",
            "aac",
            "-b:a",
            self.settings.mux_audio_bitrate,
            str(output_path),
        ]
