"""Command-line entry point: `restora denoise|sync|upscale|process`."""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from restora.audio.denoise import denoise_video
from restora.config import Settings, get_settings
from restora.logging_setup import setup_logging
from restora.models.errors import RestoraError, ValidationError
from restora.models.job import DenoiseParams, UpscaleParams
from restora.models.options import RestoreOptions
from restora.pipeline.manager import PipelineManager
from restora.sync.drift import correct_drift
from restora.upscale.pipeline import upscale_video

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restora", description="Restore VHS captures: denoise, drift-correct, upscale."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("denoise", help="per-channel noise reduction")
    p.add_argument("input", type=Path)
    p.add_argument("output", type=Path)
    p.add_argument("--noise-start", help="noise sample window start (ffmpeg time)")
    p.add_argument("--noise-duration", help="noise sample window length (ffmpeg time)")
    p.add_argument("--nr-amount", type=float, help="sox noisered amount (0-1]")
    p.add_argument("--norm-db", type=float, help="sox norm target in dBFS (<= 0)")
    p.add_argument("--threads", type=int, help="ffmpeg threads (0 = all cores)")

    p = sub.add_parser("sync", help="correct audio/video drift")
    p.add_argument("input", type=Path)
    p.add_argument("output", type=Path)

    p = sub.add_parser("upscale", help="resumable segmented Real-ESRGAN upscale")
    p.add_argument("input", type=Path)
    p.add_argument("output", type=Path)
    p.add_argument("--segment-seconds", type=int, help="segment length in seconds")
    p.add_argument("--crf", type=int, help="x264 CRF for segments")
    p.add_argument("--tile-size", type=int, help="Real-ESRGAN tile size (0 = auto)")
    p.add_argument(
        "--reset-segments",
        action="store_true",
        help="discard existing segments instead of resuming",
    )

    p = sub.add_parser("process", help="denoise, sync and upscale in one go")
    p.add_argument("input", type=Path)

    return parser


def _with_overrides(defaults, args: argparse.Namespace, names: tuple[str, ...]):
    """Re-validate `defaults` with every CLI flag the user actually set."""
    overrides = {name: getattr(args, name) for name in names if getattr(args, name) is not None}
    try:
        return type(defaults)(**{**defaults.model_dump(), **overrides})
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid --{field.replace('_', '-')}: {first['msg']}")


def _denoise(args: argparse.Namespace, settings: Settings) -> Path:
    params = _with_overrides(
        DenoiseParams.from_settings(settings),
        args,
        ("noise_start", "noise_duration", "nr_amount", "norm_db", "threads"),
    )
    return denoise_video(args.input, args.output, params, settings)


def _sync(args: argparse.Namespace, settings: Settings) -> Path:
    result = correct_drift(args.input, args.output, settings)
    if result == args.input:
        print("Drift is negligible; no output written.")
    return result


def _upscale(args: argparse.Namespace, settings: Settings) -> Path:
    params = _with_overrides(UpscaleParams.from_settings(settings), args, ("crf", "tile_size"))
    return upscale_video(
        args.input,
        args.output,
        segment_seconds=args.segment_seconds,
        params=params,
        reset_segments=args.reset_segments,
        settings=settings,
    )


def _process(args: argparse.Namespace, settings: Settings) -> Path:
    manager = PipelineManager(settings)
    state = manager.create_job(args.input)
    state = manager.process(state.job_id, args.input, RestoreOptions())
    print("Pipeline complete:")
    print(f"  Denoised : {state.denoised_path}")
    print(f"  Synced   : {state.synced_path}")
    print(f"  Upscaled : {state.output_path}")
    return Path(state.output_path)


COMMANDS = {
    "denoise": _denoise,
    "sync": _sync,
    "upscale": _upscale,
    "process": _process,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.verbose:
        settings.log_level = "DEBUG"
    setup_logging(settings)

    try:
        output = COMMANDS[args.command](args, settings)
    except RestoraError as e:
        logger.debug("%s details: %s", type(e).__name__, e.details)
        print(f"error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("error: interrupted", file=sys.stderr)
        return 130
    if args.command != "process":
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
