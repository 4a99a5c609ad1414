"""Real-ESRGAN (ncnn-vulkan) frame directory upscaler."""

import logging
from collections.abc import Callable
from pathlib import Path

from restora.models.errors import StageToolError
from restora.models.job import UpscaleParams
from restora.process.runner import run_tool

logger = logging.getLogger(__name__)


class RealEsrganUpscaler:
    """Upscales every frame of a directory into another directory."""

    def __init__(
        self,
        binary: str,
        models_dir: Path | None,
        params: UpscaleParams,
        runner: Callable[..., list[str]] = run_tool,
    ):
        self.binary = binary
        self.models_dir = models_dir
        self.params = params
        self.runner = runner

    def build_command(self, input_dir: Path, output_dir: Path) -> list[str]:
        cmd = [
            self.binary,
            "-i",
            str(input_dir),
            "-o",
            str(output_dir),
            "-s",
            str(self.params.internal_scale),
        ]
        if self.models_dir is not None:
            cmd.extend(["-m", str(self.models_dir)])
        cmd.extend(
            [
                "-n",
                self.params.model_name,
                "-t",
                str(self.params.tile_size),
                "-j",
                self.params.threads,
                "-g",
                self.params.gpu,
                "-f",
                "jpg",
            ]
        )
        return cmd

    def upscale(self, input_dir: Path, output_dir: Path, expected_frames: int) -> int:
        """Run the upscaler and check that every input frame came out."""
        output_dir.mkdir(parents=True, exist_ok=True)
        self.runner(self.build_command(input_dir, output_dir), component="upscale")
        produced = len(list(output_dir.glob("*.jpg")))
        if produced != expected_frames:
            raise StageToolError(
                f"Upscaler produced {produced} of {expected_frames} frames",
                component="upscale",
                details={"input_dir": str(input_dir), "output_dir": str(output_dir)},
            )
        return produced
