"""Single external tool invocation with stderr capture."""

import logging
import shlex
import subprocess
from collections import deque
from collections.abc import Sequence
from pathlib import Path

from restora.models.errors import MissingDependencyError, StageToolError
from restora.rendering.progress import FFmpegProgressMonitor

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 30


def run_tool(
    cmd: Sequence[str | Path],
    *,
    component: str = "stage",
    monitor: FFmpegProgressMonitor | None = None,
    debug_dir: Path | None = None,
) -> list[str]:
    """Run one tool to completion, raising StageToolError on a non-zero exit.

    stderr is streamed line by line so that ffmpeg progress can be fed to
    `monitor` without buffering the whole log. Returns the stderr tail.
    """
    argv = [str(part) for part in cmd]
    logger.debug("Running %s: %s", component, shlex.join(argv))

    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except FileNotFoundError:
        raise MissingDependencyError(
            f"{argv[0]} not found. Install it or set its RESTORA_* path.",
            details={"command": argv[0]},
        )

    stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
    for line in process.stderr or ():
        stderr_tail.append(line)
        if monitor is not None:
            monitor.parse_line(line)
    process.wait()

    if process.returncode != 0:
        details: dict = {
            "command": argv[0],
            "returncode": process.returncode,
            "stderr": "".join(stderr_tail),
        }
        if debug_dir is not None:
            debug_dir.mkdir(parents=True, exist_ok=True)
            debug_path = debug_dir / f"{component}_debug.txt"
            debug_path.write_text(
                "COMMAND:\n" + shlex.join(argv) + "\n\nSTDERR (tail):\n" + "".join(stderr_tail)
            )
            details["debug_file"] = str(debug_path)
        logger.error("%s failed (code %d): %s", component, process.returncode, argv[0])
        raise StageToolError(
            f"{Path(argv[0]).name} exited with code {process.returncode} during {component}",
            component=component,
            details=details,
        )

    if monitor is not None:
        monitor.finish()
    return list(stderr_tail)
