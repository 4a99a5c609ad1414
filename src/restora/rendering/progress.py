"""FFmpeg progress monitoring."""

import logging
import re
from collections.abc import Callable

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+\.?\d*)")


class FFmpegProgressMonitor:
    """Monitor FFmpeg progress from stderr output.

    Progress is reported through `callback` as a fraction in [0, 1] and logged
    at every `log_step` boundary under `label`.
    """

    def __init__(
        self,
        total_duration: float,
        callback: Callable[[float], None] | None = None,
        label: str = "ffmpeg",
        log_step: float = 0.1,
    ):
        self.total_duration = total_duration
        self.callback = callback
        self.label = label
        self.log_step = log_step
        self.current_time = 0.0
        self._next_log = log_step

    def parse_line(self, line: str) -> float | None:
        """Parse an FFmpeg stderr line for time= progress."""
        match = _TIME_RE.search(line)
        if not match:
            return None
        hours = int(match.group(1))
        minutes = int(match.group(2))
        seconds = float(match.group(3))
        self.current_time = hours * 3600 + minutes * 60 + seconds
        progress = self.progress
        if progress >= self._next_log:
            logger.info("%s: %.0f%%", self.label, progress * 100)
            while self._next_log <= progress:
                self._next_log += self.log_step
        if self.callback:
            self.callback(progress)
        return progress

    def finish(self) -> None:
        """Report completion once the tool exits cleanly."""
        if self.total_duration > 0:
            self.current_time = self.total_duration
        if self.callback:
            self.callback(1.0)

    @property
    def progress(self) -> float:
        """Current progress as fraction [0, 1]."""
        if self.total_duration <= 0:
            return 0.0
        return min(1.0, self.current_time / self.total_duration)
