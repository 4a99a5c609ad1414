"""Temporary file lifecycle management."""

import logging
import shutil
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from restora.config import get_settings

logger = logging.getLogger(__name__)


class TempFileManager:
    """Manages per-job and per-run temporary directories."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or get_settings().temp_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._job_dirs: dict[str, tuple[Path, float]] = {}

    @contextmanager
    def scoped_dir(self, prefix: str) -> Iterator[Path]:
        """Yield a fresh directory that is removed on every exit path."""
        path = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self.base_dir))
        logger.debug("Created scratch dir %s", path)
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Removed scratch dir %s", path)

    def create_job_dir(self, job_id: str) -> Path:
        """Create a temporary directory for a job."""
        job_dir = self.base_dir / job_id
        job_dir.mkdir(parents=True, exist_ok=True)
        self._job_dirs[job_id] = (job_dir, time.time())
        return job_dir

    def get_job_dir(self, job_id: str) -> Path | None:
        """Get the temporary directory for a job."""
        if job_id in self._job_dirs:
            return self._job_dirs[job_id][0]
        job_dir = self.base_dir / job_id
        if job_dir.exists():
            return job_dir
        return None

    def cleanup_job(self, job_id: str) -> None:
        """Clean up temporary files for a job."""
        entry = self._job_dirs.pop(job_id, None)
        job_dir = entry[0] if entry else self.base_dir / job_id
        if job_dir.exists():
            shutil.rmtree(job_dir, ignore_errors=True)
            logger.info(f"Cleaned up temp files for job {job_id}")
