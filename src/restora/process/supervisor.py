"""Supervision of concurrent tool processes connected by OS pipes.

A `ProcessSupervisor` owns every child process and pipe it creates. Children
are polled until all exit cleanly; the first non-zero exit cancels every
sibling and is raised as `WorkerFailureError`. Leaving the `with` block on any
path terminates stragglers and closes every pipe end still held by the parent.
"""

import logging
import os
import re
import signal
import subprocess
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from restora.config import Settings
from restora.models.errors import MissingDependencyError, PipelineStallError, WorkerFailureError

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 30


class ChannelPipe:
    """Anonymous single-producer/single-consumer pipe.

    The consumer inherits the read end at spawn time, so it is attached before
    any producer writes. The parent must drop its own copies once both sides
    are spawned; otherwise a dead producer never produces end-of-stream.
    """

    def __init__(self, name: str):
        self.name = name
        self.read_fd, self.write_fd = os.pipe()
        self._read_open = True
        self._write_open = True

    @property
    def reader_url(self) -> str:
        """ffmpeg input URL for the read end, valid in a child given this fd."""
        return f"pipe:{self.read_fd}"

    def close_reader(self) -> None:
        if self._read_open:
            os.close(self.read_fd)
            self._read_open = False

    def close_writer(self) -> None:
        if self._write_open:
            os.close(self.write_fd)
            self._write_open = False

    def close(self) -> None:
        self.close_reader()
        self.close_writer()

    @property
    def closed(self) -> bool:
        return not (self._read_open or self._write_open)


@dataclass
class ManagedProcess:
    name: str
    popen: subprocess.Popen
    log_path: Path
    log_file: IO[bytes] = field(repr=False)

    @property
    def returncode(self) -> int | None:
        return self.popen.poll()

    def stderr_tail(self, lines: int = STDERR_TAIL_LINES) -> str:
        self.log_file.flush()
        try:
            text = self.log_path.read_text(errors="replace")
        except OSError:
            return ""
        return "\n".join(text.splitlines()[-lines:])


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", name)


class ProcessSupervisor:
    """Spawns, watches and cancels a group of cooperating tool processes."""

    def __init__(
        self,
        log_dir: Path,
        *,
        poll_interval: float = 0.2,
        timeout: float | None = None,
        terminate_grace: float = 5.0,
    ):
        self.log_dir = log_dir
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.terminate_grace = terminate_grace
        self._processes: list[ManagedProcess] = []
        self._pipes: list[ChannelPipe] = []
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, log_dir: Path, settings: Settings) -> "ProcessSupervisor":
        return cls(
            log_dir,
            poll_interval=settings.poll_interval_seconds,
            timeout=settings.pipeline_timeout_seconds,
            terminate_grace=settings.terminate_grace_seconds,
        )

    def __enter__(self) -> "ProcessSupervisor":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.running():
            logger.warning("Cancelling %d running process(es) on exit", len(self.running()))
        self.cancel()
        self.close_pipes()
        for proc in self._processes:
            proc.log_file.close()
        return False

    @property
    def processes(self) -> list[ManagedProcess]:
        return list(self._processes)

    def running(self) -> list[ManagedProcess]:
        return [p for p in self._processes if p.popen.poll() is None]

    def open_pipe(self, name: str) -> ChannelPipe:
        pipe = ChannelPipe(name)
        self._pipes.append(pipe)
        return pipe

    def close_pipes(self) -> None:
        for pipe in self._pipes:
            pipe.close()

    def spawn(
        self,
        name: str,
        cmd: Sequence[str | Path],
        *,
        stdin: int | IO[bytes] | None = None,
        stdout: int | IO[bytes] | None = None,
        pass_fds: Iterable[int] = (),
    ) -> ManagedProcess:
        """Start one child; stderr goes to `<log_dir>/<name>.stderr.log`."""
        argv = [str(part) for part in cmd]
        log_path = self.log_dir / f"{_safe_name(name)}.stderr.log"
        log_file = open(log_path, "wb")
        try:
            popen = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL if stdin is None else stdin,
                stdout=subprocess.DEVNULL if stdout is None else stdout,
                stderr=log_file,
                pass_fds=tuple(pass_fds),
            )
        except FileNotFoundError:
            log_file.close()
            raise MissingDependencyError(
                f"{argv[0]} not found. Install it or set its RESTORA_* path.",
                details={"command": argv[0], "process": name},
            )
        proc = ManagedProcess(name=name, popen=popen, log_path=log_path, log_file=log_file)
        self._processes.append(proc)
        logger.debug("Spawned %s (pid %d): %s", name, popen.pid, " ".join(argv))
        return proc

    def spawn_chain(
        self,
        name: str,
        commands: Sequence[Sequence[str | Path]],
        *,
        stdout: int | IO[bytes] | None = None,
    ) -> list[ManagedProcess]:
        """Start `cmd0 | cmd1 | ...`; the last command writes to `stdout`."""
        procs: list[ManagedProcess] = []
        upstream: IO[bytes] | None = None
        for i, cmd in enumerate(commands):
            last = i == len(commands) - 1
            proc = self.spawn(
                f"{name}:{i}-{Path(str(cmd[0])).name}",
                cmd,
                stdin=upstream,
                stdout=stdout if last else subprocess.PIPE,
            )
            if upstream is not None:
                # The child holds its own copy; ours would keep the pipe alive.
                upstream.close()
            upstream = proc.popen.stdout
            procs.append(proc)
        return procs

    def wait_all(self) -> None:
        """Block until every child exits; cancel all on first failure or timeout."""
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        pending = list(self._processes)
        while pending:
            failed = []
            for proc in list(pending):
                rc = proc.popen.poll()
                if rc is None:
                    continue
                pending.remove(proc)
                logger.debug("%s exited with code %d", proc.name, rc)
                if rc != 0:
                    failed.append(proc)
            if failed:
                self._fail(failed)
            if not pending:
                break
            if deadline is not None and time.monotonic() >= deadline:
                stalled = [p.name for p in pending]
                self.cancel()
                raise PipelineStallError(
                    f"Pipeline did not finish within {self.timeout:.0f}s; "
                    f"still running: {', '.join(stalled)}",
                    details={"stalled": stalled, "timeout": self.timeout},
                )
            time.sleep(self.poll_interval)

    def cancel(self) -> None:
        """Terminate every live child, escalating to kill after the grace period."""
        live = self.running()
        for proc in live:
            logger.info("Terminating %s (pid %d)", proc.name, proc.popen.pid)
            proc.popen.terminate()
        deadline = time.monotonic() + self.terminate_grace
        for proc in live:
            try:
                proc.popen.wait(timeout=max(0.0, deadline - time.monotonic()))
            except subprocess.TimeoutExpired:
                logger.warning("Killing %s after %.1fs grace", proc.name, self.terminate_grace)
                proc.popen.kill()
                proc.popen.wait()

    def _fail(self, failed: list[ManagedProcess]) -> None:
        # A broken pipe is a consequence of another process dying; prefer the cause.
        root = next(
            (p for p in failed if p.popen.returncode != -signal.SIGPIPE),
            failed[0],
        )
        self.cancel()
        others = [
            {"process": p.name, "returncode": p.popen.returncode}
            for p in self._processes
            if p is not root and p.popen.returncode not in (0, None)
        ]
        stderr = root.stderr_tail()
        logger.error("%s failed with code %d; pipeline cancelled", root.name, root.popen.returncode)
        raise WorkerFailureError(
            f"{root.name} exited with code {root.popen.returncode}",
            details={
                "process": root.name,
                "returncode": root.popen.returncode,
                "stderr": stderr,
                "other_failures": others,
            },
        )
