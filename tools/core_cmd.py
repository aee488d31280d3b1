"""tools/core_cmd.py

Subprocess execution shared by the engine client and the git helpers.

This module deliberately avoids engine-specific knowledge. It provides:

* :func:`find_executable` - resolve executables across PATH and known fallbacks.
* :class:`ProcessRunner` - run a subprocess (no ``shell=True``) with a
  mandatory timeout and optional cancellation, capturing stdout/stderr.

Contract of :meth:`ProcessRunner.run`:

* a non-zero exit code is returned as data, never raised
* the process is killed on timeout or cancellation and its partial output is
  discarded
* no filesystem cleanup happens here; the caller owns whatever the process wrote
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from dbkit.errors import OperationCancelled, ProcessTimeoutError, SpawnError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float = 0.0
    command_str: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def find_executable(bin_name: str, fallbacks: Optional[List[str]] = None) -> Optional[str]:
    """Locate an executable and return its absolute path, or None."""
    found = shutil.which(bin_name)
    if found:
        return found

    for candidate in fallbacks or []:
        p = Path(candidate).expanduser()
        if p.is_file() and os.access(str(p), os.X_OK):
            return str(p)
    return None


class ProcessRunner:
    """Runs external executables with a timeout and cooperative cancellation."""

    # How often a running process checks the cancel event.
    poll_interval: float = 0.1

    def run(
        self,
        executable: PathLike,
        args: Sequence[PathLike],
        *,
        cwd: Optional[PathLike] = None,
        timeout: float,
        env: Optional[Dict[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessResult:
        if timeout is None or timeout <= 0:
            raise ValueError(f"timeout must be > 0 (got {timeout!r})")

        cmd = [str(executable), *(str(a) for a in args)]
        command_str = " ".join(cmd)

        env2 = None
        if env is not None:
            env2 = os.environ.copy()
            env2.update(env)

        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled(f"cancelled before start: {command_str}")

        logger.debug("run: %s (cwd=%s, timeout=%ss)", command_str, cwd, timeout)
        t0 = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                env=env2,
            )
        except OSError as e:
            raise SpawnError(f"Cannot start '{executable}': {e}", path=str(executable)) from e

        deadline = t0 + timeout
        while True:
            if cancel_event is not None and cancel_event.is_set():
                self._kill(proc)
                raise OperationCancelled(f"cancelled: {command_str}")

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._kill(proc)
                raise ProcessTimeoutError(
                    f"'{command_str}' timed out after {timeout}s",
                    pid=proc.pid,
                    timeout=timeout,
                )

            wait = remaining if cancel_event is None else min(remaining, self.poll_interval)
            try:
                stdout, stderr = proc.communicate(timeout=wait)
                break
            except subprocess.TimeoutExpired:
                continue

        elapsed = time.monotonic() - t0
        logger.debug("exit %s after %.2fs: %s", proc.returncode, elapsed, command_str)
        return ProcessResult(
            exit_code=proc.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            elapsed_seconds=elapsed,
            command_str=command_str,
        )

    @staticmethod
    def _kill(proc: "subprocess.Popen[str]") -> None:
        proc.kill()
        # Reap the child; whatever it printed so far is dropped.
        proc.communicate()
