"""Subprocess execution with Result-based error handling.

``run`` is the blocking form used for quick queries (git). ``run_async`` is
used by build jobs so a long ``docker`` call suspends only its own job.

Usage:
    result = await run_async(["docker", "start", "-a", cid], cwd=root)
    match result:
        case Ok(stdout):
            console.print(stdout)
        case Err(error):
            console.error(str(error))
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from pathlib import Path

from tagbuild.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_async"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not be started, timed out, or exited non-zero.

    ``returncode`` is -1 when the process never ran or was killed on timeout.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def _failure(cmd: list[str], stderr: str, *, returncode: int = -1, stdout: str = "") -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr))


def _timed_out(cmd: list[str], timeout: float | None) -> Err[ProcessError]:
    return _failure(cmd, f"Command timed out after {timeout}s")


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error."""
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return _timed_out(cmd, timeout)
    except OSError as e:
        return _failure(cmd, str(e))

    if proc.returncode != 0:
        return _failure(cmd, proc.stderr, returncode=proc.returncode, stdout=proc.stdout)
    return Ok(proc.stdout)


async def run_async(
    cmd: list[str],
    cwd: Path,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command without blocking the event loop.

    On timeout or task cancellation the child process is killed; cancellation
    is re-raised after the kill.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return _failure(cmd, str(e))

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        await _kill(proc)
        return _timed_out(cmd, timeout)
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode:
        return _failure(cmd, stderr, returncode=proc.returncode, stdout=stdout)
    return Ok(stdout)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()
