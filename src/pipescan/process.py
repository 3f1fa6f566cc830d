"""Subprocess and scratch-file helpers shared by the adapters."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from pipescan.ports import ToolExecutionError, ToolTimeoutError

log = logging.getLogger("pipescan.process")

_MS_PER_SECOND = 1000


@dataclass(frozen=True)
class ToolRun:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration: float


async def run_tool(
    args: Sequence[str | Path],
    *,
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> ToolRun:
    """Run *args* and wait for it to exit.

    A process that cannot be spawned raises :class:`ToolExecutionError`;
    exceeding *timeout* kills it and raises :class:`ToolTimeoutError`.
    Non-zero exit codes are returned, not raised: each adapter decides which
    codes mean success.
    """
    argv = tuple(str(a) for a in args)
    log.debug("Running: %s", " ".join(argv))
    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ToolExecutionError(f"Could not start {argv[0]}: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        # it may have exited between the timeout and the kill
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise ToolTimeoutError(f"{argv[0]} timed out after {timeout}s") from None

    duration = time.monotonic() - start
    log.debug(
        "%s exited with code %d in %.0fms",
        argv[0], proc.returncode, duration * _MS_PER_SECOND,
        extra={"exit_code": proc.returncode, "duration_ms": round(duration * _MS_PER_SECOND, 1)},
    )
    return ToolRun(
        args=argv,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        duration=duration,
    )


@contextmanager
def scratch_dir(prefix: str) -> Iterator[Path]:
    """Yield a fresh temporary directory; removal failures are only logged."""
    path = Path(tempfile.mkdtemp(prefix=f"{prefix}-"))
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            log.warning("Failed to clean up %s: %s", path, exc)


def format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}min {secs}s"
