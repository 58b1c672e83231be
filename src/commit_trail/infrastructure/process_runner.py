"""Async execution of the git binary."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from pathlib import Path

from commit_trail.domain.errors import CommandFailure
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)


class ProcessRunner:
    def __init__(self, binary: str = "git") -> None:
        self._binary = binary

    async def execute(
        self,
        args: Sequence[str],
        cwd: str | Path,
        input_text: str | None = None,
    ) -> str:
        """Run ``binary *args`` in ``cwd`` and return its stdout.

        ``communicate()`` writes and closes stdin, then drains stdout and
        stderr together before reaping the child, so large outputs never
        fill the pipe buffer while we wait on exit.
        """
        argv = [self._binary, *args]
        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandFailure(argv, str(e)) from e

        stdin_bytes = input_text.encode("utf-8") if input_text is not None else None
        stdout, stderr = await proc.communicate(stdin_bytes)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 1)

        if proc.returncode != 0:
            error_text = stderr.decode("utf-8", errors="replace")
            logger.warning(
                "git command failed",
                argv=argv,
                returncode=proc.returncode,
                duration_ms=elapsed_ms,
                stderr=error_text.strip()[:500],
            )
            raise CommandFailure(argv, error_text, proc.returncode)

        logger.debug("git command finished", argv=argv, duration_ms=elapsed_ms, output_bytes=len(stdout))
        return stdout.decode("utf-8", errors="replace")
