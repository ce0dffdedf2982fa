"""
Shell executor — runs command lines via /bin/sh and streams the output.

stderr is merged into stdout so the operator sees both in the order the
process wrote them. Each command runs in its own process group so a
timeout (or cancellation) kills everything it spawned, not just the shell.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import time
from pathlib import Path
from typing import Sequence

from pako.commands.base import OutputWriter
from pako.core.errors import ShellError, ShellTimeoutError

logger = logging.getLogger(__name__)

SHELL = "/bin/sh"
READ_CHUNK = 4096


class ShellExecutor:
    """
    Executes shell command lines.

    Usage:
        executor = ShellExecutor()
        await executor.execute("uptime", [], output, timeout=10)
    """

    def __init__(self, shell: str = SHELL, default_timeout: float = 60.0) -> None:
        self._shell = shell
        self._default_timeout = default_timeout

    async def execute(
        self,
        command: str,
        args: Sequence[str],
        output: OutputWriter,
        timeout: float | None = None,
        workdir: str | Path | None = None,
    ) -> int:
        """
        Run `command args...` and stream its output.

        Args are appended verbatim, separated by spaces, the way an
        operator would have typed them.

        Returns:
            The exit code (always 0; failures raise).

        Raises:
            ShellTimeoutError: The process ran longer than `timeout`.
            ShellError: Spawn failure or non-zero exit.
        """
        full = command if not args else f"{command} {' '.join(args)}"
        timeout = timeout or self._default_timeout
        cwd = str(Path(workdir).expanduser()) if workdir else None

        # Only the program name is logged; the rest may carry argument values
        program = full.split(None, 1)[0] if full.strip() else ""
        logger.debug(f"Executing {program!r} (timeout={timeout}s, cwd={cwd})")
        start_time = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                full,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                stdin=asyncio.subprocess.DEVNULL,
                cwd=cwd,
                start_new_session=True,
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
            raise ShellError(f"Failed to start command: {e}") from e

        try:
            await asyncio.wait_for(self._pump(process, output), timeout=timeout)
            exit_code = await process.wait()
        except asyncio.TimeoutError:
            await self._kill(process)
            raise ShellTimeoutError(f"Command timed out after {timeout:g}s", exit_code=-1)
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        elapsed = int((time.monotonic() - start_time) * 1000)
        logger.debug(f"Command finished with exit code {exit_code} in {elapsed}ms")

        if exit_code != 0:
            raise ShellError(f"Command exited with code {exit_code}", exit_code=exit_code)
        return exit_code

    async def _pump(self, process: asyncio.subprocess.Process, output: OutputWriter) -> None:
        assert process.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await process.stdout.read(READ_CHUNK)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if text:
                await output.write(text)
        tail = decoder.decode(b"", final=True)
        if tail:
            await output.write(tail)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
        await process.wait()
