"""Process launch capability used by task handles."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]


class TaskStartError(RuntimeError):
    """The task could not be launched. The message is suitable for display."""


class RunningProcess(Protocol):
    """A launched external process."""

    @property
    def pid(self) -> int | None: ...

    async def wait(self) -> int:
        """Wait until the process exits and all of its output has been delivered."""
        ...

    async def terminate(self, grace_seconds: float) -> None:
        """Ask the process to stop; kill it if it is still alive after ``grace_seconds``."""
        ...


class ProcessLauncher(Protocol):
    async def launch(
        self,
        *,
        name: str,
        argv: list[str],
        cwd: Path,
        on_line: LineSink,
    ) -> RunningProcess: ...


class _AsyncioProcess:
    def __init__(self, process: asyncio.subprocess.Process, on_line: LineSink) -> None:
        self._process = process
        self._on_line = on_line
        self._pump = asyncio.ensure_future(self._pump_output())

    @property
    def pid(self) -> int | None:
        return self._process.pid

    async def wait(self) -> int:
        try:
            await asyncio.shield(self._pump)
        except Exception:
            logger.exception("Reading task output failed", extra={"pid": self.pid})
        return await self._process.wait()

    async def terminate(self, grace_seconds: float) -> None:
        if self._process.returncode is not None:
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._process.wait(), timeout=max(0.0, grace_seconds))
        except TimeoutError:
            try:
                self._process.kill()
            except ProcessLookupError:
                return
            await self._process.wait()

    async def _pump_output(self) -> None:
        stream = self._process.stdout
        if stream is None:
            return
        pending = bytearray()
        while True:
            try:
                pending += await stream.readuntil(b"\n")
            except asyncio.LimitOverrunError as error:
                # Line longer than the reader buffer: take what is buffered and keep going.
                pending += await stream.readexactly(error.consumed)
                continue
            except asyncio.IncompleteReadError as error:
                pending += error.partial
                if pending:
                    self._emit(pending)
                return
            self._emit(pending)
            pending = bytearray()

    def _emit(self, raw: bytearray) -> None:
        self._on_line(raw.decode("utf-8", errors="replace"))


class SubprocessLauncher:
    """Launch tasks with ``asyncio.create_subprocess_exec``.

    stderr is merged into stdout so the log sequence keeps the order in which
    the tool wrote its lines.
    """

    def __init__(self, *, env: dict[str, str] | None = None) -> None:
        self._env = env

    async def launch(
        self,
        *,
        name: str,
        argv: list[str],
        cwd: Path,
        on_line: LineSink,
    ) -> RunningProcess:
        if not argv:
            raise TaskStartError(f"Task '{name}' has an empty command line.")
        if not cwd.is_dir():
            raise TaskStartError(f"Working directory for task '{name}' does not exist: {cwd}")

        env = os.environ.copy()
        if self._env:
            env.update(self._env)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as error:
            raise TaskStartError(f"Command not found for task '{name}': {argv[0]}") from error
        except OSError as error:
            raise TaskStartError(f"Task '{name}' failed to start: {error}") from error

        logger.debug("Process launched", extra={"task": name, "pid": process.pid, "argv": argv})
        return _AsyncioProcess(process, on_line)
