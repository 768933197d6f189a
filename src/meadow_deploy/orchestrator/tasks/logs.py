"""Append-only log capture for one task run."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class LogLine:
    number: int
    content: str
    timestamp: datetime


class LogLineSequence:
    """Time-ordered output lines of a task.

    Readers iterate with :meth:`lines`, which always starts from the first line,
    follows new lines while the task runs and stops once :meth:`complete` has
    been called. Lines are never removed or rewritten.
    """

    def __init__(self) -> None:
        self._lines: list[LogLine] = []
        self._complete = False
        self._wakeup = asyncio.Event()

    @property
    def is_complete(self) -> bool:
        return self._complete

    def __len__(self) -> int:
        return len(self._lines)

    def append(self, content: str) -> LogLine:
        if self._complete:
            raise RuntimeError("log sequence is complete; no more lines can be appended")
        line = LogLine(
            number=len(self._lines) + 1,
            content=content.rstrip("\r\n"),
            timestamp=datetime.now(tz=UTC),
        )
        self._lines.append(line)
        self._notify()
        return line

    def complete(self) -> None:
        if self._complete:
            return
        self._complete = True
        self._notify()

    def snapshot(self) -> list[LogLine]:
        return list(self._lines)

    async def lines(self) -> AsyncIterator[LogLine]:
        index = 0
        while True:
            while index < len(self._lines):
                yield self._lines[index]
                index += 1
            if self._complete:
                return
            await self._wakeup.wait()

    def _notify(self) -> None:
        # Readers park on the current event; swap in a fresh one for the next wait.
        event, self._wakeup = self._wakeup, asyncio.Event()
        event.set()
