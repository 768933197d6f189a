"""Terminal interaction backend.

Prompts are written to a text stream and answered line by line. Reading goes
through an async :class:`LineReader` so a pending prompt can be abandoned when
its cancellation signal fires; the default reader attaches to stdin.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Protocol, TextIO

from meadow_deploy.orchestrator.cancellation import CancellationSignal, wait_or_cancel

from .types import (
    InputField,
    InputKind,
    InputValues,
    PromptOptions,
    PromptResult,
)

CANCEL_WORDS = {"c", "cancel", "/cancel"}
YES_WORDS = {"y", "yes"}
NO_WORDS = {"n", "no"}


class LineReader(Protocol):
    async def readline(self) -> str | None:
        """Return the next line without its newline, or ``None`` at end of input."""
        ...


class StdinLineReader:
    """Non-blocking stdin reader built on the running event loop."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._reader: asyncio.StreamReader | None = None

    async def readline(self) -> str | None:
        if self._reader is None:
            loop = asyncio.get_running_loop()
            reader = asyncio.StreamReader()
            await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), self._stream
            )
            self._reader = reader
        raw = await self._reader.readline()
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")


class ConsoleInteraction:
    """Line-oriented prompts for a terminal session."""

    def __init__(self, reader: LineReader | None = None, output: TextIO | None = None) -> None:
        self._reader = reader or StdinLineReader()
        self._output = output or sys.stdout

    async def prompt_confirmation(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]:
        primary = options.primary_button_text.strip().lower()
        secondary = options.secondary_button_text.strip().lower()
        self._header(title, message)
        self._write(
            f"[{options.primary_button_text} = y / {options.secondary_button_text} = n] > ",
            newline=False,
        )
        while True:
            line = await self._read(cancel)
            if line is None:
                return PromptResult(cancelled=True)
            answer = line.strip().lower()
            if answer in YES_WORDS or (primary and answer == primary):
                return PromptResult(cancelled=False, data=True)
            if answer in NO_WORDS or answer in CANCEL_WORDS or (secondary and answer == secondary):
                return PromptResult(cancelled=True)
            self._write("Please answer y or n > ", newline=False)

    async def prompt_inputs(
        self,
        title: str,
        message: str,
        fields: list[InputField],
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[InputValues]:
        self._header(title, message)
        self._write("(type /cancel to abort)")
        values: dict[str, str] = {}
        for field in fields:
            value = await self._ask_field(field, cancel)
            if value is None:
                return PromptResult(cancelled=True)
            values[field.name] = value
        return PromptResult(cancelled=False, data=InputValues(values=values))

    async def prompt_message_box(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]:
        primary = options.primary_button_text.strip().lower()
        self._header(title, message)
        self._write("(type c and press Enter to cancel)")
        while True:
            line = await self._read(cancel)
            if line is None:
                # stdin closed: nobody is left to cancel, keep waiting for the signal.
                await cancel.wait()
                cancel.raise_if_cancelled()
            answer = (line or "").strip().lower()
            if answer in CANCEL_WORDS:
                return PromptResult(cancelled=True)
            if primary and answer == primary:
                return PromptResult(cancelled=False, data=True)

    async def _ask_field(self, field: InputField, cancel: CancellationSignal) -> str | None:
        if field.kind == InputKind.CHOICE:
            for index, choice in enumerate(field.choices, start=1):
                self._write(f"  {index}. {choice.label} ({choice.value})")
        while True:
            hint = f" [{field.placeholder}]" if field.placeholder else ""
            self._write(f"{field.label}{hint}: ", newline=False)
            line = await self._read(cancel)
            if line is None:
                return None
            text = line.strip()
            if text.lower() == "/cancel":
                return None
            if field.kind == InputKind.CHOICE:
                chosen = _match_choice(field, text)
                if chosen is not None:
                    return chosen
                if not text and not field.required:
                    return ""
                self._write("Invalid choice. Enter a number from the list or a value.")
                continue
            if text or not field.required:
                return text
            self._write(f"{field.label} is required.")

    async def _read(self, cancel: CancellationSignal) -> str | None:
        return await wait_or_cancel(self._reader.readline(), cancel)

    def _header(self, title: str, message: str) -> None:
        self._write("")
        self._write(f"== {title} ==")
        if message:
            self._write(message)

    def _write(self, text: str, *, newline: bool = True) -> None:
        self._output.write(text + ("\n" if newline else ""))
        self._output.flush()


def _match_choice(field: InputField, text: str) -> str | None:
    if not text:
        return None
    if text.isdigit():
        index = int(text)
        if 1 <= index <= len(field.choices):
            return field.choices[index - 1].value
        return None
    for choice in field.choices:
        if text == choice.value or text.lower() == choice.label.lower():
            return choice.value
    return None
