"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from meadow_deploy.orchestrator.cancellation import CancellationSignal, OperationCancelledError
from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.interaction.types import (
    InputField,
    InputValues,
    PromptOptions,
    PromptResult,
)
from meadow_deploy.orchestrator.tasks.launcher import LineSink, TaskStartError


@dataclass
class ScriptedRun:
    """How one launch of a named task behaves.

    ``exit_code=None`` keeps the process running until it is terminated.
    ``delay`` postpones the exit by that many seconds.
    """

    exit_code: int | None = 0
    lines: list[str] = field(default_factory=list)
    start_error: str | None = None
    delay: float = 0.0


@dataclass
class LaunchRecord:
    name: str
    argv: list[str]
    cwd: Path


class FakeProcess:
    def __init__(self, pid: int, script: ScriptedRun, on_line: LineSink) -> None:
        self.pid = pid
        self.terminated = False
        self._exit: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        for line in script.lines:
            on_line(line)
        if script.exit_code is not None:
            if script.delay > 0:
                asyncio.get_running_loop().call_later(script.delay, self.finish, script.exit_code)
            else:
                self.finish(script.exit_code)

    def finish(self, exit_code: int) -> None:
        if not self._exit.done():
            self._exit.set_result(exit_code)

    async def wait(self) -> int:
        return await asyncio.shield(self._exit)

    async def terminate(self, grace_seconds: float) -> None:
        self.terminated = True
        self.finish(-15)


class FakeLauncher:
    """Scripted process launcher. Unscripted launches exit 0 with no output."""

    def __init__(self) -> None:
        self.scripts: dict[str, list[ScriptedRun]] = {}
        self.launches: list[LaunchRecord] = []
        self.processes: dict[str, list[FakeProcess]] = {}

    def script(self, name: str, **kwargs: object) -> None:
        self.scripts.setdefault(name, []).append(ScriptedRun(**kwargs))  # type: ignore[arg-type]

    async def launch(
        self,
        *,
        name: str,
        argv: list[str],
        cwd: Path,
        on_line: LineSink,
    ) -> FakeProcess:
        self.launches.append(LaunchRecord(name=name, argv=list(argv), cwd=cwd))
        queue = self.scripts.get(name)
        script = queue.pop(0) if queue else ScriptedRun()
        if script.start_error is not None:
            raise TaskStartError(script.start_error)
        process = FakeProcess(pid=1000 + len(self.launches), script=script, on_line=on_line)
        self.processes.setdefault(name, []).append(process)
        return process

    @property
    def names(self) -> list[str]:
        return [launch.name for launch in self.launches]

    def argv_of(self, name: str) -> list[str]:
        for launch in reversed(self.launches):
            if launch.name == name:
                return launch.argv
        raise KeyError(name)


class FakeInteraction:
    """Scripted interaction service that records every prompt.

    Wait prompts set ``box_opened`` and stay open until their signal fires, unless
    ``message_box_result`` is set, in which case they resolve with it after
    ``message_box_delay`` seconds.
    """

    def __init__(self) -> None:
        self.confirm_answers: list[bool] = []
        self.input_answers: list[dict[str, str] | None] = []
        self.message_box_result: PromptResult[bool] | None = None
        self.message_box_delay = 0.01
        self.prompts: list[tuple[str, str]] = []
        self.input_fields: list[InputField] = []
        self.open_boxes = 0
        self.boxes_cancelled = 0
        self.boxes_signalled = 0
        self.box_opened = asyncio.Event()

    async def prompt_confirmation(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]:
        self.prompts.append(("confirmation", title))
        cancel.raise_if_cancelled()
        answer = self.confirm_answers.pop(0) if self.confirm_answers else True
        if not answer:
            return PromptResult(cancelled=True)
        return PromptResult(cancelled=False, data=True)

    async def prompt_inputs(
        self,
        title: str,
        message: str,
        fields: list[InputField],
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[InputValues]:
        self.prompts.append(("inputs", title))
        self.input_fields = list(fields)
        cancel.raise_if_cancelled()
        values = self.input_answers.pop(0) if self.input_answers else None
        if values is None:
            return PromptResult(cancelled=True)
        return PromptResult(cancelled=False, data=InputValues(values=dict(values)))

    async def prompt_message_box(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]:
        self.prompts.append(("message_box", title))
        self.open_boxes += 1
        self.box_opened.set()
        try:
            if self.message_box_result is not None:
                await asyncio.sleep(self.message_box_delay)
                return self.message_box_result
            reason = await cancel.wait()
            self.boxes_signalled += 1
            raise OperationCancelledError(reason)
        except asyncio.CancelledError:
            self.boxes_cancelled += 1
            raise
        finally:
            self.open_boxes -= 1

    def count(self, kind: str) -> int:
        return sum(1 for prompt_kind, _ in self.prompts if prompt_kind == kind)


class QueueLineReader:
    """In-memory console input. Once the lines run out it blocks, or returns EOF."""

    def __init__(self, lines: list[str] | None = None, *, eof: bool = False) -> None:
        self.lines = list(lines or [])
        self.eof = eof

    async def readline(self) -> str | None:
        if self.lines:
            return self.lines.pop(0)
        if self.eof:
            return None
        await asyncio.Event().wait()
        return None


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide an empty Meadow project directory."""
    project = tmp_path / "app"
    project.mkdir()
    return project


@pytest.fixture
def settings(project_dir: Path) -> DeploySettings:
    """Provide test settings that never read the developer's `.env`."""
    return DeploySettings(
        _env_file=None,
        project_dir=project_dir,
        check_timeout_seconds=5.0,
        network_timeout_seconds=5.0,
        terminate_grace_seconds=0.1,
    )


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def interaction() -> FakeInteraction:
    return FakeInteraction()


@pytest.fixture
def make_reader() -> type[QueueLineReader]:
    return QueueLineReader
