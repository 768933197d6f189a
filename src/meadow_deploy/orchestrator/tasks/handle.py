"""Task handles: one named external command, run at most once."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from meadow_deploy.orchestrator.cancellation import CancellationSignal, wait_or_cancel

from .annotations import AnnotationStore, MissingAnnotationError
from .launcher import ProcessLauncher, RunningProcess, TaskStartError
from .logs import LogLineSequence

logger = logging.getLogger(__name__)

ArgsBuilder = Callable[[AnnotationStore], list[str]]
StateListener = Callable[["TaskHandle", "TaskState"], None]


class TaskState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.NOT_STARTED: {TaskState.STARTING},
    TaskState.STARTING: {TaskState.RUNNING, TaskState.FAILED},
    TaskState.RUNNING: {TaskState.FINISHED},
    TaskState.FINISHED: set(),
    TaskState.FAILED: set(),
}


class IllegalTransitionError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """What to run. ``args_builder`` appends arguments resolved at start time."""

    name: str
    executable: str
    base_args: tuple[str, ...] = ()
    working_dir: Path = Path(".")
    args_builder: ArgsBuilder | None = field(default=None, compare=False)


class TaskHandle:
    """Reference to one run of an external command.

    Lifecycle: ``NOT_STARTED -> STARTING -> RUNNING -> FINISHED`` or
    ``NOT_STARTED -> STARTING -> FAILED``. A handle is single use; build a new
    one for every workflow run.
    """

    def __init__(self, spec: TaskSpec, launcher: ProcessLauncher) -> None:
        self.spec = spec
        self.annotations = AnnotationStore(owner=spec.name)
        self.logs = LogLineSequence()
        self._launcher = launcher
        self._state = TaskState.NOT_STARTED
        self._exit_code: int | None = None
        self._failure_reason = ""
        self._process: RunningProcess | None = None
        self._finished = asyncio.Event()
        self._watcher: asyncio.Task[None] | None = None
        self._listeners: list[StateListener] = []

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def failure_reason(self) -> str:
        return self._failure_reason

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def build_argv(self) -> list[str]:
        """Resolve the full command line; raises if a required annotation is missing."""

        argv = [self.spec.executable, *self.spec.base_args]
        if self.spec.args_builder is not None:
            argv.extend(self.spec.args_builder(self.annotations))
        return argv

    async def start(self) -> None:
        """Launch the process. Raises :class:`TaskStartError` if that is not possible."""

        self._transition(TaskState.STARTING)
        try:
            argv = self.build_argv()
        except MissingAnnotationError as error:
            self._fail(str(error))
            raise TaskStartError(str(error)) from error

        try:
            self._process = await self._launcher.launch(
                name=self.name,
                argv=argv,
                cwd=self.spec.working_dir,
                on_line=self._on_line,
            )
        except TaskStartError as error:
            self._fail(str(error))
            raise
        except asyncio.CancelledError:
            self._fail("start was cancelled")
            raise

        self._transition(TaskState.RUNNING)
        logger.info("Task started", extra={"task": self.name, "pid": self.pid})
        self._watcher = asyncio.create_task(self._watch(self._process), name=f"watch-{self.name}")

    async def wait_for_exit(self, cancel: CancellationSignal | None = None) -> int:
        """Suspend until the task finishes; raises ``OperationCancelledError`` on ``cancel``."""

        if self._state in {TaskState.NOT_STARTED, TaskState.STARTING, TaskState.FAILED}:
            raise RuntimeError(f"Task '{self.name}' is not running (state={self._state.value})")
        await wait_or_cancel(self._finished.wait(), cancel)
        assert self._exit_code is not None
        return self._exit_code

    async def terminate(self, grace_seconds: float = 5.0) -> None:
        if self._state != TaskState.RUNNING or self._process is None:
            return
        logger.warning("Terminating task", extra={"task": self.name, "pid": self.pid})
        await self._process.terminate(grace_seconds)
        await self._finished.wait()

    async def _watch(self, process: RunningProcess) -> None:
        try:
            exit_code = await process.wait()
        except Exception:
            logger.exception("Waiting for task failed", extra={"task": self.name})
            exit_code = -1
        self._exit_code = exit_code
        self.logs.complete()
        self._transition(TaskState.FINISHED)
        self._finished.set()
        logger.info("Task finished", extra={"task": self.name, "exit_code": exit_code})

    def _on_line(self, content: str) -> None:
        self.logs.append(content)

    def _fail(self, reason: str) -> None:
        self._failure_reason = reason
        self.logs.complete()
        self._transition(TaskState.FAILED)
        logger.error("Task failed to start", extra={"task": self.name, "reason": reason})

    def _transition(self, to: TaskState) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self._state, set())
        if to not in allowed:
            raise IllegalTransitionError(
                f"Illegal task transition for '{self.name}': {self._state.value} -> {to.value}"
            )
        self._state = to
        for listener in list(self._listeners):
            listener(self, to)
