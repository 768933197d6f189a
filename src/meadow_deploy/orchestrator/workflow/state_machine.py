from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .outcomes import RunOutcome


class StepName(str, Enum):
    CHECK_CLI = "check_cli"
    CONFIRM_INSTALL = "confirm_install"
    INSTALL_CLI = "install_cli"
    CHECK_LOGIN = "check_login"
    CONFIRM_LOGIN = "confirm_login"
    LOGIN = "login"
    LIST_COLLECTIONS = "list_collections"
    CHOOSE_TARGET = "choose_target"
    RESET_BUILD = "reset_build"
    BUILD_PACKAGE = "build_package"
    UPLOAD_PACKAGE = "upload_package"
    PUBLISH_PACKAGE = "publish_package"
    CONFIRM_LOGOUT = "confirm_logout"
    LOGOUT = "logout"
    CONFIRM_UNINSTALL = "confirm_uninstall"
    UNINSTALL_CLI = "uninstall_cli"


class StepState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED_BY_USER = "cancelled_by_user"
    CANCELLED_BY_CALLER = "cancelled_by_caller"
    TIMED_OUT = "timed_out"


TERMINAL_STATES: frozenset[StepState] = frozenset(
    {
        StepState.SUCCEEDED,
        StepState.SKIPPED,
        StepState.FAILED,
        StepState.CANCELLED_BY_USER,
        StepState.CANCELLED_BY_CALLER,
        StepState.TIMED_OUT,
    }
)

ADVANCING_STATES: frozenset[StepState] = frozenset({StepState.SUCCEEDED, StepState.SKIPPED})

ALLOWED_TRANSITIONS: dict[StepState, frozenset[StepState]] = {
    StepState.PENDING: frozenset({StepState.RUNNING, StepState.SKIPPED}),
    StepState.RUNNING: TERMINAL_STATES - {StepState.SKIPPED},
}


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: StepState, to: StepState) -> StepState:
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


@dataclass(slots=True)
class StepRecord:
    name: StepName
    state: StepState = StepState.PENDING
    outcome: RunOutcome | None = None
    message: str = ""


@dataclass(slots=True)
class WorkflowRun:
    """State of one workflow invocation.

    Steps are recorded in the order they were entered. Harvested values are
    written by the step that produced them and only read by later steps. The
    record is discarded when the invocation ends.
    """

    steps: list[StepRecord] = field(default_factory=list)
    collections: dict[str, str] = field(default_factory=dict)
    collection_id: str | None = None
    package_name: str | None = None
    package_id: str | None = None

    def begin(self, name: StepName) -> StepRecord:
        self._ensure_previous_committed()
        record = StepRecord(name=name)
        record.state = transition(current=record.state, to=StepState.RUNNING)
        self.steps.append(record)
        return record

    def skip(self, name: StepName, message: str = "") -> StepRecord:
        self._ensure_previous_committed()
        record = StepRecord(name=name, message=message)
        record.state = transition(current=record.state, to=StepState.SKIPPED)
        self.steps.append(record)
        return record

    def commit(
        self,
        name: StepName,
        state: StepState,
        *,
        outcome: RunOutcome | None = None,
        message: str = "",
    ) -> StepRecord:
        record = self.current
        if record is None or record.name != name:
            raise IllegalTransitionError(f"Step {name.value} is not the running step")
        record.state = transition(current=record.state, to=state)
        record.outcome = outcome
        record.message = message
        return record

    @property
    def current(self) -> StepRecord | None:
        return self.steps[-1] if self.steps else None

    @property
    def outcomes(self) -> list[RunOutcome]:
        return [s.outcome for s in self.steps if s.outcome is not None]

    def state_of(self, name: StepName) -> StepState | None:
        for record in self.steps:
            if record.name == name:
                return record.state
        return None

    def _ensure_previous_committed(self) -> None:
        current = self.current
        if current is not None and current.state not in ADVANCING_STATES:
            raise IllegalTransitionError(
                f"Cannot advance past step {current.name.value} in state {current.state.value}"
            )
