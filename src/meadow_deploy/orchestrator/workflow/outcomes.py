"""The five ways an interactive wait can end."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StartFailed:
    reason: str


@dataclass(frozen=True, slots=True)
class Finished:
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True, slots=True)
class TimedOut:
    timeout_seconds: float


@dataclass(frozen=True, slots=True)
class CancelledByUser:
    pass


@dataclass(frozen=True, slots=True)
class CancelledByCaller:
    pass


RunOutcome = StartFailed | Finished | TimedOut | CancelledByUser | CancelledByCaller


def describe(outcome: RunOutcome) -> str:
    """Short label for logs."""

    if isinstance(outcome, Finished):
        return f"finished({outcome.exit_code})"
    if isinstance(outcome, StartFailed):
        return "start_failed"
    if isinstance(outcome, TimedOut):
        return "timed_out"
    if isinstance(outcome, CancelledByUser):
        return "cancelled_by_user"
    return "cancelled_by_caller"
