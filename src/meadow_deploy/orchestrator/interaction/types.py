"""Typed prompt contracts shared by the workflow and interaction backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Protocol, TypeVar

from meadow_deploy.orchestrator.cancellation import CancellationSignal

D = TypeVar("D")


class MessageIntent(str, Enum):
    NONE = "none"
    INFORMATION = "information"
    CONFIRMATION = "confirmation"
    WARNING = "warning"
    ERROR = "error"


class InputKind(str, Enum):
    TEXT = "text"
    CHOICE = "choice"


@dataclass(frozen=True, slots=True)
class PromptOptions:
    primary_button_text: str = "OK"
    secondary_button_text: str = "Cancel"
    show_secondary_button: bool = True
    intent: MessageIntent = MessageIntent.NONE


@dataclass(frozen=True, slots=True)
class InputChoice:
    value: str
    label: str


@dataclass(frozen=True, slots=True)
class InputField:
    """One requested value. ``CHOICE`` fields answer with one of ``choices``."""

    name: str
    label: str
    kind: InputKind = InputKind.TEXT
    choices: tuple[InputChoice, ...] = ()
    required: bool = True
    placeholder: str = ""


@dataclass(frozen=True, slots=True)
class PromptResult(Generic[D]):
    """Resolved prompt. ``data`` is only meaningful when not cancelled."""

    cancelled: bool
    data: D | None = None


@dataclass(frozen=True, slots=True)
class InputValues:
    values: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> str:
        return self.values.get(name, "")


class InteractionService(Protocol):
    """Human interaction capability.

    Every prompt raises ``OperationCancelledError`` when ``cancel`` fires before
    the human answers; a human dismissing the prompt is a result with
    ``cancelled=True`` instead.
    """

    async def prompt_confirmation(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]: ...

    async def prompt_inputs(
        self,
        title: str,
        message: str,
        fields: list[InputField],
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[InputValues]: ...

    async def prompt_message_box(
        self,
        title: str,
        message: str,
        options: PromptOptions,
        *,
        cancel: CancellationSignal,
    ) -> PromptResult[bool]: ...
