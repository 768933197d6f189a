"""Interaction contracts and the terminal backend."""

from .console import ConsoleInteraction, LineReader, StdinLineReader
from .types import (
    InputChoice,
    InputField,
    InputKind,
    InputValues,
    InteractionService,
    MessageIntent,
    PromptOptions,
    PromptResult,
)

__all__ = [
    "ConsoleInteraction",
    "InputChoice",
    "InputField",
    "InputKind",
    "InputValues",
    "InteractionService",
    "LineReader",
    "MessageIntent",
    "PromptOptions",
    "PromptResult",
    "StdinLineReader",
]
