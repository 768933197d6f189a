"""Unit tests for the terminal interaction backend."""

from __future__ import annotations

import asyncio
import io

import pytest

from meadow_deploy.orchestrator.cancellation import CancellationSignal, OperationCancelledError
from meadow_deploy.orchestrator.interaction.console import ConsoleInteraction
from meadow_deploy.orchestrator.interaction.types import (
    InputChoice,
    InputField,
    InputKind,
    PromptOptions,
)

CONFIRM = PromptOptions(primary_button_text="Install", secondary_button_text="Cancel")
COLLECTIONS = InputField(
    name="collection",
    label="Collection",
    kind=InputKind.CHOICE,
    choices=(InputChoice("4f2a", "North Lab"), InputChoice("9c10", "South Lab")),
)
PACKAGE = InputField(name="package_name", label="Package name")


def _console(make_reader, lines, **kwargs) -> tuple[ConsoleInteraction, io.StringIO]:
    output = io.StringIO()
    return ConsoleInteraction(reader=make_reader(lines, **kwargs), output=output), output


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("answers", "cancelled"),
    [
        (["y"], False),
        (["Install"], False),
        (["maybe", "yes"], False),
        (["n"], True),
        (["cancel"], True),
    ],
)
async def test_confirmation_answers(make_reader, answers, cancelled) -> None:
    console, _ = _console(make_reader, answers)

    result = await console.prompt_confirmation(
        "Install Meadow CLI", "Install now?", CONFIRM, cancel=CancellationSignal()
    )

    assert result.cancelled is cancelled
    assert result.data is (None if cancelled else True)


@pytest.mark.asyncio
async def test_confirmation_at_end_of_input_is_cancelled(make_reader) -> None:
    console, _ = _console(make_reader, [], eof=True)

    result = await console.prompt_confirmation(
        "Install Meadow CLI", "Install now?", CONFIRM, cancel=CancellationSignal()
    )

    assert result.cancelled


@pytest.mark.asyncio
async def test_confirmation_raises_when_signal_fires(make_reader) -> None:
    console, _ = _console(make_reader, [])
    cancel = CancellationSignal()
    asyncio.get_running_loop().call_later(0.01, cancel.cancel)

    with pytest.raises(OperationCancelledError):
        await console.prompt_confirmation(
            "Install Meadow CLI", "Install now?", CONFIRM, cancel=cancel
        )


@pytest.mark.asyncio
async def test_inputs_accept_index_label_and_text(make_reader) -> None:
    console, output = _console(make_reader, ["7", "south lab", "", "demo"])

    result = await console.prompt_inputs(
        "Deploy", "Choose", [COLLECTIONS, PACKAGE], PromptOptions(), cancel=CancellationSignal()
    )

    assert not result.cancelled
    assert result.data is not None
    assert result.data.get("collection") == "9c10"
    assert result.data.get("package_name") == "demo"
    text = output.getvalue()
    assert "1. North Lab (4f2a)" in text
    assert "Invalid choice" in text
    assert "Package name is required." in text


@pytest.mark.asyncio
async def test_inputs_can_be_cancelled(make_reader) -> None:
    console, _ = _console(make_reader, ["1", "/cancel"])

    result = await console.prompt_inputs(
        "Deploy", "Choose", [COLLECTIONS, PACKAGE], PromptOptions(), cancel=CancellationSignal()
    )

    assert result.cancelled
    assert result.data is None


@pytest.mark.asyncio
async def test_message_box_cancel_word(make_reader) -> None:
    wait_options = PromptOptions(primary_button_text="", secondary_button_text="Cancel")
    console, output = _console(make_reader, ["", "c"])

    result = await console.prompt_message_box(
        "Meadow CLI", "Checking...", wait_options, cancel=CancellationSignal()
    )

    assert result.cancelled
    assert "== Meadow CLI ==" in output.getvalue()


@pytest.mark.asyncio
async def test_message_box_at_end_of_input_waits_for_signal(make_reader) -> None:
    wait_options = PromptOptions(primary_button_text="", secondary_button_text="Cancel")
    console, _ = _console(make_reader, [], eof=True)
    cancel = CancellationSignal()
    asyncio.get_running_loop().call_later(0.01, cancel.cancel)

    with pytest.raises(OperationCancelledError):
        await console.prompt_message_box("Meadow CLI", "Checking...", wait_options, cancel=cancel)
