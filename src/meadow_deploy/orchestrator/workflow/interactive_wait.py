"""Run one task while a cancellable prompt is on screen.

The task's exit and the prompt are raced under a single bounded signal
derived from the caller's signal plus a timeout. Whichever side resolves
first decides the outcome; the other side is cancelled and awaited before
this module returns, so no waiter outlives the step.

If the exit and the prompt complete in the same loop iteration the exit is
taken. That tie is not deterministic in wall-clock terms and nothing depends
on it.
"""

from __future__ import annotations

import asyncio
import logging

from meadow_deploy.orchestrator.cancellation import (
    CancellationSignal,
    CancelReason,
    OperationCancelledError,
    cancel_and_wait,
)
from meadow_deploy.orchestrator.interaction.types import (
    InteractionService,
    MessageIntent,
    PromptOptions,
    PromptResult,
)
from meadow_deploy.orchestrator.tasks.handle import TaskHandle, TaskState
from meadow_deploy.orchestrator.tasks.launcher import TaskStartError

from .outcomes import (
    CancelledByCaller,
    CancelledByUser,
    Finished,
    RunOutcome,
    StartFailed,
    TimedOut,
    describe,
)

logger = logging.getLogger(__name__)

WAIT_PROMPT_OPTIONS = PromptOptions(
    primary_button_text="",
    secondary_button_text="Cancel",
    show_secondary_button=True,
    intent=MessageIntent.INFORMATION,
)


class InteractionContractError(AssertionError):
    """The wait prompt resolved with something other than "cancel"."""


async def run_interactive(
    handle: TaskHandle,
    *,
    interaction: InteractionService,
    title: str,
    message: str,
    cancel: CancellationSignal,
    timeout_seconds: float,
    terminate_on_abort: bool = True,
    terminate_grace_seconds: float = 5.0,
) -> RunOutcome:
    """Start ``handle`` and race its exit against the wait prompt under ``timeout_seconds``."""

    try:
        await handle.start()
    except TaskStartError as error:
        return StartFailed(reason=str(error))

    try:
        with cancel.linked(timeout_seconds) as bounded:
            prompt_task = asyncio.create_task(
                interaction.prompt_message_box(
                    title, message, WAIT_PROMPT_OPTIONS, cancel=bounded
                ),
                name=f"prompt-{handle.name}",
            )
            exit_task = asyncio.create_task(
                handle.wait_for_exit(bounded),
                name=f"exit-{handle.name}",
            )
            try:
                done, _ = await asyncio.wait(
                    {prompt_task, exit_task}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                await cancel_and_wait(prompt_task, exit_task)

            outcome = _resolve(handle, exit_task, prompt_task, done, bounded, timeout_seconds)
    except BaseException:
        if terminate_on_abort and handle.state == TaskState.RUNNING:
            logger.warning("Interactive wait failed; stopping task", extra={"task": handle.name})
            await handle.terminate(terminate_grace_seconds)
        raise

    logger.info(
        "Interactive wait resolved",
        extra={"task": handle.name, "outcome": describe(outcome)},
    )
    abandoned = not isinstance(outcome, Finished) and handle.state == TaskState.RUNNING
    if terminate_on_abort and abandoned:
        await handle.terminate(terminate_grace_seconds)
    return outcome


def _resolve(
    handle: TaskHandle,
    exit_task: asyncio.Task[int],
    prompt_task: asyncio.Task[PromptResult[bool]],
    done: set[asyncio.Task[object]],
    bounded: CancellationSignal,
    timeout_seconds: float,
) -> RunOutcome:
    if exit_task in done:
        error = exit_task.exception()
        if error is None:
            return Finished(exit_code=exit_task.result())
        if not isinstance(error, OperationCancelledError):
            raise error
    elif prompt_task in done:
        error = prompt_task.exception()
        if error is None:
            result = prompt_task.result()
            if not result.cancelled:
                raise InteractionContractError(
                    f"Wait prompt for task '{handle.name}' resolved without cancelling; "
                    "the only affordance offered is cancel"
                )
            return CancelledByUser()
        if not isinstance(error, OperationCancelledError):
            raise error

    if bounded.reason == CancelReason.TIMEOUT:
        return TimedOut(timeout_seconds=timeout_seconds)
    return CancelledByCaller()
