"""Step plumbing shared by the deployment and maintenance workflows.

A step either commits ``SUCCEEDED``/``SKIPPED`` and the workflow moves on, or
commits one of the failure states and raises :class:`StepAborted`, which the
workflow turns into a failed :class:`WorkflowResult`. Nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from meadow_deploy.orchestrator.cancellation import CancellationSignal, OperationCancelledError
from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.interaction.types import (
    InteractionService,
    MessageIntent,
    PromptOptions,
)
from meadow_deploy.orchestrator.tasks.handle import TaskHandle
from meadow_deploy.orchestrator.tasks.launcher import ProcessLauncher

from .interactive_wait import run_interactive
from .outcomes import (
    CancelledByCaller,
    CancelledByUser,
    Finished,
    RunOutcome,
    StartFailed,
    TimedOut,
    describe,
)
from .resources import MeadowTaskFactory
from .state_machine import StepName, StepState, WorkflowRun

logger = logging.getLogger(__name__)

# Phrases completing "... while <label>" / "You cancelled <label>".
STEP_LABELS: dict[StepName, str] = {
    StepName.CHECK_CLI: "checking the Meadow CLI installation",
    StepName.CONFIRM_INSTALL: "confirming the Meadow CLI installation",
    StepName.INSTALL_CLI: "installing the Meadow CLI",
    StepName.CHECK_LOGIN: "checking the Meadow Cloud login",
    StepName.CONFIRM_LOGIN: "confirming the Meadow Cloud login",
    StepName.LOGIN: "logging in to Meadow Cloud",
    StepName.LIST_COLLECTIONS: "listing Meadow Cloud collections",
    StepName.CHOOSE_TARGET: "choosing the deployment target",
    StepName.RESET_BUILD: "removing stale build output",
    StepName.BUILD_PACKAGE: "creating the firmware package",
    StepName.UPLOAD_PACKAGE: "uploading the firmware package",
    StepName.PUBLISH_PACKAGE: "publishing the firmware package",
    StepName.CONFIRM_LOGOUT: "confirming the Meadow Cloud logout",
    StepName.LOGOUT: "logging out of Meadow Cloud",
    StepName.CONFIRM_UNINSTALL: "confirming the Meadow CLI removal",
    StepName.UNINSTALL_CLI: "uninstalling the Meadow CLI",
}

FAILURE_MESSAGES: dict[StepName, str] = {
    StepName.CHECK_CLI: "Failed to check the Meadow CLI installation.",
    StepName.INSTALL_CLI: "Failed to install the Meadow CLI.",
    StepName.CHECK_LOGIN: "Failed to check the Meadow Cloud login.",
    StepName.LOGIN: "Failed to log in to Meadow Cloud.",
    StepName.LIST_COLLECTIONS: "Failed to list Meadow Cloud collections.",
    StepName.BUILD_PACKAGE: "Failed to create the firmware package.",
    StepName.UPLOAD_PACKAGE: "Failed to upload the firmware package.",
    StepName.PUBLISH_PACKAGE: "Failed to publish the firmware package.",
    StepName.LOGOUT: "Failed to log out of Meadow Cloud.",
    StepName.UNINSTALL_CLI: "Failed to uninstall the Meadow CLI.",
}

# Steps bounded by the short, local budget; everything else talks to the network.
LOCAL_STEPS: frozenset[StepName] = frozenset(
    {StepName.CHECK_CLI, StepName.INSTALL_CLI, StepName.CHECK_LOGIN, StepName.UNINSTALL_CLI}
)


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    ok: bool
    message: str = ""
    details: dict[str, object] | None = None
    cancelled: bool = False


class StepAborted(Exception):
    def __init__(self, step: StepName, state: StepState, message: str) -> None:
        super().__init__(message)
        self.step = step
        self.state = state
        self.message = message


def outcome_message(step: StepName, outcome: RunOutcome) -> str:
    label = STEP_LABELS[step]
    if isinstance(outcome, StartFailed):
        return outcome.reason
    if isinstance(outcome, TimedOut):
        subject = label[:1].upper() + label[1:]
        return f"{subject} timed out after {outcome.timeout_seconds:g} seconds."
    if isinstance(outcome, CancelledByUser):
        return f"You cancelled {label}."
    if isinstance(outcome, CancelledByCaller):
        return f"The operation was cancelled while {label}."
    failure = FAILURE_MESSAGES.get(step, f"Failed while {label}.")
    return f"{failure} Please check the logs for more details."


def outcome_state(outcome: RunOutcome) -> StepState:
    if isinstance(outcome, TimedOut):
        return StepState.TIMED_OUT
    if isinstance(outcome, CancelledByUser):
        return StepState.CANCELLED_BY_USER
    if isinstance(outcome, CancelledByCaller):
        return StepState.CANCELLED_BY_CALLER
    if isinstance(outcome, Finished) and outcome.succeeded:
        return StepState.SUCCEEDED
    return StepState.FAILED


class StepRunner:
    """Collaborators plus the helpers every workflow step is built from."""

    def __init__(
        self,
        *,
        settings: DeploySettings,
        launcher: ProcessLauncher,
        interaction: InteractionService,
    ) -> None:
        self.settings = settings
        self.interaction = interaction
        self.tasks = MeadowTaskFactory(settings, launcher)

    def timeout_for(self, step: StepName) -> float:
        if step in LOCAL_STEPS:
            return self.settings.check_timeout_seconds
        return self.settings.network_timeout_seconds

    async def run_task(
        self,
        run: WorkflowRun,
        step: StepName,
        handle: TaskHandle,
        *,
        title: str,
        message: str,
        cancel: CancellationSignal,
        require_success: bool = True,
    ) -> Finished:
        """Run ``handle`` as ``step``.

        Returns the :class:`Finished` outcome with the step still ``RUNNING`` so
        the caller can harvest output before committing. Every other outcome (and
        a non-zero exit when ``require_success``) commits a failure and raises.
        """

        run.begin(step)
        outcome = await run_interactive(
            handle,
            interaction=self.interaction,
            title=title,
            message=message,
            cancel=cancel,
            timeout_seconds=self.timeout_for(step),
            terminate_on_abort=self.settings.terminate_on_abort,
            terminate_grace_seconds=self.settings.terminate_grace_seconds,
        )
        logger.info(
            "Step task completed",
            extra={"step": step.value, "task": handle.name, "outcome": describe(outcome)},
        )
        if isinstance(outcome, Finished) and (outcome.succeeded or not require_success):
            return outcome
        self.abort(run, step, outcome_state(outcome), outcome_message(step, outcome), outcome)

    async def confirm(
        self,
        run: WorkflowRun,
        step: StepName,
        *,
        title: str,
        message: str,
        primary_button_text: str,
        declined_message: str,
        cancel: CancellationSignal,
    ) -> None:
        run.begin(step)
        options = PromptOptions(
            primary_button_text=primary_button_text,
            secondary_button_text="Cancel",
            intent=MessageIntent.CONFIRMATION,
        )
        try:
            result = await self.interaction.prompt_confirmation(
                title, message, options, cancel=cancel
            )
        except OperationCancelledError:
            self.abort(
                run,
                step,
                StepState.CANCELLED_BY_CALLER,
                outcome_message(step, CancelledByCaller()),
            )
        if result.cancelled:
            self.abort(run, step, StepState.CANCELLED_BY_USER, declined_message)
        run.commit(step, StepState.SUCCEEDED)

    def succeed(
        self,
        run: WorkflowRun,
        step: StepName,
        *,
        outcome: RunOutcome | None = None,
        message: str = "",
    ) -> None:
        run.commit(step, StepState.SUCCEEDED, outcome=outcome, message=message)

    def abort(
        self,
        run: WorkflowRun,
        step: StepName,
        state: StepState,
        message: str,
        outcome: RunOutcome | None = None,
    ) -> NoReturn:
        run.commit(step, state, outcome=outcome, message=message)
        logger.warning(
            "Step aborted the workflow",
            extra={"step": step.value, "state": state.value, "reason": message},
        )
        raise StepAborted(step, state, message)


def result_details(run: WorkflowRun) -> dict[str, object]:
    return {"steps": {record.name.value: record.state.value for record in run.steps}}
