"""Maintenance commands: log out of Meadow Cloud, remove the local Meadow CLI."""

from __future__ import annotations

import logging

from meadow_deploy.orchestrator.cancellation import CancellationSignal

from .state_machine import StepName, StepState, WorkflowRun
from .steps import StepAborted, StepRunner, WorkflowResult, result_details

logger = logging.getLogger(__name__)


class LogoutWorkflow(StepRunner):
    async def run(self, cancel: CancellationSignal) -> WorkflowResult:
        run = WorkflowRun()
        try:
            await self.confirm(
                run,
                StepName.CONFIRM_LOGOUT,
                title="Logout from Meadow Cloud",
                message="Do you want to log out of Meadow Cloud?",
                primary_button_text="Logout",
                declined_message="User canceled the logout operation.",
                cancel=cancel,
            )
            outcome = await self.run_task(
                run,
                StepName.LOGOUT,
                self.tasks.logout(),
                title="Logout from Meadow Cloud",
                message="Logging out of Meadow Cloud...",
                cancel=cancel,
            )
            self.succeed(run, StepName.LOGOUT, outcome=outcome)
        except StepAborted as e:
            return _aborted(run, e)
        except Exception as e:
            logger.exception("Logout workflow failed")
            return WorkflowResult(
                ok=False,
                message=f"An error occurred while logging out of Meadow Cloud: {e}",
                details=result_details(run),
            )
        return WorkflowResult(
            ok=True, message="Logged out of Meadow Cloud.", details=result_details(run)
        )


class UninstallCliWorkflow(StepRunner):
    async def run(self, cancel: CancellationSignal) -> WorkflowResult:
        run = WorkflowRun()
        try:
            await self.confirm(
                run,
                StepName.CONFIRM_UNINSTALL,
                title="Uninstall Meadow CLI",
                message=(
                    f"Do you want to remove the local {self.settings.cli_package} tool "
                    f"from {self.settings.project_dir}?"
                ),
                primary_button_text="Uninstall",
                declined_message="User canceled the removal of the Meadow CLI.",
                cancel=cancel,
            )
            outcome = await self.run_task(
                run,
                StepName.UNINSTALL_CLI,
                self.tasks.cli_uninstall(),
                title="Uninstall Meadow CLI",
                message="Uninstalling the Meadow CLI...",
                cancel=cancel,
            )
            self.succeed(run, StepName.UNINSTALL_CLI, outcome=outcome)
        except StepAborted as e:
            return _aborted(run, e)
        except Exception as e:
            logger.exception("Uninstall workflow failed")
            return WorkflowResult(
                ok=False,
                message=f"An error occurred while uninstalling the Meadow CLI: {e}",
                details=result_details(run),
            )
        return WorkflowResult(
            ok=True, message="Uninstalled the Meadow CLI.", details=result_details(run)
        )


def _aborted(run: WorkflowRun, error: StepAborted) -> WorkflowResult:
    return WorkflowResult(
        ok=False,
        message=error.message,
        details=result_details(run),
        cancelled=error.state == StepState.CANCELLED_BY_CALLER,
    )
