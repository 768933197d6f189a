"""Unit tests for the logout and uninstall maintenance commands."""

from __future__ import annotations

import pytest

from meadow_deploy.orchestrator.cancellation import CancellationSignal
from meadow_deploy.orchestrator.workflow.maintenance import LogoutWorkflow, UninstallCliWorkflow


@pytest.mark.asyncio
async def test_logout_runs_after_confirmation(settings, launcher, interaction) -> None:
    result = await LogoutWorkflow(
        settings=settings, launcher=launcher, interaction=interaction
    ).run(CancellationSignal())

    assert result.ok
    assert result.message == "Logged out of Meadow Cloud."
    assert launcher.argv_of("meadow-cli-logout") == ["dotnet", "tool", "run", "meadow", "logout"]
    assert launcher.launches[0].cwd == settings.project_dir


@pytest.mark.asyncio
async def test_declined_logout_runs_nothing(settings, launcher, interaction) -> None:
    interaction.confirm_answers.append(False)

    result = await LogoutWorkflow(
        settings=settings, launcher=launcher, interaction=interaction
    ).run(CancellationSignal())

    assert not result.ok
    assert result.message == "User canceled the logout operation."
    assert launcher.launches == []


@pytest.mark.asyncio
async def test_failed_uninstall_names_the_step(settings, launcher, interaction) -> None:
    launcher.script("meadow-cli-uninstall", exit_code=1)

    result = await UninstallCliWorkflow(
        settings=settings, launcher=launcher, interaction=interaction
    ).run(CancellationSignal())

    assert not result.ok
    assert result.message == (
        "Failed to uninstall the Meadow CLI. Please check the logs for more details."
    )
    assert launcher.argv_of("meadow-cli-uninstall") == [
        "dotnet",
        "tool",
        "uninstall",
        "--local",
        "WildernessLabs.Meadow.Cli",
    ]


@pytest.mark.asyncio
async def test_cancelled_before_confirmation(settings, launcher, interaction) -> None:
    cancel = CancellationSignal()
    cancel.cancel()

    result = await UninstallCliWorkflow(
        settings=settings, launcher=launcher, interaction=interaction
    ).run(cancel)

    assert not result.ok
    assert result.cancelled
    assert result.message == "The operation was cancelled while confirming the Meadow CLI removal."
    assert launcher.launches == []
