"""Unit tests for the CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest import mock

import pytest

from meadow_deploy.orchestrator import main as cli
from meadow_deploy.orchestrator.workflow.steps import WorkflowResult


@pytest.fixture(autouse=True)
def isolated_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    for name in ("LOG_LEVEL", "MEADOW_PROJECT_DIR", "MEADOW_CHECK_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _fake_workflow(result: WorkflowResult) -> mock.Mock:
    workflow = mock.Mock()
    workflow.run = mock.AsyncMock(return_value=result)
    return workflow


@pytest.mark.parametrize(
    ("result", "code"),
    [
        (WorkflowResult(ok=True, message="Published."), 0),
        (WorkflowResult(ok=False, message="Failed to install the Meadow CLI."), 4),
        (WorkflowResult(ok=False, message="The operation was cancelled.", cancelled=True), 130),
    ],
)
def test_exit_code_follows_workflow_result(
    result: WorkflowResult, code: int, capsys: pytest.CaptureFixture[str]
) -> None:
    workflow = _fake_workflow(result)
    with mock.patch.object(cli, "build_workflow", return_value=workflow) as build:
        assert cli.main(["deploy"]) == code

    assert build.call_args.args == ("deploy",)
    workflow.run.assert_awaited_once()
    captured = capsys.readouterr()
    assert result.message in (captured.out if result.ok else captured.err)


def test_project_dir_flag_overrides_settings(tmp_path: Path) -> None:
    workflow = _fake_workflow(WorkflowResult(ok=True, message="Logged out."))
    with mock.patch.object(cli, "build_workflow", return_value=workflow) as build:
        assert cli.main(["--project-dir", str(tmp_path / "MeadowApp"), "logout"]) == 0

    assert build.call_args.kwargs["settings"].project_dir == tmp_path / "MeadowApp"


def test_invalid_configuration_exits_with_2(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("MEADOW_CHECK_TIMEOUT_SECONDS", "0")

    assert cli.main(["deploy"]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_unexpected_error_exits_with_1() -> None:
    with mock.patch.object(cli, "build_workflow", side_effect=RuntimeError("boom")):
        assert cli.main(["uninstall-cli"]) == 1


def test_build_workflow_selects_command(settings, launcher, interaction) -> None:
    kwargs = {"settings": settings, "launcher": launcher, "interaction": interaction}

    assert type(cli.build_workflow("deploy", **kwargs)).__name__ == "DeploymentWorkflow"
    assert type(cli.build_workflow("logout", **kwargs)).__name__ == "LogoutWorkflow"
    assert type(cli.build_workflow("uninstall-cli", **kwargs)).__name__ == "UninstallCliWorkflow"
    with pytest.raises(ValueError):
        cli.build_workflow("port-list", **kwargs)


def test_unknown_command_is_rejected_by_parser() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["port-list"])
