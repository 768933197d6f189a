"""CLI entrypoint for the Meadow Cloud deployment orchestrator."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from meadow_deploy import __version__
from meadow_deploy.orchestrator.cancellation import CancellationSignal
from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.interaction.console import ConsoleInteraction
from meadow_deploy.orchestrator.interaction.types import InteractionService
from meadow_deploy.orchestrator.logging import configure_logging
from meadow_deploy.orchestrator.tasks.launcher import ProcessLauncher, SubprocessLauncher
from meadow_deploy.orchestrator.workflow.deploy import DeploymentWorkflow
from meadow_deploy.orchestrator.workflow.maintenance import LogoutWorkflow, UninstallCliWorkflow
from meadow_deploy.orchestrator.workflow.steps import WorkflowResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_FAILED = 4
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meadow-deploy",
        description="Deploy Meadow firmware to Meadow Cloud through the Meadow CLI",
    )
    parser.add_argument(
        "--version", action="version", version=f"meadow-cloud-deploy {__version__}"
    )
    parser.add_argument(
        "--project-dir",
        default=None,
        help="Meadow application directory (overrides MEADOW_PROJECT_DIR)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "deploy",
        help=(
            "Install and log in to the Meadow CLI if needed, then create, upload and "
            "publish a firmware package"
        ),
    )
    subparsers.add_parser("logout", help="Log out of Meadow Cloud")
    subparsers.add_parser(
        "uninstall-cli",
        help="Remove the Meadow CLI local dotnet tool from the project",
    )

    return parser


def build_workflow(
    command: str,
    *,
    settings: DeploySettings,
    launcher: ProcessLauncher,
    interaction: InteractionService,
) -> DeploymentWorkflow | LogoutWorkflow | UninstallCliWorkflow:
    if command == "deploy":
        return DeploymentWorkflow(settings=settings, launcher=launcher, interaction=interaction)
    if command == "logout":
        return LogoutWorkflow(settings=settings, launcher=launcher, interaction=interaction)
    if command == "uninstall-cli":
        return UninstallCliWorkflow(settings=settings, launcher=launcher, interaction=interaction)
    raise ValueError(f"Unknown command: {command}")


async def run_command(
    command: str,
    settings: DeploySettings,
    *,
    launcher: ProcessLauncher | None = None,
    interaction: InteractionService | None = None,
) -> WorkflowResult:
    """Run one workflow with Ctrl+C wired to its caller cancellation signal."""

    cancel = CancellationSignal()
    workflow = build_workflow(
        command,
        settings=settings,
        launcher=launcher or SubprocessLauncher(),
        interaction=interaction or ConsoleInteraction(),
    )

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
        handles_sigint = True
    except (NotImplementedError, RuntimeError):
        # No signal handlers on this platform/thread; Ctrl+C raises KeyboardInterrupt instead.
        handles_sigint = False

    try:
        return await workflow.run(cancel)
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)


def exit_code_for(result: WorkflowResult) -> int:
    if result.ok:
        return EXIT_OK
    if result.cancelled:
        return EXIT_CANCELLED
    return EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = DeploySettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG

    if args.project_dir is not None:
        settings = settings.model_copy(update={"project_dir": Path(args.project_dir)})

    configure_logging(settings.log_level)

    try:
        result = asyncio.run(run_command(args.command, settings))
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return EXIT_CANCELLED
    except Exception:
        logger.exception("Command failed", extra={"command": args.command})
        return EXIT_ERROR

    logger.info(
        "Command finished",
        extra={"command": args.command, "ok": result.ok, "details": result.details},
    )
    if result.ok:
        print(result.message)
    else:
        print(result.message, file=sys.stderr)
    return exit_code_for(result)


if __name__ == "__main__":
    raise SystemExit(main())
