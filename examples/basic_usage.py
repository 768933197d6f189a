#!/usr/bin/env python3
"""Programmatic deployment example.

This demonstrates using the orchestrator components directly:

* load settings from `.env`
* run the deployment workflow against a Meadow project directory
* stop it after a deadline by firing the caller cancellation signal

The project directory is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Sequence

from meadow_deploy.orchestrator.cancellation import CancellationSignal
from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.interaction.console import ConsoleInteraction
from meadow_deploy.orchestrator.logging import configure_logging
from meadow_deploy.orchestrator.tasks.launcher import SubprocessLauncher
from meadow_deploy.orchestrator.workflow.deploy import DeploymentWorkflow


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy to Meadow Cloud (programmatic example).")
    parser.add_argument("--project-dir", required=True, help="Meadow application directory")
    parser.add_argument(
        "--deadline-seconds",
        type=float,
        default=0.0,
        help="Cancel the whole deployment after this many seconds (0 means no deadline)",
    )
    return parser.parse_args(argv)


async def _deploy(settings: DeploySettings, deadline_seconds: float) -> int:
    cancel = CancellationSignal()
    if deadline_seconds > 0:
        asyncio.get_running_loop().call_later(deadline_seconds, cancel.cancel)

    workflow = DeploymentWorkflow(
        settings=settings,
        launcher=SubprocessLauncher(),
        interaction=ConsoleInteraction(),
    )
    result = await workflow.run(cancel)

    print(result.message)
    for step, state in (result.details or {}).get("steps", {}).items():
        print(f"  {step}: {state}")
    return 0 if result.ok else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = DeploySettings(project_dir=Path(args.project_dir))
    configure_logging(settings.log_level)

    return asyncio.run(_deploy(settings, args.deadline_seconds))


if __name__ == "__main__":
    raise SystemExit(main())
