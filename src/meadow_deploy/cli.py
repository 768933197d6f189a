"""Console script shim; the CLI lives in `meadow_deploy.orchestrator.main`."""

from __future__ import annotations

from meadow_deploy.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
