"""Meadow Cloud deployment orchestrator.

Drives the Meadow CLI through a deployment: make sure the CLI is installed and
logged in, pick a collection, then create, upload and publish a firmware
package. Every external step runs under a cancellable interactive wait.
"""

__version__ = "0.1.0"

from meadow_deploy.orchestrator.config import DeploySettings

__all__ = ["__version__", "DeploySettings"]
