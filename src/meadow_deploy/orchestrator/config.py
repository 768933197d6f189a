"""Configuration for the Meadow cloud deployment workflow.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Every Meadow CLI invocation goes through ``dotnet tool run meadow`` inside the
project directory, so the CLI is expected to be installed as a *local* dotnet
tool (the workflow installs it there when it is missing).
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeploySettings(BaseSettings):
    """Settings for the deployment workflow.

    Environment variables:
    - LOG_LEVEL                        (optional)
    - MEADOW_PROJECT_DIR               (optional)
    - MEADOW_DOTNET                    (optional)
    - MEADOW_CHECK_TIMEOUT_SECONDS     (optional)
    - MEADOW_NETWORK_TIMEOUT_SECONDS   (optional)
    - MEADOW_STALE_BUILD_DIRS          (optional, JSON list)
    - MEADOW_STALE_BUILD_FILES         (optional, JSON list)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `DeploySettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    project_dir: Path = Field(
        default=Path("."),
        validation_alias="MEADOW_PROJECT_DIR",
        description="Meadow application project directory; every CLI task runs here",
    )

    dotnet_executable: str = Field(
        default="dotnet",
        validation_alias="MEADOW_DOTNET",
        description="dotnet host used to install and run the Meadow CLI",
    )
    cli_package: str = Field(
        default="WildernessLabs.Meadow.Cli",
        validation_alias="MEADOW_CLI_PACKAGE",
        description="NuGet package id of the Meadow CLI dotnet tool",
    )
    cli_prerelease: bool = Field(
        default=True,
        validation_alias="MEADOW_CLI_PRERELEASE",
        description="Allow prerelease versions when installing the Meadow CLI",
    )

    check_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias="MEADOW_CHECK_TIMEOUT_SECONDS",
        description="Wait budget for local steps (CLI check/install, login check)",
    )
    network_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        validation_alias="MEADOW_NETWORK_TIMEOUT_SECONDS",
        description=(
            "Wait budget for network-bound steps (login, collection listing, "
            "package create/upload/publish)"
        ),
    )

    stale_build_dirs: list[str] = Field(
        default_factory=lambda: ["bin", "obj", "mpak"],
        validation_alias="MEADOW_STALE_BUILD_DIRS",
        description="Directories (relative to project_dir) removed before packaging",
    )
    stale_build_files: list[str] = Field(
        default_factory=lambda: ["meadow.mpak"],
        validation_alias="MEADOW_STALE_BUILD_FILES",
        description="Files (relative to project_dir) removed before packaging",
    )

    terminate_on_abort: bool = Field(
        default=True,
        validation_alias="MEADOW_TERMINATE_ON_ABORT",
        description="Terminate a still-running CLI process when its step is abandoned",
    )
    terminate_grace_seconds: float = Field(
        default=5.0,
        ge=0,
        validation_alias="MEADOW_TERMINATE_GRACE_SECONDS",
        description="Grace period between terminate and kill",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("stale_build_dirs", "stale_build_files")
    @classmethod
    def _relative_paths_only(cls, value: list[str]) -> list[str]:
        for item in value:
            if not item.strip():
                raise ValueError("stale build paths must not be empty")
            if Path(item).is_absolute() or ".." in Path(item).parts:
                raise ValueError(f"stale build path must stay inside the project: {item}")
        return value

    @property
    def meadow_command(self) -> list[str]:
        """argv prefix that runs the locally installed Meadow CLI."""

        return [self.dotnet_executable, "tool", "run", "meadow"]
