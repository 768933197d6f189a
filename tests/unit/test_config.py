"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from meadow_deploy.orchestrator.config import DeploySettings

ENV_VARS = (
    "LOG_LEVEL",
    "MEADOW_PROJECT_DIR",
    "MEADOW_DOTNET",
    "MEADOW_CHECK_TIMEOUT_SECONDS",
    "MEADOW_NETWORK_TIMEOUT_SECONDS",
    "MEADOW_STALE_BUILD_DIRS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_settings_defaults() -> None:
    """Test default values when nothing is configured."""
    settings = DeploySettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.project_dir == Path(".")
    assert settings.check_timeout_seconds == 60.0
    assert settings.network_timeout_seconds == 300.0
    assert settings.stale_build_dirs == ["bin", "obj", "mpak"]
    assert settings.stale_build_files == ["meadow.mpak"]
    assert settings.meadow_command == ["dotnet", "tool", "run", "meadow"]


def test_settings_from_env_file(tmp_path: Path) -> None:
    """Test loading values from a `.env` file."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "LOG_LEVEL=DEBUG",
                "MEADOW_PROJECT_DIR=/work/MeadowApp",
                "MEADOW_DOTNET=/usr/share/dotnet/dotnet",
                "MEADOW_NETWORK_TIMEOUT_SECONDS=600",
                'MEADOW_STALE_BUILD_DIRS=["bin", "obj"]',
            ]
        ),
        encoding="utf-8",
    )

    settings = DeploySettings(_env_file=env_file)

    assert settings.log_level == "DEBUG"
    assert settings.project_dir == Path("/work/MeadowApp")
    assert settings.network_timeout_seconds == 600.0
    assert settings.stale_build_dirs == ["bin", "obj"]
    assert settings.meadow_command[0] == "/usr/share/dotnet/dotnet"


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("MEADOW_CHECK_TIMEOUT_SECONDS=30\n", encoding="utf-8")
    monkeypatch.setenv("MEADOW_CHECK_TIMEOUT_SECONDS", "15")

    assert DeploySettings(_env_file=env_file).check_timeout_seconds == 15.0


@pytest.mark.parametrize("value", ["0", "-5"])
def test_timeouts_must_be_positive(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("MEADOW_CHECK_TIMEOUT_SECONDS", value)

    with pytest.raises(ValidationError):
        DeploySettings(_env_file=None)


@pytest.mark.parametrize("paths", ['["../outside"]', '["/tmp/bin"]', '[" "]'])
def test_stale_build_paths_stay_inside_project(monkeypatch: pytest.MonkeyPatch, paths: str) -> None:
    monkeypatch.setenv("MEADOW_STALE_BUILD_DIRS", paths)

    with pytest.raises(ValidationError):
        DeploySettings(_env_file=None)
