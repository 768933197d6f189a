"""Meadow CLI task definitions.

Every call returns a brand-new :class:`TaskHandle`; handles are single use, so
each workflow invocation asks the factory for its own set.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.tasks.annotations import (
    AnnotationStore,
    PackageNameAnnotation,
    PublishTargetAnnotation,
)
from meadow_deploy.orchestrator.tasks.handle import ArgsBuilder, TaskHandle, TaskSpec
from meadow_deploy.orchestrator.tasks.launcher import ProcessLauncher

PACKAGE_OUTPUT_DIR = "mpak"


def package_path(name: str) -> str:
    """Where ``meadow cloud package create --name <name>`` writes its package."""

    return str(PurePosixPath(PACKAGE_OUTPUT_DIR) / f"{name}.mpak")


def _package_create_args(annotations: AnnotationStore) -> list[str]:
    return ["--name", annotations.require(PackageNameAnnotation).name]


def _package_upload_args(annotations: AnnotationStore) -> list[str]:
    return [package_path(annotations.require(PackageNameAnnotation).name)]


def _package_publish_args(annotations: AnnotationStore) -> list[str]:
    target = annotations.require(PublishTargetAnnotation)
    return [target.package_id, "--collectionId", target.collection_id]


class MeadowTaskFactory:
    def __init__(self, settings: DeploySettings, launcher: ProcessLauncher) -> None:
        self._settings = settings
        self._launcher = launcher

    def cli_check(self) -> TaskHandle:
        return self._meadow("meadow-cli-check")

    def cli_install(self) -> TaskHandle:
        args = ["tool", "install", "--local", self._settings.cli_package]
        if self._settings.cli_prerelease:
            args.append("--prerelease")
        return self._dotnet("meadow-cli-install", args)

    def cli_uninstall(self) -> TaskHandle:
        return self._dotnet(
            "meadow-cli-uninstall", ["tool", "uninstall", "--local", self._settings.cli_package]
        )

    def login_check(self) -> TaskHandle:
        return self._meadow("meadow-cli-login-check", "cloud", "collection", "list")

    def login(self) -> TaskHandle:
        return self._meadow("meadow-login", "login")

    def logout(self) -> TaskHandle:
        return self._meadow("meadow-cli-logout", "logout")

    def collection_list(self) -> TaskHandle:
        return self._meadow("meadow-cli-collection-list", "cloud", "collection", "list")

    def package_create(self) -> TaskHandle:
        return self._meadow(
            "meadow-cli-package-create",
            "cloud",
            "package",
            "create",
            args_builder=_package_create_args,
        )

    def package_upload(self) -> TaskHandle:
        return self._meadow(
            "meadow-cli-package-upload",
            "cloud",
            "package",
            "upload",
            args_builder=_package_upload_args,
        )

    def package_publish(self) -> TaskHandle:
        return self._meadow(
            "meadow-cli-package-publish",
            "cloud",
            "package",
            "publish",
            args_builder=_package_publish_args,
        )

    def _meadow(self, name: str, *args: str, args_builder: ArgsBuilder | None = None) -> TaskHandle:
        executable, *prefix = self._settings.meadow_command
        return self._handle(name, executable, [*prefix, *args], args_builder)

    def _dotnet(self, name: str, args: list[str]) -> TaskHandle:
        return self._handle(name, self._settings.dotnet_executable, args, None)

    def _handle(
        self,
        name: str,
        executable: str,
        args: list[str],
        args_builder: ArgsBuilder | None,
    ) -> TaskHandle:
        spec = TaskSpec(
            name=name,
            executable=executable,
            base_args=tuple(args),
            working_dir=self._settings.project_dir,
            args_builder=args_builder,
        )
        return TaskHandle(spec, self._launcher)
