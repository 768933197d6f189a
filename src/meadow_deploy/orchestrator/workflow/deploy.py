"""Deploy firmware to Meadow Cloud.

Plan (install and login are skipped when their check already succeeds):

    check CLI -> [confirm install -> install CLI]
    check login -> [confirm login -> login]
    list collections -> choose collection + package name
    reset build state -> create package -> upload package -> publish package

Each invocation builds its own :class:`WorkflowRun` and its own task handles,
so a failed run can simply be started again.
"""

from __future__ import annotations

import logging

from meadow_deploy.orchestrator.cancellation import CancellationSignal, OperationCancelledError
from meadow_deploy.orchestrator.config import DeploySettings
from meadow_deploy.orchestrator.interaction.types import (
    InputChoice,
    InputField,
    InputKind,
    InteractionService,
    MessageIntent,
    PromptOptions,
)
from meadow_deploy.orchestrator.tasks.annotations import (
    PackageNameAnnotation,
    PublishTargetAnnotation,
)
from meadow_deploy.orchestrator.tasks.launcher import ProcessLauncher

from .actions import Filesystem, LocalFilesystem, ResetBuildState
from .extraction import COLLECTION_RULE, PACKAGE_ID_RULE, ExtractionMissingError, collect
from .outcomes import CancelledByCaller
from .state_machine import StepName, StepState, WorkflowRun
from .steps import StepAborted, StepRunner, WorkflowResult, outcome_message, result_details

logger = logging.getLogger(__name__)

COLLECTION_FIELD = "collection"
PACKAGE_NAME_FIELD = "package_name"


class DeploymentWorkflow(StepRunner):
    """Install/login if needed, then package, upload and publish the firmware."""

    def __init__(
        self,
        *,
        settings: DeploySettings,
        launcher: ProcessLauncher,
        interaction: InteractionService,
        filesystem: Filesystem | None = None,
    ) -> None:
        super().__init__(settings=settings, launcher=launcher, interaction=interaction)
        self.filesystem = filesystem or LocalFilesystem()

    async def run(self, cancel: CancellationSignal) -> WorkflowResult:
        run = WorkflowRun()
        logger.info(
            "Deployment workflow started",
            extra={"project_dir": str(self.settings.project_dir)},
        )
        try:
            await self._ensure_cli(run, cancel)
            await self._ensure_login(run, cancel)
            await self._fetch_collections(run, cancel)
            await self._choose_target(run, cancel)
            self._reset_build_state(run)
            await self._create_package(run, cancel)
            await self._upload_package(run, cancel)
            await self._publish_package(run, cancel)
        except StepAborted as e:
            return WorkflowResult(
                ok=False,
                message=e.message,
                details=result_details(run),
                cancelled=e.state == StepState.CANCELLED_BY_CALLER,
            )
        except Exception as e:
            logger.exception("Deployment workflow failed")
            return WorkflowResult(
                ok=False,
                message=f"An error occurred while deploying firmware to the cloud: {e}",
                details=result_details(run),
            )

        collection_name = run.collections.get(run.collection_id or "", run.collection_id)
        logger.info(
            "Deployment workflow succeeded",
            extra={"package_id": run.package_id, "collection_id": run.collection_id},
        )
        return WorkflowResult(
            ok=True,
            message=(
                f"Published package '{run.package_name}' (id {run.package_id}) "
                f"to collection '{collection_name}'."
            ),
            details={
                **result_details(run),
                "package_name": run.package_name,
                "package_id": run.package_id,
                "collection_id": run.collection_id,
            },
        )

    async def _ensure_cli(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        check = await self.run_task(
            run,
            StepName.CHECK_CLI,
            self.tasks.cli_check(),
            title="Meadow CLI",
            message="Checking whether the Meadow CLI is installed...",
            cancel=cancel,
            require_success=False,
        )
        self.succeed(run, StepName.CHECK_CLI, outcome=check)
        if check.succeeded:
            run.skip(StepName.CONFIRM_INSTALL, "Meadow CLI already installed")
            run.skip(StepName.INSTALL_CLI, "Meadow CLI already installed")
            return

        await self.confirm(
            run,
            StepName.CONFIRM_INSTALL,
            title="Install Meadow CLI",
            message="The Meadow CLI is not installed. Do you want to install it now?",
            primary_button_text="Install",
            declined_message="User canceled the installation of the Meadow CLI.",
            cancel=cancel,
        )
        installed = await self.run_task(
            run,
            StepName.INSTALL_CLI,
            self.tasks.cli_install(),
            title="Install Meadow CLI",
            message="Installing the Meadow CLI...",
            cancel=cancel,
        )
        self.succeed(run, StepName.INSTALL_CLI, outcome=installed)

    async def _ensure_login(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        check = await self.run_task(
            run,
            StepName.CHECK_LOGIN,
            self.tasks.login_check(),
            title="Meadow Cloud",
            message="Checking whether you are logged in to Meadow Cloud...",
            cancel=cancel,
            require_success=False,
        )
        self.succeed(run, StepName.CHECK_LOGIN, outcome=check)
        if check.succeeded:
            run.skip(StepName.CONFIRM_LOGIN, "Already logged in")
            run.skip(StepName.LOGIN, "Already logged in")
            return

        await self.confirm(
            run,
            StepName.CONFIRM_LOGIN,
            title="Login to Meadow Cloud",
            message=(
                "You must be logged in to deploy firmware to the cloud. "
                "Do you want to log in now?"
            ),
            primary_button_text="Login",
            declined_message="User canceled the login operation.",
            cancel=cancel,
        )
        logged_in = await self.run_task(
            run,
            StepName.LOGIN,
            self.tasks.login(),
            title="Login to Meadow Cloud",
            message="Complete the login in your browser...",
            cancel=cancel,
        )
        self.succeed(run, StepName.LOGIN, outcome=logged_in)

    async def _fetch_collections(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        handle = self.tasks.collection_list()
        listed = await self.run_task(
            run,
            StepName.LIST_COLLECTIONS,
            handle,
            title="Meadow Cloud",
            message="Retrieving your Meadow Cloud collections...",
            cancel=cancel,
        )
        collections = await collect(COLLECTION_RULE, handle.logs.lines())
        if not collections:
            missing = ExtractionMissingError("any Meadow Cloud collections", task_name=handle.name)
            self.abort(run, StepName.LIST_COLLECTIONS, StepState.FAILED, str(missing), listed)
        run.collections = collections
        self.succeed(
            run,
            StepName.LIST_COLLECTIONS,
            outcome=listed,
            message=f"{len(collections)} collection(s)",
        )

    async def _choose_target(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        step = StepName.CHOOSE_TARGET
        run.begin(step)
        fields = [
            InputField(
                name=COLLECTION_FIELD,
                label="Collection",
                kind=InputKind.CHOICE,
                choices=tuple(
                    InputChoice(value=cid, label=name) for cid, name in run.collections.items()
                ),
            ),
            InputField(
                name=PACKAGE_NAME_FIELD,
                label="Package name",
                placeholder="e.g. firmware-1.0.0",
            ),
        ]
        options = PromptOptions(
            primary_button_text="Deploy",
            secondary_button_text="Cancel",
            intent=MessageIntent.CONFIRMATION,
        )
        try:
            result = await self.interaction.prompt_inputs(
                "Deploy to Meadow Cloud",
                "Choose the collection to publish to and name the firmware package.",
                fields,
                options,
                cancel=cancel,
            )
        except OperationCancelledError:
            self.abort(
                run, step, StepState.CANCELLED_BY_CALLER, outcome_message(step, CancelledByCaller())
            )
        if result.cancelled or result.data is None:
            self.abort(run, step, StepState.CANCELLED_BY_USER, "User canceled the deployment.")

        collection_id = result.data.get(COLLECTION_FIELD).strip()
        package_name = result.data.get(PACKAGE_NAME_FIELD).strip()
        if collection_id not in run.collections:
            self.abort(run, step, StepState.FAILED, f"Unknown collection: '{collection_id}'.")
        if not package_name:
            self.abort(run, step, StepState.FAILED, "A package name is required.")
        if "/" in package_name or "\\" in package_name:
            self.abort(
                run, step, StepState.FAILED, "The package name must not contain path separators."
            )

        run.collection_id = collection_id
        run.package_name = package_name
        self.succeed(run, step, message=f"{package_name} -> {collection_id}")

    def _reset_build_state(self, run: WorkflowRun) -> None:
        step = StepName.RESET_BUILD
        run.begin(step)
        result = ResetBuildState(
            project_dir=self.settings.project_dir,
            directories=tuple(self.settings.stale_build_dirs),
            files=tuple(self.settings.stale_build_files),
            filesystem=self.filesystem,
        ).execute()
        if not result.ok:
            self.abort(run, step, StepState.FAILED, result.message)
        self.succeed(run, step, message=result.message)

    async def _create_package(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        assert run.package_name is not None
        handle = self.tasks.package_create()
        handle.annotations.attach(PackageNameAnnotation(name=run.package_name))
        created = await self.run_task(
            run,
            StepName.BUILD_PACKAGE,
            handle,
            title="Meadow Cloud",
            message=f"Creating firmware package '{run.package_name}'...",
            cancel=cancel,
        )
        self.succeed(run, StepName.BUILD_PACKAGE, outcome=created)

    async def _upload_package(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        assert run.package_name is not None
        handle = self.tasks.package_upload()
        handle.annotations.attach(PackageNameAnnotation(name=run.package_name))
        uploaded = await self.run_task(
            run,
            StepName.UPLOAD_PACKAGE,
            handle,
            title="Meadow Cloud",
            message=f"Uploading firmware package '{run.package_name}'...",
            cancel=cancel,
        )
        package_id = await collect(PACKAGE_ID_RULE, handle.logs.lines())
        if not package_id:
            missing = ExtractionMissingError("the uploaded package id", task_name=handle.name)
            self.abort(run, StepName.UPLOAD_PACKAGE, StepState.FAILED, str(missing), uploaded)
        run.package_id = package_id
        self.succeed(run, StepName.UPLOAD_PACKAGE, outcome=uploaded, message=package_id)

    async def _publish_package(self, run: WorkflowRun, cancel: CancellationSignal) -> None:
        assert run.package_id is not None and run.collection_id is not None
        handle = self.tasks.package_publish()
        handle.annotations.attach(
            PublishTargetAnnotation(package_id=run.package_id, collection_id=run.collection_id)
        )
        published = await self.run_task(
            run,
            StepName.PUBLISH_PACKAGE,
            handle,
            title="Meadow Cloud",
            message=f"Publishing package {run.package_id}...",
            cancel=cancel,
        )
        self.succeed(run, StepName.PUBLISH_PACKAGE, outcome=published)
