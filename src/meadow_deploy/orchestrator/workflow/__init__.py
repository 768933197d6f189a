"""Deployment workflow: interactive waits, output extraction and step sequencing."""

from .actions import Action, ActionResult, Filesystem, LocalFilesystem, ResetBuildState
from .deploy import DeploymentWorkflow
from .extraction import (
    COLLECTION_RULE,
    PACKAGE_ID_RULE,
    RULESET_VERSION,
    DelimitedPairsRule,
    ExtractionMissingError,
    LabeledValueRule,
    collect,
)
from .interactive_wait import InteractionContractError, run_interactive
from .maintenance import LogoutWorkflow, UninstallCliWorkflow
from .outcomes import (
    CancelledByCaller,
    CancelledByUser,
    Finished,
    RunOutcome,
    StartFailed,
    TimedOut,
)
from .resources import MeadowTaskFactory
from .state_machine import StepName, StepState, WorkflowRun
from .steps import WorkflowResult

__all__ = [
    "COLLECTION_RULE",
    "PACKAGE_ID_RULE",
    "RULESET_VERSION",
    "Action",
    "ActionResult",
    "CancelledByCaller",
    "CancelledByUser",
    "DelimitedPairsRule",
    "DeploymentWorkflow",
    "ExtractionMissingError",
    "Filesystem",
    "Finished",
    "InteractionContractError",
    "LabeledValueRule",
    "LocalFilesystem",
    "LogoutWorkflow",
    "MeadowTaskFactory",
    "ResetBuildState",
    "RunOutcome",
    "StartFailed",
    "StepName",
    "StepState",
    "TimedOut",
    "UninstallCliWorkflow",
    "WorkflowResult",
    "WorkflowRun",
    "collect",
    "run_interactive",
]
