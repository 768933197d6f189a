"""External task handles and their collaborators."""

from .annotations import (
    AnnotationStore,
    MissingAnnotationError,
    PackageNameAnnotation,
    PublishTargetAnnotation,
)
from .handle import IllegalTransitionError, TaskHandle, TaskSpec, TaskState
from .launcher import ProcessLauncher, RunningProcess, SubprocessLauncher, TaskStartError
from .logs import LogLine, LogLineSequence

__all__ = [
    "AnnotationStore",
    "IllegalTransitionError",
    "LogLine",
    "LogLineSequence",
    "MissingAnnotationError",
    "PackageNameAnnotation",
    "ProcessLauncher",
    "PublishTargetAnnotation",
    "RunningProcess",
    "SubprocessLauncher",
    "TaskHandle",
    "TaskSpec",
    "TaskStartError",
    "TaskState",
]
