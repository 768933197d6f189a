"""Late-bound task parameters.

The workflow attaches annotations to a task handle after it has learned
something (the package name the user typed, the package id scraped from the
upload output) and before the handle is started. The handle's argument builder
reads them back with :meth:`AnnotationStore.require`, which fails fast instead
of silently dropping an argument.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

A = TypeVar("A")


class MissingAnnotationError(LookupError):
    def __init__(self, kind: type, *, task_name: str = "") -> None:
        target = f" on task '{task_name}'" if task_name else ""
        super().__init__(f"Required annotation {kind.__name__} is not attached{target}")
        self.kind = kind
        self.task_name = task_name


@dataclass(frozen=True, slots=True)
class PackageNameAnnotation:
    """Name of the firmware package to create and upload."""

    name: str


@dataclass(frozen=True, slots=True)
class PublishTargetAnnotation:
    """Uploaded package and the collection it is published to."""

    package_id: str
    collection_id: str


class AnnotationStore:
    """Append-only typed attachments; the latest value of a kind wins."""

    def __init__(self, *, owner: str = "") -> None:
        self._owner = owner
        self._entries: list[object] = []

    def attach(self, annotation: object) -> None:
        self._entries.append(annotation)

    def latest(self, kind: type[A]) -> A | None:
        for entry in reversed(self._entries):
            if isinstance(entry, kind):
                return entry
        return None

    def require(self, kind: type[A]) -> A:
        found = self.latest(kind)
        if found is None:
            raise MissingAnnotationError(kind, task_name=self._owner)
        return found

    def history(self, kind: type[A]) -> list[A]:
        return [entry for entry in self._entries if isinstance(entry, kind)]

    def __len__(self) -> int:
        return len(self._entries)
