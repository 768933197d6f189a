from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    message: str
    details: dict[str, object] | None = None


class Action(Protocol):
    """A deterministic, testable, idempotent step that runs no external task."""

    def execute(self) -> ActionResult: ...


class Filesystem(Protocol):
    def dir_exists(self, path: Path) -> bool: ...

    def remove_tree(self, path: Path) -> None: ...

    def file_exists(self, path: Path) -> bool: ...

    def remove_file(self, path: Path) -> None: ...


class LocalFilesystem:
    def dir_exists(self, path: Path) -> bool:
        return path.is_dir()

    def remove_tree(self, path: Path) -> None:
        shutil.rmtree(path)

    def file_exists(self, path: Path) -> bool:
        return path.is_file()

    def remove_file(self, path: Path) -> None:
        path.unlink()


@dataclass(frozen=True, slots=True)
class ResetBuildState(Action):
    """Remove stale build output before packaging.

    Idempotency:
      - Paths that do not exist are skipped; running twice is a success both times.
      - A path that exists but cannot be removed fails loudly (the next
        package would otherwise include stale artefacts).
    """

    project_dir: Path
    directories: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    filesystem: Filesystem = field(default_factory=LocalFilesystem)

    def execute(self) -> ActionResult:
        removed: list[str] = []
        for rel in self.directories:
            path = self.project_dir / rel
            if not self.filesystem.dir_exists(path):
                continue
            try:
                self.filesystem.remove_tree(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                return ActionResult(
                    ok=False,
                    message=f"Could not remove stale build directory {path}: {e}",
                    details={"path": str(path), "removed": removed},
                )
            removed.append(str(path))

        for rel in self.files:
            path = self.project_dir / rel
            if not self.filesystem.file_exists(path):
                continue
            try:
                self.filesystem.remove_file(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                return ActionResult(
                    ok=False,
                    message=f"Could not remove stale build file {path}: {e}",
                    details={"path": str(path), "removed": removed},
                )
            removed.append(str(path))

        if removed:
            logger.info("Removed stale build output", extra={"paths": removed})
            return ActionResult(ok=True, message="Removed", details={"removed": removed})
        return ActionResult(ok=True, message="Already clean", details={"removed": removed})
