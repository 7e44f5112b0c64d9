from __future__ import annotations

import enum
import filecmp
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ..config import DEFAULT_SKIP_PATTERNS
from ..errors import CopyError, PreconditionError
from ..overlay import OverlayManager

logger = logging.getLogger(__name__)

LEGACY_BUILD_MARKER = "Makefile.cvs"
BUILD_DESCRIPTOR = "Rakefile"


class ChangeKind(enum.Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ChangeRecord:
    system_path: str
    staged_path: str
    kind: ChangeKind


@dataclass
class PatchResult:
    changes: list[ChangeRecord] = field(default_factory=list)

    def _of_kind(self, kind: ChangeKind) -> list[ChangeRecord]:
        return [c for c in self.changes if c.kind is kind]

    @property
    def added(self) -> list[ChangeRecord]:
        return self._of_kind(ChangeKind.ADDED)

    @property
    def updated(self) -> list[ChangeRecord]:
        return self._of_kind(ChangeKind.UPDATED)

    @property
    def skipped(self) -> list[ChangeRecord]:
        return self._of_kind(ChangeKind.SKIPPED)

    @property
    def changed(self) -> int:
        return len(self.changes) - len(self.skipped)


def check_source(source_dir: str) -> None:
    """Reject source trees this tool cannot build and install."""
    if not os.path.isdir(source_dir):
        raise PreconditionError(f"Not a directory: {source_dir}")
    if os.path.exists(os.path.join(source_dir, LEGACY_BUILD_MARKER)):
        raise PreconditionError(
            f"{source_dir}: {LEGACY_BUILD_MARKER} found, "
            "autotools based packages are not supported"
        )
    if not os.path.isfile(os.path.join(source_dir, BUILD_DESCRIPTOR)):
        raise PreconditionError(f"{source_dir}: {BUILD_DESCRIPTOR} not found")


def _walk_files(root: str) -> Iterator[tuple[str, str]]:
    """Yield (path, relative path) of regular files in lexical order."""
    for current, dirs, files in os.walk(root):
        dirs.sort()
        for name in sorted(files):
            path = os.path.join(current, name)
            if os.path.islink(path) or not os.path.isfile(path):
                logger.debug("Ignoring non-regular file %s", path)
                continue
            yield path, os.path.relpath(path, root).replace(os.sep, "/")


class PatchEngine:
    """
    Copies a staged tree over the live system.

    Overlays are created lazily: only when a file actually has to be written
    into an existing directory. Unchanged files never trigger an overlay.
    A missing target directory is created directly instead, since there is no
    original content to preserve.
    """

    def __init__(
        self,
        manager: OverlayManager,
        system_root: str = "/",
        skip_patterns: Iterable[str] = DEFAULT_SKIP_PATTERNS,
    ):
        from pathspec import PathSpec

        self.manager = manager
        self.system_root = system_root
        self.skip_spec = PathSpec.from_lines("gitwildmatch", list(skip_patterns))

    def is_skipped(self, rel_path: str) -> bool:
        return self.skip_spec.match_file(rel_path)

    def apply(self, staged_root: str) -> PatchResult:
        if not os.path.isdir(staged_root):
            raise PreconditionError(f"Staged tree not found: {staged_root}")
        self.manager.check_tools()

        result = PatchResult()
        for staged_path, rel in _walk_files(staged_root):
            record = self.apply_file(staged_path, rel)
            result.changes.append(record)
            if record.kind is not ChangeKind.SKIPPED:
                logger.info("%s: %s", record.kind.value.capitalize(), record.system_path)

        logger.info("Changed files: %d", result.changed)
        return result

    def apply_file(self, staged_path: str, rel_path: str) -> ChangeRecord:
        target = os.path.join(self.system_root, rel_path)

        if self.is_skipped(rel_path):
            logger.debug("Skipping %s", target)
            return ChangeRecord(target, staged_path, ChangeKind.SKIPPED)

        parent = os.path.dirname(target)
        if os.path.lexists(target):
            if _same_content(staged_path, target):
                return ChangeRecord(target, staged_path, ChangeKind.SKIPPED)
            self.manager.ensure_writable(parent)
            # a symlink usually points into a read-only location
            if os.path.islink(target):
                self._unlink(target)
            self._copy(staged_path, target)
            return ChangeRecord(target, staged_path, ChangeKind.UPDATED)

        if os.path.isdir(parent):
            self.manager.ensure_writable(parent)
        else:
            try:
                os.makedirs(parent)
            except OSError as exc:
                raise CopyError(parent, exc.strerror or str(exc)) from exc
        self._copy(staged_path, target)
        return ChangeRecord(target, staged_path, ChangeKind.ADDED)

    @staticmethod
    def _unlink(path: str) -> None:
        try:
            os.unlink(path)
        except OSError as exc:
            raise CopyError(path, exc.strerror or str(exc)) from exc

    @staticmethod
    def _copy(source: str, target: str) -> None:
        try:
            shutil.copyfile(source, target)
            shutil.copystat(source, target)
        except OSError as exc:
            raise CopyError(target, exc.strerror or str(exc)) from exc


def _same_content(staged_path: str, target: str) -> bool:
    if not os.path.isfile(target):
        return False
    return filecmp.cmp(staged_path, target, shallow=False)
