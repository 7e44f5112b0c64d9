from __future__ import annotations

import difflib
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from ..config import Settings
from ..errors import MountError, PreconditionError
from ..system import CommandRunner
from .mounts import read_mount_table
from .paths import MIRROR, UPPER, WORK, storage_dir, unescape

logger = logging.getLogger(__name__)


class Overlay:
    """
    A directory that can be made writable with an overlay mount.

    Creating an instance has no side effects; all storage locations are
    derived from the symlink-resolved path.
    """

    def __init__(self, path: str, prefix: str):
        self.requested_path = path
        self.resolved_path = os.path.realpath(path)
        self.prefix = prefix
        if not os.path.isdir(self.resolved_path):
            raise PreconditionError(f"Not a directory: {path}")

    @property
    def upper_dir(self) -> str:
        return storage_dir(self.prefix, UPPER, self.resolved_path)

    @property
    def work_dir(self) -> str:
        return storage_dir(self.prefix, WORK, self.resolved_path)

    @property
    def mirror_dir(self) -> str:
        return storage_dir(self.prefix, MIRROR, self.resolved_path)

    @property
    def storage_dirs(self) -> tuple[str, str, str]:
        return (self.upper_dir, self.work_dir, self.mirror_dir)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Overlay):
            return NotImplemented
        return (self.resolved_path, self.prefix) == (other.resolved_path, other.prefix)

    def __hash__(self) -> int:
        return hash((self.resolved_path, self.prefix))

    def __repr__(self) -> str:
        return f"Overlay({self.resolved_path!r})"


@dataclass(frozen=True)
class ChangedFile:
    system_path: str
    upper_path: str
    mirror_path: str


def probe_writable(path: str) -> bool:
    """Check writability by actually creating a file in ``path``."""
    try:
        with tempfile.TemporaryFile(dir=path):
            pass
    except OSError:
        return False
    return True


class OverlayManager:
    """
    Creates, enumerates and removes overlay mounts under a storage prefix.

    Nothing is cached: the set of active overlays is always read back from
    the kernel mount table, so overlays created by an earlier invocation are
    seen as well. Concurrent invocations against the same directory are not
    supported.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
        probe: Callable[[str], bool] = probe_writable,
    ):
        self.settings = settings or Settings()
        self.runner = runner or CommandRunner()
        self.probe = probe

    @property
    def prefix(self) -> str:
        return self.settings.overlay_prefix

    def overlay(self, path: str) -> Overlay:
        return Overlay(path, self.prefix)

    def check_tools(self) -> None:
        """Fail before any mutation when mount or umount is unavailable."""
        self.runner.require("mount", "umount")

    def _mount(self, *args: str) -> None:
        self.runner.run(("mount", *args)).check(MountError)

    def _umount(self, path: str) -> None:
        self.runner.run(("umount", path)).check(MountError)

    def create(self, overlay: Overlay) -> bool:
        """
        Make the overlay directory writable.

        Returns False without touching anything when the directory is gone
        or already writable (possibly by other means than an overlay).
        An interruption between the mount steps leaves a partial setup that
        has to be cleaned up with ``delete``.
        """
        target = overlay.resolved_path
        if not os.path.isdir(target):
            logger.debug("Skipping missing directory %s", target)
            return False
        if self.probe(target):
            logger.debug("%s is already writable", target)
            return False

        self.check_tools()
        for path in overlay.storage_dirs:
            os.makedirs(path, exist_ok=True)

        # keep the original content reachable for diffing; the mirror must
        # not receive the overlay mount propagated from the target
        self._mount("--bind", target, overlay.mirror_dir)
        self._mount("--make-private", overlay.mirror_dir)
        self._mount(
            "-t",
            "overlay",
            "overlay",
            "-o",
            f"lowerdir={target},upperdir={overlay.upper_dir},workdir={overlay.work_dir}",
            target,
        )
        logger.info("Created overlay for %s", target)
        return True

    def ensure_writable(self, path: str) -> Overlay | None:
        """Create an overlay for ``path`` if it exists; return the overlay."""
        if not os.path.isdir(path):
            return None
        overlay = self.overlay(path)
        self.create(overlay)
        return overlay

    def delete(self, overlay: Overlay) -> None:
        """
        Unmount the overlay and drop its storage, discarding all changes.

        Not idempotent: unmounting an inactive overlay raises MountError.
        """
        self._umount(overlay.resolved_path)
        self._umount(overlay.mirror_dir)
        for path in overlay.storage_dirs:
            if os.path.isdir(path):
                shutil.rmtree(path)
        logger.info("Removed overlay for %s", overlay.resolved_path)

    def find_all(self) -> list[Overlay]:
        """Return the overlays managed under this prefix, as currently mounted."""
        upper_root = os.path.join(self.prefix, UPPER, "")
        overlays = {}
        for entry in read_mount_table(self.settings.mounts_file):
            if entry.fs_type != "overlay":
                continue
            upper = entry.option("upperdir")
            if not upper or not upper.startswith(upper_root):
                continue
            try:
                overlay = self.overlay(entry.mount_point)
            except PreconditionError:
                logger.warning("Overlay mount point %s is not accessible", entry.mount_point)
                continue
            overlays[overlay.resolved_path] = overlay
        return [overlays[path] for path in sorted(overlays)]

    def is_active(self, overlay: Overlay) -> bool:
        return overlay in self.find_all()

    def list_changed_files(self, overlay: Overlay) -> Iterator[ChangedFile]:
        """
        Yield files written through the overlay.

        Files deleted through the overlay (whiteout entries) are not reported.
        """
        upper = overlay.upper_dir
        system_dir = unescape(os.path.basename(upper))
        for root, dirs, files in os.walk(upper):
            dirs.sort()
            for name in sorted(files):
                upper_path = os.path.join(root, name)
                if os.path.islink(upper_path) or not os.path.isfile(upper_path):
                    continue
                rel = os.path.relpath(upper_path, upper)
                yield ChangedFile(
                    system_path=os.path.join(system_dir, rel),
                    upper_path=upper_path,
                    mirror_path=os.path.join(overlay.mirror_dir, rel),
                )

    def diff(self, overlay: Overlay) -> Iterator[str]:
        """Yield a unified diff (or a notice) per changed file."""
        for changed in self.list_changed_files(overlay):
            if not os.path.isfile(changed.mirror_path):
                yield f"New file: {changed.system_path}\n"
                continue
            yield from _unified_diff(changed.mirror_path, changed.upper_path)

    def default_overlay_set(self) -> list[Overlay]:
        overlays = [
            self.overlay(path) for path in self.settings.overlay_dirs if os.path.isdir(path)
        ]
        for parent in self.settings.overlay_parent_dirs:
            if not os.path.isdir(parent):
                continue
            for name in sorted(os.listdir(parent)):
                path = os.path.join(parent, name)
                if os.path.isdir(path):
                    overlays.append(self.overlay(path))
        return overlays


def _read_lines(path: str) -> list[str] | None:
    with open(path, "rb") as file:
        data = file.read()
    try:
        return data.decode("utf-8").splitlines(keepends=True)
    except UnicodeDecodeError:
        return None


def _unified_diff(old_path: str, new_path: str) -> Iterator[str]:
    old, new = _read_lines(old_path), _read_lines(new_path)
    if old is None or new is None:
        yield f"Binary files {old_path} and {new_path} differ\n"
        return
    for line in difflib.unified_diff(old, new, fromfile=old_path, tofile=new_path):
        yield line if line.endswith("\n") else line + "\n"
