from __future__ import annotations

import os

import pytest

from yupdate.config import Settings
from yupdate.errors import PreconditionError
from yupdate.overlay import OverlayManager
from yupdate.system import CommandResult


class FakeSystem:
    """
    Stands in for mount/umount and the writability probe.

    Mounts are recorded in a file in /proc/self/mounts format; directories in
    ``read_only`` are reported as not writable unless an overlay covers them.
    """

    def __init__(self, mounts_file: str):
        self.mounts_file = mounts_file
        self.read_only: set[str] = set()
        self.fail_on: set[str] = set()
        self.missing_tools: set[str] = set()
        self.commands: list[tuple[str, ...]] = []
        self.mounts: list[tuple[str, str, str, str]] = []
        self.extra_lines: list[str] = []
        self._write_table()

    def _write_table(self) -> None:
        lines = [f"{dev} {mp} {fs} {opts} 0 0" for dev, mp, fs, opts in self.mounts]
        with open(self.mounts_file, "w", encoding="utf-8") as file:
            file.write("\n".join(self.extra_lines + lines) + "\n")

    def add_line(self, line: str) -> None:
        self.extra_lines.append(line)
        self._write_table()

    def make_read_only(self, path) -> None:
        self.read_only.add(os.path.realpath(path))

    def overlay_mount_points(self) -> list[str]:
        return [mp for _, mp, fs, _ in self.mounts if fs == "overlay"]

    def probe(self, path: str) -> bool:
        path = os.path.realpath(path)
        if path in self.overlay_mount_points():
            return True
        return path not in self.read_only

    def require(self, *tools: str) -> None:
        missing = [tool for tool in tools if tool in self.missing_tools]
        if missing:
            raise PreconditionError(f"Required tool not found: {', '.join(missing)}")

    def run(self, args, *, cwd=None) -> CommandResult:
        args = tuple(args)
        self.commands.append(args)
        if any(arg in self.fail_on for arg in args):
            return CommandResult(args, 32, "", f"{args[0]}: simulated failure")

        if args[0] == "mount" and args[1] == "--bind":
            self.mounts.append((args[2], args[3], "none", "rw,bind"))
        elif args[0] == "mount" and args[1] == "--make-private":
            if args[2] not in [mp for _, mp, _, _ in self.mounts]:
                return CommandResult(args, 32, "", "mount: not mount point")
        elif args[0] == "mount" and args[1] == "-t":
            self.mounts.append(("overlay", args[6], args[2], f"rw,{args[5]}"))
        elif args[0] == "umount":
            for entry in reversed(self.mounts):
                if entry[1] == args[1]:
                    self.mounts.remove(entry)
                    break
            else:
                return CommandResult(args, 32, "", f"umount: {args[1]}: not mounted.")
        else:
            return CommandResult(args, 127, "", f"unexpected command {args[0]}")

        self._write_table()
        return CommandResult(args, 0)


@pytest.fixture
def fake_system(tmp_path) -> FakeSystem:
    return FakeSystem(str(tmp_path / "mounts"))


@pytest.fixture
def settings(tmp_path, fake_system) -> Settings:
    return Settings(
        overlay_prefix=str(tmp_path / "storage"),
        mounts_file=fake_system.mounts_file,
        overlay_dirs=(),
        overlay_parent_dirs=(),
    )


@pytest.fixture
def manager(settings, fake_system) -> OverlayManager:
    return OverlayManager(settings, runner=fake_system, probe=fake_system.probe)
